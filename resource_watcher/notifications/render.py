"""Subject and body rendering shared by the mail channels."""

from __future__ import annotations

from html import escape

from resource_watcher.models.resources import ResourceChange

_ADDED_COLOR = "#28a745"
_REMOVED_COLOR = "#dc3545"


def build_subject(change: ResourceChange) -> str:
    return f"AWS Resource Changes Detected - Account {change.account_id}"


def format_timestamp(change: ResourceChange) -> str:
    """RFC 3339 timestamp without fractional seconds."""
    return change.timestamp.replace(microsecond=0).isoformat()


def build_plain(change: ResourceChange) -> str:
    lines = [
        "AWS Resource Changes Detected",
        "=" * 60,
        "",
        f"Account ID: {change.account_id}",
        f"Timestamp:  {format_timestamp(change)}",
    ]
    for title, identifiers in (("Added", change.added), ("Removed", change.removed)):
        if not identifiers:
            continue
        lines += ["", f"{title} Resources ({len(identifiers)})", "-" * 60]
        lines += [f"  {arn}" for arn in identifiers]
    return "\n".join(lines) + "\n"


def _resource_section(title: str, identifiers: list[str], color: str) -> str:
    if not identifiers:
        return ""
    rows = "\n".join(
        f'            <div style="font-family: monospace; font-size: 12px;">{escape(arn)}</div>'
        for arn in identifiers
    )
    return f"""
        <h3>{title} Resources ({len(identifiers)})</h3>
        <div style="background-color: #f8f9fa; padding: 10px; border-radius: 5px;
                    margin: 10px 0; border-left: 4px solid {color};">
{rows}
        </div>"""


def build_html(change: ResourceChange) -> str:
    added = _resource_section("Added", change.added, _ADDED_COLOR)
    removed = _resource_section("Removed", change.removed, _REMOVED_COLOR)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>AWS Resource Changes Detected</title>
</head>
<body style="font-family: Arial, sans-serif;">
    <div style="background-color: #f8f9fa; padding: 20px; border-radius: 5px;">
        <h2>AWS Resource Changes Detected</h2>
        <p><strong>Account ID:</strong> {escape(change.account_id)}</p>
        <p><strong>Timestamp:</strong> {format_timestamp(change)}</p>
    </div>
    <div style="margin: 20px 0;">{added}{removed}
    </div>
</body>
</html>"""
