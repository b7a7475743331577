"""Ignore-pattern matching for resource identifiers.

Patterns share the identifier's six-field shape. An empty field or ``*``
matches any value in that position; the resource field additionally accepts
``type/*`` or ``type:*`` to match every resource of one type.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from resource_watcher.identifiers import MalformedIdentifierError, parse_identifier
from resource_watcher.observability.logging import get_logger

_logger = get_logger("filters")

_WILDCARD = "*"
_TYPE_SUFFIXES = ("/*", ":*")


def _field_matches(value: str, pattern: str) -> bool:
    return pattern in ("", _WILDCARD) or value == pattern


def _resource_matches(resource: str, pattern: str) -> bool:
    if pattern in ("", _WILDCARD):
        return True
    if pattern.endswith(_TYPE_SUFFIXES):
        resource_type = pattern[:-2]
        return resource.startswith((resource_type + "/", resource_type + ":"))
    return resource == pattern


def matches(identifier: str, pattern: str) -> bool:
    """Return True if *identifier* is covered by *pattern*.

    Malformed input on either side never matches; it is logged as a
    data-quality warning instead of raised.
    """
    try:
        ident = parse_identifier(identifier)
        pat = parse_identifier(pattern)
    except MalformedIdentifierError as exc:
        _logger.warning("malformed_identifier", identifier=identifier, pattern=pattern, error=str(exc))
        return False

    ident_fields = ident.as_tuple()
    pat_fields = pat.as_tuple()
    for value, expected in zip(ident_fields[:5], pat_fields[:5], strict=True):
        if not _field_matches(value, expected):
            return False
    return _resource_matches(ident.resource, pat.resource)


def filter_identifiers(identifiers: Iterable[str], patterns: Sequence[str]) -> list[str]:
    """Return the identifiers that match none of *patterns*, preserving order."""
    if not patterns:
        return list(identifiers)

    kept: list[str] = []
    for identifier in identifiers:
        hit = next((p for p in patterns if matches(identifier, p)), None)
        if hit is None:
            kept.append(identifier)
        else:
            _logger.debug("identifier_ignored", identifier=identifier, pattern=hit)
    return kept
