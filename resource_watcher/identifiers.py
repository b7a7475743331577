"""ARN-style identifier parsing."""

from __future__ import annotations

from resource_watcher.models.resources import IdentifierParts

_FIELD_COUNT = 6


class MalformedIdentifierError(ValueError):
    """Raised when an identifier or pattern has fewer than six fields."""

    def __init__(self, value: str) -> None:
        super().__init__(f"expected at least {_FIELD_COUNT} colon-delimited fields: {value!r}")
        self.value = value


def parse_identifier(value: str) -> IdentifierParts:
    """Split *value* into its six ARN fields.

    Anything after the fifth colon stays in the resource field, so
    ``arn:aws:logs:eu-west-1:123:log-group:/aws/x`` keeps ``log-group:/aws/x``
    intact.

    Raises:
        MalformedIdentifierError: if *value* has fewer than six fields.
    """
    parts = value.split(":", _FIELD_COUNT - 1)
    if len(parts) < _FIELD_COUNT:
        raise MalformedIdentifierError(value)
    return IdentifierParts(*parts)
