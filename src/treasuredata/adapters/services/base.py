"""Shared helpers for the per-resource services."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from treasuredata.core.errors import InvalidArgumentError
from treasuredata.core.interfaces.transport import Transport


class BaseService:
    """A service only builds paths and bodies; the transport does the rest."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport


def require(field: str, value: Any) -> str:
    """Return `value` as text, rejecting `None` and blank strings."""

    if value is None or not str(value).strip():
        raise InvalidArgumentError(field, value, "cannot be empty")
    return str(value)


def seg(value: Any) -> str:
    """Percent-encode one path segment."""

    return quote(str(value), safe="")


def compact(**values: Any) -> dict[str, Any]:
    """Build a dict from keyword arguments, leaving out `None` values."""

    return {key: value for key, value in values.items() if value is not None}
