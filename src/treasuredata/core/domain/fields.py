"""Flexible JSON field types.

The same logical field is serialized differently by different Treasure Data
surfaces: the v3 API returns compact epoch integers or `2020-06-11 10:25:10 UTC`
strings, the CDP JSON:API returns ISO-8601 strings with milliseconds, job
queries arrive either as SQL text or as an object, and workflow identifiers
flip between strings and numbers. These types absorb that drift at decode time
so models and callers only ever see one in-memory shape.

All of them plug into pydantic v2 (`__get_pydantic_core_schema__` or
`Annotated` validators) and can also be used standalone through the
`decode_*` / `parse_*` functions.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Annotated, Any

from pydantic import GetCoreSchemaHandler, PlainSerializer, PlainValidator, TypeAdapter, ValidationInfo
from pydantic_core import core_schema

from treasuredata.core.errors import MalformedFieldError, MalformedTimestampError


class JSONNumber(float):
    """A float that remembers the literal it was parsed from.

    Used as `parse_float` hook in `loads` so flexible text fields can keep the
    exact decimal text of a number (`1.50` stays `"1.50"`).
    """

    text: str

    def __new__(cls, text: str) -> "JSONNumber":
        obj = super().__new__(cls, text)
        obj.text = text
        return obj


def loads(data: bytes | str) -> Any:
    """Parse a JSON document keeping the original text of non-integer numbers."""

    return json.loads(data, parse_float=JSONNumber)


def compact_json(value: Any) -> str:
    """Compact JSON text; `JSONNumber` values are written as their original literal."""

    if isinstance(value, JSONNumber):
        return value.text
    if isinstance(value, dict):
        items = (f"{compact_json(str(k))}:{compact_json(v)}" for k, v in value.items())
        return "{" + ",".join(items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(compact_json(v) for v in value) + "]"
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _json_kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _number_text(value: int | float) -> str:
    if isinstance(value, JSONNumber):
        return value.text
    if isinstance(value, int):
        return str(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


# ---------------------------------------------------------------------------
# Flexible text
# ---------------------------------------------------------------------------


def decode_flexible_text(raw: Any, field: str | None = None) -> str | None:
    """Decode a wire value into `None` (absent) or its exact text.

    - null -> None
    - string -> the string verbatim
    - number -> its decimal text
    - object -> compact JSON text, key order as decoded
    - anything else -> `MalformedFieldError`
    """

    if isinstance(raw, FlexibleText):
        return raw.value
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise MalformedFieldError(field, "boolean", raw)
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (int, float)):
        return _number_text(raw)
    if isinstance(raw, dict):
        return compact_json(raw)
    raise MalformedFieldError(field, _json_kind(raw), raw)


class FlexibleText:
    """Optional text whose wire form may be string, number, object or null.

    Encoding collapses every present value to a JSON string: the payload
    survives, the original JSON type does not.
    """

    __slots__ = ("_value",)

    def __init__(self, value: str | None = None) -> None:
        self._value = value

    @classmethod
    def decode(cls, raw: Any, field: str | None = None) -> "FlexibleText":
        return cls(decode_flexible_text(raw, field))

    @property
    def value(self) -> str | None:
        return self._value

    @property
    def is_present(self) -> bool:
        return self._value is not None

    def as_text(self) -> str:
        """Stored text, or an empty string when absent."""

        return self._value if self._value is not None else ""

    def encode(self) -> str | None:
        """JSON-ready value: `None` for absent, the payload string otherwise."""

        return self._value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FlexibleText):
            return self._value == other._value
        if other is None or isinstance(other, str):
            return self._value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __str__(self) -> str:
        return self.as_text()

    def __repr__(self) -> str:
        if self._value is None:
            return "FlexibleText(<absent>)"
        return f"FlexibleText({self._value!r})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.with_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(cls._serialize),
        )

    @classmethod
    def _validate(cls, value: Any, info: ValidationInfo) -> "FlexibleText":
        return cls.decode(value, info.field_name)

    @staticmethod
    def _serialize(value: Any) -> str | None:
        if isinstance(value, FlexibleText):
            return value.encode()
        return value


# ---------------------------------------------------------------------------
# Flexible identifiers and integers
# ---------------------------------------------------------------------------


def _validate_flexible_id(value: Any, info: ValidationInfo) -> str:
    if isinstance(value, dict):
        raise MalformedFieldError(info.field_name, "object", value)
    text = decode_flexible_text(value, info.field_name)
    if text is None:
        raise MalformedFieldError(info.field_name, "null", value)
    return text


def decode_flexible_int(raw: Any, field: str | None = None) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise MalformedFieldError(field, "boolean", raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if raw.is_integer():
            return int(raw)
        raise MalformedFieldError(field, "number", raw)
    if isinstance(raw, str):
        text = raw.strip()
        if text in ("", "null"):
            return None
        try:
            return int(text)
        except ValueError:
            raise MalformedFieldError(field, "string", raw) from None
    raise MalformedFieldError(field, _json_kind(raw), raw)


def _validate_flexible_int(value: Any, info: ValidationInfo) -> int | None:
    return decode_flexible_int(value, info.field_name)


FlexibleID = Annotated[str, PlainValidator(_validate_flexible_id)]
"""Required identifier that may arrive as a JSON string or number."""

FlexibleInt = Annotated[int | None, PlainValidator(_validate_flexible_int)]
"""Integer that may arrive as a number, a numeric string or null."""


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

_EPOCH_RE = re.compile(r"-?\d+")
_RFC3339_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})"
)
_LEGACY_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


def _parse_offset(text: str) -> timezone:
    if text in ("Z", "z"):
        return timezone.utc
    sign = -1 if text[0] == "-" else 1
    hours, minutes = int(text[1:3]), int(text[4:6])
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def _parse_rfc3339(text: str) -> datetime | None:
    match = _RFC3339_RE.fullmatch(text)
    if match is None:
        return None
    year, month, day, hour, minute, second, fraction, offset = match.groups()
    micros = int((fraction or "0")[:6].ljust(6, "0"))
    return datetime(
        int(year),
        int(month),
        int(day),
        int(hour),
        int(minute),
        int(second),
        micros,
        tzinfo=_parse_offset(offset),
    )


def parse_timestamp(raw: Any, field: str | None = None) -> datetime | None:
    """Decode an epoch number or a timestamp string into an aware datetime.

    Numbers are whole epoch seconds; a fractional part is truncated. Accepted
    strings: epoch seconds, RFC3339 (optional fraction, explicit offset) and
    the v3 `YYYY-MM-DD HH:MM:SS UTC` form. Null and the empty string decode
    to `None`.
    """

    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw if raw.tzinfo is not None else raw.replace(tzinfo=timezone.utc)
    if isinstance(raw, bool):
        raise MalformedTimestampError(field, raw)
    try:
        if isinstance(raw, (int, float)):
            return datetime.fromtimestamp(int(raw), tz=timezone.utc)
        if isinstance(raw, str):
            text = raw.strip()
            if not text:
                return None
            if _EPOCH_RE.fullmatch(text):
                return datetime.fromtimestamp(int(text), tz=timezone.utc)
            parsed = _parse_rfc3339(text)
            if parsed is not None:
                return parsed
            if text.endswith(" UTC"):
                return datetime.strptime(text, _LEGACY_FORMAT).replace(tzinfo=timezone.utc)
    except (ValueError, OverflowError, OSError):
        raise MalformedTimestampError(field, raw) from None
    raise MalformedTimestampError(field, raw)


def _validate_timestamp(value: Any, info: ValidationInfo) -> datetime | None:
    return parse_timestamp(value, info.field_name)


def _serialize_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


TDTimestamp = Annotated[
    datetime,
    PlainValidator(_validate_timestamp),
    PlainSerializer(_serialize_timestamp, when_used="json"),
]
"""Point in time decoded from epoch seconds or an ISO-8601 string."""


# ---------------------------------------------------------------------------
# Typed decoding
# ---------------------------------------------------------------------------


@lru_cache(maxsize=256)
def _adapter(into: Any) -> TypeAdapter[Any]:
    return TypeAdapter(into)


def validate_into(data: Any, into: Any = None) -> Any:
    """Validate already-parsed JSON into `into` (a model, `list[Model]`, ...).

    With `into=None` the data is returned unchanged.
    """

    if into is None:
        return data
    return _adapter(into).validate_python(data)
