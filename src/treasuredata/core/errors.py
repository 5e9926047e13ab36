"""Error taxonomy shared by the client, the codecs and the CLI.

Why a single module:
- Services, codecs and the streaming cursor raise from the same hierarchy, so
  callers can catch `TreasureDataError` once at the edge (the CLI does).
- None of these subclass `ValueError`: pydantic only wraps `ValueError` and
  `AssertionError` raised inside validators, so codec errors reach the caller
  exactly as raised.
"""

from __future__ import annotations

from typing import Any


class TreasureDataError(Exception):
    """Base class for every error raised by this package."""


class MalformedFieldError(TreasureDataError):
    """A flexible field arrived with a JSON shape it cannot absorb."""

    def __init__(self, field: str | None, kind: str, value: Any = None) -> None:
        self.field = field or "<unknown>"
        self.kind = kind
        self.value = value
        super().__init__(f"malformed field {self.field!r}: unexpected JSON {kind}")


class MalformedTimestampError(TreasureDataError):
    """A timestamp string matched none of the accepted wire formats."""

    def __init__(self, field: str | None, value: Any) -> None:
        self.field = field or "<unknown>"
        self.value = value
        super().__init__(f"malformed timestamp in field {self.field!r}: {value!r}")


class DecodeError(TreasureDataError):
    """A streamed line could not be decoded into the requested shape."""

    def __init__(self, line: bytes, cause: Exception) -> None:
        self.line = line
        self.cause = cause
        preview = line[:200].decode("utf-8", errors="replace")
        super().__init__(f"cannot decode line {preview!r}: {cause}")


class TransportError(TreasureDataError):
    """The HTTP transport failed (connection, timeout, broken body stream)."""


class APIError(TreasureDataError):
    """Non-2xx response from one of the Treasure Data APIs."""

    def __init__(
        self,
        status_code: int,
        *,
        method: str = "",
        url: str = "",
        message: str = "",
        error: str = "",
        text: str = "",
        severity: str = "",
        body: str = "",
    ) -> None:
        self.status_code = status_code
        self.method = method
        self.url = url
        self.message = message
        self.error = error
        self.text = text
        self.severity = severity
        self.body = body
        detail = message or error or text or body[:500]
        super().__init__(f"{method} {url}: {status_code} {detail}".strip())


class InvalidArgumentError(TreasureDataError):
    """Client-side validation failed before any request was sent."""

    def __init__(self, field: str, value: Any, message: str) -> None:
        self.field = field
        self.value = value
        self.message = message
        if field:
            super().__init__(f"validation error: {field} - {message}")
        else:
            super().__init__(f"validation error: {message}")


class WorkflowError(TreasureDataError):
    """A workflow operation returned a status it does not accept."""

    def __init__(
        self,
        operation: str,
        *,
        workflow_id: str | None = None,
        attempt_id: str | None = None,
        task_id: str | None = None,
        project_id: str | None = None,
        status_code: int | None = None,
        message: str = "",
    ) -> None:
        self.operation = operation
        self.workflow_id = workflow_id
        self.attempt_id = attempt_id
        self.task_id = task_id
        self.project_id = project_id
        self.status_code = status_code
        self.message = message
        super().__init__(self._render())

    def _render(self) -> str:
        msg = f"workflow error: {self.operation}"
        if self.workflow_id:
            ids = [f"workflow_id={self.workflow_id}"]
            if self.attempt_id:
                ids.append(f"attempt_id={self.attempt_id}")
            if self.task_id:
                ids.append(f"task_id={self.task_id}")
            msg += f" ({', '.join(ids)})"
        elif self.project_id:
            msg += f" (project_id={self.project_id})"
        if self.status_code:
            msg += f" - HTTP {self.status_code}"
        if self.message:
            msg += f": {self.message}"
        return msg


class ArchiveError(TreasureDataError):
    """A project archive broke a safety limit or could not be built or read."""


class HookError(TreasureDataError):
    """A pre-upload hook is misconfigured, failed or timed out."""

    def __init__(self, hook: str, message: str) -> None:
        self.hook = hook
        self.message = message
        super().__init__(f"hook {hook!r}: {message}" if hook else message)
