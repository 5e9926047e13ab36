"""Forward-only cursor over newline-delimited JSON result bodies.

Why a cursor instead of `response.json()`:
- Query results can be far larger than memory; lines are pulled from the
  open HTTP body one at a time.
- Reading and decoding are separate steps: a malformed record fails only its
  own `decode_current()` call, while a broken connection ends iteration.

States: open -> exhausted (clean EOF) | errored (sticky transport error), and
independently released. The cursor owns the response and closes it exactly
once, through `release()` or the context manager.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

import httpx
from pydantic import ValidationError

from treasuredata.core.domain.fields import loads, validate_into
from treasuredata.core.errors import DecodeError, MalformedFieldError, MalformedTimestampError, TransportError

logger = logging.getLogger(__name__)


class JSONLCursor:
    """Iterate the lines of a streamed response body.

    Usage:
        with client.results.get_result_jsonl(job_id) as cursor:
            while cursor.advance():
                row = cursor.decode_current()
            if cursor.last_error:
                raise cursor.last_error
    """

    def __init__(self, response: httpx.Response, *, chunk_size: int | None = None) -> None:
        self._response = response
        self._chunks = response.iter_bytes(chunk_size)
        self._buffer = bytearray()
        self._current: bytes | None = None
        self._exhausted = False
        self._error: TransportError | None = None
        self._released = False

    @property
    def last_error(self) -> TransportError | None:
        """Transport failure that ended iteration, `None` after a clean EOF."""

        return self._error

    @property
    def released(self) -> bool:
        return self._released

    def advance(self) -> bool:
        """Move to the next line. Returns `False` once the stream is done."""

        if self._exhausted or self._error is not None or self._released:
            self._current = None
            return False

        while True:
            newline = self._buffer.find(b"\n")
            if newline >= 0:
                line = bytes(self._buffer[:newline])
                del self._buffer[: newline + 1]
                self._current = _strip_cr(line)
                return True

            try:
                chunk = next(self._chunks)
            except StopIteration:
                self._exhausted = True
                if self._buffer:
                    self._current = _strip_cr(bytes(self._buffer))
                    self._buffer.clear()
                    return True
                self._current = None
                return False
            except (httpx.HTTPError, httpx.StreamError) as exc:
                self._error = TransportError(f"reading result stream: {exc}")
                self._error.__cause__ = exc
                self._current = None
                logger.debug("result stream failed: %s", exc)
                return False

            self._buffer += chunk

    def current_bytes(self) -> bytes:
        """Current line without its line terminator.

        Raises `RuntimeError` unless the last `advance()` returned `True`.
        """

        if self._current is None:
            raise RuntimeError("no current line: call advance() and check it returned True")
        return self._current

    def current_text(self) -> str:
        return self.current_bytes().decode("utf-8", errors="replace")

    def decode_current(self, into: Any = None) -> Any:
        """Parse the current line as one JSON value, optionally into `into`.

        Does not move the cursor. Failures raise `DecodeError` with the raw
        line and the underlying cause.
        """

        line = self.current_bytes()
        try:
            return validate_into(loads(line), into)
        except (ValueError, ValidationError, MalformedFieldError, MalformedTimestampError) as exc:
            raise DecodeError(line, exc) from exc

    def release(self) -> None:
        """Close the underlying response. Safe to call more than once."""

        if self._released:
            return
        self._released = True
        self._current = None
        self._buffer.clear()
        self._response.close()
        logger.debug("result stream released")

    def __enter__(self) -> "JSONLCursor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def __iter__(self) -> Iterator[bytes]:
        while self.advance():
            yield self.current_bytes()


def _strip_cr(line: bytes) -> bytes:
    if line.endswith(b"\r"):
        return line[:-1]
    return line
