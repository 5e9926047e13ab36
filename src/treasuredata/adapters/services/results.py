"""Job results and result destinations.

Why streaming by default:
- `get_result` hands back the open response so large results never sit in
  memory; the caller (or `JSONLCursor`) closes it.
- `get_result_json` is the convenience path for small results.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx
from pydantic import ValidationError

from treasuredata.adapters.services.base import BaseService, compact, require, seg
from treasuredata.adapters.streaming import JSONLCursor
from treasuredata.core.domain.fields import loads, validate_into
from treasuredata.core.domain.models import Result, ResultFormat, ResultListResponse
from treasuredata.core.errors import DecodeError, InvalidArgumentError, TransportError

logger = logging.getLogger(__name__)


def _result_format(value: ResultFormat | str) -> ResultFormat:
    try:
        return ResultFormat(getattr(value, "value", value))
    except ValueError:
        allowed = ", ".join(f.value for f in ResultFormat)
        raise InvalidArgumentError("format", value, f"must be one of: {allowed}") from None


class ResultsService(BaseService):
    def get_result(
        self,
        job_id: str,
        *,
        format: ResultFormat | str | None = None,
        limit: int | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Open the result body of a finished job. The caller must close it."""

        job_id = require("job_id", job_id)
        if limit is not None and limit < 0:
            raise InvalidArgumentError("limit", limit, "cannot be negative")
        fmt = _result_format(format) if format else None
        params = compact(format=fmt.value if fmt else None, limit=limit or None)
        return self._transport.stream("GET", f"v3/job/result/{seg(job_id)}", params=params, timeout=timeout)

    def get_result_json(self, job_id: str, *, into: Any = None, timeout: float | None = None) -> Any:
        """Read a whole `format=json` result and decode it."""

        response = self.get_result(job_id, format=ResultFormat.JSON, timeout=timeout)
        try:
            raw = response.read()
        except httpx.HTTPError as exc:
            raise TransportError(f"reading result of job {job_id}: {exc}") from exc
        finally:
            response.close()
        try:
            return validate_into(loads(raw), into)
        except (ValueError, ValidationError) as exc:
            raise DecodeError(raw, exc) from exc

    def get_result_jsonl(self, job_id: str, *, timeout: float | None = None) -> JSONLCursor:
        """Stream a `format=jsonl` result through a cursor (release it when done)."""

        response = self.get_result(job_id, format=ResultFormat.JSONL, timeout=timeout)
        return JSONLCursor(response)

    def download(
        self,
        job_id: str,
        output_path: Path,
        *,
        format: ResultFormat | str = ResultFormat.CSV,
        limit: int | None = None,
        timeout: float | None = None,
    ) -> int:
        """Write a result to `output_path`; returns the number of bytes written."""

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        response = self.get_result(job_id, format=format, limit=limit, timeout=timeout)
        written = 0
        try:
            with output_path.open("wb") as fh:
                for chunk in response.iter_bytes():
                    fh.write(chunk)
                    written += len(chunk)
        except httpx.HTTPError as exc:
            raise TransportError(f"downloading result of job {job_id}: {exc}") from exc
        finally:
            response.close()
        logger.debug("downloaded %d bytes of job %s to %s", written, job_id, output_path)
        return written

    # ------------------------------------------------------------------
    # Result destinations (`v3/result/...`)
    # ------------------------------------------------------------------

    def list_results(self) -> list[Result]:
        resp = self._transport.request_json("GET", "v3/result/list", into=ResultListResponse)
        return resp.results if resp else []

    def create_result(self, name: str, url: str, settings: dict[str, Any] | None = None) -> Result:
        name = require("name", name)
        url = require("url", url)
        body = compact(url=url, settings=settings or None)
        data = self._transport.request_json("POST", f"v3/result/create/{seg(name)}", body=body) or {}
        data.setdefault("name", name)
        data.setdefault("url", url)
        return Result.model_validate(data)

    def delete_result(self, name: str) -> None:
        name = require("name", name)
        self._transport.request("POST", f"v3/result/delete/{seg(name)}")
