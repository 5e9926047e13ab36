"""Treasure Data REST client.

Why one client for four API families:
- The v3 API, the CDP API (plain JSON and JSON:API) and the workflow API share
  the same key, the same `TD1` authorization scheme and the same error body.
- Services only depend on the `Transport` contract (`request`,
  `request_json`, `stream`); the client is the one place that knows base
  URLs, headers and how non-2xx responses become `APIError`.

Rules:
- Nothing is retried.
- `timeout` (seconds) is forwarded to httpx as-is; without it the client-wide
  default from `AppSettings.http_timeout_seconds` applies.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Mapping

import httpx
from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from treasuredata.adapters.http_client import build_client
from treasuredata.adapters.services.bulk_import import BulkImportService
from treasuredata.adapters.services.cdp import CDPService
from treasuredata.adapters.services.databases import DatabasesService
from treasuredata.adapters.services.jobs import JobsService
from treasuredata.adapters.services.permissions import PermissionsService
from treasuredata.adapters.services.queries import QueriesService
from treasuredata.adapters.services.results import ResultsService
from treasuredata.adapters.services.tables import TablesService
from treasuredata.adapters.services.users import UsersService
from treasuredata.adapters.services.workflow import WorkflowService
from treasuredata.core.config import AppSettings
from treasuredata.core.domain.fields import loads, validate_into
from treasuredata.core.domain.region import Region
from treasuredata.core.errors import APIError, DecodeError, InvalidArgumentError, TransportError
from treasuredata.core.interfaces.transport import API

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
JSONAPI_CONTENT_TYPE = "application/vnd.treasuredata.v1+json"


def normalize_endpoint(url: str) -> str:
    """Add a scheme when missing and drop trailing slashes."""

    url = url.strip()
    if "://" not in url:
        url = "https://" + url
    return url.rstrip("/")


def encode_body(body: Any) -> bytes:
    """Serialize a request body (models, dicts, lists) to UTF-8 JSON.

    Models are dumped by alias with unset (None) fields left out.
    """

    payload = to_jsonable_python(body, by_alias=True, exclude_none=True)
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def clean_params(params: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Drop `None` values and unwrap enums so httpx renders plain strings."""

    if not params:
        return None
    out: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        out[key] = value
    return out or None


def check_response(response: httpx.Response) -> None:
    """Raise `APIError` for any non-2xx response.

    The body is expected to be already read. When it is a JSON object its
    `message`, `error`, `text` and `severity` keys are copied onto the error.
    """

    if response.is_success:
        return

    body = response.text
    details: dict[str, str] = {}
    try:
        data = loads(body) if body.strip() else None
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("message", "error", "text", "severity"):
            value = data.get(key)
            if isinstance(value, str):
                details[key] = value

    request = response.request
    logger.debug("API error %s %s -> %s: %s", request.method, request.url, response.status_code, body[:500])
    raise APIError(
        response.status_code,
        method=request.method,
        url=str(request.url),
        body=body,
        **details,
    )


class TreasureDataClient:
    """Authenticated client exposing one service per resource family.

    Example:
        with TreasureDataClient("1234/abcdef", region="eu") as client:
            for db in client.databases.list():
                print(db.name)
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        region: Region | str | None = None,
        endpoint: str | None = None,
        cdp_endpoint: str | None = None,
        workflow_endpoint: str | None = None,
        settings: AppSettings | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        settings = settings or AppSettings()

        overrides: dict[str, Any] = {}
        if region is not None:
            try:
                overrides["region"] = Region(str(getattr(region, "value", region)).strip().lower())
            except ValueError:
                raise InvalidArgumentError("region", region, "must be one of: us, eu, tokyo, ap02") from None
        if endpoint:
            overrides["endpoint"] = endpoint
        if cdp_endpoint:
            overrides["cdp_endpoint"] = cdp_endpoint
        if workflow_endpoint:
            overrides["workflow_endpoint"] = workflow_endpoint
        if overrides:
            settings = settings.model_copy(update=overrides)

        key = api_key or settings.api_key
        if not key:
            raise InvalidArgumentError("api_key", key, "API key is required")

        self.settings = settings
        self._api_key = key
        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else build_client(settings)
        self._base_urls: dict[API, str] = {
            API.V3: normalize_endpoint(settings.api_base_url),
            API.CDP: normalize_endpoint(settings.cdp_base_url),
            API.CDP_JSONAPI: normalize_endpoint(settings.cdp_base_url),
            API.WORKFLOW: normalize_endpoint(settings.workflow_base_url),
        }

        self.databases = DatabasesService(self)
        self.tables = TablesService(self)
        self.jobs = JobsService(self)
        self.queries = QueriesService(self)
        self.results = ResultsService(self)
        self.users = UsersService(self)
        self.permissions = PermissionsService(self)
        self.bulk_import = BulkImportService(self)
        self.cdp = CDPService(self)
        self.workflow = WorkflowService(self)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying httpx client if this instance created it."""

        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "TreasureDataClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def base_url(self, api: API) -> str:
        return self._base_urls[api]

    def url_for(self, api: API, path: str) -> str:
        return f"{self._base_urls[api]}/{path.lstrip('/')}"

    def _headers(self, api: API, extra: Mapping[str, str] | None) -> httpx.Headers:
        accept = JSONAPI_CONTENT_TYPE if api is API.CDP_JSONAPI else JSON_CONTENT_TYPE
        headers = httpx.Headers(
            {
                "Authorization": f"TD1 {self._api_key}",
                "User-Agent": self.settings.user_agent,
                "Accept": accept,
            }
        )
        if extra:
            headers.update(extra)
        return headers

    def _send(
        self,
        method: str,
        path: str,
        *,
        api: API,
        params: Mapping[str, Any] | None,
        body: Any,
        content: bytes | None,
        files: Any,
        headers: Mapping[str, str] | None,
        timeout: float | None,
        stream: bool,
    ) -> httpx.Response:
        url = self.url_for(api, path)
        request_headers = self._headers(api, headers)
        if body is not None:
            content = encode_body(body)
            if "content-type" not in request_headers:
                request_headers["Content-Type"] = (
                    JSONAPI_CONTENT_TYPE if api is API.CDP_JSONAPI else JSON_CONTENT_TYPE
                )

        extra: dict[str, Any] = {}
        if timeout is not None:
            extra["timeout"] = timeout
        request = self._http.build_request(
            method,
            url,
            params=clean_params(params),
            content=content,
            files=files,
            headers=request_headers,
            **extra,
        )

        logger.debug("%s %s", method, request.url)
        try:
            response = self._http.send(request, stream=stream)
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {url}: {exc}") from exc
        logger.debug("%s %s -> %s", method, request.url, response.status_code)
        return response

    def request(
        self,
        method: str,
        path: str,
        *,
        api: API = API.V3,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        content: bytes | None = None,
        files: Any = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send a request and return the fully read response.

        `body` is JSON-encoded; `content` is sent as raw bytes; `files` is a
        multipart upload in httpx form.
        """

        response = self._send(
            method,
            path,
            api=api,
            params=params,
            body=body,
            content=content,
            files=files,
            headers=headers,
            timeout=timeout,
            stream=False,
        )
        check_response(response)
        return response

    def request_json(
        self,
        method: str,
        path: str,
        *,
        api: API = API.V3,
        into: Any = None,
        **kwargs: Any,
    ) -> Any:
        """Send a request and decode its JSON body.

        Returns `None` for 204 and empty bodies. With `into` the parsed value
        is validated into that type; invalid bodies raise `DecodeError`.
        """

        response = self.request(method, path, api=api, **kwargs)
        raw = response.content
        if response.status_code == 204 or not raw.strip():
            return None
        try:
            return validate_into(loads(raw), into)
        except (ValueError, ValidationError) as exc:
            raise DecodeError(raw, exc) from exc

    def stream(
        self,
        method: str,
        path: str,
        *,
        api: API = API.V3,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send a request and return the open response.

        The caller owns the response and must close it. Error responses are
        read, closed and raised as `APIError` before returning.
        """

        response = self._send(
            method,
            path,
            api=api,
            params=params,
            body=None,
            content=None,
            files=None,
            headers=headers,
            timeout=timeout,
            stream=True,
        )
        if not response.is_success:
            try:
                response.read()
            except httpx.HTTPError as exc:
                raise TransportError(f"{method} {response.request.url}: {exc}") from exc
            finally:
                response.close()
            check_response(response)
        return response
