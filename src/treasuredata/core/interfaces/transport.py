"""Transport contract used by the services.

Why Protocol:
- Structural contract (duck typing) without a rigid base class.
- Services only need `request`, `request_json` and `stream`, so tests and
  alternative clients can stand in for `TreasureDataClient`.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    import httpx


class API(str, Enum):
    """API family a request is addressed to.

    Each family has its own base URL and content negotiation:
    - V3: classic REST API, JSON.
    - CDP: CDP API, JSON.
    - CDP_JSONAPI: CDP entity endpoints, `application/vnd.treasuredata.v1+json`.
    - WORKFLOW: workflow API, JSON or binary archives.
    """

    V3 = "v3"
    CDP = "cdp"
    CDP_JSONAPI = "cdp-jsonapi"
    WORKFLOW = "workflow"


@runtime_checkable
class Transport(Protocol):
    """Minimal contract for sending authenticated requests.

    Design rules:
    - Non-2xx responses raise `APIError`; transport failures raise
      `TransportError`. Nothing is retried.
    - `timeout` is forwarded to httpx as-is; it is the only cancellation knob.
    """

    def request(self, method: str, path: str, *, api: API = API.V3, **kwargs: Any) -> "httpx.Response":
        """Send a request and return the fully read response."""

        ...

    def request_json(self, method: str, path: str, *, api: API = API.V3, into: Any = None, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body, optionally into `into`."""

        ...

    def stream(self, method: str, path: str, *, api: API = API.V3, **kwargs: Any) -> "httpx.Response":
        """Send a request and return the open response; the caller closes it."""

        ...
