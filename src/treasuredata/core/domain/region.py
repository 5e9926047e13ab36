"""Treasure Data deployment regions.

Each region hosts three API families on separate hosts: the classic v3 API,
the CDP API and the workflow (Digdag) API. Keeping the table in the domain
layer lets config, client and CLI share a single source of truth.
"""

from __future__ import annotations

from enum import Enum


class Region(str, Enum):
    """Supported deployment regions."""

    US = "us"
    EU = "eu"
    TOKYO = "tokyo"
    AP02 = "ap02"

    @classmethod
    def default(cls) -> "Region":
        return cls.US

    @property
    def api_endpoint(self) -> str:
        return _ENDPOINTS[self][0]

    @property
    def cdp_endpoint(self) -> str:
        return _ENDPOINTS[self][1]

    @property
    def workflow_endpoint(self) -> str:
        return _ENDPOINTS[self][2]

    def label(self) -> str:
        """Human readable label for prompts and tables."""

        return _LABELS[self]


_ENDPOINTS: dict[Region, tuple[str, str, str]] = {
    Region.US: (
        "https://api.treasuredata.com",
        "https://api-cdp.us01.treasuredata.com",
        "https://api-workflow.us01.treasuredata.com",
    ),
    Region.EU: (
        "https://api.eu01.treasuredata.com",
        "https://api-cdp.eu01.treasuredata.com",
        "https://api-workflow.eu01.treasuredata.com",
    ),
    Region.TOKYO: (
        "https://api.treasuredata.co.jp",
        "https://api-cdp.treasuredata.co.jp",
        "https://api-workflow.treasuredata.co.jp",
    ),
    Region.AP02: (
        "https://api.ap02.treasuredata.com",
        "https://api-cdp.ap02.treasuredata.com",
        "https://api-workflow.ap02.treasuredata.com",
    ),
}

_LABELS: dict[Region, str] = {
    Region.US: "US (us01)",
    Region.EU: "Europe (eu01)",
    Region.TOKYO: "Tokyo (jp)",
    Region.AP02: "Asia Pacific (ap02)",
}
