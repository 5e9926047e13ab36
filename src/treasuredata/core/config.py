"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking into
  the CLI.
- Client, adapters and CLI read the same settings contract.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from treasuredata import __version__
from treasuredata.core.domain.region import Region

ENV_PREFIX = "TD_"


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "tdcli"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "tdcli"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "tdcli"
    return Path.home() / ".config" / "tdcli"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def read_user_env_vars(env_path: Path | None = None) -> dict[str, str]:
    env_path = env_path or get_user_env_file()
    if not env_path.exists():
        return {}
    return _parse_env_lines(env_path.read_text(encoding="utf-8"))


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Write or update variables in the user's global .env.

    Keys without the `TD_` prefix are prefixed. `None` values are skipped.
    """

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing = read_user_env_vars(env_path)
    for key, value in values.items():
        if value is None:
            continue
        name = key.upper()
        if not name.startswith(ENV_PREFIX):
            name = ENV_PREFIX + name
        existing[name] = value

    lines = ["# tdcli user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


def validate_api_key(api_key: str | None) -> str:
    """Check the `account_id/api_key` shape and return the key unchanged."""

    if not api_key:
        raise ValueError("API key cannot be empty")
    parts = api_key.split("/")
    if len(parts) != 2:
        raise ValueError("API key must be in format: account_id/api_key")
    if not parts[0] or not parts[1]:
        raise ValueError("both account_id and api_key parts must be non-empty")
    return api_key


def mask_api_key(api_key: str | None) -> str:
    if not api_key:
        return "(not set)"
    if len(api_key) <= 8:
        return "***"
    return api_key[:4] + "***" + api_key[-4:]


class AppSettings(BaseSettings):
    """Central application settings.

    Why pydantic-settings:
    - Typed and validated at the edge (env vars, .env files).
    - One configuration contract for the client and the CLI.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
        case_sensitive=False,
        # Project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_key: str | None = Field(
        default=None,
        description="Treasure Data API key (account_id/api_key).",
    )
    region: Region = Field(
        default=Region.US,
        description="Deployment region: us, eu, tokyo, ap02.",
    )
    endpoint: str | None = Field(
        default=None,
        description="Override for the v3 API base URL.",
    )
    cdp_endpoint: str | None = Field(
        default=None,
        description="Override for the CDP API base URL.",
    )
    workflow_endpoint: str | None = Field(
        default=None,
        description="Override for the workflow API base URL.",
    )

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout (seconds).",
    )
    user_agent: str = Field(
        default=f"treasuredata-client/{__version__}",
        min_length=1,
        description="User-Agent sent with every request.",
    )

    format: str = Field(
        default="table",
        description="CLI output format: table, json, csv.",
    )
    output: Path | None = Field(
        default=None,
        description="Write CLI output to this file instead of stdout.",
    )

    insecure_skip_verify: bool = Field(
        default=False,
        description="Disable TLS certificate verification.",
    )
    cert_file: Path | None = Field(
        default=None,
        description="Client certificate (PEM) for mutual TLS.",
    )
    key_file: Path | None = Field(
        default=None,
        description="Client private key (PEM) for mutual TLS.",
    )
    ca_file: Path | None = Field(
        default=None,
        description="Custom CA bundle (PEM).",
    )

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("table", "json", "csv"):
            raise ValueError("format must be one of: table, json, csv")
        return value

    @property
    def api_base_url(self) -> str:
        return self.endpoint or self.region.api_endpoint

    @property
    def cdp_base_url(self) -> str:
        return self.cdp_endpoint or self.region.cdp_endpoint

    @property
    def workflow_base_url(self) -> str:
        return self.workflow_endpoint or self.region.workflow_endpoint
