"""Settings resolution, region endpoints and the user .env file."""

import pytest
from pydantic import ValidationError

from treasuredata.core import config
from treasuredata.core.config import (
    AppSettings,
    mask_api_key,
    read_user_env_vars,
    validate_api_key,
    write_user_env_vars,
)
from treasuredata.core.domain.region import Region


class TestApiKey:
    def test_valid(self):
        assert validate_api_key("1234/abcdef") == "1234/abcdef"

    @pytest.mark.parametrize("key", [None, "", "nokey", "1234/", "/abcdef", "1/2/3"])
    def test_invalid(self, key):
        with pytest.raises(ValueError):
            validate_api_key(key)

    def test_mask(self):
        assert mask_api_key(None) == "(not set)"
        assert mask_api_key("short") == "***"
        assert mask_api_key("1234/abcdef0123456789") == "1234***6789"


class TestSettings:
    def test_defaults(self, settings):
        assert settings.region is Region.US
        assert settings.api_base_url == "https://api.treasuredata.com"
        assert settings.format == "table"
        assert settings.http_timeout_seconds == 30.0

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("TD_API_KEY", "1/abc")
        monkeypatch.setenv("TD_REGION", "tokyo")
        monkeypatch.setenv("TD_FORMAT", "JSON")
        monkeypatch.setenv("TD_WORKFLOW_ENDPOINT", "https://wf.example.com")
        settings = AppSettings(_env_file=None)
        assert settings.api_key == "1/abc"
        assert settings.api_base_url == "https://api.treasuredata.co.jp"
        assert settings.cdp_base_url == "https://api-cdp.treasuredata.co.jp"
        assert settings.workflow_base_url == "https://wf.example.com"
        assert settings.format == "json"

    def test_project_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("TD_REGION=eu\nTD_HTTP_TIMEOUT_SECONDS=5\n")
        settings = AppSettings(_env_file=env)
        assert settings.region is Region.EU
        assert settings.http_timeout_seconds == 5.0

    @pytest.mark.parametrize("overrides", [{"format": "yaml"}, {"region": "mars"}, {"http_timeout_seconds": 0}])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None, **overrides)

    def test_every_region_has_three_endpoints(self):
        for region in Region:
            assert region.api_endpoint.startswith("https://")
            assert region.cdp_endpoint.startswith("https://api-cdp.")
            assert region.workflow_endpoint.startswith("https://api-workflow.")
            assert region.label()


class TestUserEnvFile:
    def test_write_prefixes_and_merges(self, tmp_path):
        env_path = tmp_path / "tdcli" / ".env"
        write_user_env_vars({"api_key": "1/abc", "region": "eu"}, env_path)
        write_user_env_vars({"region": "tokyo", "format": None}, env_path)
        assert read_user_env_vars(env_path) == {"TD_API_KEY": "1/abc", "TD_REGION": "tokyo"}
        assert env_path.read_text().startswith("# tdcli user config")

    def test_default_location_follows_config_dir(self, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "get_user_config_dir", lambda: tmp_path / "cfg")
        path = write_user_env_vars({"format": "csv"})
        assert path == tmp_path / "cfg" / ".env"
        assert read_user_env_vars() == {"TD_FORMAT": "csv"}

    def test_comments_and_quotes(self, tmp_path):
        env_path = tmp_path / ".env"
        env_path.write_text("# comment\n\nTD_API_KEY=\"1/abc\"\nbroken line\n")
        assert read_user_env_vars(env_path) == {"TD_API_KEY": "1/abc"}
