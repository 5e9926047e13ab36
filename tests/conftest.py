"""Shared fixtures: isolated settings and a client pointed at the US endpoints."""

from __future__ import annotations

import os

import pytest

from treasuredata.adapters.client import TreasureDataClient
from treasuredata.core.config import AppSettings

API_KEY = "1234/abcdef0123456789"
V3 = "https://api.treasuredata.com"
CDP = "https://api-cdp.us01.treasuredata.com"
WORKFLOW = "https://api-workflow.us01.treasuredata.com"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """No TD_* variables and no project .env leak into a test."""

    for name in list(os.environ):
        if name.upper().startswith("TD_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(_env_file=None)


@pytest.fixture
def client(settings):
    with TreasureDataClient(API_KEY, settings=settings) as td:
        yield td
