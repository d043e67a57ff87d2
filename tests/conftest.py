"""Root conftest: shared fixtures for the HTTP pipeline and services.

Invariants:
    - No test touches the network: every ApiClient runs on httpx.MockTransport
    - Retry delays never sleep for real: a recorder replaces asyncio.sleep
    - USERDESK_* env vars from the developer machine never leak into tests

Design Decisions:
    - Handlers are plain callables (request -> response) queued per test;
      `calls` keeps every request for assertions on params/headers/body
"""

from __future__ import annotations

import os

import httpx
import pytest

from adapters.http_client import ApiClient, ApiClientConfig
from core.domain.http import RetryPolicy

from helpers import BASE_URL, ScriptedTransport, SleepRecorder


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.upper().startswith("USERDESK_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("APPDATA", str(tmp_path / "appdata"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def client_config() -> ApiClientConfig:
    return ApiClientConfig(
        base_url=BASE_URL,
        timeout=5.0,
        retry=RetryPolicy(attempts=3, delay=1.0),
    )


@pytest.fixture
async def api(client_config, transport, sleep_recorder):
    http = httpx.AsyncClient(transport=httpx.MockTransport(transport.handler))
    client = ApiClient(client_config, http=http, sleep=sleep_recorder)
    yield client
    await http.aclose()
