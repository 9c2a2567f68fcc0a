# avatar3d-dl/tests/conftest.py
import json
import os
import sys
from typing import Callable

import httpx
import pytest


def _ensure_src_on_syspath() -> None:
    """Make sure `src/` is importable when the package is not installed."""

    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    src = os.path.join(root, "src")
    if src not in sys.path:
        sys.path.insert(0, src)


_ensure_src_on_syspath()

from core.config import AppSettings  # noqa: E402

RELAY_URL = "http://relay.test"
THUMBNAILS_URL = "https://thumbnails.test/v1/users/avatar-3d"
USERS_API_URL = "https://users.test/v1/usernames/users"


class RecordingReporter:
    """StatusReporter double that keeps everything it is told."""

    def __init__(self):
        self.statuses = []
        self.lines = []

    def report_status(self, kind, title, message):
        self.statuses.append((kind, title, message))

    def append_log(self, line):
        self.lines.append(line)

    @property
    def last(self):
        return self.statuses[-1] if self.statuses else None


def json_response(payload, status_code=200) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode("utf-8"),
        headers={"content-type": "application/json"},
    )


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        relay_url=RELAY_URL,
        thumbnails_url=THUMBNAILS_URL,
        users_api_url=USERS_API_URL,
        output_dir=tmp_path / "downloads",
    )


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def sleeps(monkeypatch) -> list:
    """Replace the fetcher's backoff sleep with a recorder."""

    import adapters.http_client as http_client

    recorded: list = []

    async def fake_sleep(seconds):
        recorded.append(seconds)

    monkeypatch.setattr(http_client, "_sleep", fake_sleep)
    return recorded


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def _make(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
