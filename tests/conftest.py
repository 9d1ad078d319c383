"""Shared fixtures: a config pointing at temp CSV files and a fake HTTP session."""

from pathlib import Path
from typing import Any

import pytest
from aiohttp import web

from siteadmin.server import create_app

MEMBERS_CSV = (
    '"Lab members","name","role"\n'
    '"","Alice","Engineer"\n'
    '"","Bob","Designer"\n'
)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    data_dir = tmp_path / "site" / "data"
    data_dir.mkdir(parents=True)
    (data_dir / "members.csv").write_text(MEMBERS_CSV, encoding="utf-8")
    (data_dir / "news.csv").write_text('"","date","title"\n', encoding="utf-8")
    (data_dir / "publications.csv").write_text("", encoding="utf-8")
    return tmp_path / "site"


@pytest.fixture
def config(project_dir: Path) -> dict[str, Any]:
    return {
        "server": {"host": "127.0.0.1", "port": 3001, "production": False},
        "auth": {
            "secret": "test-secret",
            "allowed_ips": "",
            "admin_password": "secret",
            "token_max_age_seconds": 86400,
        },
        "data": {
            "project_path": str(project_dir),
            "data_dir": "data",
            "files": {
                "members": "members.csv",
                "news": "news.csv",
                "publications": "publications.csv",
            },
        },
        "build": {"command": "echo built"},
        "logging": {"level": "INFO"},
    }


@pytest.fixture
def app(config: dict[str, Any]) -> web.Application:
    return create_app(config)


class FakeResponse:
    def __init__(self, status: int, body: Any = None) -> None:
        self.status = status
        self._body = body

    async def json(self) -> Any:
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class FakeSession:
    """Scripted stand-in for aiohttp.ClientSession: replies in queue order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self._replies: list[Any] = []

    def reply(self, status: int, body: Any = None) -> None:
        self._replies.append(FakeResponse(status, body))

    def fail(self, exc: Exception) -> None:
        self._replies.append(exc)

    def _next(self, method: str, url: str, kwargs: dict[str, Any]) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("GET", url, kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("POST", url, kwargs)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
