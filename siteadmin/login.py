"""Client-side login state: status probe and password submission."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from siteadmin.refs import CallbackRef, Handler

log = logging.getLogger(__name__)

STATUS_URL = "/api/admin/status"
LOGIN_URL = "/api/admin/login"

LOGIN_FAILED = "Login failed"


@dataclass(frozen=True)
class AdminStatus:
    ip: str
    ip_allowed: bool
    authenticated: bool


class LoginController:
    def __init__(self, session: Any, *, on_authenticated: Handler = None) -> None:
        self._session = session
        self.on_authenticated = CallbackRef(on_authenticated)
        self.status: AdminStatus | None = None
        self.status_loading = False
        self.loading = False
        self.error: str | None = None

    async def fetch_status(self) -> None:
        """Refresh status; fires on_authenticated when the session is valid."""
        self.status_loading = True
        try:
            async with self._session.get(STATUS_URL) as resp:
                data = await resp.json()
                if resp.status >= 400 or not isinstance(data, dict):
                    raise ValueError(f"Status request failed with HTTP {resp.status}")
            self.status = AdminStatus(
                ip=str(data.get("ip", "")),
                ip_allowed=bool(data.get("ipAllowed")),
                authenticated=bool(data.get("authenticated")),
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError):
            log.error("Status fetch error", exc_info=True)
            self.status = None
            return
        finally:
            self.status_loading = False

        if self.status.authenticated:
            self.on_authenticated()

    async def login(self, password: str) -> None:
        if self.loading:
            return

        self.loading = True
        self.error = None
        try:
            async with self._session.post(LOGIN_URL, json={"password": password}) as resp:
                try:
                    data = await resp.json()
                except (aiohttp.ContentTypeError, ValueError):
                    data = None
                if resp.status >= 400:
                    if isinstance(data, dict) and data.get("error"):
                        self.error = str(data["error"])
                    else:
                        self.error = LOGIN_FAILED
                    return
            await self.fetch_status()
        except (aiohttp.ClientError, asyncio.TimeoutError):
            log.error("Login error", exc_info=True)
            self.error = LOGIN_FAILED
        finally:
            self.loading = False
