"""Stateless session gate over the auth-token cookie.

The signed token is the whole session; nothing is stored server side.
Logging out only clears the cookie, so a copied token stays valid until it
expires on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from aiohttp import web

from siteadmin.access import is_allowed_ip, parse_allowlist, verify_password
from siteadmin.config import DEFAULT_SECRET
from siteadmin.errors import AccessDenied, InvalidCredential, ValidationError
from siteadmin.tokens import Credential, TokenCodec

log = logging.getLogger(__name__)

COOKIE_NAME = "auth-token"


@dataclass(frozen=True)
class AuthStatus:
    authenticated: bool
    ip: str | None = None


class SessionGate:
    def __init__(
        self,
        codec: TokenCodec,
        allowlist: list[str],
        admin_password: str,
        secure_cookie: bool = False,
    ) -> None:
        self._codec = codec
        self._allowlist = allowlist
        self._admin_password = admin_password
        self._secure_cookie = secure_cookie

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> SessionGate:
        auth = config["auth"]
        secret = auth.get("secret") or ""
        if not secret:
            log.warning("AUTH_SECRET is not set; using the insecure default signing key")
            secret = DEFAULT_SECRET
        allowlist = parse_allowlist(auth.get("allowed_ips"))
        if not allowlist:
            log.warning("ALLOWED_IPS is empty; login is open to every IP")
        codec = TokenCodec(str(secret), max_age=int(auth["token_max_age_seconds"]))
        password = auth.get("admin_password")
        return cls(
            codec,
            allowlist,
            "" if password is None else str(password),
            secure_cookie=bool(config["server"].get("production")),
        )

    def is_allowed_ip(self, ip: str) -> bool:
        return is_allowed_ip(ip, self._allowlist)

    def login(self, password: str | None, ip: str) -> str:
        """Check IP then password; return a fresh token for ip."""
        if not password:
            raise ValidationError("Password is required")
        if not self.is_allowed_ip(ip):
            log.warning("Login refused for IP not on allow-list: %s", ip)
            raise AccessDenied("Access from this IP is not allowed", ip=ip)
        if not verify_password(password, self._admin_password):
            log.warning("Login failed: wrong password from %s", ip)
            raise InvalidCredential("Incorrect password")
        log.info("Login succeeded from %s", ip)
        return self._codec.mint(ip)

    def check_auth(self, cookie_value: str | None) -> AuthStatus:
        if not cookie_value:
            return AuthStatus(authenticated=False)
        credential = self._codec.verify(cookie_value)
        if credential is None:
            return AuthStatus(authenticated=False)
        return AuthStatus(authenticated=True, ip=credential.ip)

    def require(self, cookie_value: str | None) -> Credential:
        """Return the session credential or raise InvalidCredential."""
        credential = self._codec.verify(cookie_value) if cookie_value else None
        if credential is None:
            raise InvalidCredential("Authentication required")
        return credential

    def set_session_cookie(self, response: web.StreamResponse, token: str) -> None:
        response.set_cookie(
            COOKIE_NAME,
            token,
            max_age=self._codec.max_age,
            path="/",
            httponly=True,
            secure=self._secure_cookie,
            samesite="Lax",
        )

    def logout(self, response: web.StreamResponse) -> None:
        response.del_cookie(COOKIE_NAME, path="/")
