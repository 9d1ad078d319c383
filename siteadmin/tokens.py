"""Signed, expiring session credentials.

A token binds the client IP and the issue time. It is signed with the
server secret using itsdangerous (HMAC-SHA256) and carries its own signing
timestamp, so expiry is checked without any server-side state.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from itsdangerous import BadData, SignatureExpired, TimestampSigner, URLSafeTimedSerializer

log = logging.getLogger(__name__)

DEFAULT_MAX_AGE = 24 * 60 * 60

_SALT = "siteadmin-session"


@dataclass(frozen=True)
class Credential:
    ip: str
    issued_at: datetime
    max_age: int = DEFAULT_MAX_AGE

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.max_age)


class _ClockSigner(TimestampSigner):
    """TimestampSigner that reads time from an injectable clock."""

    def __init__(self, *args, clock: Callable[[], float] = time.time, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._clock = clock

    def get_timestamp(self) -> int:
        return int(self._clock())


class TokenCodec:
    def __init__(
        self,
        secret: str,
        max_age: int = DEFAULT_MAX_AGE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._max_age = max_age
        self._clock = clock
        self._serializer = URLSafeTimedSerializer(
            secret_key=secret,
            salt=_SALT,
            signer=_ClockSigner,
            signer_kwargs={"clock": clock, "digest_method": hashlib.sha256},
        )

    @property
    def max_age(self) -> int:
        return self._max_age

    def mint(self, ip: str) -> str:
        """Return a signed token for ip, valid for max_age seconds."""
        return self._serializer.dumps({"ip": ip, "iat": self._clock()})

    def verify(self, token: str) -> Credential | None:
        """Return the credential for a valid token, None for anything else."""
        try:
            payload = self._serializer.loads(token, max_age=self._max_age)
        except SignatureExpired:
            log.debug("Session token expired")
            return None
        except BadData:
            log.debug("Session token rejected: bad signature or malformed")
            return None
        if not isinstance(payload, dict) or not isinstance(payload.get("ip"), str):
            log.debug("Session token rejected: unexpected payload")
            return None
        try:
            issued_at = datetime.fromtimestamp(float(payload.get("iat")), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            log.debug("Session token rejected: bad issue time")
            return None
        return Credential(ip=payload["ip"], issued_at=issued_at, max_age=self._max_age)
