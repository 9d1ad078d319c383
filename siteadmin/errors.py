"""Error taxonomy for the admin service.

Every error carries the HTTP status it maps to at the request boundary.
"""

from __future__ import annotations

from typing import Any


class AdminError(Exception):
    """Base error for siteadmin."""

    status = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(AdminError):
    """Bad file key or malformed request body."""

    status = 400


class InvalidCredential(AdminError):
    """Wrong password, or a missing, invalid or expired session token."""

    status = 401


class AccessDenied(AdminError):
    """Client IP is not on the allow-list."""

    status = 403

    def __init__(self, message: str, ip: str) -> None:
        self.ip = ip
        super().__init__(message)

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, "ip": self.ip}


class ParseError(AdminError):
    """CSV file could not be read or decoded."""


class WriteError(AdminError):
    """CSV file could not be written."""


class UpstreamProcessError(AdminError):
    """Build command failed to start or exited non-zero."""

    def __init__(
        self,
        message: str,
        details: str = "",
        stdout: str = "",
        stderr: str = "",
        returncode: int | None = None,
    ) -> None:
        self.details = details
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(message)

    def to_body(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "details": self.details,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }
