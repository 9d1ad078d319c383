"""Client-side CSV editor state machine over the admin HTTP API.

State is two enums instead of a bag of flags.

Activity (one action in flight at a time; starting another is a no-op):

    IDLE --load/select_file--> LOADING --done--> IDLE
    IDLE --save (if DIRTY)---> SAVING  --done--> IDLE
    IDLE --build-------------> BUILDING --done--> IDLE

Content:

    from        event                        to
    any         load succeeded               CLEAN
    any         row mutation                 DIRTY
    DIRTY       save succeeded (+ reload)    SAVED
    DIRTY       save succeeded, reload 401   DIRTY
    SAVED       build finished, any outcome  CLEAN
    any         load/save/build failed       unchanged

A save whose reload fails for any other reason is still SAVED (the file
was written) and reports a single error instead of a success message.
``error`` and ``success`` are never both set.

``has_changes`` is ``content is DIRTY`` and ``is_saved`` is ``content is
SAVED``, so both can never be true at once. Logout is allowed from any
state and always hands control to the unauthenticated callback.

No request has a timeout and nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

import aiohttp

from siteadmin.config import FILE_KEYS
from siteadmin.refs import CallbackRef, Handler

log = logging.getLogger(__name__)

CSV_URL = "/api/admin/csv"
BUILD_URL = "/api/admin/build"
LOGOUT_URL = "/api/admin/logout"

LOAD_FAILED = "Failed to load CSV file"
SAVE_FAILED = "Failed to save CSV file"
SAVE_SUCCEEDED = "CSV file saved"
SAVE_RELOAD_FAILED = "CSV file saved, but reloading it failed"
BUILD_FAILED = "Build failed"
BUILD_SUCCEEDED = "Build completed"

_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


class Activity(Enum):
    IDLE = "idle"
    LOADING = "loading"
    SAVING = "saving"
    BUILDING = "building"


class Content(Enum):
    EMPTY = "empty"
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVED = "saved"


class EditorController:
    def __init__(
        self,
        session: Any,
        *,
        on_unauthenticated: Handler = None,
        initial_file: str = "members",
    ) -> None:
        self._session = session
        self.on_unauthenticated = CallbackRef(on_unauthenticated)
        self.selected_file = initial_file
        self.description = ""
        self.headers: list[str] = []
        self.rows: list[dict[str, str]] = []
        self.activity = Activity.IDLE
        self.content = Content.EMPTY
        self.error: str | None = None
        self.success: str | None = None
        self._logging_out = False

    @property
    def loading(self) -> bool:
        return self.activity is Activity.LOADING

    @property
    def saving(self) -> bool:
        return self.activity is Activity.SAVING

    @property
    def building(self) -> bool:
        return self.activity is Activity.BUILDING

    @property
    def has_changes(self) -> bool:
        return self.content is Content.DIRTY

    @property
    def is_saved(self) -> bool:
        return self.content is Content.SAVED

    @property
    def can_build(self) -> bool:
        return self.is_saved and self.activity is Activity.IDLE

    def _clear_messages(self) -> None:
        self.error = None
        self.success = None

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> tuple[int, Any]:
        async with getattr(self._session, method)(url, **kwargs) as resp:
            try:
                data = await resp.json()
            except (aiohttp.ContentTypeError, ValueError):
                data = None
            return resp.status, data

    @staticmethod
    def _server_error(data: Any, fallback: str) -> str:
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return fallback

    # Loading

    async def load(self, file: str | None = None) -> None:
        if self.activity is not Activity.IDLE:
            return
        if file is not None:
            self.selected_file = file
        self.activity = Activity.LOADING
        self._clear_messages()
        try:
            await self._fetch(self.selected_file)
        finally:
            self.activity = Activity.IDLE

    async def reload(self) -> None:
        await self.load()

    async def select_file(self, file: str) -> None:
        if file not in FILE_KEYS:
            raise ValueError(f"Unknown file: {file}")
        if self.activity is not Activity.IDLE:
            return
        self._clear_messages()
        await self.load(file)

    async def _fetch(self, file: str) -> bool:
        """GET the document and replace local state. Returns True on success."""
        try:
            status, data = await self._request_json("get", CSV_URL, params={"file": file})
        except _TRANSPORT_ERRORS:
            log.error("Load CSV error", exc_info=True)
            self.error = LOAD_FAILED
            return False

        if status == 401:
            self.on_unauthenticated()
            return False
        if status >= 400 or not isinstance(data, dict):
            self.error = self._server_error(data, LOAD_FAILED)
            return False

        headers = [h.strip() for h in str(data.get("header") or "").split(",") if h.strip()]
        self.description = str(data.get("description") or "")
        self.headers = headers
        self.rows = [
            {h: str(row.get(h) or "") for h in headers}
            for row in data.get("data") or []
            if isinstance(row, dict)
        ]
        self.content = Content.CLEAN
        return True

    # Row edits

    def _mark_dirty(self) -> None:
        self.content = Content.DIRTY
        self.success = None

    def _empty_row(self) -> dict[str, str]:
        return {header: "" for header in self.headers}

    def add_row_at_top(self) -> None:
        self.rows = [self._empty_row(), *self.rows]
        self._mark_dirty()

    def add_row_below(self, index: int) -> None:
        rows = list(self.rows)
        rows.insert(index + 1, self._empty_row())
        self.rows = rows
        self._mark_dirty()

    def delete_row(self, index: int) -> None:
        self.rows = [row for i, row in enumerate(self.rows) if i != index]
        self._mark_dirty()

    def update_cell(self, row_index: int, header: str, value: str) -> None:
        if header not in self.headers:
            raise ValueError(f"Unknown column: {header}")
        rows = list(self.rows)
        rows[row_index] = {**rows[row_index], header: value}
        self.rows = rows
        self._mark_dirty()

    # Server actions

    async def save(self) -> None:
        if self.activity is not Activity.IDLE or self.content is not Content.DIRTY:
            return

        self.activity = Activity.SAVING
        self._clear_messages()
        body = {
            "file": self.selected_file,
            "description": self.description,
            "header": ",".join(self.headers),
            "data": self.rows,
        }
        try:
            try:
                status, data = await self._request_json("post", CSV_URL, json=body)
            except _TRANSPORT_ERRORS:
                log.error("Save CSV error", exc_info=True)
                self.error = SAVE_FAILED
                return

            if status == 401:
                self.on_unauthenticated()
                return
            if status >= 400:
                self.error = self._server_error(data, SAVE_FAILED)
                return

            # Pick up whatever the server normalised on write.
            if not await self._fetch(self.selected_file):
                if self.error is None:
                    # 401 on reload: the unauthenticated handler has taken over.
                    return
                self.content = Content.SAVED
                self.error = SAVE_RELOAD_FAILED
                return
            self.content = Content.SAVED
            self.success = SAVE_SUCCEEDED
        finally:
            self.activity = Activity.IDLE

    async def build(self) -> None:
        if self.activity is not Activity.IDLE:
            return

        self.activity = Activity.BUILDING
        self._clear_messages()
        try:
            try:
                status, data = await self._request_json("post", BUILD_URL)
            except _TRANSPORT_ERRORS:
                log.error("Build error", exc_info=True)
                self.error = BUILD_FAILED
                return

            if status == 401:
                self.on_unauthenticated()
                return
            if status >= 400:
                message = self._server_error(data, BUILD_FAILED)
                if isinstance(data, dict) and data.get("details"):
                    message += f"\n{data['details']}"
                self.error = message
                return

            self.success = BUILD_SUCCEEDED
        finally:
            if self.content is Content.SAVED:
                self.content = Content.CLEAN
            self.activity = Activity.IDLE

    async def logout(self) -> None:
        if self._logging_out:
            return
        self._logging_out = True
        try:
            async with self._session.post(LOGOUT_URL):
                pass
        except _TRANSPORT_ERRORS:
            log.warning("Logout request failed", exc_info=True)
        finally:
            self._logging_out = False
            self.on_unauthenticated()
