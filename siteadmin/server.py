"""aiohttp application: /api/admin/* endpoints and /healthz."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

from siteadmin.access import resolve_client_ip
from siteadmin.build import BUILD_FAILED, BuildRunner
from siteadmin.config import resolve_csv_paths
from siteadmin.csvdoc import CsvStore, document_from_payload, document_to_payload
from siteadmin.errors import AdminError, ValidationError
from siteadmin.session import COOKIE_NAME, SessionGate

log = logging.getLogger(__name__)


def _error_response(exc: AdminError) -> web.Response:
    return web.json_response(exc.to_body(), status=exc.status)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as exc:
        raise ValidationError("Invalid request body") from exc
    if not isinstance(body, dict):
        raise ValidationError("Invalid request body")
    return body


async def healthz(request: web.Request) -> web.Response:
    return web.Response(text="ok")


async def status(request: web.Request) -> web.Response:
    gate: SessionGate = request.app["gate"]
    ip = resolve_client_ip(request.headers)
    auth_status = gate.check_auth(request.cookies.get(COOKIE_NAME))
    return web.json_response(
        {
            "ip": ip,
            "ipAllowed": gate.is_allowed_ip(ip),
            "authenticated": auth_status.authenticated,
        }
    )


async def login(request: web.Request) -> web.Response:
    gate: SessionGate = request.app["gate"]
    try:
        body = await _read_json(request)
        token = gate.login(body.get("password"), resolve_client_ip(request.headers))
    except AdminError as exc:
        return _error_response(exc)
    except Exception:
        log.error("Login error", exc_info=True)
        return web.json_response({"error": "Login failed"}, status=500)

    response = web.json_response({"success": True})
    gate.set_session_cookie(response, token)
    return response


async def logout(request: web.Request) -> web.Response:
    gate: SessionGate = request.app["gate"]
    response = web.json_response({"success": True})
    gate.logout(response)
    return response


async def read_csv(request: web.Request) -> web.Response:
    gate: SessionGate = request.app["gate"]
    store: CsvStore = request.app["store"]
    try:
        gate.require(request.cookies.get(COOKIE_NAME))
        document = store.read(request.query.get("file"))
    except AdminError as exc:
        return _error_response(exc)
    except Exception:
        log.error("CSV read error", exc_info=True)
        return web.json_response({"error": "Failed to read CSV file"}, status=500)
    return web.json_response(document_to_payload(document))


async def write_csv(request: web.Request) -> web.Response:
    gate: SessionGate = request.app["gate"]
    store: CsvStore = request.app["store"]
    try:
        gate.require(request.cookies.get(COOKIE_NAME))
        body = await _read_json(request)
        file_key = body.get("file")
        store.path_for(file_key)
        document = document_from_payload(body)
        store.write(file_key, document)
    except AdminError as exc:
        return _error_response(exc)
    except Exception:
        log.error("CSV write error", exc_info=True)
        return web.json_response({"error": "Failed to save CSV file"}, status=500)
    return web.json_response({"success": True})


async def build(request: web.Request) -> web.Response:
    gate: SessionGate = request.app["gate"]
    runner: BuildRunner = request.app["build_runner"]
    try:
        gate.require(request.cookies.get(COOKIE_NAME))
        result = await runner.run()
    except AdminError as exc:
        return _error_response(exc)
    except Exception as exc:
        log.error("Build error", exc_info=True)
        return web.json_response({"error": BUILD_FAILED, "details": str(exc)}, status=500)
    return web.json_response({"success": True, "stdout": result.stdout, "stderr": result.stderr})


def create_app(
    config: dict[str, Any],
    *,
    store: CsvStore | None = None,
    build_runner: BuildRunner | None = None,
) -> web.Application:
    app = web.Application()
    app["config"] = config
    app["gate"] = SessionGate.from_config(config)
    app["store"] = store or CsvStore(resolve_csv_paths(config))
    app["build_runner"] = build_runner or BuildRunner.from_config(config)

    app.router.add_get("/api/admin/status", status)
    app.router.add_post("/api/admin/login", login)
    app.router.add_post("/api/admin/logout", logout)
    app.router.add_get("/api/admin/csv", read_csv)
    app.router.add_post("/api/admin/csv", write_csv)
    app.router.add_post("/api/admin/build", build)
    app.router.add_get("/healthz", healthz)
    return app
