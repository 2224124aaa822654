"""FastAPI surface over the record sync engine for the dashboard front end."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.airtable import AirtableClient
from app.settings import Settings, load_settings
from app.stores import MemoryRecordClient
from app.tools import STATUS_FIELD_NAME, record_title, remaining_fields, status_tone
from dashboard import Dashboard
from hubsync.errors import EditStateError, FillError, ValidationFailure, WriteFailure
from hubsync.fields import field_value
from hubsync.records import Record
from tool_session import ToolSession

logger = logging.getLogger("hub.api")


def _build_client(cfg: Settings) -> Any:
    if cfg.use_memory:
        return MemoryRecordClient()
    return AirtableClient(
        cfg.api_key,
        cfg.base_id,
        api_url=cfg.api_url,
        max_records=cfg.max_records,
        timeout=cfg.http_timeout_s,
    )


settings = load_settings()
client = _build_client(settings)
dashboard = Dashboard(client, poll_interval_ms=settings.poll_ms)


@asynccontextmanager
async def _lifespan(_: FastAPI):
    yield
    dashboard.leave_tool()
    await client.aclose()


app = FastAPI(title="Automation Hub", lifespan=_lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted(settings.cors_origins),
    allow_origin_regex=r"http://localhost:\d+|http://127\.0\.0\.1:\d+",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(code: str, message: str, path: str | None = None, detail: dict | None = None, status: int = 400) -> JSONResponse:
    body = {
        "ok": False,
        "errors": [{"code": code, "message": message, "path": path, "detail": detail}],
        "warnings": [],
    }
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _ok_response(payload: dict, warnings: list | None = None, status: int = 200) -> JSONResponse:
    body = {"ok": True, **payload, "errors": [], "warnings": warnings or []}
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _no_session() -> JSONResponse:
    return _error_response("NO_ACTIVE_TOOL", "Open a tool first", status=409)


def _record_view(session: ToolSession, record: Record) -> dict:
    status = field_value(record, STATUS_FIELD_NAME)
    return {
        **record.to_api(),
        "title": record_title(session.tool, record),
        "status": status,
        "status_tone": status_tone(status),
        "remaining_fields": remaining_fields(session.tool, record),
    }


async def _body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@app.get("/health")
async def health() -> dict:
    return {"ok": True, "configured": settings.is_configured or settings.use_memory}


@app.get("/tools")
async def list_tools() -> JSONResponse:
    active = dashboard.active
    return _ok_response(
        {
            "tools": [tool.to_dict() for tool in dashboard.tools()],
            "active_tool_id": active.tool.id if active else None,
        }
    )


@app.post("/tools/{tool_id}/open")
async def open_tool(tool_id: str) -> JSONResponse:
    try:
        session = dashboard.open_tool(tool_id)
    except KeyError:
        return _error_response("TOOL_NOT_FOUND", f"Unknown tool: {tool_id}", "tool_id", status=404)
    return _ok_response({"tool": session.tool.to_dict()})


@app.post("/tools/leave")
async def leave_tool() -> JSONResponse:
    dashboard.leave_tool()
    return _ok_response({})


@app.get("/session")
async def get_session() -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    return _ok_response(
        {
            **session.snapshot(),
            "records": [_record_view(session, r) for r in session.records()],
        }
    )


@app.post("/session/refresh")
async def refresh() -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    started = await session.request_refresh()
    return _ok_response({"started": started, "fetch_error": session.fetch_error})


@app.post("/session/select")
async def select_record(request: Request) -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    body = await _body(request)
    record = session.select(str(body.get("record_id") or ""))
    if record is None:
        return _error_response("RECORD_NOT_FOUND", "Record not found", "record_id", status=404)
    return _ok_response({"record": _record_view(session, record)})


@app.get("/session/extra_fields")
async def extra_fields() -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    return _ok_response({"fields": await session.extra_fields()})


@app.post("/session/records")
async def create_record(request: Request) -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    body = await _body(request)
    fields = body.get("fields")
    if not isinstance(fields, dict):
        return _error_response("INVALID_PAYLOAD", "fields must be an object", "fields")
    try:
        record = await session.create_record(fields)
    except ValidationFailure as exc:
        return _error_response("REQUIRED_FIELD", exc.message, "fields", {"missing": exc.missing})
    except WriteFailure as exc:
        return _error_response("WRITE_FAILED", exc.message, status=502)
    return _ok_response({"record": record.to_api()}, status=201)


@app.post("/session/cell/open")
async def open_cell(request: Request) -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    body = await _body(request)
    try:
        value = session.open_cell(str(body.get("record_id") or ""), str(body.get("column_key") or ""))
    except KeyError:
        return _error_response("RECORD_NOT_FOUND", "Record not found", "record_id", status=404)
    except EditStateError as exc:
        return _error_response("EDIT_STATE", exc.message, status=409)
    return _ok_response({"value": value})


@app.post("/session/cell/value")
async def set_cell_value(request: Request) -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    body = await _body(request)
    try:
        session.set_cell_value(body.get("value"))
    except EditStateError as exc:
        return _error_response("EDIT_STATE", exc.message, status=409)
    return _ok_response({"dirty": session.cell_draft.is_dirty()})


@app.post("/session/cell/commit")
async def commit_cell() -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    try:
        saved = await session.commit_cell()
    except EditStateError as exc:
        return _error_response("EDIT_STATE", exc.message, status=409)
    except WriteFailure as exc:
        return _error_response("WRITE_FAILED", exc.message, detail={"record_id": exc.record_id}, status=502)
    return _ok_response({"saved": saved})


@app.post("/session/cell/cancel")
async def cancel_cell() -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    session.cancel_cell()
    return _ok_response({})


@app.post("/session/record/open")
async def open_record(request: Request) -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    body = await _body(request)
    try:
        draft = session.open_record(str(body.get("record_id") or ""))
    except KeyError:
        return _error_response("RECORD_NOT_FOUND", "Record not found", "record_id", status=404)
    return _ok_response({"draft": draft})


@app.post("/session/record/field")
async def set_record_field(request: Request) -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    body = await _body(request)
    key = body.get("key")
    if not isinstance(key, str) or not key:
        return _error_response("INVALID_PAYLOAD", "key must be a non-empty string", "key")
    try:
        session.set_record_field(key, body.get("value"))
    except EditStateError as exc:
        return _error_response("EDIT_STATE", exc.message, status=409)
    return _ok_response({"dirty": sorted(session.record_draft.dirty_keys())})


@app.post("/session/record/save")
async def save_record() -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    try:
        saved = await session.save_record()
    except EditStateError as exc:
        return _error_response("EDIT_STATE", exc.message, status=409)
    except WriteFailure as exc:
        return _error_response("WRITE_FAILED", exc.message, detail={"record_id": exc.record_id}, status=502)
    return _ok_response({"saved": saved, "dirty": session.record_draft.is_dirty()})


@app.post("/session/record/reset")
async def reset_record() -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    session.reset_record()
    return _ok_response({"draft": session.record_draft.draft})


@app.post("/session/record/close")
async def close_record() -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    session.close_record()
    return _ok_response({})


@app.post("/session/fill/begin")
async def begin_fill(request: Request) -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    body = await _body(request)
    try:
        op = session.begin_fill(
            str(body.get("record_id") or ""),
            str(body.get("column_key") or ""),
            body.get("value"),
            anchor_record_id=body.get("anchor_record_id") or None,
        )
    except KeyError:
        return _error_response("RECORD_NOT_FOUND", "Record not found", "record_id", status=404)
    except (EditStateError, FillError) as exc:
        return _error_response("FILL_REJECTED", exc.message, status=409)
    return _ok_response({"range": list(op.range)})


@app.post("/session/fill/target")
async def update_fill(request: Request) -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    body = await _body(request)
    rng = session.update_fill(str(body.get("record_id") or ""))
    if rng is None:
        return _error_response("FILL_INACTIVE", "No fill in progress", status=409)
    return _ok_response({"range": list(rng)})


@app.post("/session/fill/commit")
async def commit_fill() -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    try:
        result = await session.commit_fill()
    except FillError as exc:
        return _error_response("FILL_INACTIVE", exc.message, status=409)
    warnings = [
        {"code": "FILL_TARGET_FAILED", "message": err.message, "path": record_id}
        for record_id, err in result.failed
    ]
    return _ok_response(result.summary(), warnings=warnings)


@app.post("/session/fill/cancel")
async def cancel_fill() -> JSONResponse:
    session = dashboard.active
    if session is None:
        return _no_session()
    session.cancel_fill()
    return _ok_response({})


@app.get("/notices")
async def list_notices() -> JSONResponse:
    outbox = dashboard.bus.outbox
    return _ok_response({"notices": outbox.pending() if outbox is not None else []})


@app.post("/notices/{event_id}/ack")
async def ack_notice(event_id: str) -> JSONResponse:
    outbox = dashboard.bus.outbox
    if outbox is None or not outbox.ack(event_id):
        return _error_response("NOTICE_NOT_FOUND", "Notice not found", "event_id", status=404)
    return _ok_response({})
