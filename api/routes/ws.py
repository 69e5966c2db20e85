"""WebSocket endpoint for students and proctors.

One task per socket: receive a message, hand it to the relay service,
repeat. Whatever ends the loop (client close, transport error, missed
heartbeats) the ``finally`` block runs the relay's disconnect path.
"""
from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from application.services.relay_service import ProctorRelayService
from core.config import settings
from core.logging_config import get_logger
from domain.proctoring.events import PingMessage


logger = get_logger(__name__)


router = APIRouter(tags=["WebSocket"])


def get_relay_service_from_app(ws: WebSocket) -> ProctorRelayService:
    svc = getattr(ws.app.state, "relay_service", None)
    if svc is None:
        raise RuntimeError("Relay service not initialized. Ensure lifespan sets app.state.relay_service.")
    return svc


async def _receive_payload(ws: WebSocket) -> str | bytes:
    message = await ws.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(code=message.get("code", 1000))
    if message.get("text") is not None:
        return message["text"]
    return message.get("bytes") or b""


async def websocket_endpoint(ws: WebSocket) -> None:
    relay = get_relay_service_from_app(ws)
    await ws.accept()
    conn = relay.connect(ws)
    structlog.contextvars.bind_contextvars(conn_id=conn.id)

    # Heartbeat/idle detection parameters (configurable via .env)
    idle_ping_interval = float(settings.REALTIME_WS_IDLE_PING_INTERVAL_S or 0)
    pong_grace = float(settings.REALTIME_WS_PONG_GRACE_S)
    missed_limit = int(settings.REALTIME_WS_MISSED_PING_LIMIT)

    close_code = 1000
    try:
        missed = 0
        while conn.is_open:
            if idle_ping_interval > 0:
                try:
                    raw = await asyncio.wait_for(_receive_payload(ws), timeout=idle_ping_interval)
                    missed = 0
                except asyncio.TimeoutError:
                    missed += 1
                    await conn.send(PingMessage())
                    try:
                        raw = await asyncio.wait_for(_receive_payload(ws), timeout=pong_grace)
                        missed = 0
                    except asyncio.TimeoutError:
                        if missed >= missed_limit:
                            logger.info("ws_heartbeat_timeout", missed=missed)
                            close_code = 1001
                            break
                        continue
            else:
                raw = await _receive_payload(ws)
            await relay.handle_raw(conn, raw)
    except WebSocketDisconnect as exc:
        logger.info("ws_client_disconnected", code=exc.code)
    except Exception as exc:
        logger.error("ws_error", error=str(exc), exc_info=True)
    finally:
        await relay.disconnect(conn, code=close_code)
        structlog.contextvars.unbind_contextvars("conn_id", "role", "student_id")


# The browser clients connect to the bare host URL; /ws is the canonical path.
router.add_api_websocket_route("/ws", websocket_endpoint)
router.add_api_websocket_route("/", websocket_endpoint)
