"""
Route registration for voice chat API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect, FastAPI

from observability.logger import log_event
from session.gateway import SessionGateway, GatewayResult, build_engines


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        sender = _SocketSender(ws)
        gateway = SessionGateway(
            config=app.state.config,
            responder=app.state.responder,
            send_json=sender.send_json,
            send_bytes=sender.send_bytes,
            engines_factory=getattr(app.state, "engines_factory", build_engines),
        )

        try:
            result = await gateway.on_ws_connect()
            await _flush_gateway_result(sender, result)

            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(code=msg.get("code", 1000))

                if msg.get("text") is not None:
                    result = await gateway.on_json_message(msg["text"])
                    await _flush_gateway_result(sender, result)

                elif msg.get("bytes") is not None:
                    result = await gateway.on_binary_message(msg["bytes"])
                    await _flush_gateway_result(sender, result)

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "session_id": gateway.session.session_id if gateway.session else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await gateway.on_ws_disconnect(reason="server_error")


class _SocketSender:
    """Serializes outbound frames from the receive loop and the pipeline worker."""

    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws
        self._lock = asyncio.Lock()

    async def send_json(self, msg: dict[str, Any]) -> None:
        async with self._lock:
            await self._ws.send_text(json.dumps(msg))

    async def send_bytes(self, frame: bytes) -> None:
        async with self._lock:
            await self._ws.send_bytes(frame)


async def _flush_gateway_result(
    sender: _SocketSender,
    result: GatewayResult,
) -> None:
    for msg in result.outbound_json:
        await sender.send_json(msg)
