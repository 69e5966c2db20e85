"""
Realtime ports (contracts-first).

The relay only needs two things from a transport socket: write one JSON
message and close. Keeping that behind a protocol lets the connection
envelope run against Starlette's WebSocket in production and an
in-memory fake in tests.
"""
from __future__ import annotations

from typing import Any, Protocol


class WebSocketPort(Protocol):
    async def send_json(self, data: Any, mode: str = "text") -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


__all__ = ["WebSocketPort"]
