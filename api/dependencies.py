"""
API依赖项 - 从应用状态获取实时服务
"""
from fastapi import Request

from application.services.relay_service import ProctorRelayService


def get_relay_service(request: Request) -> ProctorRelayService:
    svc = getattr(request.app.state, "relay_service", None)
    if svc is None:
        raise RuntimeError("Relay service not initialized. Ensure lifespan sets app.state.relay_service.")
    return svc
