"""
学生管理 HTTP 路由（供监考面板或运维脚本使用，语义与 WebSocket 消息一致）
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import get_relay_service
from application.services.relay_service import ProctorRelayService
from core.response import Response, success_response


router = APIRouter(prefix="/students", tags=["Students"])


class StudentOut(BaseModel):
    id: str
    name: str


class TerminateBody(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


@router.get("", response_model=Response[list[StudentOut]])
async def list_students(relay: ProctorRelayService = Depends(get_relay_service)):
    """当前在线学生"""
    snapshot = await relay.list_students()
    return success_response(data=[StudentOut(id=s.id, name=s.name) for s in snapshot])


@router.post("/{student_id}/terminate", response_model=Response[dict])
async def terminate_student(
    student_id: str,
    body: Optional[TerminateBody] = None,
    relay: ProctorRelayService = Depends(get_relay_service),
):
    """
    终止指定学生的考试

    学生不在线时抛出 StudentNotFoundException，由全局异常处理器映射为 404。
    """
    await relay.terminate_exam(student_id, body.reason if body else None)
    return success_response(data={"student_id": student_id, "terminated": True})
