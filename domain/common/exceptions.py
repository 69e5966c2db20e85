"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class MalformedMessageException(BusinessException):
    """入站消息无法解析为已知信封"""

    def __init__(self, reason: str, message_type: Optional[str] = None):
        details = {"reason": reason}
        if message_type:
            details["type"] = message_type
        super().__init__(
            code=BusinessCode.MESSAGE_MALFORMED,
            message="Malformed message",
            error_type="MalformedMessage",
            details=details,
        )


class StudentNotFoundException(BusinessException):
    def __init__(self, student_id: str):
        super().__init__(
            code=BusinessCode.STUDENT_NOT_FOUND,
            message=f"Student {student_id} is not connected",
            error_type="StudentNotFound",
            details={"student_id": student_id},
            field="studentId",
        )


class IdentityRejectedException(BusinessException):
    """身份校验钩子拒绝了注册请求"""

    def __init__(self, role: str, reason: str = "rejected"):
        super().__init__(
            code=BusinessCode.FORBIDDEN,
            message=f"{role} registration rejected",
            error_type="IdentityRejected",
            details={"role": role, "reason": reason},
        )
