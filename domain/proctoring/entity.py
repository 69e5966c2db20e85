"""
监考领域实体 - 连接角色与学生摘要
"""
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """连接角色：首次注册后固定，不可回退"""
    UNCLASSIFIED = "unclassified"
    ADMIN = "admin"
    STUDENT = "student"


@dataclass(frozen=True)
class StudentSummary:
    """学生摘要，用于向新加入的监考端下发当前在线列表"""
    id: str
    name: str
