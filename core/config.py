"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Proctor Relay")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    # 监听地址（原客户端默认连接 3001 端口）
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3001)

    # CORS配置
    CORS_ORIGINS: list = Field(default=["http://localhost:5173", "http://localhost:3000"])

    # 前端静态资源目录（可选，挂载到 /app）
    STATIC_DIR: Optional[str] = Field(default=None)

    # Realtime/WebSocket 配置
    REALTIME_WS_SEND_QUEUE_MAX: int = Field(default=100)
    REALTIME_WS_SEND_OVERFLOW_POLICY: str = Field(
        default="drop_oldest",
        description="队列溢出策略: drop_oldest | drop_new | disconnect",
    )
    REALTIME_WS_SEND_TIMEOUT_S: float = Field(default=10.0)
    # 心跳：0 表示关闭（监考端注册后不再主动发消息）
    REALTIME_WS_IDLE_PING_INTERVAL_S: float = Field(default=0.0)
    REALTIME_WS_PONG_GRACE_S: float = Field(default=10.0)
    REALTIME_WS_MISSED_PING_LIMIT: int = Field(default=2)

    # 监考业务配置
    PROCTOR_DEFAULT_TERMINATE_REASON: str = Field(default="Terminated by proctor")

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """允许 JSON 字符串或逗号分隔字符串两种格式。"""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    arr = json.loads(s)
                    if isinstance(arr, list):
                        return arr
                except ValueError:
                    pass
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v


settings = Settings()
