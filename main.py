"""
FastAPI应用主入口
"""
from pathlib import Path
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.routes import students as students_routes
from api.routes import ws as ws_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from core.config import Settings, settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from application.services.relay_service import ProctorRelayService
from infrastructure.adapters.identity_verifier import AcceptAllIdentityVerifier
from infrastructure.realtime.fanout import Broadcaster
from infrastructure.realtime.registry import ConnectionRegistry


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 注册表为进程内状态，随进程创建与销毁，不做持久化
    registry = ConnectionRegistry()
    relay = ProctorRelayService(
        registry=registry,
        broadcaster=Broadcaster(registry),
        identity=AcceptAllIdentityVerifier(),
    )
    app.state.relay_registry = registry
    app.state.relay_service = relay
    logger.info(
        "relay_initialized",
        overflow_policy=settings.REALTIME_WS_SEND_OVERFLOW_POLICY,
        queue_max=settings.REALTIME_WS_SEND_QUEUE_MAX,
    )

    yield

    await relay.shutdown()
    logger.info("application_shutdown", message="Application shutdown")


meta_router = APIRouter()


# 根路径
@meta_router.get("/", tags=["Root"])
async def root(request: Request):
    """API根路径"""
    return success_response(
        data={
            "name": request.app.title,
            "version": request.app.version,
            "websocket": "/ws",
            "docs": "/docs",
        }
    )


# 健康检查
@meta_router.get("/health", tags=["Health"])
async def health_check(request: Request):
    """健康检查端点，附带在线人数"""
    registry = getattr(request.app.state, "relay_registry", None)
    counts = await registry.stats() if registry is not None else {"students": 0, "admins": 0}
    return success_response(data={"status": "healthy", **counts})


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """按配置组装应用（测试可传入独立的 Settings）"""
    cfg = app_settings or settings
    application = FastAPI(
        title=cfg.PROJECT_NAME,
        version=cfg.VERSION,
        debug=cfg.DEBUG,
        lifespan=lifespan,
        description="Screen-frame and presence relay between exam students and proctors",
    )

    # 添加中间件（注意顺序：从下往上执行）
    application.add_middleware(LoggingMiddleware)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册全局异常处理器
    register_exception_handlers(application)

    # 注册路由
    application.include_router(students_routes.router, prefix="/api/v1")
    application.include_router(ws_routes.router)
    application.include_router(meta_router)

    # 前端构建产物（可选）
    if cfg.STATIC_DIR and Path(cfg.STATIC_DIR).is_dir():
        application.mount("/app", StaticFiles(directory=cfg.STATIC_DIR, html=True), name="ui")
        logger.info("static_ui_mounted", directory=cfg.STATIC_DIR)

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
