"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 路由注册 + 核心异常映射。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from marketops.core.config import get_db_path
from marketops.core.exceptions import (
    EvidenceRequiredError,
    ExpansionConflictError,
    ForbiddenError,
    InvalidDateError,
    InvalidLedgerEntryError,
    InvalidStateTransition,
    InvalidStepError,
    InvalidTemplateError,
    MarketOpsError,
    NotFoundError,
    SkipReasonRequiredError,
)
from marketops.core.store import create_store_group
from starlette.responses import JSONResponse

from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import health, points, routine, templates

log = structlog.get_logger()

# 按顺序匹配，子类需排在父类之前
_ERROR_STATUS: list[tuple[type[MarketOpsError], int]] = [
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (InvalidStateTransition, 409),
    (ExpansionConflictError, 409),
    (EvidenceRequiredError, 422),
    (SkipReasonRequiredError, 422),
    (InvalidTemplateError, 422),
    (InvalidStepError, 422),
    (InvalidDateError, 400),
]


def status_for(exc: MarketOpsError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def marketops_error_handler(request: Request, exc: MarketOpsError) -> JSONResponse:
    """核心异常 -> {"error": {"code", "message"}}"""
    if isinstance(exc, InvalidLedgerEntryError):
        # 集成缺陷：记录日志，不向终端用户展示细节
        log.error("ledger_integration_error", code=exc.code, message=exc.message)
        return JSONResponse(
            status_code=500,
            content={"error": {"code": exc.code, "message": "积分流水写入失败"}},
        )

    status_code = status_for(exc)
    log.info("request_rejected", code=exc.code, status_code=status_code)
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": exc.code, "message": exc.message}},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB，关闭时清理连接"""
    store_group = await create_store_group(get_db_path())
    app.state.store_group = store_group
    log.info("store_group_initialized", db_path=get_db_path())

    yield

    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="marketops Gateway",
        version="0.1.0",
        description="电商运营日常任务、执行与积分 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()

    app.add_exception_handler(MarketOpsError, marketops_error_handler)

    app.include_router(templates.router, tags=["templates"])
    app.include_router(routine.router, tags=["routine"])
    app.include_router(points.router, tags=["points"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
