"""TraceMiddleware -- 为实例操作绑定 instance_id / trace_id

从 /api/routine/instances/{instance_id}/... 路径中提取实例 ID，
使完成、跳过、勾选步骤的日志可以按实例串联。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


def extract_instance_id(path: str) -> str | None:
    """从路径中提取实例 ID，没有时返回 None"""
    parts = [p for p in path.split("/") if p]
    for i, part in enumerate(parts):
        if part == "instances" and i + 1 < len(parts):
            return parts[i + 1]
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """实例级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        instance_id = extract_instance_id(request.url.path)
        if instance_id:
            structlog.contextvars.bind_contextvars(
                instance_id=instance_id,
                trace_id=f"trace-{instance_id}",
            )

        return await call_next(request)
