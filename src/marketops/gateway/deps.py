"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store 实例和查看者

Store 实例通过 app.state 管理，在 lifespan 中初始化/清理。
查看者由 X-Owner-Id 请求头标识，必须是在职负责人。
"""

from fastapi import Depends, Header, Request
from marketops.core.config import get_global_visibility, get_restrict_to_owner
from marketops.core.exceptions import ForbiddenError
from marketops.core.models import Owner, VisibilityConfig
from marketops.core.store import StoreGroup


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


async def get_viewer(
    x_owner_id: str | None = Header(default=None),
    store_group: StoreGroup = Depends(get_store_group),
) -> Owner:
    """解析当前查看者

    Raises:
        ForbiddenError: 缺少请求头，或负责人不存在/已停用
    """
    if not x_owner_id:
        raise ForbiddenError("缺少 X-Owner-Id 请求头")
    owner = await store_group.owner_store.get_owner(x_owner_id)
    if owner is None or not owner.active:
        raise ForbiddenError(f"未知或已停用的负责人: {x_owner_id}")
    return owner


def visibility_for(viewer: Owner) -> VisibilityConfig:
    """按环境配置构建查看者的可见性配置"""
    return VisibilityConfig(
        restrict_to_owner=get_restrict_to_owner(),
        current_owner_id=viewer.owner_id,
        global_visibility=get_global_visibility(),
        is_elevated=viewer.is_elevated,
    )
