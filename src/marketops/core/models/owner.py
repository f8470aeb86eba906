"""Owner / VisibilityConfig Domain Model

Owner 是模板、实例、积分流水的归属人。
is_elevated 对应“管理者”权限层级：可查看、操作超出自身归属范围的数据。
"""

from pydantic import BaseModel, Field

from .enums import GlobalVisibility


class Owner(BaseModel):
    """负责人"""

    owner_id: str = Field(min_length=1, description="唯一标识")
    name: str = Field(description="显示名称")
    role: str = Field(default="", description="职位（自由文本，例如 CEO）")
    is_elevated: bool = Field(default=False, description="是否具备提升权限")
    active: bool = Field(default=True, description="是否在职")


class VisibilityConfig(BaseModel):
    """读时可见性配置

    restrict_to_owner=False 时全部可见（按负责人手动筛选属于 UI 层）。
    """

    restrict_to_owner: bool = Field(default=True, description="是否只看自己的数据")
    current_owner_id: str = Field(description="当前查看者")
    global_visibility: GlobalVisibility = Field(
        default=GlobalVisibility.ALL,
        description="全局任务的可见策略",
    )
    is_elevated: bool = Field(default=False, description="查看者是否具备提升权限")
