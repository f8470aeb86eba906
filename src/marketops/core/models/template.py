"""TaskTemplate Domain Model

模板是周期性任务定义，按 weekdays 展开为每日实例。
模板字段在生成实例时被复制（快照），之后修改模板不影响已生成的实例。
"""

import re
from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator

from .enums import Weekday

_TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class TemplateStep(BaseModel):
    """模板检查清单步骤"""

    label: str = Field(description="步骤说明")
    required: bool = Field(default=False, description="是否为必做步骤")


class TaskTemplate(BaseModel):
    """周期性任务模板

    channel_id 为 None 表示全局任务，不绑定任何销售渠道。
    points_on_complete / points_on_skip 为 None 时按 ScoreRules 在流转时决定。
    """

    template_id: str = Field(min_length=1, description="稳定标识")
    title: str = Field(description="任务标题")
    dod: str = Field(default="", description="完成标准（Definition of Done）")
    description: str = Field(default="", description="操作 SOP")
    owner_id: str = Field(min_length=1, description="负责人，不可为空")
    channel_id: str | None = Field(default=None, description="渠道，None 为全局")
    time_of_day: str = Field(default="09:00", description="HH:MM 锚点，用于排序展示")
    weekdays: set[Weekday] = Field(default_factory=set, description="生成实例的星期集合")
    is_critical: bool = Field(default=False, description="是否关键任务")
    evidence_required: bool = Field(default=False, description="完成时是否要求证据")
    points_on_complete: int | None = Field(default=None, description="完成得分")
    points_on_skip: int | None = Field(default=None, description="跳过扣分（通常为负）")
    is_active: bool = Field(default=True, description="停用后不再生成新实例")
    steps: list[TemplateStep] = Field(default_factory=list, description="检查清单")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="创建时间",
    )

    @field_validator("time_of_day")
    @classmethod
    def _check_time_of_day(cls, value: str) -> str:
        if not _TIME_OF_DAY_RE.match(value):
            raise ValueError(f"time_of_day 必须为 HH:MM: {value!r}")
        return value
