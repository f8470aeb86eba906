"""TaskInstance Domain Model

实例是某个模板在某一天的一次具体发生（或手工创建的临时任务）。
模板字段在生成时复制进实例，而不是引用模板。
实例只流转一次（PENDING -> DONE 或 PENDING -> SKIPPED），核心层从不删除实例。
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from .enums import InstanceStatus


class StepState(BaseModel):
    """检查清单步骤的执行状态"""

    label: str
    required: bool = False
    checked: bool = False


class TaskInstance(BaseModel):
    """任务实例

    不变量：
    - status 非 PENDING 时 completed_at / skipped_at 恰好有一个被设置
    - DONE 且 evidence_required 时 evidence 非空
    """

    instance_id: str = Field(min_length=1, description="唯一标识")
    template_id: str | None = Field(default=None, description="来源模板，临时任务为 None")
    date_iso: str = Field(description="日期 YYYY-MM-DD")

    # 生成时从模板复制的快照字段
    title: str = Field(description="任务标题")
    dod: str = Field(default="", description="完成标准")
    description: str = Field(default="", description="操作 SOP")
    time_of_day: str = Field(default="09:00", description="HH:MM")
    owner_id: str = Field(min_length=1, description="负责人")
    channel_id: str | None = Field(default=None, description="渠道，None 为全局")
    is_critical: bool = Field(default=False)
    evidence_required: bool = Field(default=False)
    points_on_complete: int | None = Field(default=None)
    points_on_skip: int | None = Field(default=None)

    # 执行状态
    status: InstanceStatus = Field(default=InstanceStatus.PENDING, description="当前状态")
    evidence: list[str] = Field(default_factory=list, description="证据链接/文本，仅完成时填写")
    skip_reason: str | None = Field(default=None, description="跳过原因，仅跳过时填写")
    notes: str = Field(default="", description="执行备注")
    steps_state: list[StepState] = Field(default_factory=list, description="检查清单状态")
    completed_at: datetime | None = Field(default=None)
    skipped_at: datetime | None = Field(default=None)
    completed_by: str | None = Field(default=None, description="执行流转的操作者")
    points_awarded: int | None = Field(default=None, description="流转时确定，之后冻结")

    @field_validator("date_iso")
    @classmethod
    def _check_date_iso(cls, value: str) -> str:
        if len(value) != 10:
            raise ValueError(f"date_iso 必须为 YYYY-MM-DD: {value!r}")
        date.fromisoformat(value)
        return value

    @model_validator(mode="after")
    def _check_lifecycle(self) -> "TaskInstance":
        if self.status == InstanceStatus.PENDING:
            if self.completed_at is not None or self.skipped_at is not None:
                raise ValueError("PENDING 实例不能带有 completed_at / skipped_at")
        elif self.status == InstanceStatus.DONE:
            if self.completed_at is None or self.skipped_at is not None:
                raise ValueError("DONE 实例必须且只能设置 completed_at")
            if self.evidence_required and not self.evidence:
                raise ValueError("要求证据的 DONE 实例 evidence 不能为空")
        elif self.status == InstanceStatus.SKIPPED:
            if self.skipped_at is None or self.completed_at is not None:
                raise ValueError("SKIPPED 实例必须且只能设置 skipped_at")
        return self

    @property
    def is_global(self) -> bool:
        return self.channel_id is None
