"""marketops Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    BUSINESS_DAYS,
    FULL_WEEK,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    GlobalVisibility,
    InstanceStatus,
    PointsSource,
    Weekday,
    validate_transition,
)
from .instance import StepState, TaskInstance
from .owner import Owner, VisibilityConfig
from .points import DateRange, PointsEntry, RankingRow
from .template import TaskTemplate, TemplateStep

__all__ = [
    # 枚举
    "InstanceStatus",
    "Weekday",
    "PointsSource",
    "GlobalVisibility",
    "BUSINESS_DAYS",
    "FULL_WEEK",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "validate_transition",
    # Template
    "TaskTemplate",
    "TemplateStep",
    # Instance
    "TaskInstance",
    "StepState",
    # Points
    "PointsEntry",
    "DateRange",
    "RankingRow",
    # Owner
    "Owner",
    "VisibilityConfig",
]
