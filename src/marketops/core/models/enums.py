"""枚举定义

包含 InstanceStatus 状态机、Weekday、PointsSource、GlobalVisibility 枚举，
以及 VALID_TRANSITIONS 合法流转映射和 TERMINAL_STATES 终态集合。
"""

from enum import StrEnum


class InstanceStatus(StrEnum):
    """任务实例状态机"""

    PENDING = "PENDING"

    # 终态
    DONE = "DONE"
    SKIPPED = "SKIPPED"


# 合法状态流转：每个实例只允许流转一次
VALID_TRANSITIONS: dict[InstanceStatus, set[InstanceStatus]] = {
    InstanceStatus.PENDING: {InstanceStatus.DONE, InstanceStatus.SKIPPED},
    # 终态不可再流转（更正属于管理员编辑，不是核心流转）
    InstanceStatus.DONE: set(),
    InstanceStatus.SKIPPED: set(),
}

TERMINAL_STATES: set[InstanceStatus] = {
    InstanceStatus.DONE,
    InstanceStatus.SKIPPED,
}


class Weekday(StrEnum):
    """星期，顺序与 date.weekday() 一致（周一 = 0）"""

    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"
    SUN = "SUN"

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        """由 date.weekday() 的返回值得到 Weekday"""
        return _WEEKDAY_ORDER[index]

    @property
    def ordinal(self) -> int:
        return _WEEKDAY_ORDER.index(self)


_WEEKDAY_ORDER: tuple[Weekday, ...] = (
    Weekday.MON,
    Weekday.TUE,
    Weekday.WED,
    Weekday.THU,
    Weekday.FRI,
    Weekday.SAT,
    Weekday.SUN,
)

# 常用的两种排班
BUSINESS_DAYS: frozenset[Weekday] = frozenset(_WEEKDAY_ORDER[:5])
FULL_WEEK: frozenset[Weekday] = frozenset(_WEEKDAY_ORDER)


class PointsSource(StrEnum):
    """积分来源"""

    TASK_DONE = "TASK_DONE"
    TASK_SKIPPED = "TASK_SKIPPED"
    INCIDENT_RESOLVED = "INCIDENT_RESOLVED"
    MANUAL = "MANUAL"


class GlobalVisibility(StrEnum):
    """全局任务（无渠道）的可见策略"""

    ALL = "ALL"
    ELEVATED_ONLY = "ELEVATED_ONLY"


def validate_transition(from_status: InstanceStatus, to_status: InstanceStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
