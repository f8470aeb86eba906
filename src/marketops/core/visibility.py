"""可见性过滤 -- 读时投影，不存储状态

集中处理角色/归属判断：读取侧用 visible()，
写入侧（完成/跳过）用 ensure_can_act()。
"""

from collections.abc import Iterable
from typing import NamedTuple, Protocol, TypeVar

from .exceptions import ForbiddenError
from .models.enums import GlobalVisibility, InstanceStatus
from .models.instance import TaskInstance
from .models.owner import VisibilityConfig


class Owned(Protocol):
    """带归属和渠道的数据（实例、模板）"""

    owner_id: str
    channel_id: str | None


T = TypeVar("T", bound=Owned)


def is_visible(item: Owned, config: VisibilityConfig) -> bool:
    """单条数据对查看者是否可见"""
    if not config.restrict_to_owner:
        return True
    if item.owner_id == config.current_owner_id:
        return True
    if item.channel_id is not None:
        return False
    if config.global_visibility == GlobalVisibility.ALL:
        return True
    return config.global_visibility == GlobalVisibility.ELEVATED_ONLY and config.is_elevated


def visible(items: Iterable[T], config: VisibilityConfig) -> list[T]:
    """过滤出查看者可见的实例或模板，保持原有顺序"""
    return [item for item in items if is_visible(item, config)]


def ensure_can_act(
    instance: TaskInstance,
    actor_owner_id: str,
    actor_is_elevated: bool = False,
) -> None:
    """操作者必须是实例负责人，或具备提升权限

    Raises:
        ForbiddenError: 归属不匹配且非提升权限
    """
    if actor_is_elevated or actor_owner_id == instance.owner_id:
        return
    raise ForbiddenError(
        f"操作者 {actor_owner_id} 无权操作 {instance.owner_id} 的实例 {instance.instance_id}"
    )


def sort_for_day(instances: Iterable[TaskInstance]) -> list[TaskInstance]:
    """按时间排序，同一时间关键任务在前"""
    return sorted(
        instances,
        key=lambda inst: (inst.time_of_day, not inst.is_critical, inst.instance_id),
    )


class DaySummary(NamedTuple):
    """某日任务统计"""

    total: int
    done: int
    skipped: int
    pending: int
    critical_pending: int


def day_summary(instances: Iterable[TaskInstance]) -> DaySummary:
    total = done = skipped = pending = critical_pending = 0
    for inst in instances:
        total += 1
        if inst.status == InstanceStatus.DONE:
            done += 1
        elif inst.status == InstanceStatus.SKIPPED:
            skipped += 1
        else:
            pending += 1
            if inst.is_critical:
                critical_pending += 1
    return DaySummary(total, done, skipped, pending, critical_pending)
