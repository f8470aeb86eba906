"""任务执行状态机

PENDING -> DONE / PENDING -> SKIPPED，两者均为终态。

complete / skip 是纯函数：校验全部在构造新实例之前完成，
失败时输入实例保持不变；成功时返回新实例和对应的积分流水。
实例更新与流水写入的原子性由宿主环境的事务保证（见 store.transaction）。
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import NamedTuple

import structlog
from ulid import ULID

from .config import ScoreRules
from .exceptions import (
    EvidenceRequiredError,
    InvalidStateTransition,
    InvalidStepError,
    SkipReasonRequiredError,
)
from .models.enums import InstanceStatus, PointsSource, validate_transition
from .models.instance import TaskInstance
from .models.points import PointsEntry
from .visibility import ensure_can_act

log = structlog.get_logger()

_DEFAULT_RULES = ScoreRules()


class TransitionResult(NamedTuple):
    """一次流转的结果：新实例 + 对应积分流水"""

    instance: TaskInstance
    entry: PointsEntry


def _ensure_transition(instance: TaskInstance, to_status: InstanceStatus) -> None:
    if not validate_transition(instance.status, to_status):
        raise InvalidStateTransition(instance.instance_id, instance.status.value)


def _clean_evidence(evidence: Iterable[str] | None) -> list[str]:
    # 空白字符串不算证据
    return [item.strip() for item in evidence or [] if item and item.strip()]


def resolve_done_points(instance: TaskInstance, rules: ScoreRules) -> int:
    """实例冻结的完成分值优先，未设置时按规则兜底"""
    if instance.points_on_complete is not None:
        return instance.points_on_complete
    return rules.done_points(instance.is_critical)


def resolve_skip_points(instance: TaskInstance, rules: ScoreRules) -> int:
    """实例冻结的跳过分值优先，未设置时按规则兜底"""
    if instance.points_on_skip is not None:
        return instance.points_on_skip
    return rules.skipped_points(instance.is_critical)


def complete(
    instance: TaskInstance,
    evidence: Iterable[str] | None,
    actor_owner_id: str,
    *,
    actor_is_elevated: bool = False,
    notes: str | None = None,
    now: datetime | None = None,
    rules: ScoreRules | None = None,
) -> TransitionResult:
    """完成任务

    Args:
        instance: 目标实例
        evidence: 证据链接/文本列表
        actor_owner_id: 操作者
        actor_is_elevated: 操作者是否具备提升权限
        notes: 执行备注，None 表示保留原值
        now: 完成时间（默认当前 UTC 时间）
        rules: 积分兜底规则

    Returns:
        TransitionResult(新实例, TASK_DONE 流水)

    Raises:
        ForbiddenError: 操作者无权操作该实例
        InvalidStateTransition: 实例不是 PENDING
        EvidenceRequiredError: 要求证据但未提供
    """
    ensure_can_act(instance, actor_owner_id, actor_is_elevated)
    _ensure_transition(instance, InstanceStatus.DONE)

    cleaned = _clean_evidence(evidence)
    if instance.evidence_required and not cleaned:
        raise EvidenceRequiredError(instance.instance_id)

    ts = now or datetime.now(UTC)
    points = resolve_done_points(instance, rules or _DEFAULT_RULES)

    updated = instance.model_copy(
        update={
            "status": InstanceStatus.DONE,
            "evidence": cleaned,
            "completed_at": ts,
            "completed_by": actor_owner_id,
            "points_awarded": points,
            "notes": instance.notes if notes is None else notes,
        }
    )
    entry = PointsEntry(
        entry_id=str(ULID()),
        owner_id=instance.owner_id,
        date_iso=instance.date_iso,
        amount=points,
        reason=f"完成: {instance.title}",
        source_kind=PointsSource.TASK_DONE,
        source_id=instance.instance_id,
        created_at=ts,
    )
    log.info(
        "instance_completed",
        instance_id=instance.instance_id,
        owner_id=instance.owner_id,
        actor=actor_owner_id,
        points=points,
    )
    return TransitionResult(updated, entry)


def skip(
    instance: TaskInstance,
    reason: str | None,
    actor_owner_id: str,
    *,
    actor_is_elevated: bool = False,
    now: datetime | None = None,
    rules: ScoreRules | None = None,
) -> TransitionResult:
    """跳过任务

    Raises:
        ForbiddenError: 操作者无权操作该实例
        InvalidStateTransition: 实例不是 PENDING
        SkipReasonRequiredError: 原因为空
    """
    ensure_can_act(instance, actor_owner_id, actor_is_elevated)
    _ensure_transition(instance, InstanceStatus.SKIPPED)

    cleaned_reason = (reason or "").strip()
    if not cleaned_reason:
        raise SkipReasonRequiredError(instance.instance_id)

    ts = now or datetime.now(UTC)
    points = resolve_skip_points(instance, rules or _DEFAULT_RULES)

    updated = instance.model_copy(
        update={
            "status": InstanceStatus.SKIPPED,
            "skip_reason": cleaned_reason,
            "skipped_at": ts,
            "completed_by": actor_owner_id,
            "points_awarded": points,
        }
    )
    entry = PointsEntry(
        entry_id=str(ULID()),
        owner_id=instance.owner_id,
        date_iso=instance.date_iso,
        amount=points,
        reason=f"跳过: {instance.title} - {cleaned_reason}",
        source_kind=PointsSource.TASK_SKIPPED,
        source_id=instance.instance_id,
        created_at=ts,
    )
    log.info(
        "instance_skipped",
        instance_id=instance.instance_id,
        owner_id=instance.owner_id,
        actor=actor_owner_id,
        points=points,
    )
    return TransitionResult(updated, entry)


def toggle_step(
    instance: TaskInstance,
    index: int,
    checked: bool,
    actor_owner_id: str,
    *,
    actor_is_elevated: bool = False,
) -> TaskInstance:
    """勾选/取消检查清单步骤，仅 PENDING 实例可修改

    Raises:
        ForbiddenError: 操作者无权操作该实例
        InvalidStateTransition: 实例已是终态
        InvalidStepError: 索引越界
    """
    ensure_can_act(instance, actor_owner_id, actor_is_elevated)
    if instance.status != InstanceStatus.PENDING:
        raise InvalidStateTransition(instance.instance_id, instance.status.value)
    if not 0 <= index < len(instance.steps_state):
        raise InvalidStepError(
            f"实例 {instance.instance_id} 没有第 {index} 个步骤"
            f"（共 {len(instance.steps_state)} 个）"
        )

    steps = [step.model_copy() for step in instance.steps_state]
    steps[index] = steps[index].model_copy(update={"checked": checked})
    return instance.model_copy(update={"steps_state": steps})
