"""模板展开引擎

将周期性模板投射到目标月份的日历日期上，生成任务实例。

幂等保证：已存在 (template_id, date_iso) 的实例不会被重新生成，
因此对同一月份调用两次 expand 不会产生重复；模板编辑后再展开，
只影响尚未生成的日期。

调用方必须传入目标月份完整、一致的已有实例集合，
且同一月份同一时刻至多一个展开（由集成层的锁或唯一约束保证）。
"""

from collections.abc import Iterable
from datetime import date

import structlog
from ulid import ULID

from .calendar import enumerate_dates, month_key_of, parse_date, parse_month_key, weekday_of
from .exceptions import InvalidTemplateError
from .models.instance import StepState, TaskInstance
from .models.owner import Owner
from .models.template import TaskTemplate

log = structlog.get_logger()


def instance_id_for(template_id: str, date_iso: str) -> str:
    """确定性实例 ID，同一模板同一天永远得到同一个 ID"""
    return f"{template_id}:{date_iso}"


def instance_from_template(template: TaskTemplate, date_iso: str) -> TaskInstance:
    """按模板快照构建某一天的实例（复制字段，而非引用模板）"""
    return TaskInstance(
        instance_id=instance_id_for(template.template_id, date_iso),
        template_id=template.template_id,
        date_iso=date_iso,
        title=template.title,
        dod=template.dod,
        description=template.description,
        time_of_day=template.time_of_day,
        owner_id=template.owner_id,
        channel_id=template.channel_id,
        is_critical=template.is_critical,
        evidence_required=template.evidence_required,
        points_on_complete=template.points_on_complete,
        points_on_skip=template.points_on_skip,
        steps_state=[
            StepState(label=step.label, required=step.required) for step in template.steps
        ],
    )


def expand(
    templates: Iterable[TaskTemplate],
    month_key: str,
    existing_instances: Iterable[TaskInstance],
) -> list[TaskInstance]:
    """展开模板到目标月份

    Args:
        templates: 模板集合（停用模板被忽略）
        month_key: 目标月份 YYYY-MM
        existing_instances: 已有实例（不会被修改）

    Returns:
        需要新增的实例列表

    Raises:
        InvalidMonthError: month_key 格式非法
    """
    year, month = parse_month_key(month_key)
    dates = enumerate_dates(year, month)

    seen: set[tuple[str, str]] = {
        (inst.template_id, inst.date_iso)
        for inst in existing_instances
        if inst.template_id is not None
    }

    created: list[TaskInstance] = []
    active_count = 0
    for template in templates:
        if not template.is_active:
            continue
        active_count += 1
        # weekdays 为空视为合法的空操作
        if not template.weekdays:
            continue
        for date_iso in dates:
            if weekday_of(date_iso) not in template.weekdays:
                continue
            key = (template.template_id, date_iso)
            if key in seen:
                continue
            seen.add(key)
            created.append(instance_from_template(template, date_iso))

    log.info(
        "month_expanded",
        month_key=month_key,
        active_templates=active_count,
        created=len(created),
    )
    return created


def create_adhoc_instance(
    *,
    title: str,
    owner_id: str,
    date_iso: str,
    time_of_day: str = "09:00",
    channel_id: str | None = None,
    dod: str = "",
    description: str = "",
    is_critical: bool = False,
    evidence_required: bool = False,
    points_on_complete: int | None = None,
    points_on_skip: int | None = None,
) -> TaskInstance:
    """手工创建不来自模板的临时任务"""
    parse_date(date_iso)
    return TaskInstance(
        instance_id=str(ULID()),
        template_id=None,
        date_iso=date_iso,
        title=title,
        dod=dod,
        description=description,
        time_of_day=time_of_day,
        owner_id=owner_id,
        channel_id=channel_id,
        is_critical=is_critical,
        evidence_required=evidence_required,
        points_on_complete=points_on_complete,
        points_on_skip=points_on_skip,
    )


def validate_template(template: TaskTemplate, owners: Iterable[Owner]) -> None:
    """校验模板不变量（供模板 CRUD 调用）

    Raises:
        InvalidTemplateError: 启用模板 weekdays 为空，或负责人不存在/已停用
    """
    if template.is_active and not template.weekdays:
        raise InvalidTemplateError(f"启用的模板 {template.template_id} 必须至少选择一个星期")
    owner = next((o for o in owners if o.owner_id == template.owner_id), None)
    if owner is None:
        raise InvalidTemplateError(f"模板 {template.template_id} 的负责人不存在: {template.owner_id}")
    if not owner.active:
        raise InvalidTemplateError(f"模板 {template.template_id} 的负责人已停用: {template.owner_id}")


def current_month_key(today: date | None = None) -> str:
    """“应用本月”对应的月份"""
    return month_key_of(today or date.today())
