"""RoutineService -- 模板展开、实例查询与执行业务逻辑

核心层保持纯函数；此处负责读库、调用核心、写库：
1. 展开：按月加锁，读已有实例 -> expand -> 单事务批量写入
2. 完成/跳过：读实例 -> 状态机 -> 实例 CAS 更新 + 流水写入同一事务
"""

import asyncio
from datetime import date

import structlog
from marketops.core.calendar import (
    is_month_end_window,
    month_key_of,
    month_range,
    next_month_key,
    parse_date,
)
from marketops.core.config import MONTH_END_WINDOW_DAYS, load_score_rules
from marketops.core.exceptions import (
    ForbiddenError,
    InvalidStateTransition,
    NotFoundError,
)
from marketops.core.execution import TransitionResult, complete, skip, toggle_step
from marketops.core.expansion import (
    create_adhoc_instance,
    current_month_key,
    expand,
    validate_template,
)
from marketops.core.models import DateRange, Owner, TaskInstance, TaskTemplate
from marketops.core.store import StoreGroup
from marketops.core.store.transaction import apply_transition, insert_instances, save_steps
from marketops.core.visibility import DaySummary, day_summary, sort_for_day, visible

from ..deps import visibility_for

log = structlog.get_logger()


class RoutineService:
    """日常任务业务服务"""

    _month_locks: dict[str, asyncio.Lock] = {}
    _month_locks_guard = asyncio.Lock()

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    # ---- 模板 ----

    async def list_templates(self, viewer: Owner) -> list[TaskTemplate]:
        templates = await self._stores.template_store.list_templates()
        return visible(templates, visibility_for(viewer))

    async def create_template(self, viewer: Owner, template: TaskTemplate) -> TaskTemplate:
        """新增模板（仅管理者）

        Raises:
            ForbiddenError: 查看者不具备提升权限
            InvalidTemplateError: weekdays 为空或负责人无效
        """
        self._require_elevated(viewer)
        owners = await self._stores.owner_store.list_owners()
        validate_template(template, owners)
        async with self._stores.write_lock:
            try:
                await self._stores.template_store.save_template(template)
                await self._stores.conn.commit()
            except Exception:
                await self._stores.conn.rollback()
                raise
        log.info("template_saved", template_id=template.template_id, owner_id=template.owner_id)
        return template

    async def deactivate_template(self, viewer: Owner, template_id: str) -> None:
        """停用模板，已生成的实例保持不变"""
        self._require_elevated(viewer)
        async with self._stores.write_lock:
            found = await self._stores.template_store.set_active(template_id, False)
            if not found:
                await self._stores.conn.rollback()
                raise NotFoundError(f"模板不存在: {template_id}")
            await self._stores.conn.commit()
        log.info("template_deactivated", template_id=template_id)

    # ---- 展开 ----

    async def expand_month(self, viewer: Owner, month_key: str) -> list[TaskInstance]:
        """展开启用模板到指定月份（仅管理者），返回新增实例

        同一月份在进程内串行执行；跨进程的重复写入由唯一索引拦截
        （ExpansionConflictError）。
        """
        self._require_elevated(viewer)
        date_range = month_range(month_key)
        lock = await self._get_month_lock(month_key)
        try:
            async with lock:
                templates = await self._stores.template_store.list_templates(active_only=True)
                existing = await self._stores.instance_store.list_instances(date_range)
                created = expand(templates, month_key, existing)
                await insert_instances(self._stores, created, month_key)
        finally:
            await self._cleanup_month_lock(month_key)
        return created

    async def apply_current_month(
        self, viewer: Owner, today: date | None = None
    ) -> tuple[str, list[TaskInstance]]:
        month_key = current_month_key(today)
        return month_key, await self.expand_month(viewer, month_key)

    async def apply_next_month(
        self, viewer: Owner, today: date | None = None
    ) -> tuple[str, list[TaskInstance]]:
        month_key = next_month_key(current_month_key(today))
        return month_key, await self.expand_month(viewer, month_key)

    @staticmethod
    def month_end_reminder(today: date | None = None) -> dict:
        """月末提醒：是否应生成下月任务"""
        today = today or date.today()
        return {
            "today": today.isoformat(),
            "month_end": is_month_end_window(today, MONTH_END_WINDOW_DAYS),
            "next_month_key": next_month_key(month_key_of(today)),
        }

    # ---- 查询 ----

    async def list_instances(
        self,
        viewer: Owner,
        date_iso: str | None = None,
        month_key: str | None = None,
    ) -> tuple[list[TaskInstance], DaySummary]:
        """查询查看者可见的实例（按时间排序）及统计

        date_iso 与 month_key 都未提供时默认今天。
        """
        if month_key is not None:
            date_range = month_range(month_key)
        else:
            day = parse_date(date_iso) if date_iso else date.today()
            date_range = DateRange(start=day.isoformat(), end=day.isoformat())

        instances = await self._stores.instance_store.list_instances(date_range)
        shown = visible(instances, visibility_for(viewer))
        if month_key is None:
            shown = sort_for_day(shown)
        return shown, day_summary(shown)

    async def get_instance(self, instance_id: str) -> TaskInstance:
        instance = await self._stores.instance_store.get_instance(instance_id)
        if instance is None:
            raise NotFoundError(f"实例不存在: {instance_id}")
        return instance

    # ---- 执行 ----

    async def create_adhoc(self, viewer: Owner, **fields) -> TaskInstance:
        """创建临时任务；非管理者只能给自己创建"""
        owner_id = fields["owner_id"]
        if owner_id != viewer.owner_id:
            self._require_elevated(viewer)
        owner = await self._stores.owner_store.get_owner(owner_id)
        if owner is None or not owner.active:
            raise NotFoundError(f"负责人不存在或已停用: {owner_id}")

        instance = create_adhoc_instance(**fields)
        await insert_instances(self._stores, [instance], month_key_of(instance.date_iso))
        log.info(
            "adhoc_instance_created",
            instance_id=instance.instance_id,
            owner_id=owner_id,
            date_iso=instance.date_iso,
        )
        return instance

    async def complete_instance(
        self,
        viewer: Owner,
        instance_id: str,
        evidence: list[str],
        notes: str | None = None,
    ) -> TransitionResult:
        instance = await self.get_instance(instance_id)
        result = complete(
            instance,
            evidence,
            viewer.owner_id,
            actor_is_elevated=viewer.is_elevated,
            notes=notes,
            rules=load_score_rules(),
        )
        await self._apply(result)
        return result

    async def skip_instance(
        self,
        viewer: Owner,
        instance_id: str,
        reason: str,
    ) -> TransitionResult:
        instance = await self.get_instance(instance_id)
        result = skip(
            instance,
            reason,
            viewer.owner_id,
            actor_is_elevated=viewer.is_elevated,
            rules=load_score_rules(),
        )
        await self._apply(result)
        return result

    async def set_step(
        self,
        viewer: Owner,
        instance_id: str,
        index: int,
        checked: bool,
    ) -> TaskInstance:
        instance = await self.get_instance(instance_id)
        updated = toggle_step(
            instance,
            index,
            checked,
            viewer.owner_id,
            actor_is_elevated=viewer.is_elevated,
        )
        await save_steps(self._stores, updated)
        return updated

    async def _apply(self, result: TransitionResult) -> None:
        try:
            await apply_transition(self._stores, result)
        except InvalidStateTransition as e:
            # 读取后被其他请求抢先流转
            log.warning(
                "instance_transition_conflict",
                instance_id=e.instance_id,
                current_status=e.current_status,
            )
            raise

    @staticmethod
    def _require_elevated(viewer: Owner) -> None:
        if not viewer.is_elevated:
            raise ForbiddenError(f"负责人 {viewer.owner_id} 不具备管理权限")

    @classmethod
    async def _get_month_lock(cls, month_key: str) -> asyncio.Lock:
        """获取月份级别锁，序列化同一月份的展开"""
        async with cls._month_locks_guard:
            lock = cls._month_locks.get(month_key)
            if lock is None:
                lock = asyncio.Lock()
                cls._month_locks[month_key] = lock
            return lock

    @classmethod
    async def _cleanup_month_lock(cls, month_key: str) -> None:
        """展开结束后清理 lock，避免全局字典无限增长"""
        async with cls._month_locks_guard:
            lock = cls._month_locks.get(month_key)
            if lock is not None and not lock.locked():
                cls._month_locks.pop(month_key, None)
