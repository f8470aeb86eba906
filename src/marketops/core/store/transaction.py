"""实例流转 + 积分流水原子事务封装

在同一 SQLite 事务内提交实例状态更新和积分流水写入：
要么两者都落库，要么都不落库。

所有 Store 共享一个连接，事务边界即 commit/rollback。
写入 -> commit/rollback 必须在 StoreGroup.write_lock 内完成，
否则一个协程的 rollback 会撤销另一个协程尚未提交的写入。
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING

import aiosqlite

from ..exceptions import ExpansionConflictError, InvalidStateTransition
from ..execution import TransitionResult
from ..ledger import coerce_entry
from ..models.enums import InstanceStatus
from ..models.instance import TaskInstance
from ..models.points import PointsEntry

if TYPE_CHECKING:
    from . import StoreGroup


async def _raise_conflict(stores: "StoreGroup", instance_id: str) -> None:
    current = await stores.instance_store.get_instance(instance_id)
    status = current.status.value if current else InstanceStatus.PENDING.value
    raise InvalidStateTransition(instance_id, status)


async def apply_transition(stores: "StoreGroup", result: TransitionResult) -> None:
    """原子提交一次完成/跳过

    Args:
        stores: Store 实例组（需在同一连接上操作以保证事务性）
        result: 状态机返回的新实例和流水

    Raises:
        InvalidStateTransition: 库中实例已不是 PENDING（并发流转的第二个调用方）
        Exception: 其他写入失败，自动回滚
    """
    async with stores.write_lock:
        try:
            applied = await stores.instance_store.update_transition(result.instance)
            if not applied:
                await _raise_conflict(stores, result.instance.instance_id)

            await stores.points_store.append_entry(coerce_entry(result.entry))

            # 原子提交
            await stores.conn.commit()
        except Exception:
            await stores.conn.rollback()
            raise


async def save_steps(stores: "StoreGroup", instance: TaskInstance) -> None:
    """提交检查清单变更，实例已是终态时抛出 InvalidStateTransition"""
    async with stores.write_lock:
        try:
            applied = await stores.instance_store.update_steps(instance)
            if not applied:
                await _raise_conflict(stores, instance.instance_id)
            await stores.conn.commit()
        except Exception:
            await stores.conn.rollback()
            raise


async def insert_instances(
    stores: "StoreGroup",
    instances: Iterable[TaskInstance],
    month_key: str,
) -> int:
    """批量写入展开结果，任一重复即整体回滚

    Returns:
        写入的实例数

    Raises:
        ExpansionConflictError: 命中 (template_id, date_iso) 唯一约束
    """
    count = 0
    async with stores.write_lock:
        try:
            for instance in instances:
                await stores.instance_store.create_instance(instance)
                count += 1
            await stores.conn.commit()
        except aiosqlite.IntegrityError as e:
            await stores.conn.rollback()
            raise ExpansionConflictError(month_key, e) from e
        except Exception:
            await stores.conn.rollback()
            raise
    return count


async def append_entry_only(stores: "StoreGroup", entry: PointsEntry) -> PointsEntry:
    """仅写入一条流水（手工加减分、事故解决等非任务来源）

    Returns:
        已存储的流水（带 entry_id）

    Raises:
        aiosqlite.IntegrityError: 同一事故重复加分
    """
    stored = coerce_entry(entry)
    async with stores.write_lock:
        try:
            await stores.points_store.append_entry(stored)
            await stores.conn.commit()
        except Exception:
            await stores.conn.rollback()
            raise
    return stored
