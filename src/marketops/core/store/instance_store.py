"""InstanceStore SQLite 实现

实例由展开引擎创建，由状态机流转一次；核心层从不删除实例。
状态更新使用 compare-and-swap（WHERE status = 'PENDING'），
第二个并发流转命中 0 行，由事务层转换为 InvalidStateTransition。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import InstanceStatus
from ..models.instance import StepState, TaskInstance
from ..models.points import DateRange

_INSERT_SQL = """
INSERT INTO task_instances (instance_id, template_id, date_iso, title, dod, description,
                            time_of_day, owner_id, channel_id, is_critical,
                            evidence_required, points_on_complete, points_on_skip,
                            status, evidence, skip_reason, notes, steps_state,
                            completed_at, skipped_at, completed_by, points_awarded)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


def _iso_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class SqliteInstanceStore:
    """InstanceStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_instance(self, instance: TaskInstance) -> None:
        """插入实例（不自动提交）

        同一 (template_id, date_iso) 重复插入时抛出 aiosqlite.IntegrityError。
        """
        await self._conn.execute(_INSERT_SQL, self._instance_params(instance))

    async def get_instance(self, instance_id: str) -> TaskInstance | None:
        cursor = await self._conn.execute(
            "SELECT * FROM task_instances WHERE instance_id = ?",
            (instance_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_instance(row)

    async def list_instances(
        self,
        date_range: DateRange | None = None,
        owner_id: str | None = None,
    ) -> list[TaskInstance]:
        """按日期窗口/负责人查询，按日期、时间锚点排序"""
        clauses: list[str] = []
        params: list[str] = []
        if date_range is not None:
            clauses.append("date_iso BETWEEN ? AND ?")
            params.extend([date_range.start, date_range.end])
        if owner_id is not None:
            clauses.append("owner_id = ?")
            params.append(owner_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT * FROM task_instances {where} "
            "ORDER BY date_iso, time_of_day, instance_id",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_instance(row) for row in rows]

    async def update_transition(self, instance: TaskInstance) -> bool:
        """写入流转结果（仅当库中实例仍为 PENDING 时生效）

        Returns:
            True 如果命中一行；False 表示已被其他调用方流转
        """
        cursor = await self._conn.execute(
            """
            UPDATE task_instances
            SET status = ?, evidence = ?, skip_reason = ?, notes = ?, steps_state = ?,
                completed_at = ?, skipped_at = ?, completed_by = ?, points_awarded = ?
            WHERE instance_id = ? AND status = ?
            """,
            (
                instance.status.value,
                json.dumps(instance.evidence, ensure_ascii=False),
                instance.skip_reason,
                instance.notes,
                self._steps_json(instance.steps_state),
                _iso_or_none(instance.completed_at),
                _iso_or_none(instance.skipped_at),
                instance.completed_by,
                instance.points_awarded,
                instance.instance_id,
                InstanceStatus.PENDING.value,
            ),
        )
        return cursor.rowcount == 1

    async def update_steps(self, instance: TaskInstance) -> bool:
        """更新 PENDING 实例的检查清单"""
        cursor = await self._conn.execute(
            """
            UPDATE task_instances SET steps_state = ?
            WHERE instance_id = ? AND status = ?
            """,
            (
                self._steps_json(instance.steps_state),
                instance.instance_id,
                InstanceStatus.PENDING.value,
            ),
        )
        return cursor.rowcount == 1

    @staticmethod
    def _steps_json(steps: list[StepState]) -> str:
        return json.dumps([s.model_dump() for s in steps], ensure_ascii=False)

    @classmethod
    def _instance_params(cls, instance: TaskInstance) -> tuple:
        return (
            instance.instance_id,
            instance.template_id,
            instance.date_iso,
            instance.title,
            instance.dod,
            instance.description,
            instance.time_of_day,
            instance.owner_id,
            instance.channel_id,
            int(instance.is_critical),
            int(instance.evidence_required),
            instance.points_on_complete,
            instance.points_on_skip,
            instance.status.value,
            json.dumps(instance.evidence, ensure_ascii=False),
            instance.skip_reason,
            instance.notes,
            cls._steps_json(instance.steps_state),
            _iso_or_none(instance.completed_at),
            _iso_or_none(instance.skipped_at),
            instance.completed_by,
            instance.points_awarded,
        )

    @staticmethod
    def _row_to_instance(row: aiosqlite.Row) -> TaskInstance:
        """将数据库行转换为 TaskInstance 模型"""
        completed_at = row["completed_at"]
        skipped_at = row["skipped_at"]
        return TaskInstance(
            instance_id=row["instance_id"],
            template_id=row["template_id"],
            date_iso=row["date_iso"],
            title=row["title"],
            dod=row["dod"],
            description=row["description"],
            time_of_day=row["time_of_day"],
            owner_id=row["owner_id"],
            channel_id=row["channel_id"],
            is_critical=bool(row["is_critical"]),
            evidence_required=bool(row["evidence_required"]),
            points_on_complete=row["points_on_complete"],
            points_on_skip=row["points_on_skip"],
            status=InstanceStatus(row["status"]),
            evidence=json.loads(row["evidence"]),
            skip_reason=row["skip_reason"],
            notes=row["notes"],
            steps_state=[StepState(**s) for s in json.loads(row["steps_state"])],
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
            skipped_at=datetime.fromisoformat(skipped_at) if skipped_at else None,
            completed_by=row["completed_by"],
            points_awarded=row["points_awarded"],
        )
