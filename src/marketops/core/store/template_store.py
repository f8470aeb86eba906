"""TemplateStore SQLite 实现

模板的增改属于模板 CRUD（核心之外），此处仅提供数据库操作。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import Weekday
from ..models.template import TaskTemplate, TemplateStep


class SqliteTemplateStore:
    """TemplateStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def save_template(self, template: TaskTemplate) -> None:
        """新增或覆盖模板（不自动提交）"""
        weekdays_json = json.dumps(sorted(d.value for d in template.weekdays))
        steps_json = json.dumps(
            [s.model_dump() for s in template.steps],
            ensure_ascii=False,
        )
        await self._conn.execute(
            """
            INSERT INTO task_templates (template_id, title, dod, description, owner_id,
                                        channel_id, time_of_day, weekdays, is_critical,
                                        evidence_required, points_on_complete,
                                        points_on_skip, is_active, steps, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(template_id) DO UPDATE SET
                title = excluded.title,
                dod = excluded.dod,
                description = excluded.description,
                owner_id = excluded.owner_id,
                channel_id = excluded.channel_id,
                time_of_day = excluded.time_of_day,
                weekdays = excluded.weekdays,
                is_critical = excluded.is_critical,
                evidence_required = excluded.evidence_required,
                points_on_complete = excluded.points_on_complete,
                points_on_skip = excluded.points_on_skip,
                is_active = excluded.is_active,
                steps = excluded.steps
            """,
            (
                template.template_id,
                template.title,
                template.dod,
                template.description,
                template.owner_id,
                template.channel_id,
                template.time_of_day,
                weekdays_json,
                int(template.is_critical),
                int(template.evidence_required),
                template.points_on_complete,
                template.points_on_skip,
                int(template.is_active),
                steps_json,
                template.created_at.isoformat(),
            ),
        )

    async def get_template(self, template_id: str) -> TaskTemplate | None:
        cursor = await self._conn.execute(
            "SELECT * FROM task_templates WHERE template_id = ?",
            (template_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_template(row)

    async def list_templates(self, active_only: bool = False) -> list[TaskTemplate]:
        """查询模板列表，按时间锚点排序"""
        if active_only:
            cursor = await self._conn.execute(
                "SELECT * FROM task_templates WHERE is_active = 1 "
                "ORDER BY time_of_day, template_id"
            )
        else:
            cursor = await self._conn.execute(
                "SELECT * FROM task_templates ORDER BY time_of_day, template_id"
            )
        rows = await cursor.fetchall()
        return [self._row_to_template(row) for row in rows]

    async def set_active(self, template_id: str, is_active: bool) -> bool:
        """启用/停用模板，已生成的实例不受影响。返回是否命中"""
        cursor = await self._conn.execute(
            "UPDATE task_templates SET is_active = ? WHERE template_id = ?",
            (int(is_active), template_id),
        )
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_template(row: aiosqlite.Row) -> TaskTemplate:
        """将数据库行转换为 TaskTemplate 模型"""
        return TaskTemplate(
            template_id=row["template_id"],
            title=row["title"],
            dod=row["dod"],
            description=row["description"],
            owner_id=row["owner_id"],
            channel_id=row["channel_id"],
            time_of_day=row["time_of_day"],
            weekdays={Weekday(d) for d in json.loads(row["weekdays"])},
            is_critical=bool(row["is_critical"]),
            evidence_required=bool(row["evidence_required"]),
            points_on_complete=row["points_on_complete"],
            points_on_skip=row["points_on_skip"],
            is_active=bool(row["is_active"]),
            steps=[TemplateStep(**s) for s in json.loads(row["steps"])],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
