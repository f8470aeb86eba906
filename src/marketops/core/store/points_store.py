"""PointsStore SQLite 实现

积分表 append-only：只允许插入，不允许更新或删除。
"""

from datetime import datetime

import aiosqlite

from ..models.enums import PointsSource
from ..models.points import DateRange, PointsEntry


class SqlitePointsStore:
    """PointsStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_entry(self, entry: PointsEntry) -> None:
        """追加流水（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        entry_id 必须已分配（见 ledger.coerce_entry）。
        """
        await self._conn.execute(
            """
            INSERT INTO points (entry_id, owner_id, date_iso, amount, reason,
                                source_kind, source_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.entry_id,
                entry.owner_id,
                entry.date_iso,
                entry.amount,
                entry.reason,
                entry.source_kind.value,
                entry.source_id,
                entry.created_at.isoformat(),
            ),
        )

    async def list_entries(
        self,
        owner_id: str | None = None,
        date_range: DateRange | None = None,
    ) -> list[PointsEntry]:
        """按负责人/窗口查询流水，日期倒序"""
        clauses: list[str] = []
        params: list[str] = []
        if owner_id is not None:
            clauses.append("owner_id = ?")
            params.append(owner_id)
        if date_range is not None:
            clauses.append("date_iso BETWEEN ? AND ?")
            params.extend([date_range.start, date_range.end])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT * FROM points {where} ORDER BY date_iso DESC, created_at DESC, entry_id DESC",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def get_entries_for_source(self, source_id: str) -> list[PointsEntry]:
        cursor = await self._conn.execute(
            "SELECT * FROM points WHERE source_id = ? ORDER BY created_at",
            (source_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def list_months(self) -> list[str]:
        """有流水的月份，最新在前"""
        cursor = await self._conn.execute(
            "SELECT DISTINCT substr(date_iso, 1, 7) AS month_key FROM points "
            "ORDER BY month_key DESC"
        )
        rows = await cursor.fetchall()
        return [row["month_key"] for row in rows]

    @staticmethod
    def _row_to_entry(row: aiosqlite.Row) -> PointsEntry:
        """将数据库行转换为 PointsEntry 模型"""
        return PointsEntry(
            entry_id=row["entry_id"],
            owner_id=row["owner_id"],
            date_iso=row["date_iso"],
            amount=row["amount"],
            reason=row["reason"],
            source_kind=PointsSource(row["source_kind"]),
            source_id=row["source_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
