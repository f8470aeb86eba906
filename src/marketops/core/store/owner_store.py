"""OwnerStore SQLite 实现"""

import aiosqlite

from ..models.owner import Owner


class SqliteOwnerStore:
    """OwnerStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def save_owner(self, owner: Owner) -> None:
        """新增或覆盖负责人（不自动提交）"""
        await self._conn.execute(
            """
            INSERT INTO owners (owner_id, name, role, is_elevated, active)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(owner_id) DO UPDATE SET
                name = excluded.name,
                role = excluded.role,
                is_elevated = excluded.is_elevated,
                active = excluded.active
            """,
            (owner.owner_id, owner.name, owner.role, int(owner.is_elevated), int(owner.active)),
        )

    async def get_owner(self, owner_id: str) -> Owner | None:
        cursor = await self._conn.execute(
            "SELECT * FROM owners WHERE owner_id = ?",
            (owner_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_owner(row)

    async def list_owners(self, active_only: bool = False) -> list[Owner]:
        if active_only:
            cursor = await self._conn.execute(
                "SELECT * FROM owners WHERE active = 1 ORDER BY owner_id"
            )
        else:
            cursor = await self._conn.execute("SELECT * FROM owners ORDER BY owner_id")
        rows = await cursor.fetchall()
        return [self._row_to_owner(row) for row in rows]

    @staticmethod
    def _row_to_owner(row: aiosqlite.Row) -> Owner:
        return Owner(
            owner_id=row["owner_id"],
            name=row["name"],
            role=row["role"],
            is_elevated=bool(row["is_elevated"]),
            active=bool(row["active"]),
        )
