"""marketops Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from pathlib import Path

import aiosqlite

from .instance_store import SqliteInstanceStore
from .owner_store import SqliteOwnerStore
from .points_store import SqlitePointsStore
from .sqlite_init import init_db
from .template_store import SqliteTemplateStore
from .transaction import append_entry_only, apply_transition, insert_instances, save_steps


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接

    write_lock 串行化该连接上的写事务（见 transaction.py）。
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.write_lock = asyncio.Lock()
        self.owner_store = SqliteOwnerStore(conn)
        self.template_store = SqliteTemplateStore(conn)
        self.instance_store = SqliteInstanceStore(conn)
        self.points_store = SqlitePointsStore(conn)


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteOwnerStore",
    "SqliteTemplateStore",
    "SqliteInstanceStore",
    "SqlitePointsStore",
    "init_db",
    "apply_transition",
    "save_steps",
    "insert_instances",
    "append_entry_only",
]
