"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# owners 表 DDL
_OWNERS_DDL = """
CREATE TABLE IF NOT EXISTS owners (
    owner_id     TEXT PRIMARY KEY,
    name         TEXT NOT NULL DEFAULT '',
    role         TEXT NOT NULL DEFAULT '',
    is_elevated  INTEGER NOT NULL DEFAULT 0,
    active       INTEGER NOT NULL DEFAULT 1
);
"""

# task_templates 表 DDL
_TEMPLATES_DDL = """
CREATE TABLE IF NOT EXISTS task_templates (
    template_id         TEXT PRIMARY KEY,
    title               TEXT NOT NULL DEFAULT '',
    dod                 TEXT NOT NULL DEFAULT '',
    description         TEXT NOT NULL DEFAULT '',
    owner_id            TEXT NOT NULL,
    channel_id          TEXT,
    time_of_day         TEXT NOT NULL DEFAULT '09:00',
    weekdays            TEXT NOT NULL DEFAULT '[]',
    is_critical         INTEGER NOT NULL DEFAULT 0,
    evidence_required   INTEGER NOT NULL DEFAULT 0,
    points_on_complete  INTEGER,
    points_on_skip      INTEGER,
    is_active           INTEGER NOT NULL DEFAULT 1,
    steps               TEXT NOT NULL DEFAULT '[]',
    created_at          TEXT NOT NULL,

    FOREIGN KEY (owner_id) REFERENCES owners(owner_id)
);
"""

_TEMPLATES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_templates_owner ON task_templates(owner_id);",
]

# task_instances 表 DDL（实例是模板字段的快照，不引用模板）
_INSTANCES_DDL = """
CREATE TABLE IF NOT EXISTS task_instances (
    instance_id         TEXT PRIMARY KEY,
    template_id         TEXT,
    date_iso            TEXT NOT NULL,
    title               TEXT NOT NULL DEFAULT '',
    dod                 TEXT NOT NULL DEFAULT '',
    description         TEXT NOT NULL DEFAULT '',
    time_of_day         TEXT NOT NULL DEFAULT '09:00',
    owner_id            TEXT NOT NULL,
    channel_id          TEXT,
    is_critical         INTEGER NOT NULL DEFAULT 0,
    evidence_required   INTEGER NOT NULL DEFAULT 0,
    points_on_complete  INTEGER,
    points_on_skip      INTEGER,
    status              TEXT NOT NULL DEFAULT 'PENDING',
    evidence            TEXT NOT NULL DEFAULT '[]',
    skip_reason         TEXT,
    notes               TEXT NOT NULL DEFAULT '',
    steps_state         TEXT NOT NULL DEFAULT '[]',
    completed_at        TEXT,
    skipped_at          TEXT,
    completed_by        TEXT,
    points_awarded      INTEGER
);
"""

_INSTANCES_INDEXES = [
    # 同一模板同一天至多一个实例：并发展开时重复插入直接报错
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_instances_template_date "
        "ON task_instances(template_id, date_iso) WHERE template_id IS NOT NULL;"
    ),
    "CREATE INDEX IF NOT EXISTS idx_instances_date ON task_instances(date_iso);",
    "CREATE INDEX IF NOT EXISTS idx_instances_owner ON task_instances(owner_id);",
]

# points 表 DDL（append-only）
_POINTS_DDL = """
CREATE TABLE IF NOT EXISTS points (
    entry_id     TEXT PRIMARY KEY,
    owner_id     TEXT NOT NULL,
    date_iso     TEXT NOT NULL,
    amount       INTEGER NOT NULL,
    reason       TEXT NOT NULL DEFAULT '',
    source_kind  TEXT NOT NULL,
    source_id    TEXT,
    created_at   TEXT NOT NULL
);
"""

_POINTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_points_owner_date ON points(owner_id, date_iso);",
    "CREATE INDEX IF NOT EXISTS idx_points_date ON points(date_iso);",
    # 每个实例至多一条任务流水
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_points_task_source "
        "ON points(source_kind, source_id) "
        "WHERE source_kind IN ('TASK_DONE', 'TASK_SKIPPED');"
    ),
    # 同一事故至多加分一次
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_points_incident_source "
        "ON points(source_kind, source_id) "
        "WHERE source_kind = 'INCIDENT_RESOLVED';"
    ),
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 各 Store 按列名读取
    conn.row_factory = aiosqlite.Row

    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_OWNERS_DDL)
    await conn.execute(_TEMPLATES_DDL)
    await conn.execute(_INSTANCES_DDL)
    await conn.execute(_POINTS_DDL)

    # 创建索引
    for idx_sql in _TEMPLATES_INDEXES + _INSTANCES_INDEXES + _POINTS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
