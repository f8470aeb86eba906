"""全局 pytest 配置 -- 临时 SQLite 数据库 fixture + 常用领域对象"""

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from marketops.core.models import BUSINESS_DAYS, Owner, TaskTemplate


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def db_conn(tmp_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 数据库连接"""
    from marketops.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest.fixture
def owners() -> list[Owner]:
    """两名运营 + 一名管理者 + 一名离职人员"""
    return [
        Owner(owner_id="ana", name="Ana", role="运营"),
        Owner(owner_id="bruno", name="Bruno", role="运营"),
        Owner(owner_id="ceo", name="Carla", role="CEO", is_elevated=True),
        Owner(owner_id="gone", name="Gil", role="运营", active=False),
    ]


@pytest.fixture
def weekday_template() -> TaskTemplate:
    """工作日模板：归属 ana，全局任务"""
    return TaskTemplate(
        template_id="tpl-ads",
        title="检查广告预算",
        dod="所有活动预算已核对",
        owner_id="ana",
        time_of_day="09:00",
        weekdays=set(BUSINESS_DAYS),
    )
