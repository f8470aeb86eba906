"""gateway 测试配置 -- httpx AsyncClient + 预置负责人/模板的临时数据库"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from marketops.core.models import BUSINESS_DAYS, Owner, TaskTemplate, TemplateStep, Weekday
from marketops.core.store import create_store_group

_ENV_KEYS = ["MARKETOPS_DB_PATH", "MARKETOPS_RESTRICT_TO_OWNER", "MARKETOPS_GLOBAL_VISIBILITY"]


@pytest_asyncio.fixture
async def test_app(tmp_path: Path):
    db_path = str(tmp_path / "sqlite" / "test.db")
    os.environ["MARKETOPS_DB_PATH"] = db_path
    os.environ["MARKETOPS_RESTRICT_TO_OWNER"] = "true"
    os.environ["MARKETOPS_GLOBAL_VISIBILITY"] = "ALL"

    from marketops.gateway.main import create_app

    app = create_app()

    # 手动初始化（绕过 lifespan）
    store_group = await create_store_group(db_path)
    for owner in [
        Owner(owner_id="ana", name="Ana", role="运营"),
        Owner(owner_id="bruno", name="Bruno", role="运营"),
        Owner(owner_id="ceo", name="Carla", role="CEO", is_elevated=True),
        Owner(owner_id="gone", name="Gil", active=False),
    ]:
        await store_group.owner_store.save_owner(owner)
    await store_group.template_store.save_template(
        TaskTemplate(
            template_id="tpl-ads",
            title="检查广告预算",
            owner_id="ana",
            time_of_day="09:00",
            weekdays=set(BUSINESS_DAYS),
        )
    )
    await store_group.template_store.save_template(
        TaskTemplate(
            template_id="tpl-shopee",
            title="Shopee 上新",
            owner_id="bruno",
            channel_id="shopee",
            time_of_day="09:00",
            weekdays={Weekday.MON},
            is_critical=True,
            evidence_required=True,
            steps=[TemplateStep(label="拍照", required=True)],
        )
    )
    await store_group.conn.commit()
    app.state.store_group = store_group

    yield app

    await store_group.conn.close()
    for key in _ENV_KEYS:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def expanded(client: AsyncClient) -> AsyncClient:
    """已展开 2024-02 的客户端"""
    resp = await client.post(
        "/api/routine/expand",
        json={"month_key": "2024-02"},
        headers={"X-Owner-Id": "ceo"},
    )
    assert resp.status_code == 200
    return client
