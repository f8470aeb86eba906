"""健康检查测试

测试内容：
1. /health 永远 200
2. /ready 检查 SQLite 与磁盘
3. /ready 在数据库不可用时 503
"""

from httpx import AsyncClient


class TestHealth:
    async def test_liveness(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_ready(self, client: AsyncClient):
        resp = await client.get("/ready")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ready"
        assert data["checks"]["sqlite"] == "ok"
        assert data["checks"]["disk_space_mb"] > 0

    async def test_not_ready_when_db_closed(self, client: AsyncClient, test_app):
        await test_app.state.store_group.conn.close()
        resp = await client.get("/ready")
        assert resp.status_code == 503
        assert resp.json()["checks"]["sqlite"].startswith("error")
