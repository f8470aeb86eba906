"""积分 API 测试

测试内容：
1. 排行榜：在职负责人全部上榜，同分按 owner_id
2. 流水查询与月份列表
3. 手工加减分（仅管理者）、事故解决、日目标
"""

from httpx import AsyncClient

ANA = {"X-Owner-Id": "ana"}
BRUNO = {"X-Owner-Id": "bruno"}
CEO = {"X-Owner-Id": "ceo"}


async def _manual(client: AsyncClient, owner_id: str, date_iso: str, amount: int) -> None:
    resp = await client.post(
        "/api/points",
        json={"owner_id": owner_id, "date_iso": date_iso, "amount": amount, "reason": "调整"},
        headers=CEO,
    )
    assert resp.status_code == 201


class TestRanking:
    """GET /api/points/ranking"""

    async def test_empty_ranking_lists_active_owners(self, client: AsyncClient):
        resp = await client.get("/api/points/ranking?month=2024-02", headers=ANA)
        assert resp.status_code == 200
        assert resp.json()["ranking"] == [
            {"owner_id": "ana", "total": 0},
            {"owner_id": "bruno", "total": 0},
            {"owner_id": "ceo", "total": 0},
        ]

    async def test_ranking_order_and_window(self, client: AsyncClient):
        await _manual(client, "bruno", "2024-02-05", 10)
        await _manual(client, "ana", "2024-02-06", 10)
        await _manual(client, "ceo", "2024-02-07", -5)
        await _manual(client, "ana", "2024-03-01", 50)

        resp = await client.get("/api/points/ranking?month=2024-02", headers=ANA)
        assert [(r["owner_id"], r["total"]) for r in resp.json()["ranking"]] == [
            ("ana", 10),
            ("bruno", 10),
            ("ceo", -5),
        ]

        all_time = await client.get("/api/points/ranking", headers=ANA)
        assert all_time.json()["ranking"][0] == {"owner_id": "ana", "total": 60}

    async def test_invalid_month(self, client: AsyncClient):
        resp = await client.get("/api/points/ranking?month=2024-2", headers=ANA)
        assert resp.status_code == 400


class TestEntries:
    """GET /api/points, /api/points/months"""

    async def test_entries_newest_first(self, client: AsyncClient):
        await _manual(client, "ana", "2024-01-20", 1)
        await _manual(client, "ana", "2024-02-06", 2)
        await _manual(client, "bruno", "2024-02-06", 3)

        resp = await client.get("/api/points?owner_id=ana", headers=ANA)
        data = resp.json()
        assert [e["date_iso"] for e in data["entries"]] == ["2024-02-06", "2024-01-20"]
        assert data["total"] == 3

        feb = await client.get("/api/points?month=2024-02", headers=ANA)
        assert feb.json()["total"] == 5

        months = await client.get("/api/points/months", headers=ANA)
        assert months.json()["months"] == ["2024-02", "2024-01"]


class TestManualPoints:
    """POST /api/points"""

    async def test_requires_elevated(self, client: AsyncClient):
        resp = await client.post(
            "/api/points",
            json={
                "owner_id": "ana",
                "date_iso": "2024-02-05",
                "amount": 100,
                "reason": "自己加",
            },
            headers=ANA,
        )
        assert resp.status_code == 403

    async def test_non_integer_amount_rejected(self, client: AsyncClient):
        resp = await client.post(
            "/api/points",
            json={"owner_id": "ana", "date_iso": "2024-02-05", "amount": 2.5, "reason": "x"},
            headers=CEO,
        )
        assert resp.status_code == 422

    async def test_unknown_owner(self, client: AsyncClient):
        resp = await client.post(
            "/api/points",
            json={"owner_id": "nobody", "date_iso": "2024-02-05", "amount": 1, "reason": "x"},
            headers=CEO,
        )
        assert resp.status_code == 404

    async def test_source_is_manual(self, client: AsyncClient):
        resp = await client.post(
            "/api/points",
            json={"owner_id": "ana", "date_iso": "2024-02-05", "amount": -3, "reason": "迟交"},
            headers=CEO,
        )
        entry = resp.json()["entry"]
        assert entry["source_kind"] == "MANUAL"
        assert entry["amount"] == -3
        assert entry["entry_id"]


class TestOtherSources:
    """事故解决与日目标"""

    async def test_incident_counted_once(self, client: AsyncClient):
        body = {
            "incident_id": "inc-42",
            "title": "支付故障",
            "owner_id": "bruno",
            "date_iso": "2024-02-08",
        }
        first = await client.post("/api/points/incident-resolved", json=body, headers=BRUNO)
        assert first.status_code == 201
        assert first.json()["entry"]["amount"] == 20

        second = await client.post("/api/points/incident-resolved", json=body, headers=BRUNO)
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert second.json()["entry"]["entry_id"] == first.json()["entry"]["entry_id"]

        resp = await client.get("/api/points?owner_id=bruno", headers=BRUNO)
        assert resp.json()["total"] == 20

    async def test_daily_goal(self, client: AsyncClient):
        met = await client.post(
            "/api/points/daily-goal",
            json={"owner_id": "ana", "date_iso": "2024-02-05", "gmv": 15000, "goal": 10000},
            headers=CEO,
        )
        assert met.json()["goal_met"] is True
        assert met.json()["entry"]["amount"] == 50

        missed = await client.post(
            "/api/points/daily-goal",
            json={"owner_id": "ana", "date_iso": "2024-02-06", "gmv": 900, "goal": 10000},
            headers=CEO,
        )
        assert missed.json() == {"goal_met": False, "entry": None}
