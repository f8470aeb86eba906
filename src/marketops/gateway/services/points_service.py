"""PointsService -- 积分排行、流水查询与非任务来源加分"""

import aiosqlite
import structlog
from marketops.core.calendar import month_range, parse_date
from marketops.core.config import load_score_rules
from marketops.core.exceptions import ForbiddenError, NotFoundError
from marketops.core.ledger import (
    daily_goal_entry,
    incident_resolved_entry,
    manual_entry,
    rank,
)
from marketops.core.models import Owner, PointsEntry, PointsSource, RankingRow
from marketops.core.store import StoreGroup
from marketops.core.store.transaction import append_entry_only

log = structlog.get_logger()


class PointsService:
    """积分业务服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def ranking(self, month_key: str | None = None) -> list[RankingRow]:
        """排行榜：在职负责人全部上榜，无流水记 0 分"""
        date_range = month_range(month_key) if month_key else None
        entries = await self._stores.points_store.list_entries(date_range=date_range)
        owners = await self._stores.owner_store.list_owners(active_only=True)
        return rank(entries, owner_ids=[o.owner_id for o in owners])

    async def list_entries(
        self,
        owner_id: str | None = None,
        month_key: str | None = None,
    ) -> list[PointsEntry]:
        date_range = month_range(month_key) if month_key else None
        return await self._stores.points_store.list_entries(owner_id, date_range)

    async def months(self) -> list[str]:
        return await self._stores.points_store.list_months()

    async def add_manual(
        self,
        viewer: Owner,
        owner_id: str,
        date_iso: str,
        amount: int,
        reason: str,
    ) -> PointsEntry:
        """手工加减分（仅管理者）"""
        self._require_elevated(viewer)
        await self._require_owner(owner_id)
        parse_date(date_iso)
        entry = manual_entry(owner_id, date_iso, amount, reason)
        stored = await append_entry_only(self._stores, entry)
        log.info(
            "manual_points_added",
            entry_id=stored.entry_id,
            owner_id=owner_id,
            amount=amount,
            by=viewer.owner_id,
        )
        return stored

    async def incident_resolved(
        self,
        incident_id: str,
        title: str,
        owner_id: str,
        date_iso: str,
    ) -> tuple[PointsEntry, bool]:
        """事故解决加分，同一事故只计一次

        Returns:
            (流水, created) -- created=False 表示该事故已加过分
        """
        await self._require_owner(owner_id)
        parse_date(date_iso)
        existing = await self._incident_entry(incident_id)
        if existing is not None:
            return existing, False

        entry = incident_resolved_entry(
            incident_id, title, owner_id, date_iso, rules=load_score_rules()
        )
        try:
            stored = await append_entry_only(self._stores, entry)
        except aiosqlite.IntegrityError:
            # 并发请求已先写入该事故的流水
            existing = await self._incident_entry(incident_id)
            if existing is None:
                raise
            log.info("incident_points_duplicate", incident_id=incident_id)
            return existing, False
        log.info(
            "incident_points_added",
            incident_id=incident_id,
            owner_id=owner_id,
            amount=stored.amount,
        )
        return stored, True

    async def daily_goal(
        self,
        viewer: Owner,
        owner_id: str,
        date_iso: str,
        gmv: float,
        goal: float,
    ) -> PointsEntry | None:
        """日销售目标达成加分（仅管理者），未达成返回 None"""
        self._require_elevated(viewer)
        await self._require_owner(owner_id)
        parse_date(date_iso)
        entry = daily_goal_entry(owner_id, date_iso, gmv, goal, rules=load_score_rules())
        if entry is None:
            return None
        return await append_entry_only(self._stores, entry)

    async def _incident_entry(self, incident_id: str) -> PointsEntry | None:
        for entry in await self._stores.points_store.get_entries_for_source(incident_id):
            if entry.source_kind == PointsSource.INCIDENT_RESOLVED:
                return entry
        return None

    async def _require_owner(self, owner_id: str) -> None:
        owner = await self._stores.owner_store.get_owner(owner_id)
        if owner is None:
            raise NotFoundError(f"负责人不存在: {owner_id}")

    @staticmethod
    def _require_elevated(viewer: Owner) -> None:
        if not viewer.is_elevated:
            raise ForbiddenError(f"负责人 {viewer.owner_id} 不具备管理权限")
