"""积分账本 -- append-only

核心层只暴露追加和聚合，不提供更新或删除。
排行按总分倒序，同分按 owner_id 字典序，保证重复调用结果一致。
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from pydantic import ValidationError
from ulid import ULID

from .calendar import month_key_of
from .config import ScoreRules
from .exceptions import InvalidLedgerEntryError
from .models.enums import PointsSource
from .models.points import DateRange, PointsEntry, RankingRow

log = structlog.get_logger()


def coerce_entry(entry: PointsEntry | Mapping[str, Any]) -> PointsEntry:
    """校验并规范化流水，分配缺失的 entry_id

    Raises:
        InvalidLedgerEntryError: amount 非整数、owner_id 缺失、来源未知等
    """
    try:
        if isinstance(entry, PointsEntry):
            # 重新校验：model_construct 之类的入口可能绕过了字段约束
            validated = PointsEntry.model_validate(entry.model_dump())
        else:
            validated = PointsEntry.model_validate(dict(entry))
    except ValidationError as e:
        log.error("ledger_entry_rejected", errors=e.errors(include_url=False))
        raise InvalidLedgerEntryError(f"积分流水格式非法: {e.error_count()} 个错误") from e

    if validated.entry_id is None:
        validated = validated.model_copy(update={"entry_id": str(ULID())})
    return validated


def _in_range(entry: PointsEntry, date_range: DateRange | None) -> bool:
    return date_range is None or date_range.contains(entry.date_iso)


def total_for(
    entries: Iterable[PointsEntry],
    owner_id: str,
    date_range: DateRange | None = None,
) -> int:
    """负责人在窗口内的总分，没有流水时为 0"""
    return sum(
        e.amount for e in entries if e.owner_id == owner_id and _in_range(e, date_range)
    )


def rank(
    entries: Iterable[PointsEntry],
    date_range: DateRange | None = None,
    owner_ids: Iterable[str] | None = None,
) -> list[RankingRow]:
    """窗口内排行

    Args:
        entries: 流水集合
        date_range: 时间窗口，None 为全部
        owner_ids: 需要出现在榜单中的负责人（无流水时记 0 分）

    Returns:
        按总分倒序、同分按 owner_id 升序的排行
    """
    totals: dict[str, int] = defaultdict(int)
    for owner_id in owner_ids or ():
        totals[owner_id] += 0
    for e in entries:
        if _in_range(e, date_range):
            totals[e.owner_id] += e.amount
    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [RankingRow(owner_id=owner_id, total=total) for owner_id, total in ordered]


class PointsLedger:
    """内存积分账本

    流水只追加；读取返回副本，外部无法修改内部列表。
    """

    def __init__(self, entries: Iterable[PointsEntry] = ()) -> None:
        self._entries: list[PointsEntry] = []
        for entry in entries:
            self.append(entry)

    def append(self, entry: PointsEntry | Mapping[str, Any]) -> PointsEntry:
        """追加流水，返回已存储的（带 entry_id 的）流水"""
        stored = coerce_entry(entry)
        self._entries.append(stored)
        return stored

    @property
    def entries(self) -> tuple[PointsEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def total_for(self, owner_id: str, date_range: DateRange | None = None) -> int:
        return total_for(self._entries, owner_id, date_range)

    def rank(
        self,
        date_range: DateRange | None = None,
        owner_ids: Iterable[str] | None = None,
    ) -> list[RankingRow]:
        return rank(self._entries, date_range, owner_ids)

    def entries_for(
        self,
        owner_id: str | None = None,
        date_range: DateRange | None = None,
    ) -> list[PointsEntry]:
        """按负责人/窗口筛选，日期倒序（同日按写入顺序倒序）"""
        matched = [
            (i, e)
            for i, e in enumerate(self._entries)
            if (owner_id is None or e.owner_id == owner_id) and _in_range(e, date_range)
        ]
        matched.sort(key=lambda pair: (pair[1].date_iso, pair[0]), reverse=True)
        return [e for _, e in matched]

    def months(self) -> list[str]:
        """有流水的月份，最新在前"""
        return sorted({month_key_of(e.date_iso) for e in self._entries}, reverse=True)

    def find_by_source(self, source_id: str) -> list[PointsEntry]:
        return [e for e in self._entries if e.source_id == source_id]


def manual_entry(owner_id: str, date_iso: str, amount: int, reason: str) -> PointsEntry:
    """手工加减分"""
    return coerce_entry(
        {
            "owner_id": owner_id,
            "date_iso": date_iso,
            "amount": amount,
            "reason": reason,
            "source_kind": PointsSource.MANUAL,
        }
    )


def incident_resolved_entry(
    incident_id: str,
    title: str,
    owner_id: str,
    date_iso: str,
    rules: ScoreRules | None = None,
) -> PointsEntry:
    """事故解决加分（事故子系统通过同一个 append 写入）"""
    rules = rules or ScoreRules()
    return coerce_entry(
        {
            "owner_id": owner_id,
            "date_iso": date_iso,
            "amount": rules.incident_resolved,
            "reason": f"解决事故: {title}",
            "source_kind": PointsSource.INCIDENT_RESOLVED,
            "source_id": incident_id,
        }
    )


def daily_goal_entry(
    owner_id: str,
    date_iso: str,
    gmv: float,
    goal: float,
    rules: ScoreRules | None = None,
) -> PointsEntry | None:
    """达成日销售目标时加分，未达成返回 None"""
    if gmv < goal:
        return None
    rules = rules or ScoreRules()
    return coerce_entry(
        {
            "owner_id": owner_id,
            "date_iso": date_iso,
            "amount": rules.daily_goal_met,
            "reason": f"达成日目标: {gmv:,.2f}",
            "source_kind": PointsSource.MANUAL,
        }
    )
