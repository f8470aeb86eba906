"""PointsEntry Domain Model

积分流水 append-only，写入后不可修改（frozen）。
某负责人在某时间窗内的总分 = 窗口内 amount 之和。
"""

from datetime import UTC, date, datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator

from .enums import PointsSource


def _check_iso_date(value: str) -> str:
    if len(value) != 10:
        raise ValueError(f"日期必须为 YYYY-MM-DD: {value!r}")
    date.fromisoformat(value)
    return value


class PointsEntry(BaseModel):
    """积分流水

    entry_id 为 None 时由 ledger.append 分配。
    source_id 为来源实例/事件 ID，手工加减分时为 None。
    """

    model_config = ConfigDict(frozen=True)

    entry_id: str | None = Field(default=None, description="唯一标识，ULID 格式")
    owner_id: str = Field(min_length=1, description="得分人")
    date_iso: str = Field(description="记账日期 YYYY-MM-DD")
    amount: StrictInt = Field(description="有符号整数分值")
    reason: str = Field(default="", description="原因说明")
    source_kind: PointsSource = Field(description="来源类型")
    source_id: str | None = Field(default=None, description="来源 ID")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="写入时间",
    )

    @field_validator("owner_id")
    @classmethod
    def _check_owner_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("owner_id 不能为空白")
        return value

    @field_validator("date_iso")
    @classmethod
    def _check_date_iso(cls, value: str) -> str:
        return _check_iso_date(value)


class DateRange(BaseModel):
    """闭区间日期窗口 [start, end]"""

    model_config = ConfigDict(frozen=True)

    start: str = Field(description="起始日期（含）")
    end: str = Field(description="结束日期（含）")

    @field_validator("start", "end")
    @classmethod
    def _check_bounds(cls, value: str) -> str:
        return _check_iso_date(value)

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError(f"start 不能晚于 end: {self.start} > {self.end}")
        return self

    @classmethod
    def for_month(cls, month_key: str) -> "DateRange":
        """整月窗口，month_key 非法时抛出 InvalidMonthError"""
        from ..calendar import month_range

        return month_range(month_key)

    def contains(self, date_iso: str) -> bool:
        # ISO 日期字符串的字典序即时间序
        return self.start <= date_iso <= self.end


class RankingRow(BaseModel):
    """排行榜条目"""

    owner_id: str
    total: int
