"""Domain Model 单元测试

测试内容：
1. TaskTemplate 字段校验
2. TaskInstance 生命周期不变量
3. PointsEntry 严格整数 / 不可变
4. DateRange 窗口
"""

from datetime import UTC, datetime

import pytest
from marketops.core.models import (
    DateRange,
    InstanceStatus,
    Owner,
    PointsEntry,
    PointsSource,
    TaskInstance,
    TaskTemplate,
    Weekday,
)
from pydantic import ValidationError

NOW = datetime(2024, 2, 5, 10, 0, tzinfo=UTC)


def _instance(**overrides) -> TaskInstance:
    data = {
        "instance_id": "tpl:2024-02-05",
        "template_id": "tpl",
        "date_iso": "2024-02-05",
        "title": "上新",
        "owner_id": "ana",
    }
    data.update(overrides)
    return TaskInstance(**data)


class TestTaskTemplate:
    """TaskTemplate 模型"""

    def test_defaults(self):
        t = TaskTemplate(template_id="t1", title="巡检", owner_id="ana")
        assert t.is_active is True
        assert t.weekdays == set()
        assert t.time_of_day == "09:00"
        assert t.channel_id is None
        assert t.points_on_complete is None

    @pytest.mark.parametrize("value", ["9:00", "24:00", "12:60", "noon"])
    def test_invalid_time_of_day(self, value: str):
        with pytest.raises(ValidationError):
            TaskTemplate(template_id="t1", title="巡检", owner_id="ana", time_of_day=value)

    def test_owner_required(self):
        with pytest.raises(ValidationError):
            TaskTemplate(template_id="t1", title="巡检", owner_id="")

    def test_weekdays_from_strings(self):
        t = TaskTemplate(template_id="t1", title="巡检", owner_id="ana", weekdays=["MON", "FRI"])
        assert t.weekdays == {Weekday.MON, Weekday.FRI}


class TestTaskInstance:
    """TaskInstance 生命周期不变量"""

    def test_pending_default(self):
        inst = _instance()
        assert inst.status == InstanceStatus.PENDING
        assert inst.completed_at is None and inst.skipped_at is None
        assert inst.is_global is True

    def test_pending_with_timestamp_rejected(self):
        with pytest.raises(ValidationError):
            _instance(completed_at=NOW)

    def test_done_requires_completed_at_only(self):
        _instance(status=InstanceStatus.DONE, completed_at=NOW)
        with pytest.raises(ValidationError):
            _instance(status=InstanceStatus.DONE)
        with pytest.raises(ValidationError):
            _instance(status=InstanceStatus.DONE, completed_at=NOW, skipped_at=NOW)

    def test_skipped_requires_skipped_at_only(self):
        _instance(status=InstanceStatus.SKIPPED, skipped_at=NOW, skip_reason="缺货")
        with pytest.raises(ValidationError):
            _instance(status=InstanceStatus.SKIPPED, completed_at=NOW)

    def test_done_with_required_evidence_must_have_evidence(self):
        with pytest.raises(ValidationError):
            _instance(status=InstanceStatus.DONE, completed_at=NOW, evidence_required=True)
        inst = _instance(
            status=InstanceStatus.DONE,
            completed_at=NOW,
            evidence_required=True,
            evidence=["https://example.com/print.png"],
        )
        assert inst.evidence == ["https://example.com/print.png"]

    @pytest.mark.parametrize("value", ["2024-02-30", "2024-2-5", "05/02/2024"])
    def test_invalid_date(self, value: str):
        with pytest.raises(ValidationError):
            _instance(date_iso=value)

    def test_channel_instance_not_global(self):
        assert _instance(channel_id="shopee").is_global is False


class TestPointsEntry:
    """PointsEntry 模型"""

    def test_valid(self):
        e = PointsEntry(
            owner_id="ana",
            date_iso="2024-02-05",
            amount=-5,
            source_kind=PointsSource.TASK_SKIPPED,
        )
        assert e.entry_id is None
        assert e.amount == -5

    @pytest.mark.parametrize("amount", [10.0, "10", 2.5, True])
    def test_amount_must_be_int(self, amount):
        with pytest.raises(ValidationError):
            PointsEntry(
                owner_id="ana",
                date_iso="2024-02-05",
                amount=amount,
                source_kind=PointsSource.MANUAL,
            )

    def test_blank_owner_rejected(self):
        with pytest.raises(ValidationError):
            PointsEntry(
                owner_id="   ",
                date_iso="2024-02-05",
                amount=1,
                source_kind=PointsSource.MANUAL,
            )

    def test_unknown_source_rejected(self):
        with pytest.raises(ValidationError):
            PointsEntry(owner_id="ana", date_iso="2024-02-05", amount=1, source_kind="BONUS")

    def test_frozen(self):
        e = PointsEntry(
            owner_id="ana",
            date_iso="2024-02-05",
            amount=1,
            source_kind=PointsSource.MANUAL,
        )
        with pytest.raises(ValidationError):
            e.amount = 100


class TestDateRange:
    """DateRange 窗口"""

    def test_contains_inclusive(self):
        r = DateRange(start="2024-02-01", end="2024-02-29")
        assert r.contains("2024-02-01")
        assert r.contains("2024-02-29")
        assert not r.contains("2024-01-31")

    def test_start_after_end_rejected(self):
        with pytest.raises(ValidationError):
            DateRange(start="2024-03-01", end="2024-02-01")

    def test_for_month(self):
        r = DateRange.for_month("2023-02")
        assert r.end == "2023-02-28"


class TestOwner:
    def test_defaults(self):
        o = Owner(owner_id="ana", name="Ana")
        assert o.active is True
        assert o.is_elevated is False
