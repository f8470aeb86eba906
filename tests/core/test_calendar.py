"""日历工具单元测试

测试内容：
1. 月份天数（含闰年）
2. 日期 -> 星期
3. 惰性日期序列可重复迭代
4. 月份键解析与月末提醒窗口
"""

from datetime import date

import pytest
from marketops.core.calendar import (
    DateSequence,
    days_in_month,
    enumerate_dates,
    is_month_end_window,
    month_key_of,
    month_range,
    next_month_key,
    parse_date,
    parse_month_key,
    weekday_of,
)
from marketops.core.exceptions import InvalidDateError, InvalidMonthError
from marketops.core.models import Weekday


class TestDaysInMonth:
    """月份天数"""

    @pytest.mark.parametrize(
        "year,month,expected",
        [
            (2024, 1, 31),
            (2024, 2, 29),
            (2023, 2, 28),
            (1900, 2, 28),
            (2000, 2, 29),
            (2024, 4, 30),
            (2024, 12, 31),
        ],
    )
    def test_days(self, year: int, month: int, expected: int):
        assert days_in_month(year, month) == expected

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_invalid_month(self, month: int):
        with pytest.raises(InvalidDateError):
            days_in_month(2024, month)


class TestWeekdayOf:
    """日期 -> 星期"""

    def test_known_dates(self):
        assert weekday_of("2024-01-01") == Weekday.MON
        assert weekday_of("2024-02-01") == Weekday.THU
        assert weekday_of("2024-02-04") == Weekday.SUN

    def test_accepts_date_object(self):
        assert weekday_of(date(2024, 2, 3)) == Weekday.SAT

    @pytest.mark.parametrize(
        "value", ["2024-02-30", "2024-2-05", "05/02/2024", "", "2024-02-05T10:00"]
    )
    def test_malformed(self, value: str):
        with pytest.raises(InvalidDateError):
            weekday_of(value)

    def test_ordinal_matches_python_weekday(self):
        day = date(2024, 2, 7)
        assert weekday_of(day).ordinal == day.weekday()


class TestEnumerateDates:
    """某月日期序列"""

    def test_full_month_in_order(self):
        dates = list(enumerate_dates(2024, 2))
        assert len(dates) == 29
        assert dates[0] == "2024-02-01"
        assert dates[-1] == "2024-02-29"
        assert dates == sorted(dates)

    def test_restartable(self):
        seq = enumerate_dates(2023, 2)
        first = list(seq)
        second = list(seq)
        assert first == second
        assert len(seq) == 28

    def test_is_lazy_sequence(self):
        seq = enumerate_dates(2024, 1)
        assert isinstance(seq, DateSequence)
        assert next(iter(seq)) == "2024-01-01"

    def test_invalid_month(self):
        with pytest.raises(InvalidDateError):
            enumerate_dates(2024, 13)


class TestMonthKeys:
    """月份键"""

    def test_parse(self):
        assert parse_month_key("2024-02") == (2024, 2)

    @pytest.mark.parametrize(
        "value", ["2024-13", "2024-00", "2024-2", "24-02", "2024/02", "2024-02-01"]
    )
    def test_parse_invalid(self, value: str):
        with pytest.raises(InvalidMonthError):
            parse_month_key(value)

    def test_invalid_month_is_invalid_date(self):
        """InvalidMonthError 是 InvalidDateError 的子类"""
        with pytest.raises(InvalidDateError):
            parse_month_key("nope")

    def test_next_month_wraps_year(self):
        assert next_month_key("2024-01") == "2024-02"
        assert next_month_key("2024-12") == "2025-01"

    def test_month_key_of(self):
        assert month_key_of("2024-02-15") == "2024-02"
        assert month_key_of(date(2025, 11, 3)) == "2025-11"

    def test_month_range(self):
        r = month_range("2024-02")
        assert (r.start, r.end) == ("2024-02-01", "2024-02-29")
        assert r.contains("2024-02-29")
        assert not r.contains("2024-03-01")

    def test_parse_date_strict(self):
        assert parse_date("2024-02-05") == date(2024, 2, 5)
        with pytest.raises(InvalidDateError):
            parse_date("20240205")


class TestMonthEndWindow:
    """月末提醒窗口"""

    @pytest.mark.parametrize(
        "today,expected",
        [
            (date(2024, 2, 26), False),
            (date(2024, 2, 27), True),
            (date(2024, 2, 29), True),
            (date(2024, 1, 28), False),
            (date(2024, 1, 29), True),
        ],
    )
    def test_window_two_days(self, today: date, expected: bool):
        assert is_month_end_window(today, 2) is expected

    def test_window_zero_only_last_day(self):
        assert is_month_end_window(date(2024, 4, 30), 0) is True
        assert is_month_end_window(date(2024, 4, 29), 0) is False
