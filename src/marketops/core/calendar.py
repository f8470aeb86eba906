"""日历工具 -- 纯日期运算，无状态

除非法的月份/日期输入（InvalidDateError / InvalidMonthError）外没有失败路径。
不建模节假日：按日历星期过滤。
"""

import calendar as _stdlib_calendar
import re
from collections.abc import Iterator
from datetime import date

from .exceptions import InvalidDateError, InvalidMonthError
from .models.enums import Weekday
from .models.points import DateRange

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _check_year_month(year: int, month: int) -> None:
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise InvalidDateError(f"非法年月: {year}-{month}")


def days_in_month(year: int, month: int) -> int:
    """指定月份的天数"""
    _check_year_month(year, month)
    return _stdlib_calendar.monthrange(year, month)[1]


def parse_date(value: str) -> date:
    """解析 YYYY-MM-DD，只接受这一种格式"""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise InvalidDateError(f"日期必须为 YYYY-MM-DD: {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidDateError(f"非法日期: {value!r}") from e


def parse_month_key(month_key: str) -> tuple[int, int]:
    """解析 YYYY-MM，返回 (year, month)"""
    match = _MONTH_KEY_RE.match(month_key) if isinstance(month_key, str) else None
    if match is None:
        raise InvalidMonthError(f"月份必须为 YYYY-MM: {month_key!r}")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise InvalidMonthError(f"非法月份: {month_key!r}")
    return year, month


def weekday_of(value: str | date) -> Weekday:
    """日期对应的星期"""
    day = parse_date(value) if isinstance(value, str) else value
    return Weekday.from_index(day.weekday())


class DateSequence:
    """某月所有日期的惰性序列（ISO 字符串）

    有限且可重复迭代：每次 iter() 都从 1 号重新开始。
    """

    def __init__(self, year: int, month: int) -> None:
        self._year = year
        self._month = month
        self._days = days_in_month(year, month)

    def __iter__(self) -> Iterator[str]:
        for day in range(1, self._days + 1):
            yield date(self._year, self._month, day).isoformat()

    def __len__(self) -> int:
        return self._days

    def __repr__(self) -> str:
        return f"DateSequence({self._year:04d}-{self._month:02d})"


def enumerate_dates(year: int, month: int) -> DateSequence:
    """按顺序枚举某月所有日期"""
    return DateSequence(year, month)


def month_key_of(value: str | date) -> str:
    """日期所在月份的 YYYY-MM"""
    day = parse_date(value) if isinstance(value, str) else value
    return f"{day.year:04d}-{day.month:02d}"


def next_month_key(month_key: str) -> str:
    """下一个月的 YYYY-MM"""
    year, month = parse_month_key(month_key)
    if month == 12:
        return f"{year + 1:04d}-01"
    return f"{year:04d}-{month + 1:02d}"


def month_range(month_key: str) -> DateRange:
    """整月的闭区间窗口"""
    year, month = parse_month_key(month_key)
    last_day = days_in_month(year, month)
    return DateRange(
        start=date(year, month, 1).isoformat(),
        end=date(year, month, last_day).isoformat(),
    )


def is_month_end_window(today: date, window_days: int) -> bool:
    """是否已进入月末窗口（应提醒生成下月任务）"""
    last_day = days_in_month(today.year, today.month)
    return today.day >= last_day - window_days
