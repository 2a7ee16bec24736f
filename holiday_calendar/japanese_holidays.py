"""Japanese holidays engine module.

日付から曜日と祝日を判定する
- 年単位の祝日表を遅延生成し、インスタンス内にキャッシュ（無効化なし）
- 日付文字列（YYYY-MM-DD）の内部パース
- 曜日名のロケール切替（ja / en）
- 期間指定・次の祝日の検索
"""

import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Mapping, Optional, Tuple, Union, Any

from .holiday_rules import HolidayName, build_year_holidays, is_supported_year
from .logging_config import log_function_call


DAY_NAMES = {
    'ja': ('日', '月', '火', '水', '木', '金', '土'),
    'en': ('Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat'),
}

DateInput = Union[str, date, datetime, None]


@dataclass(frozen=True)
class DateInfo:
    """日付情報（曜日・祝日・週末フラグ）"""
    day_of_week: str
    holiday: Optional[HolidayName]
    is_holiday: bool
    is_sunday: bool
    is_saturday: bool

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式に変換"""
        result = asdict(self)
        result['holiday'] = str(self.holiday) if self.holiday else None
        return result


EMPTY_DATE_INFO = DateInfo(
    day_of_week='',
    holiday=None,
    is_holiday=False,
    is_sunday=False,
    is_saturday=False
)


def parse_date_string(value: DateInput) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string (or date/datetime) into a date.

    Returns None for empty or unparseable input instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    parts = text.split('-')
    if len(parts) != 3:
        return None
    try:
        year, month, day = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError:
        return None


def _sunday_index(target: date) -> int:
    # 0=日曜 ... 6=土曜
    return target.isoweekday() % 7


class JapaneseHolidays:
    """Japanese holiday calendar with a per-year cache."""

    def __init__(self, locale: str = 'ja', max_search_years: int = 2):
        """Initialize the holiday engine.

        Args:
            locale: Day name locale ('ja' or 'en')
            max_search_years: Years to look ahead in get_next_holiday
        """
        if locale not in DAY_NAMES:
            raise ValueError(f"Unsupported locale: {locale}")
        self.locale = locale
        self.max_search_years = max_search_years
        self.logger = logging.getLogger(__name__)
        self._year_cache: Dict[int, Mapping[date, HolidayName]] = {}

    @log_function_call(log_args=True)
    def _build_year(self, year: int) -> Mapping[date, HolidayName]:
        table = build_year_holidays(year)
        if is_supported_year(year):
            self.logger.debug(f"{year}年の祝日表を生成: {len(table)} 件")
        else:
            self.logger.debug(
                f"{year}年の祝日表を生成: {len(table)} 件（対応範囲外のため春分・秋分は既定日）"
            )
        return table

    def get_holidays_for_year(self, year: int) -> Mapping[date, HolidayName]:
        """Get the cached holiday table for a year.

        Args:
            year: Year to get holidays for

        Returns:
            Read-only mapping of date to holiday name
        """
        table = self._year_cache.get(year)
        if table is None:
            table = self._year_cache.setdefault(year, self._build_year(year))
        return table

    def get_day_of_week(self, target: DateInput) -> str:
        """Get the localized day-of-week name, or '' for empty input."""
        parsed = parse_date_string(target)
        if parsed is None:
            return ''
        return DAY_NAMES[self.locale][_sunday_index(parsed)]

    def get_holiday_name(self, target: DateInput) -> Optional[HolidayName]:
        """Get holiday name for a date.

        Args:
            target: Date string (YYYY-MM-DD) or date

        Returns:
            Holiday name if it's a holiday, None otherwise
        """
        parsed = parse_date_string(target)
        if parsed is None:
            return None
        return self.get_holidays_for_year(parsed.year).get(parsed)

    def get_date_info(self, target: DateInput) -> DateInfo:
        """Get day-of-week, holiday and weekend flags for a date."""
        parsed = parse_date_string(target)
        if parsed is None:
            if target:
                self.logger.debug(f"日付として解釈できない入力: {target!r}")
            return EMPTY_DATE_INFO

        index = _sunday_index(parsed)
        holiday = self.get_holidays_for_year(parsed.year).get(parsed)
        return DateInfo(
            day_of_week=DAY_NAMES[self.locale][index],
            holiday=holiday,
            is_holiday=holiday is not None,
            is_sunday=index == 0,
            is_saturday=index == 6
        )

    def is_holiday(self, target: DateInput) -> bool:
        """Check if a date is a Japanese holiday."""
        return self.get_holiday_name(target) is not None

    def get_holidays_in_range(self, start_date: date, end_date: date) -> List[Tuple[date, HolidayName]]:
        """Get all holidays in a date range.

        Args:
            start_date: Start date (inclusive)
            end_date: End date (inclusive)

        Returns:
            List of (date, holiday_name) tuples
        """
        holidays_in_range = []
        for year in range(start_date.year, end_date.year + 1):
            for holiday_date, name in self.get_holidays_for_year(year).items():
                if start_date <= holiday_date <= end_date:
                    holidays_in_range.append((holiday_date, name))
        return sorted(holidays_in_range)

    def get_holidays_by_year(self, year: int) -> List[Tuple[date, HolidayName]]:
        """Get all holidays for a specific year as a sorted list."""
        return sorted(self.get_holidays_for_year(year).items())

    def get_next_holiday(self, from_date: Optional[date] = None) -> Optional[Tuple[date, HolidayName]]:
        """Get the next holiday strictly after a given date.

        Args:
            from_date: Date to search from (default: today)

        Returns:
            (date, holiday_name) tuple of next holiday, or None if not found
        """
        if from_date is None:
            from_date = date.today()
        if from_date >= date.max:
            return None

        end_date = date(min(from_date.year + self.max_search_years, date.max.year), 12, 31)
        upcoming = self.get_holidays_in_range(from_date + timedelta(days=1), end_date)
        return upcoming[0] if upcoming else None

    def get_stats(self) -> Dict[str, int]:
        """Get statistics about cached years.

        Returns:
            Dictionary with statistics
        """
        years = sorted(self._year_cache)
        if not years:
            return {'cached_years': 0, 'total': 0, 'min_year': 0, 'max_year': 0}

        return {
            'cached_years': len(years),
            'total': sum(len(self._year_cache[y]) for y in years),
            'min_year': years[0],
            'max_year': years[-1]
        }


# デフォルトインスタンス
_default_holidays: Optional[JapaneseHolidays] = None


def get_japanese_holidays() -> JapaneseHolidays:
    """デフォルトの祝日エンジンを取得"""
    global _default_holidays
    if _default_holidays is None:
        _default_holidays = JapaneseHolidays()
    return _default_holidays


def day_of_week(date_str: DateInput) -> str:
    return get_japanese_holidays().get_day_of_week(date_str)


def holiday_name(date_str: DateInput) -> Optional[HolidayName]:
    return get_japanese_holidays().get_holiday_name(date_str)


def date_info(date_str: DateInput) -> DateInfo:
    return get_japanese_holidays().get_date_info(date_str)


def holidays_for_year(year: int) -> Mapping[date, HolidayName]:
    return get_japanese_holidays().get_holidays_for_year(year)
