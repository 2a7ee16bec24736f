"""Japanese national holiday rules.

祝日表の生成ルール
- 固定祝日（元日、建国記念の日、天皇誕生日など）
- ハッピーマンデー（第N月曜日）
- 春分の日・秋分の日（1900-2099年の近似式）
- 2020/2021年の特例（東京オリンピック）
- 振替休日
- 国民の休日（祝日に挟まれた平日）

Each step is a plain function over a mutable ``Dict[date, HolidayName]``;
``build_year_holidays`` runs them in order and returns a read-only mapping.
"""

import math
from datetime import date, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping


SUPPORTED_MIN_YEAR = 1900
SUPPORTED_MAX_YEAR = 2099

DEFAULT_VERNAL_EQUINOX_DAY = 21
DEFAULT_AUTUMNAL_EQUINOX_DAY = 23


class HolidayName(str, Enum):
    """国民の祝日・休日の名称"""
    NEW_YEARS_DAY = "元日"
    COMING_OF_AGE_DAY = "成人の日"
    NATIONAL_FOUNDATION_DAY = "建国記念の日"
    EMPERORS_BIRTHDAY = "天皇誕生日"
    VERNAL_EQUINOX_DAY = "春分の日"
    SHOWA_DAY = "昭和の日"
    CONSTITUTION_MEMORIAL_DAY = "憲法記念日"
    GREENERY_DAY = "みどりの日"
    CHILDRENS_DAY = "こどもの日"
    MARINE_DAY = "海の日"
    MOUNTAIN_DAY = "山の日"
    RESPECT_FOR_THE_AGED_DAY = "敬老の日"
    AUTUMNAL_EQUINOX_DAY = "秋分の日"
    HEALTH_SPORTS_DAY = "体育の日"
    SPORTS_DAY = "スポーツの日"
    CULTURE_DAY = "文化の日"
    LABOR_THANKSGIVING_DAY = "勤労感謝の日"
    SUBSTITUTE_HOLIDAY = "振替休日"
    NATIONAL_HOLIDAY = "国民の休日"

    def __str__(self) -> str:
        return self.value

    @property
    def english(self) -> str:
        """English label"""
        return _ENGLISH_NAMES[self]


_ENGLISH_NAMES = {
    HolidayName.NEW_YEARS_DAY: "New Year's Day",
    HolidayName.COMING_OF_AGE_DAY: "Coming-of-Age Day",
    HolidayName.NATIONAL_FOUNDATION_DAY: "National Foundation Day",
    HolidayName.EMPERORS_BIRTHDAY: "Emperor's Birthday",
    HolidayName.VERNAL_EQUINOX_DAY: "Vernal Equinox Day",
    HolidayName.SHOWA_DAY: "Showa Day",
    HolidayName.CONSTITUTION_MEMORIAL_DAY: "Constitution Memorial Day",
    HolidayName.GREENERY_DAY: "Greenery Day",
    HolidayName.CHILDRENS_DAY: "Children's Day",
    HolidayName.MARINE_DAY: "Marine Day",
    HolidayName.MOUNTAIN_DAY: "Mountain Day",
    HolidayName.RESPECT_FOR_THE_AGED_DAY: "Respect-for-the-Aged Day",
    HolidayName.AUTUMNAL_EQUINOX_DAY: "Autumnal Equinox Day",
    HolidayName.HEALTH_SPORTS_DAY: "Health-Sports Day",
    HolidayName.SPORTS_DAY: "Sports Day",
    HolidayName.CULTURE_DAY: "Culture Day",
    HolidayName.LABOR_THANKSGIVING_DAY: "Labor Thanksgiving Day",
    HolidayName.SUBSTITUTE_HOLIDAY: "Substitute Holiday",
    HolidayName.NATIONAL_HOLIDAY: "National Holiday",
}

# 2020/2021年の特例: (海の日, スポーツの日, 山の日)
OLYMPIC_OVERRIDES = {
    2020: {
        HolidayName.MARINE_DAY: (7, 23),
        HolidayName.SPORTS_DAY: (7, 24),
        HolidayName.MOUNTAIN_DAY: (8, 10),
    },
    2021: {
        HolidayName.MARINE_DAY: (7, 22),
        HolidayName.SPORTS_DAY: (7, 23),
        HolidayName.MOUNTAIN_DAY: (8, 8),
    },
}

HolidayTable = Dict[date, HolidayName]


def _add_if_absent(table: HolidayTable, holiday_date: date, name: HolidayName) -> bool:
    if holiday_date in table:
        return False
    table[holiday_date] = name
    return True


def nth_monday(year: int, month: int, n: int) -> int:
    """Day of month of the n-th Monday.

    Args:
        year: 年
        month: 月 (1-12)
        n: 第N月曜日 (1始まり)

    Returns:
        Day of month
    """
    first_day = date(year, month, 1)
    # weekday(): 月曜=0
    first_monday = 1 + (-first_day.weekday()) % 7
    return first_monday + (n - 1) * 7


def vernal_equinox_day(year: int) -> int:
    """春分の日（3月の日）を計算"""
    if year < SUPPORTED_MIN_YEAR or year > SUPPORTED_MAX_YEAR:
        return DEFAULT_VERNAL_EQUINOX_DAY
    if year <= 1979:
        return math.floor(20.8357 + 0.242194 * (year - 1980) - (year - 1983) // 4)
    return math.floor(20.8431 + 0.242194 * (year - 1980) - (year - 1980) // 4)


def autumnal_equinox_day(year: int) -> int:
    """秋分の日（9月の日）を計算"""
    if year < SUPPORTED_MIN_YEAR or year > SUPPORTED_MAX_YEAR:
        return DEFAULT_AUTUMNAL_EQUINOX_DAY
    if year <= 1979:
        return math.floor(23.2588 + 0.242194 * (year - 1980) - (year - 1983) // 4)
    return math.floor(23.2488 + 0.242194 * (year - 1980) - (year - 1980) // 4)


def add_fixed_holidays(table: HolidayTable, year: int) -> None:
    """固定祝日"""
    _add_if_absent(table, date(year, 1, 1), HolidayName.NEW_YEARS_DAY)
    _add_if_absent(table, date(year, 2, 11), HolidayName.NATIONAL_FOUNDATION_DAY)

    # 2019年は天皇誕生日なし
    if year >= 2020:
        _add_if_absent(table, date(year, 2, 23), HolidayName.EMPERORS_BIRTHDAY)
    elif 1989 <= year <= 2018:
        _add_if_absent(table, date(year, 12, 23), HolidayName.EMPERORS_BIRTHDAY)

    _add_if_absent(
        table, date(year, 4, 29),
        HolidayName.SHOWA_DAY if year >= 2007 else HolidayName.GREENERY_DAY
    )
    _add_if_absent(table, date(year, 5, 3), HolidayName.CONSTITUTION_MEMORIAL_DAY)
    _add_if_absent(
        table, date(year, 5, 4),
        HolidayName.GREENERY_DAY if year >= 2007 else HolidayName.NATIONAL_HOLIDAY
    )
    _add_if_absent(table, date(year, 5, 5), HolidayName.CHILDRENS_DAY)

    if year >= 2016:
        _add_if_absent(table, date(year, 8, 11), HolidayName.MOUNTAIN_DAY)

    _add_if_absent(table, date(year, 11, 3), HolidayName.CULTURE_DAY)
    _add_if_absent(table, date(year, 11, 23), HolidayName.LABOR_THANKSGIVING_DAY)


def add_happy_monday_holidays(table: HolidayTable, year: int) -> None:
    """ハッピーマンデー（移行前の固定日を含む）"""
    if year >= 2000:
        _add_if_absent(table, date(year, 1, nth_monday(year, 1, 2)), HolidayName.COMING_OF_AGE_DAY)
    else:
        _add_if_absent(table, date(year, 1, 15), HolidayName.COMING_OF_AGE_DAY)

    if year >= 2003:
        _add_if_absent(table, date(year, 7, nth_monday(year, 7, 3)), HolidayName.MARINE_DAY)
    elif year >= 1996:
        _add_if_absent(table, date(year, 7, 20), HolidayName.MARINE_DAY)

    if year >= 2003:
        _add_if_absent(table, date(year, 9, nth_monday(year, 9, 3)), HolidayName.RESPECT_FOR_THE_AGED_DAY)
    elif year >= 1966:
        _add_if_absent(table, date(year, 9, 15), HolidayName.RESPECT_FOR_THE_AGED_DAY)

    if year >= 2000:
        _add_if_absent(table, date(year, 10, nth_monday(year, 10, 2)), HolidayName.SPORTS_DAY)
    else:
        _add_if_absent(table, date(year, 10, 10), HolidayName.HEALTH_SPORTS_DAY)


def add_equinox_holidays(table: HolidayTable, year: int) -> None:
    """春分の日・秋分の日"""
    _add_if_absent(table, date(year, 3, vernal_equinox_day(year)), HolidayName.VERNAL_EQUINOX_DAY)
    _add_if_absent(table, date(year, 9, autumnal_equinox_day(year)), HolidayName.AUTUMNAL_EQUINOX_DAY)


def apply_special_overrides(table: HolidayTable, year: int) -> None:
    """特例（オリンピック等）: 通常の日付を削除してから特例日を設定"""
    overrides = OLYMPIC_OVERRIDES.get(year)
    if not overrides:
        return

    generic_dates = {
        HolidayName.MARINE_DAY: date(year, 7, nth_monday(year, 7, 3)),
        HolidayName.SPORTS_DAY: date(year, 10, nth_monday(year, 10, 2)),
        HolidayName.MOUNTAIN_DAY: date(year, 8, 11),
    }
    for name, generic_date in generic_dates.items():
        if table.get(generic_date) == name:
            del table[generic_date]

    for name, (month, day) in overrides.items():
        table[date(year, month, day)] = name


def add_substitute_holidays(table: HolidayTable) -> None:
    """振替休日: 日曜の祝日ごとに、次の祝日でない日を振替休日とする"""
    snapshot = sorted(table)
    one_day = timedelta(days=1)

    for holiday_date in snapshot:
        if holiday_date.weekday() != 6:
            continue
        candidate = holiday_date + one_day
        while candidate in table:
            candidate += one_day
        table[candidate] = HolidayName.SUBSTITUTE_HOLIDAY


def add_national_holidays(table: HolidayTable) -> None:
    """国民の休日: 2日差の祝日に挟まれた日曜以外の日"""
    sorted_dates = sorted(table)

    for current, following in zip(sorted_dates, sorted_dates[1:]):
        if (following - current).days != 2:
            continue
        between = current + timedelta(days=1)
        if between.weekday() != 6:
            _add_if_absent(table, between, HolidayName.NATIONAL_HOLIDAY)


def build_year_holidays(year: int) -> Mapping[date, HolidayName]:
    """Build the complete holiday table for one year.

    Steps run in a fixed order; every step after the Olympic override only
    fills dates that are still free.

    Args:
        year: Year to build

    Returns:
        Read-only mapping of date to holiday name, in date order
    """
    table: HolidayTable = {}
    add_fixed_holidays(table, year)
    add_happy_monday_holidays(table, year)
    add_equinox_holidays(table, year)
    apply_special_overrides(table, year)
    add_substitute_holidays(table)
    add_national_holidays(table)

    return MappingProxyType(dict(sorted(table.items())))


def is_supported_year(year: int) -> bool:
    """Whether equinox dates for ``year`` are computed rather than defaulted."""
    return SUPPORTED_MIN_YEAR <= year <= SUPPORTED_MAX_YEAR