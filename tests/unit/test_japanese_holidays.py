"""
Unit tests for JapaneseHolidays class.
Tests the day-of-week / holiday lookup API and its per-year cache.
"""

import logging
import pytest
from unittest.mock import patch
from datetime import date, datetime

from holiday_calendar import japanese_holidays
from holiday_calendar.holiday_rules import HolidayName
from holiday_calendar.japanese_holidays import (
    JapaneseHolidays, DateInfo, EMPTY_DATE_INFO, parse_date_string,
    day_of_week, holiday_name, date_info, holidays_for_year, get_japanese_holidays
)


@pytest.mark.unit
class TestParseDateString:
    """Test cases for internal date parsing."""

    def test_parses_iso_string(self):
        assert parse_date_string("2024-01-01") == date(2024, 1, 1)
        assert parse_date_string(" 2024-11-04 ") == date(2024, 11, 4)

    def test_accepts_date_and_datetime(self):
        assert parse_date_string(date(2024, 5, 5)) == date(2024, 5, 5)
        assert parse_date_string(datetime(2024, 5, 5, 12, 30)) == date(2024, 5, 5)

    @pytest.mark.parametrize("value", [None, "", "   ", "2024/01/01", "2023-02-30", "abc", 20240101])
    def test_invalid_input_returns_none(self, value):
        assert parse_date_string(value) is None


@pytest.mark.unit
class TestJapaneseHolidays:
    """Test cases for JapaneseHolidays class."""

    def setup_method(self):
        self.holidays = JapaneseHolidays()

    def test_init_rejects_unknown_locale(self):
        with pytest.raises(ValueError):
            JapaneseHolidays(locale='fr')

    def test_day_of_week_japanese(self):
        assert self.holidays.get_day_of_week("2024-01-01") == '月'
        assert self.holidays.get_day_of_week("2024-09-22") == '日'
        assert self.holidays.get_day_of_week("2023-09-23") == '土'

    def test_day_of_week_english(self):
        holidays = JapaneseHolidays(locale='en')
        assert holidays.get_day_of_week("2024-01-01") == 'Mon'
        assert holidays.get_day_of_week("2023-09-23") == 'Sat'

    def test_day_of_week_empty_input(self):
        assert self.holidays.get_day_of_week("") == ''
        assert self.holidays.get_day_of_week(None) == ''

    @pytest.mark.parametrize("date_str,expected", [
        ("2024-01-01", HolidayName.NEW_YEARS_DAY),
        ("2021-07-22", HolidayName.MARINE_DAY),
        ("2021-07-23", HolidayName.SPORTS_DAY),
        ("2020-08-10", HolidayName.MOUNTAIN_DAY),
        ("2023-09-23", HolidayName.AUTUMNAL_EQUINOX_DAY),
        ("2024-11-04", HolidayName.SUBSTITUTE_HOLIDAY),
        ("2015-09-22", HolidayName.NATIONAL_HOLIDAY),
        ("1999-10-10", HolidayName.HEALTH_SPORTS_DAY),
    ])
    def test_get_holiday_name(self, date_str, expected):
        assert self.holidays.get_holiday_name(date_str) == expected

    @pytest.mark.parametrize("date_str", ["2024-01-02", "2021-07-19", "2021-10-11", "2020-08-11", ""])
    def test_get_holiday_name_none(self, date_str):
        assert self.holidays.get_holiday_name(date_str) is None

    def test_get_date_info_holiday(self):
        info = self.holidays.get_date_info("2024-01-01")

        assert info == DateInfo(
            day_of_week='月',
            holiday=HolidayName.NEW_YEARS_DAY,
            is_holiday=True,
            is_sunday=False,
            is_saturday=False
        )

    def test_get_date_info_saturday_holiday(self):
        info = self.holidays.get_date_info("2023-09-23")

        assert info.holiday == '秋分の日'
        assert info.day_of_week == '土'
        assert info.is_saturday is True
        assert info.is_sunday is False

    def test_get_date_info_sunday(self):
        info = self.holidays.get_date_info("2024-09-22")

        assert info.is_sunday is True
        assert info.is_holiday is True

    def test_get_date_info_plain_weekday(self):
        info = self.holidays.get_date_info(date(2024, 6, 12))

        assert info.holiday is None
        assert info.is_holiday is False
        assert info.day_of_week == '水'

    @pytest.mark.parametrize("value", ["", None, "2023-02-30", "not-a-date"])
    def test_get_date_info_empty(self, value):
        assert self.holidays.get_date_info(value) == EMPTY_DATE_INFO

    def test_invalid_date_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger='holiday_calendar.japanese_holidays'):
            self.holidays.get_date_info("2023-02-30")

        assert any("2023-02-30" in record.getMessage() for record in caplog.records)

    def test_date_info_to_dict(self):
        result = self.holidays.get_date_info("2024-11-04").to_dict()

        assert result == {
            'day_of_week': '月',
            'holiday': '振替休日',
            'is_holiday': True,
            'is_sunday': False,
            'is_saturday': False
        }
        assert EMPTY_DATE_INFO.to_dict()['holiday'] is None

    def test_year_table_is_cached(self):
        with patch('holiday_calendar.japanese_holidays.build_year_holidays',
                   wraps=japanese_holidays.build_year_holidays) as mock_build:
            first = self.holidays.get_holidays_for_year(2024)
            self.holidays.get_holiday_name("2024-05-06")
            self.holidays.get_date_info("2024-12-31")
            second = self.holidays.get_holidays_for_year(2024)

        assert first is second
        assert mock_build.call_count == 1

    def test_is_holiday(self):
        assert self.holidays.is_holiday("2024-02-12") is True
        assert self.holidays.is_holiday(date(2024, 2, 13)) is False

    def test_get_holidays_in_range_spans_years(self):
        result = self.holidays.get_holidays_in_range(date(2023, 12, 1), date(2024, 1, 31))

        assert result == [
            (date(2024, 1, 1), HolidayName.NEW_YEARS_DAY),
            (date(2024, 1, 8), HolidayName.COMING_OF_AGE_DAY),
        ]

    def test_get_holidays_in_range_inclusive(self):
        result = self.holidays.get_holidays_in_range(date(2024, 5, 3), date(2024, 5, 6))

        assert [d for d, _ in result] == [
            date(2024, 5, 3), date(2024, 5, 4), date(2024, 5, 5), date(2024, 5, 6)
        ]

    def test_get_holidays_by_year(self):
        result = self.holidays.get_holidays_by_year(2024)

        assert len(result) == 21
        assert result[0] == (date(2024, 1, 1), HolidayName.NEW_YEARS_DAY)
        assert result[-1] == (date(2024, 11, 23), HolidayName.LABOR_THANKSGIVING_DAY)

    def test_get_next_holiday(self):
        assert self.holidays.get_next_holiday(date(2024, 1, 2)) == (
            date(2024, 1, 8), HolidayName.COMING_OF_AGE_DAY
        )

    def test_get_next_holiday_is_strictly_after(self):
        assert self.holidays.get_next_holiday(date(2024, 1, 1))[0] == date(2024, 1, 8)

    def test_get_next_holiday_crosses_year(self):
        assert self.holidays.get_next_holiday(date(2024, 12, 1)) == (
            date(2025, 1, 1), HolidayName.NEW_YEARS_DAY
        )

    def test_get_next_holiday_near_last_representable_year(self):
        assert self.holidays.get_next_holiday(date(9998, 12, 31)) == (
            date(9999, 1, 1), HolidayName.NEW_YEARS_DAY
        )
        assert self.holidays.get_next_holiday(date(9999, 12, 1)) is None

    def test_get_next_holiday_from_last_representable_date(self):
        assert self.holidays.get_next_holiday(date.max) is None

    def test_get_stats(self):
        assert self.holidays.get_stats()['cached_years'] == 0

        self.holidays.get_holidays_for_year(2023)
        self.holidays.get_holidays_for_year(2024)
        stats = self.holidays.get_stats()

        assert stats['cached_years'] == 2
        assert stats['min_year'] == 2023
        assert stats['max_year'] == 2024
        assert stats['total'] == len(self.holidays.get_holidays_for_year(2023)) + 21


@pytest.mark.unit
class TestModuleFunctions:
    """Test cases for module-level convenience functions."""

    def test_functions_use_default_instance(self):
        assert day_of_week("2024-01-01") == '月'
        assert holiday_name("2021-07-22") == '海の日'
        assert date_info("2024-11-04").holiday == HolidayName.SUBSTITUTE_HOLIDAY
        assert date(2024, 1, 1) in holidays_for_year(2024)
        assert get_japanese_holidays() is get_japanese_holidays()

    def test_date_info_empty_string(self):
        assert date_info("") == EMPTY_DATE_INFO
