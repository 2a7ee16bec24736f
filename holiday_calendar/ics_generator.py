"""ICS file generation module.

祝日表のICSエクスポート
- 終日イベント（DTSTART;VALUE=DATE）
- Asia/Tokyo タイムゾーン定義
- 文字エンコーディング（UTF-8）
"""

from datetime import datetime, timezone, date, timedelta
from typing import Dict, List, Optional
import logging

from icalendar import Calendar, Event, Timezone, TimezoneStandard
import pytz

from .error_handler import BaseApplicationError, ErrorCategory, ValidationError
from .holiday_rules import HolidayName
from .japanese_holidays import JapaneseHolidays
from .logging_config import log_performance
from .security import SecureFileHandler, validate_file_path_input


PRODID = '-//holiday-calendar//Japanese Holidays 1.0//JA'
UID_DOMAIN = 'holiday-calendar'
EVENT_CATEGORY = 'Japanese-Holiday'


class ICSGenerationError(BaseApplicationError):
    """ICS生成関連エラー"""

    default_category = ErrorCategory.EXPORT


class ICSGenerator:
    """Generate ICS files from computed Japanese holidays."""

    def __init__(self, japanese_holidays: Optional[JapaneseHolidays] = None,
                 tz_name: str = 'Asia/Tokyo', english_names: bool = False):
        """Initialize the generator.

        Args:
            japanese_holidays: Holiday engine (default: new instance)
            tz_name: Calendar timezone name
            english_names: Use English labels in SUMMARY
        """
        self.japanese_holidays = japanese_holidays or JapaneseHolidays()
        self.tz = pytz.timezone(tz_name)
        self.english_names = english_names
        self.logger = logging.getLogger(__name__)
        self.calendar = self._create_calendar()

    def _create_calendar(self) -> Calendar:
        calendar = Calendar()
        calendar.add('prodid', PRODID)
        calendar.add('version', '2.0')
        calendar.add('calscale', 'GREGORIAN')
        calendar.add('X-WR-CALNAME', '日本の祝日')
        calendar.add('X-WR-TIMEZONE', self.tz.zone)
        calendar.add_component(self._create_timezone())
        return calendar

    def _create_timezone(self) -> Timezone:
        """タイムゾーン定義（DST なしの標準時のみ）"""
        offset = self.tz.utcoffset(datetime(2000, 1, 1))

        tz_component = Timezone()
        tz_component.add('tzid', self.tz.zone)

        tz_standard = TimezoneStandard()
        tz_standard.add('dtstart', datetime(1970, 1, 1))
        tz_standard.add('tzoffsetfrom', offset)
        tz_standard.add('tzoffsetto', offset)
        tz_standard.add('tzname', self.tz.tzname(datetime(2000, 1, 1)))

        tz_component.add_component(tz_standard)
        return tz_component

    def generate_holiday_event(self, holiday_date: date, name: HolidayName) -> Event:
        """個別祝日イベント生成.

        Args:
            holiday_date: 祝日の日付
            name: 祝日名

        Returns:
            生成されたイベント
        """
        label = name.english if self.english_names else str(name)

        event = Event()
        event.add('uid', f"jp-holiday-{holiday_date.strftime('%Y%m%d')}@{UID_DOMAIN}")
        event.add('dtstamp', datetime.now(timezone.utc))
        event.add('dtstart', holiday_date)
        event.add('dtend', holiday_date + timedelta(days=1))
        event.add('summary', label)
        event.add('description', f"{name.value} ({name.english})")
        event.add('categories', EVENT_CATEGORY)
        event.add('transp', 'TRANSPARENT')
        return event

    def add_holidays(self, start_date: date, end_date: date) -> int:
        """指定期間の祝日をカレンダーに追加.

        Returns:
            追加したイベント数
        """
        if start_date > end_date:
            raise ValidationError(f"start_date ({start_date}) must not be after end_date ({end_date})")

        holidays = self.japanese_holidays.get_holidays_in_range(start_date, end_date)
        for holiday_date, name in holidays:
            self.calendar.add_component(self.generate_holiday_event(holiday_date, name))

        self.logger.info(f"期間 {start_date} - {end_date} の祝日追加完了: {len(holidays)} 件")
        return len(holidays)

    def add_holidays_for_years(self, from_year: int, to_year: Optional[int] = None) -> int:
        """指定年（範囲）の祝日をカレンダーに追加"""
        return self.add_holidays(date(from_year, 1, 1), date(to_year or from_year, 12, 31))

    def get_events(self) -> List[Event]:
        return [c for c in self.calendar.subcomponents if c.name == 'VEVENT']

    def generate_ics_content(self) -> str:
        """ICS形式文字列生成"""
        try:
            return self.calendar.to_ical().decode('utf-8')
        except (UnicodeDecodeError, ValueError) as e:
            raise ICSGenerationError(f"ICS形式文字列生成失敗: {e}", cause=e)

    @log_performance("save_ics")
    def save_to_file(self, filepath: str) -> str:
        """UTF-8でICSファイルを保存.

        Returns:
            保存先の絶対パス

        Raises:
            ICSGenerationError: ファイル保存エラー
            ValidationError: ファイルパス検証エラー
        """
        validated_path = validate_file_path_input(filepath, allow_create=True)
        content = self.generate_ics_content()

        SecureFileHandler.write_secure_file(
            validated_path,
            content,
            permissions=SecureFileHandler.READABLE_FILE_PERMISSIONS
        )

        self.logger.info(f"ICSファイル保存完了: {validated_path}")
        return str(validated_path)

    def get_generation_stats(self) -> Dict:
        """ICS生成統計情報取得（件数と先頭・末尾の日付）"""
        dates = sorted(e.decoded('dtstart') for e in self.get_events())
        return {
            'total_events': len(dates),
            'first_date': dates[0].isoformat() if dates else None,
            'last_date': dates[-1].isoformat() if dates else None,
        }
