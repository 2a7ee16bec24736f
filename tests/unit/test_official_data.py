"""
Unit tests for the Cabinet Office holiday data loader and reconciliation.
"""

import pytest
import requests
from unittest.mock import patch, Mock
from datetime import date

from holiday_calendar.error_handler import (
    NetworkError, EncodingError, DataIntegrityError, ValidationError
)
from holiday_calendar.holiday_rules import HolidayName
from holiday_calendar.japanese_holidays import JapaneseHolidays
from holiday_calendar.official_data import (
    OfficialHolidayData, HolidayDataError, ReconciliationReport, names_match, reconcile
)


@pytest.mark.unit
class TestNamesMatch:
    """Test cases for official label matching."""

    def test_exact_name(self):
        assert names_match(HolidayName.NEW_YEARS_DAY, '元日')
        assert not names_match(HolidayName.NEW_YEARS_DAY, '成人の日')

    def test_official_generic_label(self):
        assert names_match(HolidayName.SUBSTITUTE_HOLIDAY, '休日')
        assert names_match(HolidayName.NATIONAL_HOLIDAY, '休日')
        assert not names_match(HolidayName.CULTURE_DAY, '休日')

    def test_sports_day_renamed(self):
        assert names_match(HolidayName.SPORTS_DAY, '体育の日')
        assert names_match(HolidayName.SPORTS_DAY, ' スポーツの日 ')


@pytest.mark.unit
class TestOfficialHolidayData:
    """Test cases for OfficialHolidayData."""

    def setup_method(self):
        self.loader = OfficialHolidayData()

    def test_detect_encoding_shift_jis(self, official_csv_bytes):
        assert self.loader.detect_encoding(official_csv_bytes) == 'cp932'

    def test_detect_encoding_utf8(self):
        assert self.loader.detect_encoding('元日'.encode('utf-8')) == 'utf-8-sig'

    def test_detect_encoding_failure(self):
        with patch('holiday_calendar.official_data.chardet.detect',
                   return_value={'encoding': None, 'confidence': 0.0}):
            with pytest.raises(EncodingError):
                self.loader.detect_encoding(b'\x81\x00\xff\xfe\x80')

    def test_parse_csv(self, official_csv_bytes):
        holidays = self.loader.parse_csv(official_csv_bytes.decode('cp932'))

        assert len(holidays) == 21
        assert holidays[date(2024, 1, 1)] == '元日'
        assert holidays[date(2024, 11, 4)] == '休日'

    def test_parse_csv_skips_bad_rows(self):
        content = "日付,名称\n2024/1/1,元日\nnot-a-date,x\n\n2024/2/11,建国記念の日\n"
        holidays = self.loader.parse_csv(content)

        assert list(holidays) == [date(2024, 1, 1), date(2024, 2, 11)]

    def test_parse_csv_empty(self):
        with pytest.raises(DataIntegrityError):
            self.loader.parse_csv("日付,名称\n")

    @patch('holiday_calendar.official_data.NetworkSecurityManager.secure_request')
    def test_fetch_success(self, mock_request, official_csv_bytes):
        mock_request.return_value = Mock(content=official_csv_bytes, status_code=200)

        assert self.loader.fetch() == official_csv_bytes
        mock_request.assert_called_once_with(self.loader.url, timeout=30)

    @patch('holiday_calendar.official_data.NetworkSecurityManager.secure_request')
    def test_fetch_network_failure(self, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError("unreachable")

        with pytest.raises(NetworkError) as exc_info:
            self.loader.fetch()
        assert exc_info.value.context_data['url'] == self.loader.url
        assert exc_info.value.operation == "fetch_official_data"

    @patch('holiday_calendar.official_data.NetworkSecurityManager.secure_request')
    def test_fetch_http_error(self, mock_request):
        mock_request.side_effect = ValidationError("HTTP request failed: 503 Service Unavailable")

        with pytest.raises(NetworkError):
            self.loader.fetch()

    @patch('holiday_calendar.official_data.NetworkSecurityManager.secure_request')
    def test_load_downloads_by_default(self, mock_request, official_csv_bytes):
        mock_request.return_value = Mock(content=official_csv_bytes, status_code=200)

        holidays = self.loader.load()

        assert holidays[date(2024, 9, 23)] == '休日'

    def test_load_local_file(self, official_csv_file):
        holidays = self.loader.load(str(official_csv_file))

        assert len(holidays) == 21

    def test_load_missing_file(self, temp_dir):
        with pytest.raises(ValidationError):
            self.loader.load(str(temp_dir / "missing.csv"))

    def test_load_unreadable_file(self, official_csv_file):
        with patch('pathlib.Path.read_bytes', side_effect=PermissionError("denied")):
            with pytest.raises(HolidayDataError):
                self.loader.load(str(official_csv_file))


@pytest.mark.unit
class TestReconcile:
    """Test cases for reconcile()."""

    def setup_method(self):
        self.engine = JapaneseHolidays()

    def test_consistent_year(self, official_csv_bytes):
        official = OfficialHolidayData().parse_csv(official_csv_bytes.decode('cp932'))

        report = reconcile(official, self.engine, 2024, 2024)

        assert report.is_consistent
        assert report.checked == 21
        assert report.discrepancy_count == 0

    def test_detects_discrepancies(self):
        official = {
            date(2024, 1, 1): '元日',
            date(2024, 1, 2): '休日',
            date(2024, 1, 8): '建国記念の日',
        }

        report = reconcile(official, self.engine, 2024, 2024)

        assert report.missing == [(date(2024, 1, 2), '休日')]
        assert (date(2024, 1, 8), HolidayName.COMING_OF_AGE_DAY, '建国記念の日') in report.mismatched
        assert len(report.extra) == 19
        assert report.discrepancy_count == 21
        assert not report.is_consistent

    def test_ignores_official_dates_outside_range(self):
        official = {date(2023, 1, 1): '元日', date(2024, 1, 1): '元日'}

        report = reconcile(official, self.engine, 2023, 2023)

        assert date(2024, 1, 1) not in [d for d, _ in report.missing]

    def test_rejects_reversed_range(self):
        with pytest.raises(ValidationError):
            reconcile({}, self.engine, 2025, 2024)

    def test_report_to_dict(self):
        report = ReconciliationReport(
            from_year=2024, to_year=2024, checked=2,
            missing=[(date(2024, 1, 2), '休日')],
            extra=[(date(2024, 1, 1), HolidayName.NEW_YEARS_DAY)]
        )

        assert report.to_dict() == {
            'from_year': 2024,
            'to_year': 2024,
            'checked': 2,
            'consistent': False,
            'missing': [{'date': '2024-01-02', 'official': '休日'}],
            'extra': [{'date': '2024-01-01', 'computed': '元日'}],
            'mismatched': [],
        }
