"""Official holiday data module.

内閣府「国民の祝日」CSVとの照合
- 一次ソースからの取得（内閣府公式CSV）
- 文字エンコーディング自動検出（UTF-8 → CP932 → Shift_JIS → chardet）
- CSV解析とデータ整合性検証
- 計算結果との差分レポート
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Any, Union

import chardet
import requests

from .config import CABINET_OFFICE_URL
from .error_handler import (
    DataError, DataIntegrityError, EncodingError, NetworkError, ValidationError,
    ErrorCategory, ErrorSeverity, with_error_handling
)
from .holiday_rules import HolidayName
from .japanese_holidays import JapaneseHolidays
from .logging_config import log_performance
from .security import NetworkSecurityManager, validate_file_path_input


class HolidayDataError(DataError):
    """公式祝日データ関連エラー"""

    default_severity = ErrorSeverity.HIGH


# 公式CSVは振替休日・国民の休日をどちらも「休日」と表記する
OFFICIAL_NAME_EQUIVALENTS = {
    HolidayName.SUBSTITUTE_HOLIDAY: {'休日', '振替休日'},
    HolidayName.NATIONAL_HOLIDAY: {'休日', '国民の休日'},
    HolidayName.SPORTS_DAY: {'スポーツの日', '体育の日'},
}


def names_match(computed: HolidayName, official: str) -> bool:
    """Whether an official CSV label denotes the computed holiday."""
    accepted = OFFICIAL_NAME_EQUIVALENTS.get(computed, {computed.value})
    return official.strip() in accepted


@dataclass
class ReconciliationReport:
    """計算結果と公式データの差分"""
    from_year: int
    to_year: int
    checked: int = 0
    missing: List[Tuple[date, str]] = field(default_factory=list)
    extra: List[Tuple[date, HolidayName]] = field(default_factory=list)
    mismatched: List[Tuple[date, HolidayName, str]] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (self.missing or self.extra or self.mismatched)

    @property
    def discrepancy_count(self) -> int:
        return len(self.missing) + len(self.extra) + len(self.mismatched)

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式に変換"""
        return {
            'from_year': self.from_year,
            'to_year': self.to_year,
            'checked': self.checked,
            'consistent': self.is_consistent,
            'missing': [
                {'date': d.isoformat(), 'official': name} for d, name in self.missing
            ],
            'extra': [
                {'date': d.isoformat(), 'computed': str(name)} for d, name in self.extra
            ],
            'mismatched': [
                {'date': d.isoformat(), 'computed': str(computed), 'official': official}
                for d, computed, official in self.mismatched
            ],
        }


class OfficialHolidayData:
    """Loader for the Cabinet Office holiday CSV."""

    PRIORITY_ENCODINGS = ['utf-8-sig', 'cp932', 'shift_jis']

    def __init__(self, url: str = CABINET_OFFICE_URL, timeout: int = 30):
        self.url = url
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    @with_error_handling(operation_name="fetch_official_data", category=ErrorCategory.NETWORK)
    @log_performance("fetch_official_data")
    def fetch(self) -> bytes:
        """内閣府公式CSVの取得.

        Returns:
            Raw CSV data as bytes

        Raises:
            NetworkError: ネットワーク接続エラー
        """
        self.logger.info(f"公式祝日データを取得中: {self.url}")
        try:
            response = NetworkSecurityManager.secure_request(self.url, timeout=self.timeout)
        except (requests.exceptions.RequestException, ValidationError) as e:
            raise NetworkError(
                f"公式祝日データの取得に失敗: {e}",
                url=self.url,
                timeout=self.timeout,
                operation="fetch_official_data",
                cause=e
            )
        return response.content

    def detect_encoding(self, raw_data: bytes) -> str:
        """エンコーディング自動検出.

        Raises:
            EncodingError: エンコーディング検出失敗
        """
        for encoding in self.PRIORITY_ENCODINGS:
            try:
                raw_data.decode(encoding)
                self.logger.debug(f"エンコーディング検出: {encoding}")
                return encoding
            except UnicodeDecodeError:
                continue

        detected = chardet.detect(raw_data)
        if detected['encoding'] and detected['confidence'] > 0.8:
            self.logger.info(
                f"chardetによる検出: {detected['encoding']} (信頼度: {detected['confidence']})"
            )
            return detected['encoding']

        raise EncodingError("文字エンコーディングの検出に失敗")

    def decode(self, raw_data: bytes) -> str:
        encoding = self.detect_encoding(raw_data)
        try:
            return raw_data.decode(encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise EncodingError(f"文字コード変換に失敗 ({encoding}): {e}", encoding=encoding)

    def parse_csv(self, content: str) -> Dict[date, str]:
        """CSV内容の解析.

        Args:
            content: Decoded CSV text (header row, then ``YYYY/M/D,名称``)

        Returns:
            Mapping of date to official holiday name

        Raises:
            DataIntegrityError: 有効な行が1件もない場合
        """
        holidays: Dict[date, str] = {}
        reader = csv.reader(io.StringIO(content))

        for line_number, row in enumerate(reader, start=1):
            if line_number == 1 or len(row) < 2:
                continue
            try:
                holiday_date = datetime.strptime(row[0].strip(), '%Y/%m/%d').date()
            except ValueError:
                self.logger.warning(f"行 {line_number} の解析をスキップ: {row[0]!r}")
                continue
            holidays[holiday_date] = row[1].strip()

        if not holidays:
            raise DataIntegrityError("祝日データが空です", data_source=self.url)

        self.logger.info(f"公式祝日データ解析完了: {len(holidays)} 件")
        return holidays

    def load(self, source: Optional[Union[str, Path]] = None) -> Dict[date, str]:
        """Load official holidays from a local file, or download them.

        Args:
            source: Local CSV path; downloads from ``self.url`` when omitted
        """
        if source:
            path = validate_file_path_input(source, allow_create=False, require_exists=True)
            self.logger.info(f"ローカルCSVから読み込み: {path}")
            try:
                raw_data = path.read_bytes()
            except OSError as e:
                raise HolidayDataError(f"CSVファイルを読み込めません: {path} ({e})", cause=e)
        else:
            raw_data = self.fetch()

        return self.parse_csv(self.decode(raw_data))


@log_performance("reconcile_holidays")
def reconcile(official: Dict[date, str], engine: JapaneseHolidays,
              from_year: int, to_year: int) -> ReconciliationReport:
    """Compare computed holiday tables with official data.

    Args:
        official: Official holidays (date -> name)
        engine: Holiday engine to check
        from_year: First year (inclusive)
        to_year: Last year (inclusive)

    Returns:
        ReconciliationReport
    """
    if from_year > to_year:
        raise ValidationError(f"from_year ({from_year}) must not exceed to_year ({to_year})")

    start, end = date(from_year, 1, 1), date(to_year, 12, 31)
    computed = dict(engine.get_holidays_in_range(start, end))
    official_in_range = {d: name for d, name in official.items() if start <= d <= end}

    report = ReconciliationReport(from_year=from_year, to_year=to_year)
    report.checked = len(set(computed) | set(official_in_range))

    for holiday_date in sorted(set(computed) | set(official_in_range)):
        computed_name = computed.get(holiday_date)
        official_name = official_in_range.get(holiday_date)

        if computed_name is None:
            report.missing.append((holiday_date, official_name))
        elif official_name is None:
            report.extra.append((holiday_date, computed_name))
        elif not names_match(computed_name, official_name):
            report.mismatched.append((holiday_date, computed_name, official_name))

    logging.getLogger(__name__).info(
        f"照合完了 {from_year}-{to_year}: {report.checked} 件中 差分 {report.discrepancy_count} 件"
    )
    return report
