"""
Pytest configuration and shared fixtures for the test suite.
"""

import logging
import pytest
import tempfile
import shutil
from pathlib import Path

from holiday_calendar import error_handler, japanese_holidays, logging_config
from holiday_calendar.logging_config import StructuredFormatter


# 内閣府CSVと同じ形式（2024年分）
OFFICIAL_CSV_2024 = """国民の祝日・休日月日,国民の祝日・休日名称
2024/1/1,元日
2024/1/8,成人の日
2024/2/11,建国記念の日
2024/2/12,休日
2024/2/23,天皇誕生日
2024/3/20,春分の日
2024/4/29,昭和の日
2024/5/3,憲法記念日
2024/5/4,みどりの日
2024/5/5,こどもの日
2024/5/6,休日
2024/7/15,海の日
2024/8/11,山の日
2024/8/12,休日
2024/9/16,敬老の日
2024/9/22,秋分の日
2024/9/23,休日
2024/10/14,スポーツの日
2024/11/3,文化の日
2024/11/4,休日
2024/11/23,勤労感謝の日
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path).resolve()
    shutil.rmtree(temp_path)


@pytest.fixture
def official_csv_bytes():
    """Official holiday CSV for 2024 encoded as Shift_JIS."""
    return OFFICIAL_CSV_2024.encode('shift_jis')


@pytest.fixture
def official_csv_file(temp_dir, official_csv_bytes):
    """Write the Shift_JIS official CSV to a file."""
    csv_file = temp_dir / "syukujitsu.csv"
    csv_file.write_bytes(official_csv_bytes)
    return csv_file


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch, temp_dir):
    """Setup test environment with a temporary home directory."""
    monkeypatch.setenv("HOME", str(temp_dir))

    for env_name in ('HOLIDAY_CALENDAR_LOCALE', 'HOLIDAY_CALENDAR_OUTPUT_DIR',
                     'HOLIDAY_CALENDAR_OFFICIAL_URL'):
        monkeypatch.delenv(env_name, raising=False)

    # グローバルインスタンスとルートロガーをテストごとに戻す
    monkeypatch.setattr(error_handler, '_global_error_handler', None)
    monkeypatch.setattr(logging_config, '_global_logging_manager', None)
    monkeypatch.setattr(japanese_holidays, '_default_holidays', None)

    root_logger = logging.getLogger()
    saved_level = root_logger.level

    yield temp_dir

    # setup_logging() が追加したハンドラーのみ除去
    for handler in root_logger.handlers[:]:
        if isinstance(handler.formatter, StructuredFormatter):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(saved_level)
