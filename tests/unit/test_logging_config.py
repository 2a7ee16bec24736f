"""
Unit tests for logging configuration and monitoring.
"""

import json
import logging
import pytest

from holiday_calendar.logging_config import (
    LogFormat, LoggingManager, StructuredFormatter, PerformanceMonitor,
    get_logging_manager, log_function_call, log_performance, resolve_log_level, setup_logging
)


def _record(message="祝日表を生成", **extra):
    record = logging.LogRecord('holiday_calendar.test', logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestStructuredFormatter:
    """Test cases for StructuredFormatter."""

    def test_json_format(self):
        output = StructuredFormatter(LogFormat.JSON).format(_record(operation='build_year'))
        data = json.loads(output)

        assert data['message'] == '祝日表を生成'
        assert data['level'] == 'INFO'
        assert data['operation'] == 'build_year'

    def test_simple_format(self):
        output = StructuredFormatter(LogFormat.SIMPLE).format(_record())

        assert output.endswith('[INFO] 祝日表を生成')

    def test_detailed_format(self):
        output = StructuredFormatter(LogFormat.DETAILED).format(_record())

        assert 'holiday_calendar.test' in output
        assert output.endswith('- 祝日表を生成')


@pytest.mark.unit
class TestPerformanceMonitor:
    """Test cases for PerformanceMonitor."""

    def test_records_success_and_failure(self):
        monitor = PerformanceMonitor()

        with monitor.monitor_operation('ok'):
            pass
        with pytest.raises(ValueError):
            with monitor.monitor_operation('fail'):
                raise ValueError('boom')

        summary = monitor.summarize()
        assert summary['total_operations'] == 2
        assert summary['error_count'] == 1
        assert summary['operations']['ok']['count'] == 1
        assert monitor.summarize('fail')['success_count'] == 0
        assert monitor.metrics[-1].error_message == 'boom'

        monitor.clear()
        assert monitor.summarize() == {'total_operations': 0}


@pytest.mark.unit
class TestLoggingManager:
    """Test cases for LoggingManager and module helpers."""

    def test_default_manager_leaves_root_logger_alone(self):
        root_handlers = logging.getLogger().handlers[:]

        manager = get_logging_manager()

        assert manager is get_logging_manager()
        assert logging.getLogger().handlers == root_handlers

    def test_setup_logging_creates_log_files(self, temp_dir):
        manager = setup_logging(log_dir=str(temp_dir / 'logs'), log_format=LogFormat.SIMPLE)

        assert manager is get_logging_manager()
        assert (temp_dir / 'logs' / 'application.log').exists()
        assert (temp_dir / 'logs' / 'errors.log').exists()
        assert (temp_dir / 'logs' / 'performance.log').exists()

    def test_debug_mode(self, temp_dir):
        manager = setup_logging(log_dir=str(temp_dir / 'logs'), log_level='WARNING', debug_mode=True)
        root_logger = logging.getLogger()
        errors_handler = next(h for h in root_logger.handlers
                              if getattr(h, 'baseFilename', '').endswith('errors.log'))

        assert manager.debug_mode is True
        assert root_logger.level == logging.DEBUG
        assert errors_handler.level == logging.ERROR

        manager.set_debug_mode(False)
        assert root_logger.level == logging.WARNING
        assert errors_handler.level == logging.ERROR

    @pytest.mark.parametrize("level,expected", [
        ('DEBUG', logging.DEBUG),
        ('warning', logging.WARNING),
        (logging.ERROR, logging.ERROR),
    ])
    def test_resolve_log_level(self, level, expected):
        assert resolve_log_level(level) == expected

    def test_resolve_log_level_unknown(self):
        with pytest.raises(ValueError):
            resolve_log_level('VERBOSE')

    def test_monitoring_disabled(self):
        manager = LoggingManager(enable_performance_monitoring=False, configure_root=False)

        with manager.monitor_operation('noop') as value:
            assert value is None
        assert manager.get_performance_summary() == {'performance_monitoring': 'disabled'}


@pytest.mark.unit
class TestDecorators:
    """Test cases for logging decorators."""

    def test_log_performance_records_metric(self):
        @log_performance('compute_year')
        def compute():
            return 2024

        assert compute() == 2024
        summary = get_logging_manager().get_performance_summary('compute_year')
        assert summary['total_operations'] == 1

    def test_log_function_call(self, caplog):
        @log_function_call(log_args=True, log_result=True)
        def add(a, b):
            return a + b

        with caplog.at_level(logging.DEBUG, logger=__name__):
            assert add(1, 2) == 3

        messages = [record.getMessage() for record in caplog.records]
        assert any('Function call started' in m for m in messages)
        assert caplog.records[-1].call_result == '3'

    def test_log_function_call_reraises(self, caplog):
        @log_function_call()
        def fail():
            raise RuntimeError('boom')

        with caplog.at_level(logging.DEBUG, logger=__name__):
            with pytest.raises(RuntimeError):
                fail()

        assert caplog.records[-1].levelno == logging.ERROR
        assert caplog.records[-1].error_type == 'RuntimeError'
