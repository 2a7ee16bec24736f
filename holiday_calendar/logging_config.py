"""Logging setup and operation timing.

ログ出力と計測
- コンソール（stderr）と ~/.holiday-calendar/logs 配下のローテーションログ
- psutil による操作ごとの所要時間・メモリ(RSS)増減の記録
- --debug と --enable-monitoring の実体
"""

import functools
import json
import logging
import logging.handlers
import sys
import threading
import time
import traceback
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import psutil


class LogFormat(Enum):
    """ログ形式"""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"
    STRUCTURED = "structured"


def resolve_log_level(level: Union[int, str]) -> int:
    """'DEBUG' などのレベル名を数値に変換"""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


@dataclass
class PerformanceMetric:
    """1回分の操作計測結果"""
    operation: str
    duration: float
    memory_delta_mb: float
    success: bool
    error_message: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    thread_id: int = field(default_factory=threading.get_ident)


class StructuredFormatter(logging.Formatter):
    """LogFormat に従ってレコードを整形する

    SIMPLE/DETAILED は1行テキスト、JSON は1行JSON、STRUCTURED は整形済みJSON。
    """

    EXTRA_KEYS = ('operation', 'error_context', 'performance_metric')

    def __init__(self, format_type: LogFormat = LogFormat.STRUCTURED):
        super().__init__()
        self.format_type = format_type

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()
        message = record.getMessage()

        if self.format_type == LogFormat.SIMPLE:
            return f"{timestamp} [{record.levelname}] {message}"
        if self.format_type == LogFormat.DETAILED:
            return (f"{timestamp} [{record.levelname}] "
                    f"{record.name}:{record.funcName}:{record.lineno} - {message}")

        indent = 2 if self.format_type == LogFormat.STRUCTURED else None
        return json.dumps(self._as_dict(record, timestamp, message),
                          ensure_ascii=False, default=str, indent=indent)

    def _as_dict(self, record: logging.LogRecord, timestamp: str, message: str) -> Dict[str, Any]:
        data = {
            'timestamp': timestamp,
            'level': record.levelname,
            'logger': record.name,
            'message': message,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }
        data.update({key: getattr(record, key) for key in self.EXTRA_KEYS if hasattr(record, key)})

        if record.exc_info and record.exc_info[0]:
            data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }
        return data


class PerformanceMonitor:
    """操作ごとの所要時間とメモリ増減を記録する"""

    def __init__(self):
        self.metrics: List[PerformanceMetric] = []
        self.lock = threading.Lock()
        self.logger = logging.getLogger(__name__)
        self.process = psutil.Process()

    def _rss_mb(self) -> float:
        return self.process.memory_info().rss / (1024 * 1024)

    @contextmanager
    def monitor_operation(self, operation_name: str, context: Optional[Dict[str, Any]] = None):
        """with ブロック1回分を計測して記録する（例外は再送出）"""
        started = time.perf_counter()
        rss_before = self._rss_mb()
        error_message = None

        try:
            yield operation_name
        except Exception as e:
            error_message = str(e) or type(e).__name__
            raise
        finally:
            self.record(PerformanceMetric(
                operation=operation_name,
                duration=time.perf_counter() - started,
                memory_delta_mb=self._rss_mb() - rss_before,
                success=error_message is None,
                error_message=error_message,
                context=dict(context or {})
            ))

    def record(self, metric: PerformanceMetric):
        with self.lock:
            self.metrics.append(metric)

        self.logger.log(
            logging.INFO if metric.success else logging.WARNING,
            f"計測: {metric.operation} {metric.duration:.3f}s (メモリ {metric.memory_delta_mb:+.2f}MB)",
            extra={'operation': metric.operation, 'performance_metric': asdict(metric)}
        )

    def summarize(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """記録済みメトリクスを集計する

        Args:
            operation: 指定時はその操作名のみ集計

        Returns:
            total_operations が 0 の場合はそのキーのみ
        """
        with self.lock:
            metrics = [m for m in self.metrics if operation is None or m.operation == operation]

        if not metrics:
            return {'total_operations': 0}

        per_operation: Dict[str, Dict[str, Any]] = {}
        for metric in metrics:
            stats = per_operation.setdefault(metric.operation, {'count': 0, 'total_duration': 0.0})
            stats['count'] += 1
            stats['total_duration'] += metric.duration

        error_count = sum(1 for m in metrics if not m.success)
        return {
            'total_operations': len(metrics),
            'success_count': len(metrics) - error_count,
            'error_count': error_count,
            'total_duration': sum(m.duration for m in metrics),
            'max_duration': max(m.duration for m in metrics),
            'operations': per_operation,
        }

    def clear(self):
        with self.lock:
            self.metrics.clear()


class LoggingManager:
    """ルートロガーのハンドラー構成と計測を管理する

    出力先:
        stderr                 log_level 以上
        application.log        log_level 以上
        errors.log             ERROR 以上
        performance.log        計測レコードのみ（JSON、計測有効時）
    """

    def __init__(self,
                 log_dir: Optional[str] = None,
                 log_level: Union[int, str] = logging.INFO,
                 log_format: LogFormat = LogFormat.STRUCTURED,
                 enable_console: bool = True,
                 enable_file: bool = True,
                 enable_performance_monitoring: bool = True,
                 configure_root: bool = True,
                 max_log_size: int = 5 * 1024 * 1024,
                 backup_count: int = 3):

        self.log_dir = Path(log_dir) if log_dir else Path.home() / '.holiday-calendar' / 'logs'
        self.log_level = resolve_log_level(log_level)
        self.log_format = log_format
        self.enable_console = enable_console
        self.enable_file = enable_file
        self.max_log_size = max_log_size
        self.backup_count = backup_count
        self.debug_mode = False

        self.performance_monitor = PerformanceMonitor() if enable_performance_monitoring else None

        # set_debug_mode() がレベルを切り替えるハンドラー
        self._level_handlers: List[logging.Handler] = []

        if configure_root:
            self._configure_root()

    def _rotating_handler(self, filename: str, level: int, formatter: logging.Formatter) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=self.max_log_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        handler.setLevel(level)
        handler.setFormatter(formatter)
        return handler

    def _configure_root(self):
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        root_logger.setLevel(self.log_level)

        formatter = StructuredFormatter(self.log_format)
        fixed_handlers: List[logging.Handler] = []

        if self.enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(self.log_level)
            console_handler.setFormatter(formatter)
            self._level_handlers.append(console_handler)

        if self.enable_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._level_handlers.append(self._rotating_handler('application.log', self.log_level, formatter))
            fixed_handlers.append(self._rotating_handler('errors.log', logging.ERROR, formatter))

            if self.performance_monitor:
                perf_handler = self._rotating_handler(
                    'performance.log', logging.INFO, StructuredFormatter(LogFormat.JSON)
                )
                perf_handler.addFilter(lambda record: hasattr(record, 'performance_metric'))
                fixed_handlers.append(perf_handler)

        for handler in self._level_handlers + fixed_handlers:
            root_logger.addHandler(handler)

    def set_debug_mode(self, enabled: bool):
        """DEBUG 出力を切り替える（無効化すると log_level に戻る）"""
        self.debug_mode = enabled
        level = logging.DEBUG if enabled else self.log_level

        logging.getLogger().setLevel(level)
        for handler in self._level_handlers:
            handler.setLevel(level)

        logging.getLogger(__name__).debug(f"デバッグモード: {'有効' if enabled else '無効'}")

    def monitor_operation(self, operation_name: str, context: Optional[Dict[str, Any]] = None):
        """計測用コンテキストマネージャー（計測無効時は何もしない）"""
        if self.performance_monitor:
            return self.performance_monitor.monitor_operation(operation_name, context)
        return nullcontext()

    def get_performance_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        if self.performance_monitor:
            return self.performance_monitor.summarize(operation)
        return {'performance_monitoring': 'disabled'}

    def cleanup(self):
        if self.performance_monitor:
            self.performance_monitor.clear()


def log_performance(operation_name: Optional[str] = None):
    """関数呼び出しを計測するデコレータ"""
    def decorator(func):
        op_name = operation_name or f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with get_logging_manager().monitor_operation(op_name):
                return func(*args, **kwargs)
        return wrapper
    return decorator


def log_function_call(log_args: bool = False, log_result: bool = False):
    """関数の開始・終了・失敗を DEBUG/ERROR で出力するデコレータ"""
    def decorator(func):
        logger = logging.getLogger(func.__module__)
        func_name = f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            # LogRecord の属性名（args 等）と衝突しないキーを使う
            start_extra = {'operation': func_name}
            if log_args:
                start_extra.update(call_args=str(args), call_kwargs=str(kwargs))
            logger.debug(f"Function call started: {func_name}", extra=start_extra)

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Function call failed: {func_name}", extra={
                    'operation': func_name,
                    'error': str(e),
                    'error_type': type(e).__name__
                })
                raise

            done_extra = {'operation': func_name}
            if log_result:
                done_extra['call_result'] = str(result)
            logger.debug(f"Function call completed: {func_name}", extra=done_extra)
            return result
        return wrapper
    return decorator


# グローバルロギングマネージャー
_global_logging_manager: Optional[LoggingManager] = None


def get_logging_manager() -> LoggingManager:
    """グローバルロギングマネージャーを取得

    setup_logging() 前に呼ばれた場合はルートロガーを変更しない。
    """
    global _global_logging_manager
    if _global_logging_manager is None:
        _global_logging_manager = LoggingManager(configure_root=False)
    return _global_logging_manager


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: Union[int, str] = logging.INFO,
    log_format: LogFormat = LogFormat.STRUCTURED,
    enable_console: bool = True,
    enable_file: bool = True,
    enable_performance_monitoring: bool = True,
    debug_mode: bool = False
) -> LoggingManager:
    """ルートロガーを構成し、グローバルマネージャーを差し替える"""
    global _global_logging_manager

    _global_logging_manager = LoggingManager(
        log_dir=log_dir,
        log_level=log_level,
        log_format=log_format,
        enable_console=enable_console,
        enable_file=enable_file,
        enable_performance_monitoring=enable_performance_monitoring
    )
    if debug_mode:
        _global_logging_manager.set_debug_mode(True)

    return _global_logging_manager


def cleanup_logging():
    """計測結果を破棄する（CLI 終了時）"""
    if _global_logging_manager:
        _global_logging_manager.cleanup()
