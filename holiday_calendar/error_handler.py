"""Error types and the shared error handler.

祝日ツール共通のエラー処理
- 失敗の種類ごとの例外クラス（既定の重要度・分類・対処方法をクラス属性で持つ）
- ErrorHandler: ログ出力、履歴、~/.holiday-calendar/logs/errors.jsonl への記録
- with_error_handling: 例外を記録してから再送出するデコレータ
"""

import functools
import json
import logging
import sys
import traceback
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class ErrorSeverity(Enum):
    """エラー重要度"""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def log_level(self) -> int:
        return {
            ErrorSeverity.CRITICAL: logging.CRITICAL,
            ErrorSeverity.HIGH: logging.ERROR,
            ErrorSeverity.MEDIUM: logging.WARNING,
            ErrorSeverity.LOW: logging.INFO,
        }[self]


class ErrorCategory(Enum):
    """エラー分類（ログの接頭辞と errors.jsonl の category 欄）"""
    NETWORK = "network"
    DATA = "data"
    FILE_SYSTEM = "file_system"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    ENCODING = "encoding"
    EXPORT = "export"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """handle_error() が記録する1件分の情報"""
    severity: ErrorSeverity
    category: ErrorCategory
    operation: str
    user_message: str
    technical_message: str
    recovery_suggestions: List[str] = field(default_factory=list)
    context_data: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """errors.jsonl の1行分"""
        data = asdict(self)
        data['severity'] = self.severity.value
        data['category'] = self.category.value
        data['timestamp'] = self.timestamp.isoformat()
        return data


class BaseApplicationError(Exception):
    """アプリケーション例外の基底クラス

    サブクラスは default_* クラス属性で既定値を宣言し、
    固有の引数を context_data に詰めて渡す。
    """

    default_severity = ErrorSeverity.MEDIUM
    default_category = ErrorCategory.UNKNOWN
    default_suggestions: List[str] = []

    def __init__(
        self,
        message: str,
        severity: Optional[ErrorSeverity] = None,
        category: Optional[ErrorCategory] = None,
        operation: str = "",
        recovery_suggestions: Optional[List[str]] = None,
        context_data: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.severity = severity or self.default_severity
        self.category = category or self.default_category
        self.operation = operation
        self.recovery_suggestions = list(recovery_suggestions or self.default_suggestions)
        self.context_data = dict(context_data or {})
        self.cause = cause
        self.timestamp = datetime.now()
        # ErrorHandler が記録した時点で設定される
        self.error_context: Optional[ErrorContext] = None

    @property
    def handled(self) -> bool:
        return self.error_context is not None

    def get_user_message(self) -> str:
        return str(self)

    def get_technical_message(self) -> str:
        message = f"{type(self).__name__}: {self}"
        if self.cause is not None:
            message += f" (Caused by: {type(self.cause).__name__}: {self.cause})"
        return message

    def to_error_context(self) -> ErrorContext:
        in_except_block = sys.exc_info()[0] is not None
        return ErrorContext(
            severity=self.severity,
            category=self.category,
            operation=self.operation,
            user_message=self.get_user_message(),
            technical_message=self.get_technical_message(),
            recovery_suggestions=list(self.recovery_suggestions),
            context_data=dict(self.context_data),
            stack_trace=traceback.format_exc() if in_except_block else None,
            timestamp=self.timestamp
        )


class NetworkError(BaseApplicationError):
    """内閣府CSVのダウンロード失敗"""

    default_severity = ErrorSeverity.HIGH
    default_category = ErrorCategory.NETWORK
    default_suggestions = [
        "インターネット接続を確認してください",
        "しばらく時間をおいて再試行してください",
        "--source オプションでローカルのCSVファイルを指定してください"
    ]

    def __init__(self, message: str, url: str = "", timeout: int = 0, **kwargs):
        super().__init__(message, context_data={"url": url, "timeout": timeout}, **kwargs)


class DataError(BaseApplicationError):
    """祝日データの内容に関するエラー"""

    default_category = ErrorCategory.DATA


class DataIntegrityError(DataError):
    """祝日データが空、または読み取れる行がない"""

    default_severity = ErrorSeverity.HIGH
    default_suggestions = [
        "データソースが内閣府の祝日CSVか確認してください",
        "データを再取得してください"
    ]

    def __init__(self, message: str, data_source: str = "", **kwargs):
        super().__init__(message, context_data={"data_source": data_source}, **kwargs)


class FileSystemError(BaseApplicationError):
    """ファイルの読み書き失敗"""

    default_category = ErrorCategory.FILE_SYSTEM
    default_suggestions = [
        "ファイルパスと権限を確認してください",
        "ディスク容量を確認してください"
    ]

    def __init__(self, message: str, file_path: str = "", **kwargs):
        super().__init__(message, context_data={"file_path": file_path}, **kwargs)


class EncodingError(BaseApplicationError):
    """CSVの文字コードを判定・変換できない"""

    default_category = ErrorCategory.ENCODING
    default_suggestions = [
        "ファイルの文字エンコーディングを確認してください",
        "Shift_JISまたはUTF-8で保存されたCSVを使用してください"
    ]

    def __init__(self, message: str, encoding: str = "", **kwargs):
        super().__init__(message, context_data={"encoding": encoding}, **kwargs)


class ConfigurationError(BaseApplicationError):
    """設定ファイル・環境変数・出力先の不備"""

    default_category = ErrorCategory.CONFIGURATION
    default_suggestions = [
        "~/.holiday-calendar/config.json を確認してください",
        "HOLIDAY_CALENDAR_* 環境変数を確認してください"
    ]

    def __init__(self, message: str, config_key: str = "", **kwargs):
        super().__init__(message, context_data={"config_key": config_key}, **kwargs)


class ValidationError(BaseApplicationError):
    """入力値の検証エラー"""

    default_category = ErrorCategory.VALIDATION
    default_suggestions = [
        "入力値を確認してください",
        "日付はYYYY-MM-DD形式で入力してください"
    ]

    def __init__(self, message: str, field: str = "", value: Any = None, **kwargs):
        super().__init__(message, context_data={"field": field, "value": value}, **kwargs)


def _as_application_error(error: Exception) -> BaseApplicationError:
    """標準例外を対応する BaseApplicationError に包む"""
    # ConnectionError は OSError の、UnicodeDecodeError は ValueError のサブクラス
    if isinstance(error, (ConnectionError, TimeoutError)):
        return NetworkError(str(error), cause=error)
    if isinstance(error, OSError):
        return FileSystemError(str(error), file_path=error.filename or "", cause=error)
    if isinstance(error, UnicodeDecodeError):
        return EncodingError(str(error), encoding=error.encoding, cause=error)
    if isinstance(error, ValueError):
        return ValidationError(str(error), cause=error)
    return BaseApplicationError(str(error), cause=error)


class ErrorHandler:
    """例外の記録係

    重要度に応じたレベルでログに出し、履歴と JSONL ファイルに残す。
    同じ例外オブジェクトは一度だけ記録する。
    """

    def __init__(self, log_file: Optional[Union[str, Path]] = None):
        self.logger = logging.getLogger(__name__)
        self.error_history: List[ErrorContext] = []
        self.log_file = Path(log_file) if log_file else None

    def handle_error(
        self,
        error: Union[BaseApplicationError, Exception],
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorContext:
        """エラーを記録する

        Args:
            error: 記録する例外（標準例外は変換される）
            context: context_data に追加する情報

        Returns:
            ErrorContext: 記録内容。記録済みの例外なら最初の記録
        """
        if isinstance(error, BaseApplicationError) and error.handled:
            self.logger.debug(f"記録済みのエラーを再処理しません: {error.operation or type(error).__name__}")
            return error.error_context

        app_error = error if isinstance(error, BaseApplicationError) else _as_application_error(error)

        error_context = app_error.to_error_context()
        error_context.context_data.update(context or {})
        app_error.error_context = error_context

        self.error_history.append(error_context)
        self.logger.log(
            error_context.severity.log_level,
            f"[{error_context.category.name}] {error_context.user_message}",
            extra={
                'error_context': error_context.to_dict(),
                'operation': error_context.operation
            }
        )
        if self.log_file:
            self._append_to_file(error_context)

        return error_context

    def _append_to_file(self, error_context: ErrorContext):
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with self.log_file.open('a', encoding='utf-8') as f:
                f.write(json.dumps(error_context.to_dict(), ensure_ascii=False, default=str) + '\n')
        except OSError as e:
            self.logger.error(f"エラーログへの書き込みに失敗: {self.log_file} ({e})")


# グローバルエラーハンドラーインスタンス
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """グローバルエラーハンドラーを取得"""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler(Path.home() / '.holiday-calendar' / 'logs' / 'errors.jsonl')
    return _global_error_handler


def handle_error(
    error: Union[BaseApplicationError, Exception],
    context: Optional[Dict[str, Any]] = None
) -> ErrorContext:
    """グローバルエラーハンドラーでエラーを記録"""
    return get_error_handler().handle_error(error, context)


def with_error_handling(operation_name: str = "", category: ErrorCategory = ErrorCategory.UNKNOWN):
    """例外を記録してから再送出するデコレータ

    BaseApplicationError 以外の例外は category を持つ
    BaseApplicationError に包んで送出する。
    """
    def decorator(func):
        operation = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except BaseApplicationError as e:
                e.operation = e.operation or operation
                handle_error(e)
                raise
            except Exception as e:
                app_error = BaseApplicationError(str(e), category=category, operation=operation, cause=e)
                handle_error(app_error)
                raise app_error from e
        return wrapper
    return decorator
