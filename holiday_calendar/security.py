"""
Security module for input validation and sanitization.

The holiday engine itself accepts any input and degrades gracefully; this
module is the strict layer used for user-supplied values (CLI arguments,
configuration paths, download URLs) and for writing output files safely.
"""

import os
import re
from datetime import datetime, date
from pathlib import Path
from typing import Union
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .error_handler import ValidationError


class InputValidator:
    """
    Input validation and sanitization for dates, years, file paths and URLs.
    """

    DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

    MAX_FILE_PATH_LENGTH = 260  # Windows MAX_PATH limit
    MAX_DATE_STRING_LENGTH = 20

    MIN_YEAR = 1900
    MAX_YEAR = 2099

    @classmethod
    def validate_date(cls, date_input: Union[str, date, datetime]) -> date:
        """
        Validate and parse a YYYY-MM-DD date.

        Args:
            date_input: Date string, date or datetime

        Returns:
            date: Validated date object

        Raises:
            ValidationError: If date input is invalid or malformed
        """
        if isinstance(date_input, datetime):
            return date_input.date()

        if isinstance(date_input, date):
            return date_input

        if not isinstance(date_input, str):
            raise ValidationError(f"Invalid date input type: {type(date_input)}", field="date")

        if len(date_input) > cls.MAX_DATE_STRING_LENGTH:
            raise ValidationError(
                f"Date string too long: {len(date_input)} > {cls.MAX_DATE_STRING_LENGTH}",
                field="date"
            )

        sanitized_input = date_input.strip()
        if not sanitized_input:
            raise ValidationError("Empty date input", field="date")

        if not cls.DATE_PATTERN.match(sanitized_input):
            raise ValidationError(
                f"Date format not recognized (expected YYYY-MM-DD): {sanitized_input}",
                field="date", value=sanitized_input
            )

        try:
            return datetime.strptime(sanitized_input, '%Y-%m-%d').date()
        except ValueError as e:
            raise ValidationError(
                f"Unable to parse date: {sanitized_input} ({e})",
                field="date", value=sanitized_input
            )

    @classmethod
    def validate_year(cls, year: int, allow_out_of_range: bool = False) -> int:
        """
        Validate a calendar year.

        Years outside 1900-2099 are only accepted with ``allow_out_of_range``;
        equinox dates for them fall back to fixed defaults.

        Raises:
            ValidationError: If year is not an int or out of range
        """
        if isinstance(year, bool) or not isinstance(year, int):
            raise ValidationError(f"Year must be integer, got: {type(year)}", field="year")

        if year < 1 or year > 9998:
            raise ValidationError(f"Year out of representable range: {year}", field="year", value=year)

        if not allow_out_of_range and (year < cls.MIN_YEAR or year > cls.MAX_YEAR):
            raise ValidationError(
                f"Year out of supported range ({cls.MIN_YEAR}-{cls.MAX_YEAR}): {year}",
                field="year", value=year
            )

        return year

    @classmethod
    def validate_file_path(cls, file_path: Union[str, Path],
                           allow_create: bool = True,
                           require_exists: bool = False) -> Path:
        """
        Validate file path and protect against path traversal attacks.

        Args:
            file_path: File path to validate
            allow_create: Whether to create missing parent directories
            require_exists: Whether the file must already exist

        Returns:
            Path: Validated and resolved file path

        Raises:
            ValidationError: If file path is invalid or unsafe
        """
        if not isinstance(file_path, (str, Path)):
            raise ValidationError(f"File path must be string or Path, got: {type(file_path)}")

        path_str = str(file_path)

        if len(path_str) > cls.MAX_FILE_PATH_LENGTH:
            raise ValidationError(f"File path too long: {len(path_str)} > {cls.MAX_FILE_PATH_LENGTH}")

        if '\x00' in path_str:
            raise ValidationError("File path contains null bytes")

        try:
            resolved_path = Path(path_str).resolve()
        except (OSError, RuntimeError) as e:
            raise ValidationError(f"Cannot resolve file path: {e}")

        # カレントディレクトリまたはホームディレクトリ配下のみ許可
        allowed_roots = [Path.cwd().resolve(), Path.home().resolve()]
        if not any(cls._is_relative_to(resolved_path, root) for root in allowed_roots):
            raise ValidationError(f"File path outside allowed directories: {resolved_path}")

        if require_exists and not resolved_path.exists():
            raise ValidationError(f"File does not exist: {resolved_path}")

        if allow_create and not resolved_path.parent.exists():
            try:
                resolved_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ValidationError(f"Cannot create parent directory: {e}")

        if resolved_path.exists() and not os.access(resolved_path, os.R_OK):
            raise ValidationError(f"File not readable: {resolved_path}")

        return resolved_path

    @staticmethod
    def _is_relative_to(path: Path, root: Path) -> bool:
        try:
            path.relative_to(root)
            return True
        except ValueError:
            return False

    @classmethod
    def validate_url(cls, url: str, require_https: bool = True) -> str:
        """
        Validate URL and enforce security requirements.

        Raises:
            ValidationError: If URL is invalid or insecure
        """
        if not isinstance(url, str):
            raise ValidationError(f"URL must be string, got: {type(url)}")

        url = url.strip()
        if not url:
            raise ValidationError("URL cannot be empty")

        parsed = urlparse(url)

        if require_https and parsed.scheme != 'https':
            raise ValidationError(f"HTTPS required, got: {parsed.scheme}")

        if parsed.scheme not in ['http', 'https']:
            raise ValidationError(f"Invalid URL scheme: {parsed.scheme}")

        suspicious_chars = ['<', '>', '"', "'", '`']
        if any(char in url for char in suspicious_chars):
            raise ValidationError(f"URL contains suspicious characters: {url}")

        if not parsed.netloc:
            raise ValidationError("URL missing hostname")

        return url


class SecureFileHandler:
    """
    File operations with validated paths and explicit permissions.
    """

    SECURE_FILE_PERMISSIONS = 0o600  # rw-------
    READABLE_FILE_PERMISSIONS = 0o644  # rw-r--r--

    @classmethod
    def read_secure_file(cls, file_path: Path) -> str:
        """Read a UTF-8 text file after validating its path."""
        validated_path = InputValidator.validate_file_path(file_path, require_exists=True)

        try:
            return validated_path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise ValidationError(f"Cannot read file: {e}")

    @classmethod
    def write_secure_file(cls, file_path: Path, content: str,
                          permissions: int = SECURE_FILE_PERMISSIONS) -> None:
        """
        Write file atomically with the given permissions.

        Args:
            file_path: Path to write
            content: File content
            permissions: File permissions
        """
        validated_path = InputValidator.validate_file_path(file_path, allow_create=True)
        temp_path = validated_path.with_suffix(validated_path.suffix + '.tmp')

        try:
            temp_path.write_text(content, encoding='utf-8')
            temp_path.chmod(permissions)
            temp_path.replace(validated_path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ValidationError(f"Cannot write secure file: {e}")


class NetworkSecurityManager:
    """
    HTTPS-only session factory for downloading official holiday data.
    """

    USER_AGENT = 'holiday-calendar/1.0'

    @staticmethod
    def create_secure_session() -> requests.Session:
        """
        Create an HTTP session with certificate verification and retries.

        Returns:
            requests.Session: Configured secure session
        """
        session = requests.Session()

        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"]
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)

        session.headers.update({
            'User-Agent': NetworkSecurityManager.USER_AGENT,
            'Accept': 'text/csv,text/plain,*/*',
            'Cache-Control': 'no-cache'
        })
        session.verify = True

        return session

    @staticmethod
    def secure_request(url: str, method: str = 'GET', **kwargs) -> requests.Response:
        """
        Make an HTTPS request through a secure session.

        Raises:
            ValidationError: If the URL is rejected or the server answers >= 400
            requests.exceptions.RequestException: On transport failures
        """
        validated_url = InputValidator.validate_url(url, require_https=True)
        kwargs.setdefault('timeout', 30)

        session = NetworkSecurityManager.create_secure_session()
        try:
            response = session.request(method, validated_url, **kwargs)
            if response.status_code >= 400:
                raise ValidationError(f"HTTP request failed: {response.status_code} {response.reason}")
            return response
        finally:
            session.close()


def validate_date_input(date_input: Union[str, date, datetime]) -> date:
    """Convenience function for date validation."""
    return InputValidator.validate_date(date_input)


def validate_year_input(year: int, allow_out_of_range: bool = False) -> int:
    """Convenience function for year validation."""
    return InputValidator.validate_year(year, allow_out_of_range)


def validate_file_path_input(file_path: Union[str, Path], **kwargs) -> Path:
    """Convenience function for file path validation."""
    return InputValidator.validate_file_path(file_path, **kwargs)


def validate_url_input(url: str, require_https: bool = True) -> str:
    """Convenience function for URL validation."""
    return InputValidator.validate_url(url, require_https)
