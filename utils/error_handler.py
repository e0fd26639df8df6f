"""
Error Handling Module for OJ Test Suite Downloader

This module provides the exception hierarchy, error detection utilities and the central
error reporter used by the session, login, archive and download layers.

Every error raised by the project derives from OJDownloaderError and carries an ErrorInfo
describing its category, severity and what the user can do about it. Classification is
what lets the orchestrator tell a non-fatal "not found" apart from a transport failure
that has to abort the whole command.
"""

import logging
import traceback
import functools
import shutil
import socket
from typing import Dict, Any, Optional, Callable, List, Sequence
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from requests.exceptions import ConnectionError, Timeout, ChunkedEncodingError
from urllib3.exceptions import MaxRetryError, NewConnectionError

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification"""
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    URL_VALIDATION = "url_validation"
    SCRAPE = "scrape"
    ARCHIVE = "archive"
    AUTHENTICATION = "authentication"
    FILE_SYSTEM = "file_system"
    USAGE = "usage"
    SUBMISSION = "submission"
    UNKNOWN = "unknown"


@dataclass
class ErrorInfo:
    """Structured error information"""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    original_exception: Optional[Exception] = None
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    traceback_str: Optional[str] = None
    recovery_suggestions: List[str] = field(default_factory=list)
    user_message: Optional[str] = None


# =============================================================================
# Custom Exception Classes
# =============================================================================

class OJDownloaderError(Exception):
    """Base exception for all OJ Test Suite Downloader specific errors"""

    def __init__(self, message: str, error_info: Optional[ErrorInfo] = None):
        super().__init__(message)
        self.error_info = error_info or ErrorInfo(
            message=message,
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.MEDIUM
        )


class NetworkError(OJDownloaderError):
    """Transport failures: connect errors, timeouts, broken responses"""

    def __init__(self, message: str, original_exception: Optional[Exception] = None,
                 url: Optional[str] = None):
        error_info = ErrorInfo(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.HIGH,
            original_exception=original_exception,
            context={"url": url} if url else {},
            recovery_suggestions=[
                "Check internet connection",
                "Increase the timeout with --timeout",
                "Try again after a few minutes"
            ]
        )
        super().__init__(message, error_info)


class UnexpectedStatusError(OJDownloaderError):
    """A response status outside the set the caller accepts"""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None,
                 acceptable: Sequence[int] = ()):
        error_info = ErrorInfo(
            message=message,
            category=ErrorCategory.HTTP_STATUS,
            severity=ErrorSeverity.HIGH,
            context={"url": url, "status_code": status_code, "acceptable": list(acceptable)},
            recovery_suggestions=[
                "Verify the contest/problem exists",
                "Try the URL in a web browser",
                "Log in again if the page requires authentication"
            ],
            user_message=f"Unexpected response {status_code} from {url}."
        )
        super().__init__(message, error_info)
        self.url = url
        self.status_code = status_code


class URLValidationError(OJDownloaderError):
    """Malformed URL or a relative URL that cannot be resolved"""

    def __init__(self, message: str, url: Optional[str] = None):
        error_info = ErrorInfo(
            message=message,
            category=ErrorCategory.URL_VALIDATION,
            severity=ErrorSeverity.MEDIUM,
            context={"url": url} if url else {},
            recovery_suggestions=[
                "Check URL format",
                "Ensure the service is supported"
            ],
            user_message="Please check the URL format."
        )
        super().__init__(message, error_info)


class ScrapeError(OJDownloaderError):
    """The page does not have the structure the extractor expects"""

    def __init__(self, message: str = "Failed to scrape", url: Optional[str] = None):
        error_info = ErrorInfo(
            message=message,
            category=ErrorCategory.SCRAPE,
            severity=ErrorSeverity.HIGH,
            context={"url": url} if url else {},
            recovery_suggestions=[
                "The page layout may have changed",
                "Try the URL in a web browser",
                "Use --only-scraped to skip archive downloads"
            ],
            user_message="Could not find the expected content on the page."
        )
        super().__init__(message, error_info)


class ArchiveReadError(OJDownloaderError):
    """A test case archive could not be read"""

    def __init__(self, message: str, name: Optional[str] = None,
                 original_exception: Optional[Exception] = None):
        error_info = ErrorInfo(
            message=message,
            category=ErrorCategory.ARCHIVE,
            severity=ErrorSeverity.HIGH,
            original_exception=original_exception,
            context={"name": name} if name else {},
            recovery_suggestions=[
                "Try downloading again",
                "Use --only-scraped to keep the sample cases only"
            ],
            user_message="Failed to read the test case archive."
        )
        super().__init__(message, error_info)


class LoginRequiredError(OJDownloaderError):
    """Login is mandatory for the operation but could not be completed"""

    def __init__(self, message: str = "Login required", service: Optional[str] = None):
        error_info = ErrorInfo(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.HIGH,
            context={"service": service} if service else {},
            recovery_suggestions=[
                "Check the credential in your environment",
                "Run the login command from an interactive terminal"
            ],
            user_message="Login failed. Please check your credentials."
        )
        super().__init__(message, error_info)


class WrongCredentialError(OJDownloaderError):
    """A credential was installed but the service did not accept it"""

    def __init__(self, label: str):
        error_info = ErrorInfo(
            message=f"Wrong \"{label}\".",
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.LOW,
            recovery_suggestions=["Enter the credential again"]
        )
        super().__init__(error_info.message, error_info)
        self.label = label


class FileSystemError(OJDownloaderError):
    """File system related errors (permissions, disk space, etc.)"""

    def __init__(self, message: str, path: Optional[str] = None,
                 original_exception: Optional[Exception] = None):
        error_info = ErrorInfo(
            message=message,
            category=ErrorCategory.FILE_SYSTEM,
            severity=ErrorSeverity.HIGH,
            original_exception=original_exception,
            context={"path": path} if path else {},
            recovery_suggestions=[
                "Check file/directory permissions",
                "Ensure sufficient disk space",
                "Try a different output location"
            ],
            user_message="File system error occurred. Please check permissions and disk space."
        )
        super().__init__(message, error_info)


class CookieStoreError(FileSystemError):
    """The persisted cookie jar exists but cannot be read or written"""


class PleaseSpecifyProblemsError(OJDownloaderError):
    """Direct addressing mode was requested without any problem"""

    def __init__(self, message: str = "Please specify problems"):
        error_info = ErrorInfo(
            message=message,
            category=ErrorCategory.USAGE,
            severity=ErrorSeverity.MEDIUM,
            recovery_suggestions=["Pass problem numbers with --problems"],
            user_message="Please specify problems."
        )
        super().__init__(message, error_info)


class SubmissionError(OJDownloaderError):
    """Base class for errors raised while submitting"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        error_info = ErrorInfo(
            message=message,
            category=ErrorCategory.SUBMISSION,
            severity=ErrorSeverity.HIGH,
            context=context or {}
        )
        super().__init__(message, error_info)


class RecognizeByExtensionError(SubmissionError):
    def __init__(self, extension: str, reason: str):
        super().__init__(f"Could not recognize the language by the extension {extension!r}: {reason}",
                         {"extension": extension})


class NoSuchProblemError(SubmissionError):
    def __init__(self, problem: str):
        super().__init__(f"No such problem: {problem!r}", {"problem": problem})


class AlreadyAcceptedError(SubmissionError):
    def __init__(self, problem: str):
        super().__init__(f"Already accepted: {problem!r} (use --skip-checking-if-accepted)",
                         {"problem": problem})


class SubmissionRejectedError(SubmissionError):
    def __init__(self, lang_id: str, size: int, status_code: int, location: Optional[str]):
        super().__init__(
            f"Submission rejected: language={lang_id!r}, size={size}, status={status_code}, "
            f"location={location!r}",
            {"lang_id": lang_id, "size": size, "status_code": status_code, "location": location}
        )


# =============================================================================
# Error Detection Utilities
# =============================================================================

class ErrorDetector:
    """Utilities for detecting specific types of errors"""

    @staticmethod
    def is_network_error(exception: Exception) -> bool:
        """Check if exception is a network-related error"""
        network_exceptions = (
            ConnectionError, Timeout, socket.timeout, socket.gaierror,
            MaxRetryError, NewConnectionError, ChunkedEncodingError
        )
        return isinstance(exception, network_exceptions)

    @staticmethod
    def check_disk_space(path: str, required_mb: int = 50) -> bool:
        """Check if there's sufficient disk space"""
        try:
            free_bytes = shutil.disk_usage(path).free
        except OSError:
            return True  # Assume sufficient space if can't check
        return free_bytes / (1024 * 1024) >= required_mb


# =============================================================================
# Error Reporting
# =============================================================================

class ErrorReporter:
    """Centralized error reporting and logging"""

    def __init__(self):
        self.error_history: List[ErrorInfo] = []

    def report_error(self, error_info: ErrorInfo, context: Optional[Dict[str, Any]] = None):
        """Report an error with full context"""
        self.error_history.append(error_info)

        # Log based on severity
        if error_info.severity == ErrorSeverity.CRITICAL:
            logger.critical(f"CRITICAL ERROR: {error_info.message}")
        elif error_info.severity == ErrorSeverity.HIGH:
            logger.error(f"ERROR: {error_info.message}")
        elif error_info.severity == ErrorSeverity.MEDIUM:
            logger.warning(f"WARNING: {error_info.message}")
        else:
            logger.info(f"INFO: {error_info.message}")

        if error_info.context:
            logger.debug(f"Context: {error_info.context}")

        if context:
            logger.debug(f"Additional context: {context}")

        if error_info.traceback_str:
            logger.debug(f"Traceback: {error_info.traceback_str}")

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of all reported errors"""
        categories: Dict[str, int] = {}
        for error in self.error_history:
            cat = error.category.value
            categories[cat] = categories.get(cat, 0) + 1

        return {
            "total_errors": len(self.error_history),
            "categories": categories,
            "recent_errors": [
                {
                    "message": e.message,
                    "category": e.category.value,
                    "severity": e.severity.value,
                    "timestamp": e.timestamp.isoformat()
                }
                for e in self.error_history[-10:]
            ]
        }


# Global error reporter instance
error_reporter = ErrorReporter()


def handle_exception(func: Callable) -> Callable:
    """Decorator to report exceptions and wrap unexpected ones in OJDownloaderError"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OJDownloaderError as e:
            error_reporter.report_error(e.error_info)
            raise
        except Exception as e:
            error_info = ErrorInfo(
                message=f"Unexpected error in {func.__name__}: {str(e)}",
                category=ErrorCategory.UNKNOWN,
                severity=ErrorSeverity.MEDIUM,
                original_exception=e,
                traceback_str=traceback.format_exc()
            )
            error_reporter.report_error(error_info)
            raise OJDownloaderError(f"Unexpected error: {str(e)}", error_info) from e

    return wrapper
