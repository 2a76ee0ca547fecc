"""
Error taxonomy, logging utilities and Slack webhook integration.
"""

import asyncio
import logging
import traceback
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from functools import wraps
import httpx
from enum import Enum

from cheapalarms.config import settings


class ErrorSeverity(str, Enum):
    """Error severity levels"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorKind(str, Enum):
    """Closed set of error variants surfaced to callers"""

    VALIDATION = "validation"
    REMOTE = "remote"
    RATE_LIMITED = "rate_limited"
    PARTIAL = "partial"
    NETWORK = "network"
    ABORTED = "aborted"


class CheapAlarmsError(Exception):
    """Base exception for gateway and admin data-layer errors"""

    kind: ErrorKind = ErrorKind.REMOTE

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.severity = severity
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CheapAlarmsError):
    """Request rejected locally before any network call"""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        self.field = field
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        super().__init__(message, **kwargs)


class RemoteError(CheapAlarmsError):
    """Backend answered with a non-2xx status (or ok: false)"""

    kind = ErrorKind.REMOTE

    def __init__(self, message: str, status: int = 0, body: Any = None, **kwargs):
        self.status = status
        self.body = body
        super().__init__(message, **kwargs)


class InvalidResponseError(RemoteError):
    """Backend body could not be parsed as JSON"""


class RateLimited(CheapAlarmsError):
    """Backend asked us to slow down"""

    kind = ErrorKind.RATE_LIMITED
    DEFAULT_RETRY_AFTER = 60

    def __init__(self, retry_after: int, status: int = 429, **kwargs):
        self.retry_after = retry_after
        self.status = status
        super().__init__(
            f"Too many attempts. Please wait {retry_after} seconds before trying again.",
            **kwargs,
        )

    @classmethod
    def from_response(
        cls, body: Any, status: int = 429, headers: Optional[Any] = None
    ) -> "RateLimited":
        """Build from a backend payload, falling back to the Retry-After header."""
        candidates = []
        if isinstance(body, dict):
            candidates.append(body.get("retry_after"))
            details = body.get("details")
            if isinstance(details, dict):
                candidates.append(details.get("retry_after"))
        if headers is not None:
            candidates.append(headers.get("Retry-After"))

        retry_after = cls.DEFAULT_RETRY_AFTER
        for value in candidates:
            if value is None:
                continue
            try:
                retry_after = int(float(value))
                break
            except (TypeError, ValueError):
                continue

        context = {}
        if isinstance(body, dict):
            context = {
                "code": body.get("code"),
                "server_message": body.get("error") or body.get("err"),
                "correlation_id": body.get("correlationId"),
            }
        return cls(retry_after=retry_after, status=status, context=context)


class PartialFailure(CheapAlarmsError):
    """Some items succeeded and some failed"""

    kind = ErrorKind.PARTIAL

    def __init__(
        self,
        succeeded: int,
        errors: List[Dict[str, Any]],
        total: Optional[int] = None,
        **kwargs,
    ):
        self.succeeded = succeeded
        self.errors = list(errors)
        self.total = total if total is not None else succeeded + len(self.errors)
        super().__init__(
            f"{succeeded} of {self.total} succeeded, {len(self.errors)} failed",
            **kwargs,
        )

    @property
    def failed(self) -> int:
        return len(self.errors)


class NetworkError(CheapAlarmsError):
    """Transport failed before a response was obtained"""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, cause: Optional[BaseException] = None, **kwargs):
        self.cause = cause
        super().__init__(message, **kwargs)


class AbortError(CheapAlarmsError):
    """Request was cancelled; never retried"""

    kind = ErrorKind.ABORTED

    def __init__(self, message: str = "Request was cancelled", **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        super().__init__(message, **kwargs)


def classify_error(error: BaseException) -> Optional[CheapAlarmsError]:
    """
    Map an exception onto the error taxonomy.

    Returns None for exceptions that are not request failures, so the
    caller can re-raise them untouched.
    """
    if isinstance(error, RemoteError):
        body = error.body if isinstance(error.body, dict) else {}
        if error.status == 429 or body.get("code") == "rate_limited":
            return RateLimited.from_response(error.body, status=error.status or 429)
        return error

    if isinstance(error, CheapAlarmsError):
        return error

    if isinstance(error, asyncio.CancelledError):
        return AbortError()

    if isinstance(error, httpx.TimeoutException):
        return NetworkError(ERROR_MESSAGES["timeout"], cause=error)

    if isinstance(error, httpx.TransportError):
        return NetworkError(str(error) or ERROR_MESSAGES["network"], cause=error)

    return None


# User-friendly messages for common HTTP status codes and error scenarios
ERROR_MESSAGES: Dict[Any, str] = {
    # Authentication & Authorization
    401: "Your session has expired. Please refresh the page and log in again.",
    403: "You don't have permission to do that. Please ensure you're logged in with the correct account.",
    # Client Errors
    400: "Invalid request. Please check your input and try again.",
    404: "The requested resource could not be found.",
    409: "This operation cannot be completed because of a conflict. Please refresh and try again.",
    413: "The file is too large. Maximum size is 10MB.",
    415: "This file type is not supported. Please use JPG, PNG, GIF, or WEBP.",
    422: "The data provided is invalid. Please check your input.",
    429: "Too many requests. Please wait a moment and try again.",
    # Server Errors
    500: "A server error occurred. Please try again in a moment.",
    502: "Service temporarily unavailable. Please try again shortly.",
    503: "Service temporarily unavailable. Please try again shortly.",
    504: "The request timed out. Please check your connection and try again.",
    # Network Errors
    "network": "Connection lost. Please check your internet connection and try again.",
    "timeout": "The request timed out. Please try again.",
    # Generic
    "unknown": "An unexpected error occurred. Please try again.",
}


def get_error_message(status_or_type: Any, fallback: Optional[str] = None) -> str:
    """Get a user-friendly message for an HTTP status code or error type"""
    return ERROR_MESSAGES.get(status_or_type, fallback or ERROR_MESSAGES["unknown"])


class SlackNotifier:
    """Handles sending error notifications to Slack"""

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.slack_webhook_url
        self.client = httpx.AsyncClient(timeout=10.0)

    async def send_error(
        self,
        error: Exception,
        function_name: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Send error notification to Slack"""
        try:
            error_type = type(error).__name__
            error_msg = str(error)

            formatted_message = "CheapAlarms Gateway Error\n\n"
            formatted_message += f"Severity: {severity.value.upper()}\n"
            formatted_message += f"Function: {function_name}\n"
            formatted_message += f"Error Type: {error_type}\n"
            formatted_message += f"Message: {error_msg}\n"

            if context:
                formatted_message += "\nContext:\n"
                for key, value in context.items():
                    if isinstance(value, (list, dict)):
                        formatted_message += f"  • {key}: {str(value)[:200]}\n"
                    else:
                        formatted_message += f"  • {key}: {value}\n"

            formatted_message += (
                f"\nTimestamp: {datetime.now(timezone.utc).isoformat()}"
            )

            # Log locally ALWAYS (backup if Slack fails)
            logging.error(
                f"\n{'=' * 60}\n{formatted_message}\n{'=' * 60}",
                extra={"severity": severity.value, "function": function_name},
            )

            if not self.webhook_url:
                return

            response = await self.client.post(
                self.webhook_url,
                json={"cheapalarms_error": formatted_message},
            )

            if response.status_code == 200:
                logging.info(f"Slack notification sent for {function_name}")
            else:
                logging.warning(
                    f"Slack notification failed: {response.status_code} - {response.text}"
                )

        except Exception as e:
            # Slack failures must never break request handling
            logging.warning(
                f"Could not send Slack notification: {e}\n"
                f"   Error was logged locally instead."
            )

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()


# Global notifier instance
slack_notifier = SlackNotifier()


def with_error_handling(
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    notify_slack: bool = True,
):
    """
    Decorator for adding error handling to async functions.

    Usage:
        @with_error_handling(severity=ErrorSeverity.HIGH)
        async def my_function():
            ...
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)

            except CheapAlarmsError as e:
                logging.error(
                    f"Error in {func.__name__}: {e.message}",
                    extra={
                        "severity": e.severity.value,
                        "context": e.context,
                    },
                )

                # Validation and cancellation are caller mistakes, not incidents
                if notify_slack and e.kind not in (
                    ErrorKind.VALIDATION,
                    ErrorKind.ABORTED,
                ):
                    await slack_notifier.send_error(
                        error=e,
                        function_name=func.__name__,
                        severity=e.severity,
                        context=e.context,
                    )

                raise

            except Exception as e:
                context = {
                    "args": str(args)[:200],
                    "kwargs": str(kwargs)[:200],
                }

                logging.error(
                    f"Unexpected error in {func.__name__}: {e}",
                    extra={
                        "severity": severity.value,
                        "context": context,
                    },
                    exc_info=True,
                )

                if notify_slack:
                    await slack_notifier.send_error(
                        error=e,
                        function_name=func.__name__,
                        severity=severity,
                        context=context,
                    )

                raise

        return wrapper

    return decorator


def safe_scheduled_job(func):
    """
    Decorator that prevents scheduled jobs from crashing the scheduler.

    Catches all exceptions, logs them, sends to Slack, but doesn't re-raise
    so the scheduler continues running.
    """

    @wraps(func)
    async def wrapper(*args, **kwargs):
        job_name = func.__name__

        try:
            logging.info(f"Starting scheduled job: {job_name}")
            result = await func(*args, **kwargs)
            logging.info(f"Completed scheduled job: {job_name}")
            return result

        except Exception as e:
            logging.error(f"Scheduled job '{job_name}' failed: {e}", exc_info=True)

            await slack_notifier.send_error(
                error=e,
                function_name=f"scheduled_job:{job_name}",
                severity=ErrorSeverity.HIGH,
                context={
                    "job_name": job_name,
                    "next_run": "Will retry on next scheduled interval",
                },
            )

    return wrapper


def setup_logging(level: int = logging.INFO):
    """Configure application logging"""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
