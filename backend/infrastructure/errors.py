"""
Error Handling for Watchtower Bots
Structured exceptions, per-unit error tracking and provider retries

Features:
- Custom exception classes
- Automatic error logging
- Structured error payloads
- Retry logic for RPC calls
- Error tracking and aggregation
"""

import asyncio
import logging
import traceback
from datetime import datetime
from collections import Counter, deque
from typing import Any, Callable, Deque, Dict, TypeVar
from functools import wraps
from enum import Enum

logger = logging.getLogger("ErrorHandler")


# ============================================
# ERROR CODES
# ============================================

class ErrorCode(str, Enum):
    # Startup errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Evaluation errors
    NORMALIZATION_ERROR = "NORMALIZATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # External collaborator errors
    PROVIDER_ERROR = "PROVIDER_ERROR"
    EMITTER_ERROR = "EMITTER_ERROR"


# ============================================
# CUSTOM EXCEPTIONS
# ============================================

class WatchtowerError(Exception):
    """Base exception for Watchtower bots"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Dict = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict:
        return {
            "success": False,
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp.isoformat()
            }
        }


class ConfigurationError(WatchtowerError):
    """Fatal startup misconfiguration - bots must refuse to run"""
    def __init__(self, message: str, setting: str = None):
        details = {"setting": setting} if setting else {}
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(WatchtowerError):
    """Malformed record (finding, log entry, descriptor)"""
    def __init__(self, message: str, details: Dict = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class NormalizationError(WatchtowerError):
    """Decimal normalization received input it cannot represent exactly"""
    def __init__(self, message: str, value: Any = None, decimals: Any = None):
        super().__init__(
            message,
            ErrorCode.NORMALIZATION_ERROR,
            {"value": repr(value), "decimals": repr(decimals)}
        )


class ProviderError(WatchtowerError):
    """Chain data provider call failed (balance lookup, contract call, receipt)"""
    def __init__(self, operation: str, message: str, block_number: int = None, original_error: Exception = None):
        details = {"operation": operation}
        if block_number is not None:
            details["block_number"] = block_number
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(message, ErrorCode.PROVIDER_ERROR, details)


class EmitterError(WatchtowerError):
    """Finding delivery failed"""
    def __init__(self, sink: str, message: str, status_code: int = None):
        details = {"sink": sink}
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, ErrorCode.EMITTER_ERROR, details)


# ============================================
# ERROR TRACKING
# ============================================

class ErrorTracker:
    """
    Failed units of work, kept in memory for the runner's stats.

    Units are named "<scope>:<kind>:<id>" (e.g. "minimum-balance:block:123",
    "tx:0xabc"); counts are kept per exception type and per scope.
    """

    def __init__(self, max_errors: int = 1000):
        self.errors: Deque[Dict] = deque(maxlen=max_errors)
        self.error_counts: Counter = Counter()
        self.scope_counts: Counter = Counter()

    def track(self, error: Exception, unit: str = None):
        error_type = type(error).__name__
        scope = unit.split(":", 1)[0] if unit else "unknown"

        self.error_counts[error_type] += 1
        self.scope_counts[scope] += 1

        record = {
            "type": error_type,
            "message": str(error),
            "unit": unit,
            "timestamp": datetime.now().isoformat(),
        }
        if isinstance(error, WatchtowerError):
            record["code"] = error.code.value
            record["details"] = error.details
        else:
            # Unexpected failures keep their stack for debugging
            record["traceback"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        self.errors.append(record)

        logger.error(f"Unit {unit} failed: {error_type} - {str(error)[:200]}")

    def get_stats(self) -> Dict:
        return {
            "total_errors": sum(self.error_counts.values()),
            "error_counts": dict(self.error_counts),
            "scope_counts": dict(self.scope_counts),
            "recent_errors": list(self.errors)[-10:],
        }

    def clear(self):
        self.errors.clear()
        self.error_counts.clear()
        self.scope_counts.clear()


# Global error tracker
error_tracker = ErrorTracker()


# ============================================
# RETRY LOGIC
# ============================================

T = TypeVar('T')


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple = (Exception,)
):
    """
    Decorator for automatic retry with exponential backoff.

    Only the chain data provider uses this; bots never retry on their own.

    Usage:
        @retry(max_attempts=3, delay=1.0)
        async def fetch_receipt():
            ...
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            last_exception = None
            current_delay = delay

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e

                    if attempt < max_attempts - 1:
                        logger.warning(f"Retry {attempt + 1}/{max_attempts} for {func.__name__}: {e}")
                        await asyncio.sleep(current_delay)
                        current_delay *= backoff
                    else:
                        logger.error(f"All retries failed for {func.__name__}: {e}")

            raise last_exception

        return wrapper
    return decorator
