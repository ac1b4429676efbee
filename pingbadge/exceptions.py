"""
Standardized exception hierarchy for pingbadge
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

import redis
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class PingBadgeError(Exception):
    """
    Base exception for all pingbadge errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise PingBadgeError(
            message="Failed to save gamification snapshot",
            user_id="user-42",
            operation="save_snapshot",
            context={"key": "gamification_user-42"}
        )
    """

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,  # Avoid conflict with logging's 'context'
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for display layers"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(PingBadgeError):
    """
    System configuration is invalid or missing

    Examples:
    - Level threshold table that is empty or not strictly ascending
    - Unknown storage backend
    - Unknown timezone
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Storage Errors
# ==========================================

class StorageError(PingBadgeError):
    """Key-value backend read or write failed"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        backend: Optional[str] = None,
        **kwargs
    ):
        self.key = key
        self.backend = backend
        super().__init__(
            message=message,
            user_message="Your progress could not be saved on this device.",
            context={"key": key, "backend": backend},
            **kwargs
        )


class SnapshotCorruptError(StorageError):
    """Stored value exists but is not a valid gamification snapshot"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, **kwargs)


# ==========================================
# Gamification Errors
# ==========================================

class GamificationStateError(PingBadgeError):
    """
    Controller operation called in an invalid state

    Example:
        join_activity() before initialize(user_id)
    """

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            user_message="Your progress is still loading.",
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    key: Optional[str] = None,
    backend: Optional[str] = None
) -> PingBadgeError:
    """
    Wrap external exceptions (OSError, redis, decoding, validation) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context
        key: Storage key involved, if any
        backend: Storage backend name, if any

    Returns:
        Appropriate PingBadgeError subclass

    Example:
        try:
            path.write_text(payload)
        except OSError as e:
            raise wrap_external_exception(e, operation="file_write", key=key) from e
    """
    if isinstance(error, (UnicodeDecodeError, ValidationError)):
        return SnapshotCorruptError(
            message=f"Stored value is not a valid snapshot: {str(error)}",
            user_id=user_id,
            operation=operation,
            key=key,
            backend=backend,
            cause=error
        )
    elif isinstance(error, (OSError, redis.RedisError)):
        return StorageError(
            message=f"{operation} failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            key=key,
            backend=backend,
            cause=error
        )

    # Generic fallback
    else:
        return PingBadgeError(
            message=f"{operation} failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
