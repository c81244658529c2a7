"""
Custom exception classes
Provides consistent error codes across the dispatch pipeline
"""

from typing import Optional

class NotifierException(Exception):
    """Base exception class for the notifier application"""

    def __init__(self, detail: str, error_code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.error_code = error_code

class NotFoundException(NotifierException):
    """Requested record does not exist"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(detail=detail, error_code=error_code)

class ConflictException(NotifierException):
    """Record is not in a state that allows the operation"""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(detail=detail, error_code=error_code)

class ServiceUnavailableException(NotifierException):
    """Backing service temporarily unavailable"""

    def __init__(
        self,
        detail: str = "Service temporarily unavailable",
        error_code: str = "SERVICE_UNAVAILABLE"
    ):
        super().__init__(detail=detail, error_code=error_code)

# Queue exceptions
class QueueUnavailableException(ServiceUnavailableException):
    """Queue backend could not be reached"""

    def __init__(self, detail: str):
        super().__init__(detail=detail, error_code="QUEUE_UNAVAILABLE")

class MalformedJobException(NotifierException):
    """Dequeued payload does not match the job schema"""

    def __init__(self, raw: str, reason: str):
        super().__init__(
            detail=f"Malformed queue payload: {reason}",
            error_code="MALFORMED_JOB"
        )
        self.raw = raw
        self.reason = reason

# Notification log exceptions
class NotificationNotFoundException(NotFoundException):
    """Notification log not found"""

    def __init__(self, log_id: str):
        super().__init__(
            detail=f"Notification {log_id} not found",
            error_code="NOTIFICATION_NOT_FOUND"
        )

class ResendNotAllowedException(ConflictException):
    """Only failed notifications can be resent"""

    def __init__(self, detail: str = "Notification not in FAILED status"):
        super().__init__(detail=detail, error_code="RESEND_NOT_ALLOWED")

class InvalidStatusTransitionException(ConflictException):
    """Status change outside the notification lifecycle"""

    def __init__(self, current: str, requested: str):
        super().__init__(
            detail=f"Cannot move notification from {current} to {requested}",
            error_code="INVALID_STATUS_TRANSITION"
        )

# Delivery exceptions
class DeliveryException(NotifierException):
    """Push delivery failed"""

    def __init__(self, detail: str, failures: Optional[dict] = None):
        super().__init__(detail=detail, error_code="DELIVERY_FAILED")
        self.failures = failures or {}
