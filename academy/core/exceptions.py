from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidInterval(ServiceError):
    """A TimeSlot is empty, inverted, not minute-granular or not in UTC."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ScheduleValidationError(ServiceError):
    """Request is structurally valid but cannot be scheduled (dates, enrollment, state)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NoActiveSubscription(ServiceError):
    def __init__(self, student_id) -> None:
        super().__init__(
            f"Cannot calculate: no active subscription for this period (student {student_id})",
            status.HTTP_404_NOT_FOUND,
        )
        self.student_id = student_id


class ConcurrencyConflict(ServiceError):
    """The store rejected a write because a concurrent caller got there first."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class SubscriptionActivationError(ServiceError):
    """Activation unit was rolled back; the caller has to retry."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class StoreTimeout(ServiceError):
    """Backing store did not answer in time. Nothing may be assumed committed."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(
            f"{operation} did not complete within {timeout:g}s; re-query state before retrying",
            status.HTTP_504_GATEWAY_TIMEOUT,
        )
        self.operation = operation
        self.timeout = timeout


class DataIntegrityWarning(UserWarning):
    """Stored data violates an invariant; a documented tie-break was applied."""
