# backend/timebank/core/exceptions.py
"""
Domain-specific exceptions for the time-bank core.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class InvalidTimeRangeException(ValidationException):
    """Raised when a requested window does not end after it starts."""

    def __init__(self, start: Any, end: Any):
        super().__init__(
            message="End time must be after start time",
            code="INVALID_TIME_RANGE",
            details={"start_time": str(start), "end_time": str(end)},
        )


class SlotUnavailableException(ConflictException):
    """Raised when a slot is missing, mismatched, or already taken."""

    def __init__(self, slot_id: str, reason: Optional[str] = None):
        super().__init__(
            message=reason or "This time slot is no longer available",
            code="SLOT_UNAVAILABLE",
            details={"availability_slot_id": slot_id},
        )


class InsufficientCreditsException(BusinessRuleException):
    """Raised when a balance cannot cover a debit."""

    def __init__(self, user_id: str, required: int, available: int):
        super().__init__(
            message=f"You need {required} credits but only have {available}",
            code="INSUFFICIENT_CREDITS",
            details={"user_id": user_id, "required": required, "available": available},
        )


class InvalidTransitionException(ConflictException):
    """Raised when a booking is not in the state an action requires."""

    def __init__(self, booking_id: str, current_status: str, action: str, reason: Optional[str] = None):
        super().__init__(
            message=reason or f"Cannot {action} a booking that is {current_status}",
            code="INVALID_TRANSITION",
            details={"booking_id": booking_id, "status": current_status, "action": action},
        )


class NotEligibleException(ForbiddenException):
    """Raised when a user may not review a booking."""

    def __init__(self, booking_id: str, reason: str):
        super().__init__(
            message=reason,
            code="NOT_ELIGIBLE",
            details={"booking_id": booking_id},
        )


class DuplicateReviewException(ConflictException):
    """Raised when a booking already carries a review."""

    def __init__(self, booking_id: str):
        super().__init__(
            message="A review has already been submitted for this booking",
            code="DUPLICATE_REVIEW",
            details={"booking_id": booking_id},
        )


class ProfileNotFoundException(NotFoundException):
    """Raised when a user has no profile row."""

    def __init__(self, user_id: str):
        super().__init__(
            message="Profile not found",
            code="PROFILE_NOT_FOUND",
            details={"user_id": user_id},
        )


class ExternalServiceUnavailableException(ServiceException):
    """Raised when an external collaborator (meeting provider) fails."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, service_name: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"{service_name} is unavailable",
            code="EXTERNAL_SERVICE_UNAVAILABLE",
            details={"service": service_name},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
