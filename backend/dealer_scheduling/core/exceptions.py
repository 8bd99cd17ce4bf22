# backend/dealer_scheduling/core/exceptions.py
"""
Domain-specific exceptions for the scheduling engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.

Expected admission outcomes (full slot, vehicle conflict, invalid date or
slot) are NOT exceptions; they are returned as AdmissionRejection values.
Only infrastructure failures and administrative misuse raise.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

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

    def _detail(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        """Default conversion to HTTPException (override in subclasses)."""
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=self._detail(),
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=self._detail())


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=self._detail())


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=self._detail())


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


class SchedulingUnavailableException(ServiceException):
    """
    Raised when admission could not run to a decision.

    Covers store outages and lock acquisition timeouts. The admission is
    guaranteed to have written nothing, so callers may retry.
    """

    retry_after_seconds: int = 2

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: str = "SERVICE_UNAVAILABLE",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message or "Scheduling is temporarily unavailable. Please retry.",
            code=code,
            details=details or {},
        )

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=self._detail(),
            headers={"Retry-After": str(self.retry_after_seconds)},
        )


class SlotLockTimeoutException(SchedulingUnavailableException):
    """Raised when the per-slot admission lock is not acquired in time."""

    def __init__(self, slot_date: str, slot_key: str, timeout_seconds: float) -> None:
        super().__init__(
            message="The requested time slot is busy. Please retry shortly.",
            code="SLOT_LOCK_TIMEOUT",
            details={
                "date": slot_date,
                "slot_key": slot_key,
                "timeout_seconds": timeout_seconds,
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """

