# backend/booking_core/core/exceptions.py
"""
Domain-specific exceptions for the booking engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Iterable, List, Optional

from fastapi import HTTPException, status


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
    """Raised when required fields are missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class StateException(DomainException):
    """Raised when an operation is not allowed in the entity's current state."""

    status_code = status.HTTP_400_BAD_REQUEST


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


class TransactionException(ServiceException):
    """Raised when the storage layer fails mid-commit; the unit of work was rolled back."""

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or "The operation could not be completed and was rolled back",
            code="TRANSACTION_FAILED",
            details=details or {},
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """Raised when requested sessions collide with slots held by other bookings."""

    def __init__(
        self,
        conflicts: Iterable[Dict[str, Any]],
        message: Optional[str] = None,
    ):
        self.conflicts: List[Dict[str, Any]] = list(conflicts)
        super().__init__(
            message=message or "Some selected slots are already booked",
            code="BOOKING_CONFLICT",
            details={"conflicts": self.conflicts},
        )


class SlotLockedException(ConflictException):
    """Raised when another request is currently reserving the same slot."""

    def __init__(self, slot_key: str):
        super().__init__(
            message="This slot is being reserved by another request. Please retry.",
            code="SLOT_LOCKED",
            details={"slot": slot_key},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
