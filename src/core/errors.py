"""
Custom exceptions and error handling for Trip Orders.

Defines application-specific exceptions with error codes for consistent
error handling across the order engine, Lambda handlers and client communication.

Usage:
    from core.errors import ConflictError, ErrorCode

    raise ConflictError("Stage 2 is not yet actionable", code=ErrorCode.STAGE_NOT_ACTIVE)
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for client-facing error messages."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_TRIP = "INVALID_TRIP"
    COMMENTS_REQUIRED = "COMMENTS_REQUIRED"

    # Lookup errors
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    SEGMENT_NOT_FOUND = "SEGMENT_NOT_FOUND"
    STAGE_NOT_FOUND = "STAGE_NOT_FOUND"
    LOCATION_NOT_FOUND = "LOCATION_NOT_FOUND"
    VEHICLE_NOT_FOUND = "VEHICLE_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"

    # Permission errors
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Conflict errors
    STAGE_NOT_ACTIVE = "STAGE_NOT_ACTIVE"
    VEHICLE_REQUIRED = "VEHICLE_REQUIRED"
    ORDER_COMPLETED = "ORDER_COMPLETED"
    ORDER_TERMINAL = "ORDER_TERMINAL"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONCURRENT_UPDATE = "CONCURRENT_UPDATE"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


USER_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Your request contains invalid information. Please check and try again.",
    ErrorCode.INVALID_REQUEST: "Invalid request format. Please try again.",
    ErrorCode.INVALID_TRIP: "The selected route is not valid for this trip type.",
    ErrorCode.COMMENTS_REQUIRED: "Comments are required for rejection.",
    ErrorCode.ORDER_NOT_FOUND: "Order not found.",
    ErrorCode.SEGMENT_NOT_FOUND: "Segment not found.",
    ErrorCode.STAGE_NOT_FOUND: "Workflow step not found.",
    ErrorCode.LOCATION_NOT_FOUND: "No rate card entry exists for the selected location.",
    ErrorCode.VEHICLE_NOT_FOUND: "Vehicle not found.",
    ErrorCode.USER_NOT_FOUND: "User not found.",
    ErrorCode.PERMISSION_DENIED: "You do not have permission to perform this action.",
    ErrorCode.STAGE_NOT_ACTIVE: "This workflow stage cannot be actioned yet.",
    ErrorCode.VEHICLE_REQUIRED: "Vehicle assignment is mandatory before approving or starting this trip.",
    ErrorCode.ORDER_COMPLETED: "This order has completed all approval stages and can no longer be changed.",
    ErrorCode.ORDER_TERMINAL: "This order is closed and can no longer be changed.",
    ErrorCode.INVALID_TRANSITION: "The requested status change is not allowed.",
    ErrorCode.CONCURRENT_UPDATE: "This order was updated by someone else. Please reload and try again.",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Please try again.",
}


class TripOrderError(Exception):
    """Base exception for all Trip Orders errors."""

    http_status: int = 500

    def __init__(self, message: str, code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        self.message = message
        self.code = code
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return USER_MESSAGES.get(self.code, USER_MESSAGES[ErrorCode.INTERNAL_ERROR])


class ValidationError(TripOrderError):
    """Missing or invalid field, correctable by the caller."""

    http_status = 400

    def __init__(self, message: str, code: ErrorCode = ErrorCode.VALIDATION_ERROR):
        super().__init__(message, code)


class NotFoundError(TripOrderError):
    """Order, segment, stage, location, vehicle or user could not be resolved."""

    http_status = 404

    def __init__(self, message: str, code: ErrorCode = ErrorCode.ORDER_NOT_FOUND):
        super().__init__(message, code)


class PermissionDeniedError(TripOrderError):
    """Actor lacks the role or department required for the action."""

    http_status = 403

    def __init__(self, message: str, code: ErrorCode = ErrorCode.PERMISSION_DENIED):
        super().__init__(message, code)


class ConflictError(TripOrderError):
    """Action is illegal in the order's current state."""

    http_status = 409

    def __init__(self, message: str, code: ErrorCode = ErrorCode.INVALID_TRANSITION):
        super().__init__(message, code)


class InternalError(TripOrderError):
    """Persistence, parse or consistency failure."""

    pass
