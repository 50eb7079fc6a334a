"""Error taxonomy shared by services and routers.

Every outward failure carries a short, fixed message and an HTTP status.
Store error text never ends up in these messages; it is logged where the
store is called.
"""

from typing import Optional

from fastapi import status


# Fixed user-facing messages
SESSION_INVALID = "Session expired or invalid"
INVALID_CREDENTIALS = "Invalid username or password"
CURRENT_PASSWORD_INCORRECT = "Current password is incorrect"
NO_CHANGES_REQUESTED = "Provide a new username or a new password"
USERNAME_TAKEN = "Username is already taken"
SETUP_ALREADY_COMPLETE = "Setup has already been completed"
API_TOKEN_MISSING = "API token missing"
API_TOKEN_INVALID = "Invalid API token"

DEVICE_NOT_FOUND = "Device not found"
CALL_SIGN_EXISTS = "Call sign already exists"
DEVICE_ON_LOAN = "Device cannot be deleted while it is on loan"
ON_LOAN_NOT_SETTABLE = "Status ON_LOAN cannot be set manually"
CALL_SIGN_REQUIRED = "Call sign must not be empty"
DEVICE_TYPE_REQUIRED = "Device type must not be empty"

LOAN_NOT_FOUND = "Loan not found"
LOAN_ALREADY_RETURNED = "Loan has already been returned"
DEVICE_STATUS_CHANGED = "Device status changed, please reload"

INVALID_DEVICE_ID = "Invalid device id"
INVALID_DATE = "Invalid date format, expected ISO 8601"
INVALID_PAGINATION = "Invalid page or page size"
INVALID_DATE_RANGE = "Invalid date range: 'from' must precede 'to' and span at most 365 days"

RECORD_EXISTS = "Record already exists"
RECORD_NOT_FOUND = "Record not found"
OPERATION_TIMED_OUT = "The operation timed out, please try again"
OPERATION_FAILED = "Database operation failed"


class InventoryError(Exception):
    """Base class for failures reported to API callers."""

    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = OPERATION_FAILED

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(InventoryError):
    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = SESSION_INVALID


class InvalidCredentials(Unauthorized):
    default_message = INVALID_CREDENTIALS


class ValidationFailed(InventoryError):
    kind = "validation"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class Conflict(InventoryError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = RECORD_EXISTS


class NotFound(InventoryError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = RECORD_NOT_FOUND


class TransactionTimeout(InventoryError):
    kind = "timeout"
    status_code = status.HTTP_408_REQUEST_TIMEOUT
    default_message = OPERATION_TIMED_OUT


class OperationFailed(InventoryError):
    kind = "operation_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = OPERATION_FAILED
