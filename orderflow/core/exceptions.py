from fastapi import HTTPException
from orderflow.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details


# =====================================================
# DOMAIN ERRORS
# Raised by the pure order commands; mapped to HTTP
# responses in orderflow.core.error_handlers.
# =====================================================
class OrderDomainError(Exception):
    status_code = 400
    error_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(OrderDomainError):
    """Bad user input: non-positive payment, missing required field."""


class InvalidArgument(OrderDomainError, ValueError):
    """Value outside a closed enumeration (unknown department, status)."""

    error_code = ErrorCode.INVALID_ARGUMENT


class NotAllowed(OrderDomainError):
    status_code = 403
    error_code = ErrorCode.PERMISSION_DENIED


class TerminalStage(OrderDomainError):
    """Order is already in the last workflow department."""

    status_code = 409
    error_code = ErrorCode.ORDER_TERMINAL_STAGE


class ExternalFailure(OrderDomainError):
    """Persistence or collaborator call failed; the caller may retry."""

    status_code = 503
    error_code = ErrorCode.EXTERNAL_FAILURE


class StaleWrite(OrderDomainError):
    """Document changed since it was read; the write was not applied."""

    status_code = 409
    error_code = ErrorCode.CONFLICT
