# orderflow/constants/error_codes.py
from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    EXTERNAL_FAILURE = "EXTERNAL_FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # ---------------- ORDERS ----------------
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    ORDER_TERMINAL_STAGE = "ORDER_TERMINAL_STAGE"
    ORDER_VERSION_CONFLICT = "ORDER_VERSION_CONFLICT"
    ORDER_INVALID_ACTION = "ORDER_INVALID_ACTION"

    # ---------------- USERS ----------------
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_EMAIL_EXISTS = "USER_EMAIL_EXISTS"

    # ---------------- SHEETS ----------------
    SHEET_NOT_FOUND = "SHEET_NOT_FOUND"
    SHEET_INVALID = "SHEET_INVALID"
