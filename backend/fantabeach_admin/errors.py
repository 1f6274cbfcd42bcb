"""
Domain errors surfaced to API callers.

Callers only ever see the stable `code` strings below, never exception
class names. `details` carries the offending field/value pairs.
"""
from typing import Any, Dict, Optional

NOT_FOUND = "NOT_FOUND"
UNAUTHORIZED = "UNAUTHORIZED"
BAD_REQUEST = "BAD_REQUEST"
ENTRY_LIST_LOCK_INVALID = "ENTRY_LIST_LOCK_INVALID"
ENTRY_LIST_NOT_FINAL = "ENTRY_LIST_NOT_FINAL"
SCHEDULE_WINDOW_VIOLATION = "SCHEDULE_WINDOW_VIOLATION"

_STATUS_BY_CODE = {
    NOT_FOUND: 404,
    UNAUTHORIZED: 401,
}


class DomainError(Exception):
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    @property
    def status_code(self) -> int:
        return _STATUS_BY_CODE.get(self.code, 400)

    def to_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


def not_found(entity: str) -> DomainError:
    return DomainError(NOT_FOUND, f"{entity} not found")


def unauthorized() -> DomainError:
    return DomainError(UNAUTHORIZED, "Unauthorized")


def bad_request(message: str, details: Optional[Dict[str, Any]] = None, code: str = BAD_REQUEST) -> DomainError:
    return DomainError(code, message, details)
