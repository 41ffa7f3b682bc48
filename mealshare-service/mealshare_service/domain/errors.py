"""
Domain failures - Expected business outcomes returned as values
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Failure category"""
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHORIZED = "UNAUTHORIZED"


@dataclass(frozen=True)
class Failure:
    """Business failure with a machine readable reason"""
    kind: ErrorKind
    reason: str
    message: str = ""

    @classmethod
    def not_found(cls, what: str, identifier: str = "") -> "Failure":
        message = f"{what} not found" if not identifier else f"{what} '{identifier}' not found"
        return cls(ErrorKind.NOT_FOUND, f"{what.lower()}_not_found", message)

    @classmethod
    def conflict(cls, reason: str, message: str = "") -> "Failure":
        return cls(ErrorKind.CONFLICT, reason, message or reason.replace("_", " "))

    @classmethod
    def invalid(cls, reason: str, message: str = "") -> "Failure":
        return cls(ErrorKind.INVALID_INPUT, reason, message or reason.replace("_", " "))

    @classmethod
    def unauthorized(cls, reason: str, message: str = "") -> "Failure":
        return cls(ErrorKind.UNAUTHORIZED, reason, message or reason.replace("_", " "))


def is_failure(result: Any) -> bool:
    """Check whether a service result is a Failure"""
    return isinstance(result, Failure)
