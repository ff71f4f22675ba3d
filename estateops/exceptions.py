"""Domain exception hierarchy for the lifecycle and notification core."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` at the class level; callers provide ``message``
    and an optional ``details`` list.
    """

    code: str = "APP_ERROR"

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"


class ConflictException(AppException):
    code = "CONFLICT"


class ValidationException(AppException):
    code = "VALIDATION_ERROR"


class BusinessRuleException(AppException):
    code = "BUSINESS_RULE_VIOLATION"


class RuleConfigurationException(AppException):
    """The transition rule table or subject registry is inconsistent."""

    code = "RULE_CONFIGURATION_ERROR"


class ChainIntegrityException(AppException):
    """A replacement chain contains a cycle or a broken link."""

    code = "CHAIN_INTEGRITY_ERROR"
