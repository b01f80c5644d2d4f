"""
Vacancy API - Error taxonomy.

Every error the API reports to clients derives from VacancyAPIError and
carries its HTTP status code. main.py registers one exception handler that
renders them as {"success": false, "message": ...} (plus "errors" for
validation failures).
"""
from typing import Dict, List, Optional


class VacancyAPIError(Exception):
    """Base class for errors surfaced to API clients."""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"success": False, "message": self.message}


class VacancyValidationError(VacancyAPIError):
    """Malformed or missing fields. Recoverable by the caller."""
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors

    def to_payload(self) -> dict:
        return {"success": False, "errors": self.errors, "message": self.message}


class VacancyNotFoundError(VacancyAPIError):
    status_code = 404
    default_message = "Vacancy not found"


class PersistenceError(VacancyAPIError):
    """
    Storage backend failure.

    The message shown to clients is always generic; the underlying
    exception is logged by whoever raises this.
    """
    status_code = 500
    default_message = "Internal server error"


class AuthenticationError(VacancyAPIError):
    status_code = 401
    default_message = "Not authenticated"


class RateLimitExceeded(VacancyAPIError):
    """Client exceeded its request allowance. Not an application fault."""
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."

    def __init__(self, decision=None, message: Optional[str] = None):
        super().__init__(message)
        self.decision = decision
