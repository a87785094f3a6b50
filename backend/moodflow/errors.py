"""
Domain error taxonomy shared by the stores, services and API blueprints.
"""
from typing import Dict, Any, Optional


class MoodflowError(Exception):
    """Base class for all application errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a JSON-serializable response body."""
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(MoodflowError):
    """Missing or malformed user input."""
    status_code = 400


class InvalidCredentials(MoodflowError):
    status_code = 401


class AccountExists(MoodflowError):
    status_code = 409


class NotFound(MoodflowError):
    """Entry (or other record) missing. Should not occur in normal flow."""
    status_code = 404


class UpgradeRequired(MoodflowError):
    """A tier denial. Surfaced to the client as an upgrade prompt."""
    status_code = 403

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["upgrade_required"] = True
        return body


class LimitExceeded(UpgradeRequired):
    """Free-tier entry cap reached."""


class PremiumRequired(UpgradeRequired):
    """Feature restricted to premium subscribers."""


class ExternalServiceError(MoodflowError):
    """Analysis, payment or persistence failure. Retryable by the user."""
    status_code = 502


class AnalysisError(ExternalServiceError):
    pass


class PaymentError(ExternalServiceError):
    status_code = 402


class PersistenceError(ExternalServiceError):
    status_code = 503


class ReportGenerationFailed(MoodflowError):
    status_code = 500
