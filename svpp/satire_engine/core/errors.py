"""
Satire Engine exceptions.

Every error raised by the engine derives from SatireEngineError so the
channel layer can turn it into a response envelope, while still telling
user-correctable problems (validation, not found) apart from system
problems (configuration, provider failures).
"""


class SatireEngineError(Exception):
    """Base exception for all Satire Engine errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(SatireEngineError):
    """Raised when settings, API keys or models are missing or invalid."""
    pass


class ValidationError(SatireEngineError):
    """Raised when user input fails validation."""
    pass


class NotFoundError(SatireEngineError, LookupError):
    """Raised when an entity id does not resolve."""

    def __init__(self, entity: str, entity_id: str = None):
        message = f"{entity} not found"
        details = {"id": entity_id} if entity_id else None
        super().__init__(message, details)
        self.entity = entity
        self.entity_id = entity_id


class DuplicateError(SatireEngineError):
    """Raised when a unique value (e.g. user email) is already taken."""
    pass


class AuthenticationError(SatireEngineError):
    """Raised on bad credentials or an invalid token."""
    pass


class ProviderError(SatireEngineError):
    """Raised when an LLM provider or remote API call fails."""

    def __init__(self, provider: str, message: str, details: dict = None):
        super().__init__(f"{provider} error: {message}", details)
        self.provider = provider
