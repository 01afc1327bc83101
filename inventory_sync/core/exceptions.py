from typing import Any, Dict, List, Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class ConfigurationError(BaseServiceError):
    """Raised when required run parameters are missing or invalid. Fatal for the run."""
    pass

class SheetLayoutError(ConfigurationError):
    """Raised when the sheet's header row lacks a required column."""
    pass

class LeaseHeldError(BaseServiceError):
    """Raised when another run holds the reverse sync lease."""
    pass

class TransportError(BaseServiceError):
    """Raised when an HTTP/network call to the platform or the sheet fails."""
    pass

class SheetsAPIError(TransportError):
    """Raised when Google Sheets API calls fail."""
    pass

class PlatformServiceError(BaseServiceError):
    """Base exception for platform service errors."""
    pass

class PlatformRejected(PlatformServiceError):
    """Raised when Shopify refuses a request (userErrors or GraphQL errors)."""

    def __init__(self, message: str, user_errors: Optional[List[Dict[str, Any]]] = None):
        self.user_errors = user_errors or []
        super().__init__(message)

class PreconditionFailed(PlatformRejected):
    """Raised when a conditional set is rejected because compareQuantity is stale."""
    pass

class ValidationError(BaseServiceError):
    """Raised when data validation fails."""
    pass

class MalformedRowError(ValidationError):
    """Raised when a sheet row cannot be parsed into a sync candidate."""
    pass
