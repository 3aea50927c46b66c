"""
Exception types shared by the pipeline and the API layer.

The backend maps each class to an HTTP status; see backend/main.py.
"""


class LeadGenError(Exception):
    """Base class for all pipeline errors."""

    status_code = 500


class ValidationError(LeadGenError):
    """Missing or malformed input; nothing was attempted."""

    status_code = 400


class NotFoundError(LeadGenError):
    """Campaign, rule, neighborhood or venue does not exist."""

    status_code = 404


class InvalidBoundaryError(LeadGenError):
    """Neighborhood has neither a bounding box nor a center point."""

    status_code = 400


class DuplicateVenueError(LeadGenError):
    """A venue with the same external id already exists in the campaign."""

    status_code = 409


class ProviderError(LeadGenError):
    """Places, geocoding or area-hierarchy provider failed."""

    status_code = 502


class AIProviderError(LeadGenError):
    """Generic failure from an AI text provider."""

    status_code = 502


class QuotaExceededError(AIProviderError):
    """Model quota or rate limit hit; the next model should be tried."""


class ModelUnavailableError(AIProviderError):
    """Model not found or not supported; the next model should be tried."""


class AllProvidersExhaustedError(AIProviderError):
    """Every model of every configured AI provider is exhausted."""

    status_code = 503


class NotionAuthError(LeadGenError):
    """Notion rejected the integration token or database access."""

    status_code = 401
