"""Unified error taxonomy for metadata and guide providers."""

from enum import Enum
from typing import Dict, Optional


class ErrorCategory(Enum):
    """How the scraping workflow reacts to a provider error."""
    NOT_FOUND = "not_found"        # definitive miss - eligible for the completion cache
    RATE_LIMITED = "rate_limited"  # back off, then move on to the next provider
    UNSUPPORTED = "unsupported"    # provider has no id for the console - skip quietly
    OTHER = "other"                # log and move on


class ProviderError(Exception):
    """Base exception for provider errors."""
    pass


class NotFoundError(ProviderError):
    """The provider has no entry for the ROM."""
    pass


class RateLimitedError(ProviderError):
    """The provider asked us to slow down."""
    pass


class AuthFailedError(ProviderError):
    """Credentials were rejected or are missing."""
    pass


class PlatformUnsupportedError(ProviderError):
    """The console has no identifier at this provider."""
    pass


class NetworkError(ProviderError):
    """Transport failure or unexpected HTTP status."""
    pass


class ParseError(ProviderError):
    """Response body could not be interpreted."""
    pass


class ProviderIOError(ProviderError):
    """Local filesystem failure while saving a download."""
    pass


# HTTP status code mapping (ScreenScraper semantics)
HTTP_STATUS_MESSAGES = {
    400: "Malformed request",
    401: "API closed for non-members (server overload)",
    403: "Invalid credentials",
    404: "Game not found",
    423: "API fully closed",
    426: "Software blacklisted",
    429: "Thread limit reached",
    430: "Daily quota exceeded",
    431: "Too many not-found requests",
}


def get_error_message(status_code: int, messages: Optional[Dict[int, str]] = None) -> str:
    """
    Get user-friendly error message for HTTP status code.

    Args:
        status_code: HTTP status code
        messages: Status table to consult (defaults to HTTP_STATUS_MESSAGES)

    Returns:
        Error message string
    """
    table = HTTP_STATUS_MESSAGES if messages is None else messages
    return table.get(status_code, f"Unexpected HTTP status {status_code}")


def categorize_error(exception: Exception) -> ErrorCategory:
    """
    Categorize a provider error for the scraping workflow.

    Args:
        exception: Exception raised by a provider call

    Returns:
        ErrorCategory
    """
    if isinstance(exception, NotFoundError):
        return ErrorCategory.NOT_FOUND
    if isinstance(exception, RateLimitedError):
        return ErrorCategory.RATE_LIMITED
    if isinstance(exception, PlatformUnsupportedError):
        return ErrorCategory.UNSUPPORTED
    return ErrorCategory.OTHER
