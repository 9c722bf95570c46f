"""
Custom Exceptions

Application-specific exception classes for better error handling
and more informative error messages.

Provider failures are always raised as a SourceError subclass by the
adapters and absorbed by the fan-out coordinator. Pipeline-level outcomes
(no results, partial fulfillment, deadline exceeded) are reported through
SearchResult.status rather than raised.
"""
from typing import Optional


class MedSearchError(Exception):
    """Base exception for all application errors."""
    pass


class ConfigurationError(MedSearchError):
    """The hosting application supplied an unusable configuration."""
    pass


# === Data Source Errors ===

class SourceError(MedSearchError):
    """Base exception for data source (provider) errors."""
    def __init__(self, source_name: str, message: str):
        self.source_name = source_name
        self.message = message
        super().__init__(f"{source_name}: {message}")


class SourceTimeoutError(SourceError):
    """Data source timed out during request."""
    def __init__(self, source_name: str, timeout_seconds: float):
        super().__init__(source_name, f"Request timed out after {timeout_seconds}s")
        self.timeout_seconds = timeout_seconds


class SourceRateLimitError(SourceError):
    """Data source rate limit exceeded."""
    def __init__(self, source_name: str, retry_after: Optional[int] = None):
        msg = "Rate limit exceeded"
        if retry_after:
            msg += f", retry after {retry_after}s"
        super().__init__(source_name, msg)
        self.retry_after = retry_after


class SourceHTTPError(SourceError):
    """Data source returned an HTTP error status."""
    def __init__(self, source_name: str, status_code: int, detail: Optional[str] = None):
        msg = f"HTTP {status_code}"
        if detail:
            msg += f": {detail}"
        super().__init__(source_name, msg)
        self.status_code = status_code


class SourceAuthError(SourceHTTPError):
    """Data source rejected our credentials (HTTP 401/403)."""
    def __init__(self, source_name: str, status_code: int = 401):
        super().__init__(source_name, status_code, "authentication failed")


class SourceParseError(SourceError):
    """Failed to parse response from data source."""
    def __init__(self, source_name: str, detail: Optional[str] = None):
        msg = "Failed to parse response"
        if detail:
            msg += f": {detail}"
        super().__init__(source_name, msg)


def is_transient(error: BaseException) -> bool:
    """Whether a provider error is worth retrying within the same run."""
    if isinstance(error, (SourceRateLimitError, SourceTimeoutError)):
        return True
    if isinstance(error, SourceAuthError):
        return False
    if isinstance(error, SourceHTTPError):
        return error.status_code >= 500
    return False
