"""Tests for core/exceptions.py - Custom exception hierarchy."""
import pytest


class TestBaseExceptions:
    """Test the base exception classes."""

    def test_medsearch_error_is_exception(self):
        """Base error should inherit from Exception."""
        from medsearch.core.exceptions import MedSearchError

        assert issubclass(MedSearchError, Exception)

    def test_medsearch_error_message(self):
        """Base error should store message."""
        from medsearch.core.exceptions import MedSearchError

        error = MedSearchError("Test error message")
        assert str(error) == "Test error message"

    def test_configuration_error_is_medsearch_error(self):
        """ConfigurationError should be catchable as the base error."""
        from medsearch.core.exceptions import ConfigurationError, MedSearchError

        assert issubclass(ConfigurationError, MedSearchError)


class TestSourceExceptions:
    """Test source-related exceptions."""

    def test_source_error_includes_source_name(self):
        """SourceError should include source name in message."""
        from medsearch.core.exceptions import SourceError

        error = SourceError("PubMed", "Connection failed")
        assert "PubMed" in str(error)
        assert "Connection failed" in str(error)
        assert error.source_name == "PubMed"
        assert error.message == "Connection failed"

    def test_source_timeout_error(self):
        """SourceTimeoutError should include timeout duration."""
        from medsearch.core.exceptions import SourceTimeoutError

        error = SourceTimeoutError("OpenAlex", 30.0)
        assert "OpenAlex" in str(error)
        assert "30" in str(error)
        assert error.timeout_seconds == 30.0

    def test_source_rate_limit_error(self):
        """SourceRateLimitError should include retry_after."""
        from medsearch.core.exceptions import SourceRateLimitError

        error = SourceRateLimitError("CrossRef", 60)
        assert "CrossRef" in str(error)
        assert "60" in str(error)
        assert error.retry_after == 60

    def test_source_http_error_keeps_status(self):
        """SourceHTTPError should expose the status code."""
        from medsearch.core.exceptions import SourceHTTPError

        error = SourceHTTPError("EuropePMC", 502, "Bad Gateway")
        assert error.status_code == 502
        assert "502" in str(error)
        assert "Bad Gateway" in str(error)

    def test_source_auth_error_is_http_error(self):
        """SourceAuthError should be an HTTP error with 401 by default."""
        from medsearch.core.exceptions import SourceAuthError, SourceHTTPError

        error = SourceAuthError("SemanticScholar")
        assert isinstance(error, SourceHTTPError)
        assert error.status_code == 401

    def test_source_error_hierarchy(self):
        """All source errors should inherit from SourceError."""
        from medsearch.core.exceptions import (
            SourceError,
            SourceTimeoutError,
            SourceRateLimitError,
            SourceParseError,
            SourceHTTPError,
            SourceAuthError,
        )

        assert issubclass(SourceTimeoutError, SourceError)
        assert issubclass(SourceRateLimitError, SourceError)
        assert issubclass(SourceParseError, SourceError)
        assert issubclass(SourceHTTPError, SourceError)
        assert issubclass(SourceAuthError, SourceError)


class TestIsTransient:
    """Test which provider errors are retried."""

    def test_rate_limit_and_timeout_are_transient(self):
        """Throttling and timeouts should be retried."""
        from medsearch.core.exceptions import SourceRateLimitError, SourceTimeoutError, is_transient

        assert is_transient(SourceRateLimitError("PubMed"))
        assert is_transient(SourceTimeoutError("PubMed", 5.0))

    def test_server_errors_are_transient(self):
        """5xx responses should be retried."""
        from medsearch.core.exceptions import SourceHTTPError, is_transient

        assert is_transient(SourceHTTPError("OpenAlex", 503))
        assert is_transient(SourceHTTPError("OpenAlex", 500))

    def test_client_errors_are_not_transient(self):
        """4xx responses, auth failures and parse errors should not be retried."""
        from medsearch.core.exceptions import (
            SourceAuthError,
            SourceHTTPError,
            SourceParseError,
            is_transient,
        )

        assert not is_transient(SourceHTTPError("OpenAlex", 400))
        assert not is_transient(SourceAuthError("OpenAlex", 403))
        assert not is_transient(SourceParseError("OpenAlex", "bad json"))

    def test_non_source_errors_are_not_transient(self):
        """Unrelated exceptions should never be retried."""
        from medsearch.core.exceptions import is_transient

        assert not is_transient(ValueError("boom"))
