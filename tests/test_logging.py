"""Tests for logging processors"""

from acl_audit.infrastructure.logging import bind_context, clear_context
from acl_audit.infrastructure.logging_processors import (
    add_run_context,
    add_service_context,
    format_exception_info,
    is_sensitive_key,
    sanitize_sensitive_data,
    set_log_severity,
)


class TestSanitize:
    """Test credential redaction"""

    def test_credentials_are_redacted(self):
        """Test PATs and auth headers never reach the log"""
        event = sanitize_sensitive_data(
            None,
            "info",
            {
                "event": "api_request",
                "pat": "secret",
                "Authorization": "Basic abc",
                "headers": {"auth_header": "Basic abc", "accept": "json"},
                "items": [{"access_token": "t"}],
            },
        )

        assert event["pat"] == "***REDACTED***"
        assert event["Authorization"] == "***REDACTED***"
        assert event["headers"] == {"auth_header": "***REDACTED***", "accept": "json"}
        assert event["items"] == [{"access_token": "***REDACTED***"}]

    def test_scope_tokens_are_kept(self):
        """Test ACL tokens are not mistaken for credentials"""
        event = sanitize_sensitive_data(None, "info", {"scope_token": "repoV2/p/r", "repository": "web"})

        assert event == {"scope_token": "repoV2/p/r", "repository": "web"}

    def test_sensitive_key_patterns(self):
        """Test prefix and suffix matches"""
        assert is_sensitive_key("PAT")
        assert is_sensitive_key("azure_devops_pat")
        assert is_sensitive_key("token_value")
        assert not is_sensitive_key("patch")
        assert not is_sensitive_key("token_count")


class TestContextProcessors:
    """Test context enrichment"""

    def test_run_context(self):
        """Test bound run values are copied onto events"""
        clear_context()
        bind_context(run_id="abc", repository="web", unrelated="x")
        try:
            event = add_run_context(None, "info", {"event": "e", "repository": "explicit"})
        finally:
            clear_context()

        assert event["run_id"] == "abc"
        assert event["repository"] == "explicit"
        assert "unrelated" not in event

    def test_service_and_severity(self):
        """Test service name and severity fields"""
        event = set_log_severity(None, "warning", add_service_context(None, "warning", {"level": "warning"}))

        assert event["service"] == "acl-audit"
        assert event["severity"] == "WARNING"

    def test_exception_info(self):
        """Test exceptions are rendered into a structured field"""
        try:
            raise ValueError("bad branch")
        except ValueError as e:
            event = format_exception_info(None, "error", {"exc_info": e})

        assert event["exception"]["type"] == "ValueError"
        assert event["exception"]["message"] == "bad branch"
        assert "exc_info" not in event
