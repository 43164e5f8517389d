"""CLI context management."""

from dataclasses import dataclass
from typing import Any, Optional

from rich.console import Console

from acl_audit.cli.utils.config import ConfigManager
from acl_audit.cli.utils.output import OutputFormatter
from acl_audit.core.config import Settings, load_settings
from acl_audit.infrastructure.logging import setup_logging


@dataclass
class CLIContext:
    """Context object passed through CLI commands."""

    debug: bool
    config: ConfigManager
    formatter: OutputFormatter
    console: Console
    log_format: Optional[str] = None

    def get_settings(self, **overrides: Any) -> Settings:
        """
        Load settings from environment, config file and command flags, then
        configure logging from them.

        Raises:
            ConfigurationError: If required values are missing or invalid
        """
        values = self.config.merged_with(overrides)
        if self.debug:
            values["log_level"] = "DEBUG"
        if self.log_format:
            values["log_format"] = self.log_format
        settings = load_settings(**values)
        setup_logging(settings.log_level, settings.log_format)
        return settings

    def get_audit_service(self, settings: Settings):
        """
        Get an audit service wired to the configured organization.

        Returns:
            AuditService instance
        """
        from acl_audit.application.services.audit_service import AuditService

        return AuditService.from_settings(settings)
