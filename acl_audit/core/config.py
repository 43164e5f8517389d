"""Run configuration from the environment, .env files and CLI overrides"""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from acl_audit.core.errors import ConfigurationError

GIT_REPOSITORIES_NAMESPACE_ID = "2e9eb7ed-3c0a-47d4-87c1-0ffdd275fd87"

# Environment variables accepted for the required connection values
REQUIRED_ENV_VARS = {
    "org_url": "AZURE_DEVOPS_ORG_URL",
    "project": "AZURE_DEVOPS_PROJECT",
    "pat": "AZURE_DEVOPS_PAT",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ACL_AUDIT_",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="acl-audit", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")

    # Connection
    org_url: str = Field(
        ...,
        validation_alias=AliasChoices("org_url", "AZURE_DEVOPS_ORG_URL"),
        description="Organization base address, e.g. https://dev.azure.com/contoso",
    )
    project: str = Field(
        ...,
        validation_alias=AliasChoices("project", "AZURE_DEVOPS_PROJECT"),
        description="Project name or id",
    )
    pat: str = Field(
        ...,
        validation_alias=AliasChoices("pat", "AZURE_DEVOPS_PAT"),
        description="Personal access token",
    )
    api_version: str = Field(default="7.0", description="REST API version")
    graph_api_version: str = Field(
        default="7.1-preview.1", description="Graph API version"
    )
    request_timeout_seconds: float = Field(
        default=30.0, description="HTTP request timeout in seconds"
    )
    request_delay_seconds: float = Field(
        default=0.1, description="Pause between repositories to respect rate limits"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log output format"
    )

    # Scopes
    include_branch_scope: bool = Field(
        default=False, description="Audit the branch scope ahead of the repository"
    )
    branch: Optional[str] = Field(
        default=None, description="Branch to audit (defaults to each repository's default branch)"
    )
    repository_filter: Optional[str] = Field(
        default=None, description="Only audit repositories whose name contains this text"
    )
    git_namespace_name: str = Field(
        default="Git Repositories", description="Security namespace holding Git ACLs"
    )
    git_namespace_id: str = Field(
        default=GIT_REPOSITORIES_NAMESPACE_ID,
        description="Fallback id when the namespace cannot be looked up by name",
    )
    use_namespace_catalog: bool = Field(
        default=False,
        description="Build the permission catalog from the service's namespace definition",
    )

    # Outputs
    output_path: Path = Field(
        default=Path("repository-permissions.csv"), description="Permission report path"
    )
    policies_output_path: Path = Field(
        default=Path("branch-policies.csv"), description="Branch policy report path"
    )
    policy_permissions_output_path: Path = Field(
        default=Path("branch-policy-permissions.csv"),
        description="Report of who can change or bypass branch policies",
    )
    identity_catalog_path: Optional[Path] = Field(
        default=None, description="Identity catalog JSON used as a resolution fallback"
    )

    @field_validator("org_url", "project", "pat")
    @classmethod
    def validate_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("org_url")
    @classmethod
    def validate_org_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("request_delay_seconds", "request_timeout_seconds")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @property
    def organization(self) -> str:
        return self.org_url.rsplit("/", 1)[-1]

    @property
    def graph_url(self) -> str:
        return f"https://vssps.dev.azure.com/{self.organization}"


def _describe_errors(exc: ValidationError) -> List[str]:
    fields = []
    for error in exc.errors():
        loc = error.get("loc") or ("settings",)
        name = str(loc[0])
        env_var = REQUIRED_ENV_VARS.get(name)
        label = f"{name} ({env_var})" if env_var else name
        if label not in fields:
            fields.append(label)
    return fields


def load_settings(**overrides: Any) -> Settings:
    """Load settings from the environment, .env and explicit overrides.

    Overrides whose value is None are ignored so CLI flags that were not
    given fall through to the environment.

    Raises:
        ConfigurationError: If a required value is missing or invalid.
    """
    values: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    try:
        settings = Settings(**values)
    except ValidationError as e:
        fields = _describe_errors(e)
        raise ConfigurationError(
            f"Missing or invalid configuration: {', '.join(fields)}", fields
        ) from e
    return settings
