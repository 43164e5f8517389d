"""Tests for settings loading and the CLI configuration file"""

import pytest

from acl_audit.cli.utils.config import ConfigManager
from acl_audit.core.config import load_settings
from acl_audit.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run each test without ambient credentials or a .env file"""
    for name in ("AZURE_DEVOPS_ORG_URL", "AZURE_DEVOPS_PROJECT", "AZURE_DEVOPS_PAT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestSettings:
    """Test typed settings"""

    def test_from_environment(self, monkeypatch):
        """Test the required values come from the documented variables"""
        monkeypatch.setenv("AZURE_DEVOPS_ORG_URL", "https://dev.azure.com/contoso/")
        monkeypatch.setenv("AZURE_DEVOPS_PROJECT", "Platform")
        monkeypatch.setenv("AZURE_DEVOPS_PAT", "secret-pat")

        settings = load_settings()

        assert settings.org_url == "https://dev.azure.com/contoso"
        assert settings.organization == "contoso"
        assert settings.graph_url == "https://vssps.dev.azure.com/contoso"
        assert settings.project == "Platform"
        assert settings.request_delay_seconds == 0.1
        assert settings.include_branch_scope is False

    def test_overrides_win(self, monkeypatch):
        """Test explicit values override the environment; None is ignored"""
        monkeypatch.setenv("AZURE_DEVOPS_ORG_URL", "https://dev.azure.com/contoso")
        monkeypatch.setenv("AZURE_DEVOPS_PROJECT", "Platform")
        monkeypatch.setenv("AZURE_DEVOPS_PAT", "secret-pat")

        settings = load_settings(project="Other", branch=None, include_branch_scope=True)

        assert settings.project == "Other"
        assert settings.branch is None
        assert settings.include_branch_scope is True

    def test_each_load_reads_the_environment(self, monkeypatch):
        """Test settings are not memoized between loads"""
        monkeypatch.setenv("AZURE_DEVOPS_ORG_URL", "https://dev.azure.com/contoso")
        monkeypatch.setenv("AZURE_DEVOPS_PROJECT", "Platform")
        monkeypatch.setenv("AZURE_DEVOPS_PAT", "secret-pat")
        first = load_settings()

        monkeypatch.setenv("AZURE_DEVOPS_PROJECT", "Mobile")
        second = load_settings()

        assert first.project == "Platform"
        assert second.project == "Mobile"
        assert first is not second

    def test_dotenv_file(self, tmp_path):
        """Test values read from .env in the working directory"""
        (tmp_path / ".env").write_text(
            "AZURE_DEVOPS_ORG_URL=https://dev.azure.com/fabrikam\n"
            "AZURE_DEVOPS_PROJECT=Web\n"
            "AZURE_DEVOPS_PAT=abc\n"
            "ACL_AUDIT_INCLUDE_BRANCH_SCOPE=true\n"
        )

        settings = load_settings()

        assert settings.organization == "fabrikam"
        assert settings.include_branch_scope is True

    def test_missing_values_are_named(self):
        """Test the error lists every missing input"""
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        fields = exc_info.value.fields
        assert "org_url (AZURE_DEVOPS_ORG_URL)" in fields
        assert "project (AZURE_DEVOPS_PROJECT)" in fields
        assert "pat (AZURE_DEVOPS_PAT)" in fields

    @pytest.mark.parametrize(
        "overrides",
        [
            {"org_url": "dev.azure.com/contoso"},
            {"pat": "   "},
            {"request_delay_seconds": -1},
            {"log_format": "xml"},
        ],
    )
    def test_invalid_values(self, overrides):
        """Test validation failures become configuration errors"""
        values = {"org_url": "https://dev.azure.com/contoso", "project": "P", "pat": "x"}
        values.update(overrides)

        with pytest.raises(ConfigurationError):
            load_settings(**values)


class TestConfigManager:
    """Test the optional configuration file"""

    def test_yaml_file(self, tmp_path):
        """Test YAML values with dashed keys"""
        path = tmp_path / "acl-audit.yml"
        path.write_text("project: Platform\ninclude-branch-scope: true\nunrelated: 1\n")

        config = ConfigManager(path)

        assert config.get_all() == {"project": "Platform", "include_branch_scope": True}

    def test_toml_file(self, tmp_path):
        """Test TOML values"""
        path = tmp_path / "acl-audit.toml"
        path.write_text('project = "Platform"\nrequest_delay_seconds = 0.5\n')

        assert ConfigManager(path).get("request_delay_seconds") == 0.5

    def test_flags_override_file(self, tmp_path):
        """Test merge order"""
        path = tmp_path / "acl-audit.yml"
        path.write_text("project: FromFile\nbranch: develop\n")

        merged = ConfigManager(path).merged_with({"project": "FromFlag", "branch": None})

        assert merged == {"project": "FromFlag", "branch": "develop"}

    def test_no_file(self):
        """Test running without a configuration file"""
        assert ConfigManager().get_all() == {}

    def test_missing_and_invalid_files(self, tmp_path):
        """Test unusable files are configuration errors"""
        with pytest.raises(ConfigurationError):
            ConfigManager(tmp_path / "missing.yml")

        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            ConfigManager(path)
