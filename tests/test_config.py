"""Tests for configuration validation and environment loading."""
import pytest

from azdo_core.config import (
    AuthConfig,
    AuthMethod,
    DevOpsConfig,
    build_config,
    load_config,
)
from azdo_core.errors import DevOpsError, ErrorKind

ORG_URL = "https://dev.azure.com/testorg"
PAT = "mock-pat-1234567890abcdef1234567890abcdef"


class TestAuthMethod:
    def test_canonical_values(self):
        assert AuthMethod("static-token") is AuthMethod.STATIC_TOKEN
        assert AuthMethod("service-identity") is AuthMethod.SERVICE_IDENTITY
        assert AuthMethod("cli-identity") is AuthMethod.CLI_IDENTITY

    def test_legacy_aliases(self):
        assert AuthMethod("pat") is AuthMethod.STATIC_TOKEN
        assert AuthMethod("azure-identity") is AuthMethod.SERVICE_IDENTITY
        assert AuthMethod("AZURE-CLI") is AuthMethod.CLI_IDENTITY

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            AuthMethod("kerberos")


class TestBuildConfig:
    """Test DevOpsConfig validation rules."""

    def test_valid_static_token_config(self):
        config = build_config(organization_url=ORG_URL + "/", static_token=PAT)
        assert config.organization_url == ORG_URL
        assert config.auth_method is AuthMethod.STATIC_TOKEN
        assert config.effective_api_version == "7.1"

    def test_token_not_in_repr(self):
        config = build_config(organization_url=ORG_URL, static_token=PAT)
        assert PAT not in repr(config)
        assert PAT not in repr(config.auth_config())

    def test_identity_methods_need_no_token(self):
        config = build_config(organization_url=ORG_URL, auth_method="azure-cli")
        assert config.auth_method is AuthMethod.CLI_IDENTITY
        assert config.static_token is None

    def test_missing_organization_url(self):
        with pytest.raises(DevOpsError) as exc_info:
            build_config(organization_url="", static_token=PAT)
        error = exc_info.value
        assert error.kind is ErrorKind.VALIDATION
        assert any("Organization URL is required" in v["message"] for v in error.response)

    def test_invalid_organization_url(self):
        with pytest.raises(DevOpsError) as exc_info:
            build_config(organization_url="not-a-url", static_token=PAT)
        assert any("Invalid organization URL" in v["message"] for v in exc_info.value.response)

    def test_non_azure_domain(self):
        with pytest.raises(DevOpsError) as exc_info:
            build_config(organization_url="https://example.com/org", static_token=PAT)
        assert any("Invalid organization URL domain" in v["message"] for v in exc_info.value.response)

    def test_legacy_visualstudio_domain(self):
        config = build_config(organization_url="https://testorg.visualstudio.com", static_token=PAT)
        assert config.organization_url == "https://testorg.visualstudio.com"

    def test_static_token_required(self):
        with pytest.raises(DevOpsError) as exc_info:
            build_config(organization_url=ORG_URL, auth_method=AuthMethod.STATIC_TOKEN)
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert any("Personal Access Token is required" in v["message"] for v in exc_info.value.response)

    @pytest.mark.parametrize("version", ["6.0", "7.1", "6.0-preview", "6.0-preview.1"])
    def test_valid_api_versions(self, version):
        config = build_config(organization_url=ORG_URL, static_token=PAT, api_version=version)
        assert config.effective_api_version == version

    @pytest.mark.parametrize("version", ["bad-version", "6", "6.0-beta", "v6.0"])
    def test_invalid_api_versions(self, version):
        with pytest.raises(DevOpsError) as exc_info:
            build_config(organization_url=ORG_URL, static_token=PAT, api_version=version)
        assert any("Invalid API version format" in v["message"] for v in exc_info.value.response)

    def test_auth_config(self):
        config = build_config(organization_url=ORG_URL, static_token=PAT, default_project="Fabrikam")
        assert config.auth_config() == AuthConfig(
            method=AuthMethod.STATIC_TOKEN, organization_url=ORG_URL, static_token=PAT
        )
        assert config.default_project == "Fabrikam"


class TestLoadConfig:
    """Test loading configuration from the environment."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in (
            "AZURE_DEVOPS_ORG_URL",
            "AZURE_DEVOPS_AUTH_METHOD",
            "AZURE_DEVOPS_PAT",
            "AZURE_DEVOPS_DEFAULT_PROJECT",
            "AZURE_DEVOPS_API_VERSION",
        ):
            # set-then-delete so teardown also clears values written by load_dotenv
            monkeypatch.setenv(name, "")
            monkeypatch.delenv(name)

    def test_load_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AZURE_DEVOPS_ORG_URL", ORG_URL)
        monkeypatch.setenv("AZURE_DEVOPS_PAT", PAT)
        monkeypatch.setenv("AZURE_DEVOPS_DEFAULT_PROJECT", "Fabrikam")
        monkeypatch.setenv("AZURE_DEVOPS_API_VERSION", "7.0")

        config = load_config(env_file=str(tmp_path / "missing.env"))

        assert isinstance(config, DevOpsConfig)
        assert config.organization_url == ORG_URL
        assert config.static_token == PAT
        assert config.default_project == "Fabrikam"
        assert config.api_version == "7.0"

    def test_load_from_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            f"AZURE_DEVOPS_ORG_URL={ORG_URL}\nAZURE_DEVOPS_AUTH_METHOD=azure-identity\n"
        )
        config = load_config(env_file=str(env_file))
        assert config.auth_method is AuthMethod.SERVICE_IDENTITY

    def test_missing_environment(self, tmp_path):
        with pytest.raises(DevOpsError) as exc_info:
            load_config(env_file=str(tmp_path / "missing.env"))
        assert exc_info.value.kind is ErrorKind.VALIDATION
