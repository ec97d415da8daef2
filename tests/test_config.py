"""
Test suite for the configuration module.
"""

import json

import pytest
import yaml

from kb_assistant.config import (
    AzureSettings,
    ConfigurationError,
    ProjectIdentity,
    load_settings,
    load_user_secrets,
)


FLAT_SECRETS = {
    "Azure:Endpoint": "https://cats.cognitiveservices.azure.com/",
    "Azure:Key": "language-key",
    "Azure:ProjectName": "cat-facts",
    "Azure:DeploymentName": "production",
    "Azure:SpeechKey": "speech-key",
    "Azure:SpeechRegion": "westus",
}


def write_flat_secrets(path, **changes):
    secrets = dict(FLAT_SECRETS)
    for key, value in changes.items():
        if value is None:
            secrets.pop(key)
        else:
            secrets[key] = value
    path.write_text(json.dumps(secrets), encoding="utf-8")


class TestUserSecrets:
    """Test reading the user secrets file."""

    def test_missing_file(self, tmp_path):
        """Test that a missing secrets file contributes nothing."""
        assert load_user_secrets(tmp_path / "absent.yaml") == {}

    def test_empty_file(self, tmp_path):
        """Test that an empty secrets file contributes nothing."""
        path = tmp_path / "secrets.yaml"
        path.write_text("", encoding="utf-8")
        assert load_user_secrets(path) == {}

    def test_flat_keys_are_nested(self, tmp_path):
        """Test that flat Section:Key names become nested sections."""
        path = tmp_path / "secrets.json"
        write_flat_secrets(path)

        result = load_user_secrets(path)
        assert result["Azure"]["Endpoint"] == "https://cats.cognitiveservices.azure.com/"
        assert result["Azure"]["SpeechRegion"] == "westus"

    def test_nested_sections(self, tmp_path):
        """Test that nested sections load unchanged."""
        path = tmp_path / "secrets.yaml"
        path.write_text(yaml.safe_dump({"Azure": {"Key": "abc", "SpeechRegion": "eastus"}}), encoding="utf-8")

        result = load_user_secrets(path)
        assert result == {"Azure": {"Key": "abc", "SpeechRegion": "eastus"}}

    def test_not_a_mapping(self, tmp_path):
        """Test that a secrets file without a mapping is fatal."""
        path = tmp_path / "secrets.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_user_secrets(path)


class TestLoadSettings:
    """Test layered settings loading."""

    def test_loads_from_flat_secrets(self, isolated_env):
        """Test loading every Azure value from a flat secrets file."""
        write_flat_secrets(isolated_env)

        settings = load_settings(_env_file=None)
        azure = settings.AZURE
        assert azure.endpoint_url == "https://cats.cognitiveservices.azure.com/"
        assert azure.key.get_secret_value() == "language-key"
        assert azure.project_name == "cat-facts"
        assert azure.deployment_name == "production"
        assert azure.speech_key.get_secret_value() == "speech-key"
        assert azure.speech_region == "westus"

    def test_loads_from_nested_yaml(self, isolated_env, azure_values):
        """Test loading Azure values from a nested YAML file."""
        isolated_env.write_text(yaml.safe_dump({"Azure": azure_values}), encoding="utf-8")

        settings = load_settings(_env_file=None)
        assert settings.AZURE.project_name == "cat-facts"

    def test_environment_overrides_secrets(self, isolated_env, monkeypatch):
        """Test that environment variables override the secrets file."""
        write_flat_secrets(isolated_env)
        monkeypatch.setenv("AZURE__PROJECT_NAME", "dog-facts")

        settings = load_settings(_env_file=None)
        assert settings.AZURE.project_name == "dog-facts"
        assert settings.AZURE.deployment_name == "production"

    def test_environment_only(self, isolated_env, monkeypatch, azure_values):
        """Test loading every Azure value from the environment."""
        for name, value in azure_values.items():
            monkeypatch.setenv(f"AZURE__{name.upper()}", value)

        settings = load_settings(_env_file=None)
        assert settings.AZURE.speech_region == "westus"

    def test_defaults(self, isolated_env):
        """Test the interaction defaults."""
        write_flat_secrets(isolated_env)

        settings = load_settings(_env_file=None)
        assert settings.EXIT_KEYWORD == "exit"
        assert settings.FAREWELL_MESSAGE == "Goodbye!"
        assert settings.INPUT_PROMPT == "Q: "
        assert settings.AZURE.speech_recognition_language is None

    def test_missing_value_names_key(self, isolated_env):
        """Test that a missing value is reported by its key name."""
        write_flat_secrets(isolated_env, **{"Azure:SpeechRegion": None})

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(_env_file=None)
        assert "Azure:SpeechRegion" in str(exc_info.value)

    def test_missing_section(self, isolated_env):
        """Test that a missing Azure section lists the required keys."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(_env_file=None)

        message = str(exc_info.value)
        assert "Azure section is missing" in message
        assert "Azure:Endpoint" in message

    def test_invalid_endpoint(self, isolated_env):
        """Test that a malformed endpoint is fatal."""
        write_flat_secrets(isolated_env, **{"Azure:Endpoint": "not a url"})

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(_env_file=None)
        assert "Azure:Endpoint" in str(exc_info.value)

    def test_blank_value_is_invalid(self, isolated_env):
        """Test that a blank value is rejected."""
        write_flat_secrets(isolated_env, **{"Azure:ProjectName": "   "})

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(_env_file=None)
        assert "Azure:ProjectName" in str(exc_info.value)


class TestAzureSettings:
    """Test the Azure settings model."""

    def test_key_name_styles(self, azure_values):
        """Test that PascalCase, snake_case and upper-case keys are accepted."""
        settings = AzureSettings(
            Endpoint=azure_values["endpoint"],
            Key=azure_values["key"],
            ProjectName=azure_values["project_name"],
            DEPLOYMENTNAME=azure_values["deployment_name"],
            speech_key=azure_values["speech_key"],
            SpeechRegion=azure_values["speech_region"],
        )
        assert settings.deployment_name == "production"

    def test_project_identity(self, azure_settings):
        """Test the project and deployment pair."""
        assert azure_settings.project == ProjectIdentity("cat-facts", "production")

    def test_secrets_hidden_in_repr(self, azure_settings):
        """Test that keys never appear in the settings repr."""
        assert "language-key" not in repr(azure_settings)
        assert "speech-key" not in repr(azure_settings)

    def test_frozen(self, azure_settings):
        """Test that settings cannot be changed after loading."""
        with pytest.raises(Exception):
            azure_settings.project_name = "other"
