"""
Shared fixtures for the assistant test suite.
"""

import os

import pytest

from kb_assistant.config import USER_SECRETS_ENV_VAR, AzureSettings, Settings


AZURE_VALUES = {
    "endpoint": "https://cats.cognitiveservices.azure.com/",
    "key": "language-key",
    "project_name": "cat-facts",
    "deployment_name": "production",
    "speech_key": "speech-key",
    "speech_region": "westus",
}


@pytest.fixture
def azure_values():
    """Plain Azure settings values."""
    return dict(AZURE_VALUES)


@pytest.fixture
def azure_settings():
    """Validated Azure settings."""
    return AzureSettings(**AZURE_VALUES)


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Strip settings from the environment and point user secrets at a temp file."""
    names = {name.upper() for name in Settings.model_fields}
    for name in list(os.environ):
        if name.upper() in names or name.upper().startswith("AZURE__"):
            monkeypatch.delenv(name, raising=False)

    secrets_path = tmp_path / "secrets.yaml"
    monkeypatch.setenv(USER_SECRETS_ENV_VAR, str(secrets_path))
    monkeypatch.chdir(tmp_path)
    return secrets_path
