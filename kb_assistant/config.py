"""
Main configuration file for the Knowledge Base Voice Assistant.

Settings are layered, highest priority first: explicit keyword arguments,
environment variables, a ``.env`` file, the user secrets file and finally the
field defaults. Azure values use ``Section:Key`` names (``Azure:Endpoint``) in
the secrets file and ``SECTION__KEY`` names (``AZURE__ENDPOINT``) in the
environment.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

import yaml
from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_pascal
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from . import __version__


USER_SECRETS_ENV_VAR = "KB_ASSISTANT_USER_SECRETS"
DEFAULT_USER_SECRETS_PATH = Path("~/.kb_assistant/secrets.yaml")


class ConfigurationError(Exception):
    """Required configuration is missing or malformed."""


@dataclass(frozen=True)
class ProjectIdentity:
    """Knowledge base project and the published deployment to query."""
    project_name: str
    deployment_name: str


def _canonical(key: Any) -> str:
    return str(key).replace("_", "").lower()


class AzureSettings(BaseModel):
    """Credentials and identifiers for the hosted language and speech services."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    endpoint: AnyHttpUrl
    key: SecretStr
    project_name: str = Field(min_length=1)
    deployment_name: str = Field(min_length=1)
    speech_key: SecretStr
    speech_region: str = Field(min_length=1)

    # Optional speech tuning
    speech_recognition_language: Optional[str] = None
    speech_synthesis_voice_name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _match_key_names(cls, data: Any) -> Any:
        """Accept ``ProjectName``, ``project_name`` and ``PROJECTNAME`` alike."""
        if not isinstance(data, dict):
            return data
        lookup = {_canonical(name): name for name in cls.model_fields}
        return {lookup.get(_canonical(key), key): value for key, value in data.items()}

    @field_validator("key", "speech_key")
    @classmethod
    def _not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("must not be empty")
        return value

    @property
    def project(self) -> ProjectIdentity:
        return ProjectIdentity(self.project_name, self.deployment_name)

    @property
    def endpoint_url(self) -> str:
        return str(self.endpoint)


def default_user_secrets_path() -> Path:
    """Location of the user secrets file, overridable via the environment."""
    configured = os.environ.get(USER_SECRETS_ENV_VAR)
    path = Path(configured) if configured else DEFAULT_USER_SECRETS_PATH
    return path.expanduser()


def load_user_secrets(path: Path) -> Dict[str, Any]:
    """
    Load the user secrets file.

    The file may use flat ``"Azure:Endpoint": ...`` keys (the layout of a
    ``secrets.json``) or nested sections. YAML is a superset of JSON so both
    formats parse.

    Returns:
        Nested dictionary of sections, empty if the file does not exist
    """
    if not path.exists():
        return {}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not read user secrets file {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"User secrets file {path} must contain a mapping")

    nested: Dict[str, Any] = {}
    for key, value in raw.items():
        *sections, leaf = str(key).split(":")
        target = nested
        for section in sections:
            target = target.setdefault(section, {})
        if isinstance(value, dict) and isinstance(target.get(leaf), dict):
            target[leaf].update(value)
        else:
            target[leaf] = value
    return nested


class UserSecretsSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by the per-user secrets file."""

    def __init__(self, settings_cls: Type[BaseSettings], secrets_path: Optional[Path] = None):
        super().__init__(settings_cls)
        self.secrets_path = secrets_path or default_user_secrets_path()

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        # Values are produced all at once in __call__
        return None, field_name, False

    def __call__(self) -> Dict[str, Any]:
        secrets = load_user_secrets(self.secrets_path)
        fields = {name.lower(): name for name in self.settings_cls.model_fields}
        return {fields.get(section.lower(), section): value for section, value in secrets.items()}


class Settings(BaseSettings):
    """Application settings."""

    # Application Info
    APP_NAME: str = "Knowledge Base Voice Assistant"
    APP_VERSION: str = __version__
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "WARNING"
    LOG_FILE_LEVEL: str = "INFO"
    LOGS_DIR: str = "./logs"

    # Interaction
    EXIT_KEYWORD: str = "exit"
    FAREWELL_MESSAGE: str = "Goodbye!"
    INPUT_PROMPT: str = "Q: "
    WELCOME_MESSAGE: str = (
        "Ask me anything! Enter your question or press 'Enter' to speak. Type 'exit' to quit"
    )

    # Azure language and speech services (required, no defaults)
    AZURE: AzureSettings

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            UserSecretsSettingsSource(settings_cls),
            file_secret_settings,
        )


def _config_key(location: Tuple[Any, ...]) -> str:
    """Render a validation error location as a ``Section:Key`` name."""
    if not location:
        return "configuration"
    section, *rest = location
    if section == "AZURE":
        return ":".join(["Azure"] + [to_pascal(str(part)) for part in rest])
    return ":".join(str(part) for part in location)


def _describe(error: ValidationError) -> str:
    lines = []
    for item in error.errors():
        location = tuple(item.get("loc", ()))
        if location == ("AZURE",) and item.get("type") == "missing":
            required = ", ".join(
                f"Azure:{to_pascal(name)}"
                for name, field in AzureSettings.model_fields.items()
                if field.is_required()
            )
            lines.append(f"Azure section is missing (required: {required})")
        else:
            lines.append(f"{_config_key(location)}: {item.get('msg')}")
    return "Invalid configuration:\n  " + "\n  ".join(lines)


def load_settings(**overrides: Any) -> Settings:
    """
    Build the settings from every configured source.

    Raises:
        ConfigurationError: a required value is absent or malformed
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(_describe(e)) from e


@lru_cache
def get_settings() -> Settings:
    return load_settings()
