"""Configuration management using pydantic-settings.

**Not a singleton**: each call to ``get_app_config()`` re-reads config
from disk so that edits to the YAML file are picked up without a
restart.

Priority order (highest first):

1. Environment variables (``PLAYBOOK_`` prefix, ``__`` for nesting)
2. ``.env`` dotenv file
3. Static YAML (``configs/config.yaml``)
4. Init defaults / field defaults
5. File secrets
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .system import (
    ChatConfig,
    LLMConfig,
    LoggingConfig,
    PromptConfig,
    ThirdPartyConfig,
)

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

CONFIG_PY_PATH = Path(__file__).resolve()
PROJECT_ROOT = CONFIG_PY_PATH.parent.parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "configs"

STATIC_CONFIG_FILE = CONFIG_DIR / "config.yaml"

DOTENV_FILE_PATH = PROJECT_ROOT / ".env"
ENV_DELIMITER = "__"
ENV_PREFIX = "PLAYBOOK_"

DEFAULT_ENCODING = "utf-8"


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=DOTENV_FILE_PATH,
        env_file_encoding=DEFAULT_ENCODING,
        env_nested_delimiter=ENV_DELIMITER,
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
        yaml_file=STATIC_CONFIG_FILE,
        yaml_file_encoding=DEFAULT_ENCODING,
    )

    third_party: ThirdPartyConfig = Field(
        default_factory=ThirdPartyConfig,
        description="Third-party service configurations",
    )

    llm: LLMConfig = Field(
        default_factory=LLMConfig,
        description="Upstream model client settings",
    )

    chat: ChatConfig = Field(
        default_factory=ChatConfig,
        description="Chat session and auto-reset settings",
    )

    prompt: PromptConfig = Field(
        default_factory=PromptConfig,
        description="Assistant prompt texts",
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            init_settings,
            file_secret_settings,
        )


def get_app_config() -> AppConfig:
    """Get the application configuration (re-read on every call)."""
    return AppConfig()


# ---------------------------------------------------------------------------
# Narrow getters. Use these with ``Depends`` so that handlers only see
# the section they need and tests can override one section at a time.
# ---------------------------------------------------------------------------


def get_llm_config() -> LLMConfig:
    return get_app_config().llm


def get_chat_config() -> ChatConfig:
    return get_app_config().chat


def get_prompt_config() -> PromptConfig:
    return get_app_config().prompt


def get_logging_config() -> LoggingConfig:
    return get_app_config().logging
