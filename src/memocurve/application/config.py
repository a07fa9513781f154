from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from memocurve.domain.constants import (
    DEFAULT_REVIEW_DURATION_TRIGGER,
    MAX_REVIEW_DURATION_TRIGGER,
    MIN_REVIEW_DURATION_TRIGGER,
    REMINDER_POLL_INTERVAL,
)

CardField = Literal["content", "meaning", "example", "aiQuestion"]
ReminderMethod = Literal["None", "Push", "SMS", "Email"]


def config_file_candidates() -> list[Path]:
    return [
        Path.home() / ".config/memocurve/config.toml",
        Path.home() / ".memocurve.toml",
    ]


class AppConfig(BaseSettings):
    """
    Process-level settings for memocurve.
    Supports loading from:
    1. Manual overrides (CLI)
    2. Environment variables (MEMOCURVE_*)
    3. Config file (~/.config/memocurve/config.toml)
    """

    model_config = SettingsConfigDict(
        env_prefix="MEMOCURVE_",
        extra="ignore",
        populate_by_name=True,
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/memocurve")

    # Question enrichment
    enrichment: Literal["auto", "gemini", "offline"] = "auto"
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "gemini_api_key", "MEMOCURVE_GEMINI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"
        ),
    )
    gemini_model: str = "gemini-2.5-flash"

    # Reminders
    reminder_interval: float = REMINDER_POLL_INTERVAL
    notifications: Literal["default", "granted", "denied"] = "default"

    # Server
    server_host: str = "127.0.0.1"
    server_port: int = 8797

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        toml_file = next((f for f in config_file_candidates() if f.exists()), None)
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_paths(cls, v: Any) -> Path:
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/memocurve/config.toml (if exists)
    3. Environment variables (MEMOCURVE_*)
    4. cli_overrides (passed from Typer); None values are ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)


class ReviewConfig(BaseModel):
    """
    The user's review preferences, persisted next to the cards.

    Serialized with the camelCase keys used by the stored JSON blob.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    review_duration_trigger: int = Field(
        default=DEFAULT_REVIEW_DURATION_TRIGGER,
        ge=MIN_REVIEW_DURATION_TRIGGER,
        le=MAX_REVIEW_DURATION_TRIGGER,
        alias="reviewDurationTrigger",
    )
    show_ai_question_on_front: bool = Field(default=True, alias="showAiQuestionOnFront")
    front_fields: list[CardField] = Field(
        default_factory=lambda: ["aiQuestion"], alias="frontFields"
    )
    back_fields: list[CardField] = Field(
        default_factory=lambda: ["content", "meaning", "example"], alias="backFields"
    )
    # Placeholder: no delivery channel exists for these yet.
    reminder_method: ReminderMethod = Field(default="None", alias="reminderMethod")

    @field_validator("front_fields", "back_fields")
    @classmethod
    def dedupe_fields(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @property
    def wants_ai_question(self) -> bool:
        return "aiQuestion" in self.front_fields or "aiQuestion" in self.back_fields

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
