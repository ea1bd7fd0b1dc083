import logging
from typing import FrozenSet, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.models.team import Team

VALID_LOG_LEVELS = ["DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_TEAMS = [
    Team(key="solomono", display_name="SOLOMONO", signup_channel_id=1071192840408940626),
    Team(key="crit-happens", display_name="CRIT HAPPENS", signup_channel_id=1248666830810251354),
    Team(
        key="early-bird",
        display_name="EARLY BIRD SPECIAL",
        signup_channel_id=1216844831767396544,
    ),
    Team(
        key="weekend-warriors",
        display_name="WEEKEND WARRIORS",
        signup_channel_id=1338703521138081902,
    ),
]


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or .env file.

    Instances are frozen: build one at startup with ``load_settings()`` and pass
    it to the components that need it.
    """

    # Discord Configuration
    discord_token: Optional[str] = Field(None, description="Bot token for Discord.")
    guild_id: Optional[int] = Field(None, description="Guild the bot operates in.")
    dashboard_channel_id: Optional[int] = Field(
        None, description="Channel holding the operational dashboard message."
    )
    dashboard_message_id: Optional[int] = Field(
        None, description="Existing dashboard message to edit in place."
    )
    recruitment_channel_id: Optional[int] = Field(
        None, description="Channel or thread holding the recruitment post."
    )
    recruitment_message_id: Optional[int] = Field(
        None, description="Existing recruitment message to edit in place."
    )

    # Teams and Scanning
    teams: List[Team] = Field(default_factory=lambda: list(DEFAULT_TEAMS))
    lookback_messages: int = Field(
        50,
        ge=1,
        le=1000,
        description="How many messages to scan in each signup channel.",
    )
    reference_pattern: str = Field(
        r"raid-helper\.dev/event/(\d+)",
        description="Regex whose first group captures the Raid-Helper event id.",
    )

    # Raid-Helper API
    raid_helper_api_base: str = Field("https://raid-helper.dev/api/v2")
    http_timeout_seconds: float = Field(10.0, gt=0)
    fetch_retry_attempts: int = Field(
        3, ge=1, le=10, description="Total attempts per event fetch (1 disables retry)."
    )
    max_concurrent_teams: int = Field(2, ge=1)

    # Composition Targets
    target_tanks: int = Field(2, ge=0)
    target_healers: int = Field(4, ge=0)
    melee_healer_specs: FrozenSet[str] = Field(
        frozenset({"mistweaver", "holy1", "holy"}),
        description="Healer specs counted as melee healers (display only).",
    )
    excluded_statuses: FrozenSet[str] = Field(
        frozenset(
            {"declined", "cancelled", "canceled", "absence", "absent", "bench", "late", "tentative"}
        ),
        description="Signup status values treated as not participating.",
    )

    # Scheduling and Display
    refresh_interval_minutes: float = Field(15, gt=0)
    display_timezone: str = Field("America/New_York")

    # Logging Configuration
    log_level: str = Field(
        "INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in VALID_LOG_LEVELS:
            logging.warning(f"Invalid LOG_LEVEL '{value}' found in .env or default. Using INFO.")
            return "INFO"
        return level

    @field_validator("melee_healer_specs", "excluded_statuses")
    @classmethod
    def _lowercase_names(cls, value: FrozenSet[str]) -> FrozenSet[str]:
        return frozenset(item.strip().lower() for item in value)

    @field_validator("teams")
    @classmethod
    def _unique_team_keys(cls, value: List[Team]) -> List[Team]:
        keys = [team.key for team in value]
        duplicates = {key for key in keys if keys.count(key) > 1}
        if duplicates:
            raise ValueError(f"Duplicate team keys: {sorted(duplicates)}")
        return value


def load_settings(**overrides) -> AppSettings:
    """Loads and validates application settings."""
    try:
        return AppSettings(**overrides)
    except ValidationError as e:
        logging.exception(f"Error loading application settings: {e}")
        raise SystemExit("Failed to load application settings. Exiting.")
