"""Configuration data models."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from ..core.logging import DEFAULT_LOG_DIR


class MALConfig(BaseModel):
    """MyAnimeList account credentials.

    Tokens are obtained out of band; the refresh token is stored for the
    user's convenience but never exchanged.
    """

    username: str = ""
    client_id: str = ""
    access_token: str = ""
    refresh_token: str = ""

    @property
    def has_token(self) -> bool:
        return bool(self.access_token.strip())


class ShokoConfig(BaseModel):
    """Shoko Server integration."""

    enabled: bool = False
    server_url: str = "http://localhost:8111"
    api_key: str = ""
    use_as_primary: bool = True

    @field_validator("server_url")
    def validate_server_url(cls, v: str) -> str:
        v = v.strip()
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("server_url must start with http:// or https://")
        return v.rstrip("/")


class MatchingConfig(BaseModel):
    """Matching strategy and zero-rating policies."""

    fallback_to_string_matching: bool = True
    set_unrated_rating_to_zero: bool = False
    set_unmatched_rating_to_zero: bool = False


class Config(BaseModel):
    """Main configuration model."""

    enabled_for_anime: bool = True
    refresh_interval_hours: int = Field(default=24, ge=1, le=168)
    overwrite_existing_ratings: bool = True

    mal: MALConfig = Field(default_factory=MALConfig)
    shoko: ShokoConfig = Field(default_factory=ShokoConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)

    # Logging
    log_directory: Path = DEFAULT_LOG_DIR

    # Performance
    max_concurrent_operations: int = Field(default=5, ge=1)

    @field_validator("log_directory", mode="before")
    def validate_paths(cls, v: str | Path | None) -> Path | None:
        return Path(v).expanduser() if isinstance(v, str) else v

    @property
    def index_strategy_active(self) -> bool:
        """Shoko lookups run first only when enabled and marked primary."""
        return self.shoko.enabled and self.shoko.use_as_primary
