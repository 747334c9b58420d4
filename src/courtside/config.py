"""
Configuration management for Courtside.

Uses Pydantic Settings to load configuration from environment variables
with sensible defaults for development. The record store URL and the
scoring/rating tunables can all be overridden via environment variables
or a .env file.

Usage:
    from courtside.config import settings
    print(settings.default_player_rating)
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can be set directly or via a .env file
    in the project root directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ==========================================================================
    # Database Configuration
    # ==========================================================================

    database_url: str = Field(
        default="sqlite:///courtside.db",
        description="SQLAlchemy connection URL for the match record store",
    )

    # Pool settings (ignored for SQLite, which manages its own pool)
    db_pool_size: int = Field(
        default=5,
        description="Number of connections to keep in the pool",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max additional connections beyond pool_size",
    )

    # ==========================================================================
    # Scoring Configuration
    # ==========================================================================

    strict_set_rules: bool = Field(
        default=True,
        description=(
            "Apply racket-sport set rules (6-x with margin 2, 7-5, 7-6, "
            "super tiebreak in a best-of-three decider). When False only "
            "tied sets are rejected."
        ),
    )

    # ==========================================================================
    # Rating Configuration
    # ==========================================================================

    default_player_rating: float = Field(
        default=1500.0,
        description="Rating used for players with no known rating",
    )
    rpa_multiplier: float = Field(
        default=1.0,
        description="Competition weight applied uniformly to both RPA deltas",
    )

    # ==========================================================================
    # Standings Configuration
    # ==========================================================================

    points_win: float = Field(default=3, description="Standings points for a win")
    points_draw: float = Field(default=1, description="Standings points for a draw")
    points_loss: float = Field(default=0, description="Standings points for a loss")

    qualified_per_group: int = Field(
        default=2,
        description="Teams per group that advance to the knockout stage",
    )

    # ==========================================================================
    # Championship Configuration
    # ==========================================================================

    # Group position -> points
    group_placement_points: dict[int, float] = Field(
        default_factory=lambda: {1: 100, 2: 60, 3: 40, 4: 20},
        description="Championship points awarded by final group position",
    )
    # Knockout round -> points per win in that round
    knockout_progress_points: dict[str, float] = Field(
        default_factory=lambda: {
            "round_of_16": 10,
            "quarter_finals": 20,
            "semi_finals": 40,
            "finals": 80,
            "third_place": 15,
        },
        description="Championship points for each knockout win, by round",
    )

    # ==========================================================================
    # Logging Configuration
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_format: str = Field(
        default="json",
        description="Log format: 'json' for production, 'console' for dev",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper_v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Ensure log format is one we know how to render."""
        lower_v = v.lower()
        if lower_v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return lower_v

    @field_validator("default_player_rating", "rpa_multiplier")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Ratings and multipliers must be strictly positive."""
        if v <= 0:
            raise ValueError("value must be greater than zero")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only load settings once,
    which is important because loading from .env can be slow.
    """
    return Settings()


# Convenience alias for importing
settings = get_settings()
