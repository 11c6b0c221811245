"""
Engine settings using pydantic-settings for type-safe configuration.

Every tunable of the engine lives here with typing, validation and defaults
matching the classic web client. Values are read from FRIENDGRAPH_* environment
variables or a .env file, loaded once and cached.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

STORAGE_BACKENDS = ("memory", "pocketbase")


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Defaults reproduce the web client layout and thresholds, with layout jitter
    disabled so that projections are deterministic.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FRIENDGRAPH_",
        extra="ignore",  # Ignore extra env vars not defined here
        case_sensitive=False,
    )

    # === Graph Layout ===
    layout_center_x: float = Field(default=400.0, description="X coordinate of the layout circle center")
    layout_center_y: float = Field(default=300.0, description="Y coordinate of the layout circle center")
    layout_radius: float = Field(default=200.0, description="Radius of the layout circle")
    layout_jitter: float = Field(
        default=0.0,
        description="Total width of the random offset applied per axis (the web client uses 100)",
    )
    graph_random_seed: int = Field(
        default=42,
        description="Random seed for reproducible layout jitter",
    )

    # === Scoring & Categories ===
    high_score_threshold: float = Field(
        default=5.0,
        description="Nodes scoring strictly above this are rendered as HighScoreNode",
    )
    rescore_friends_on_hobby_change: bool = Field(
        default=False,
        description="Also recompute every friend's score when a user's hobbies change",
    )

    # === Queries ===
    search_limit: int = Field(default=20, ge=1, description="Maximum number of search results")
    top_users_limit: int = Field(default=5, ge=0, description="Number of users listed in stats")

    # === Storage ===
    storage_backend: str = Field(default="memory", description="Repository backend: 'memory' or 'pocketbase'")
    pocketbase_url: str = Field(default="http://127.0.0.1:8090", description="PocketBase server URL")
    pocketbase_collection: str = Field(default="graph_users", description="PocketBase collection holding users")

    @field_validator("layout_radius", "layout_jitter", mode="after")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Reject negative layout dimensions."""
        if v < 0:
            raise ValueError("layout dimensions must be >= 0")
        return v

    @field_validator("storage_backend", mode="after")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        """Validate and normalize storage_backend."""
        v = v.lower()
        if v not in STORAGE_BACKENDS:
            raise ValueError(f"Invalid STORAGE_BACKEND: {v}. Must be one of {', '.join(STORAGE_BACKENDS)}")
        return v

    @property
    def layout_center(self) -> tuple[float, float]:
        return (self.layout_center_x, self.layout_center_y)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the process.
    """
    return Settings()
