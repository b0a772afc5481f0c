"""Configuration management for the skill engine."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SKILL_ENGINE_",
        extra="ignore",
    )

    # Descriptor store
    skills_dir: Path = Field(default=Path("./skills"))

    # Budget and sizing
    default_budget: int = Field(default=8000, gt=0)
    size_unit: Literal["chars", "tokens"] = Field(default="chars")
    chars_per_token: int = Field(default=4, gt=0)

    # Batch processing
    max_workers: int = Field(default=4, gt=0)

    # Output
    section_separator: str = Field(default="\n\n")

    # Logging
    log_level: str = Field(default="INFO")

    @property
    def project_root(self) -> Path:
        """Get the project root directory."""
        return Path(__file__).parent.parent

    def resolve_path(self, path: Path) -> Path:
        """Resolve a path relative to the project root."""
        if path.is_absolute():
            return path
        return self.project_root / path


# Global settings instance
settings = Settings()
