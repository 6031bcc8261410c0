"""Configuration management with YAML and environment variable support."""

from pathlib import Path
from typing import ClassVar, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads configuration from YAML file."""

    def get_field_value(self, field, field_name: str):
        # Not used with prepare method
        pass

    def prepare_field_value(self, field_name: str, field, value, value_is_complex: bool):
        return value

    def __call__(self):
        # Load from config.yaml in current directory
        yaml_path = Path("config.yaml")
        if not yaml_path.exists():
            return {}

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return data


class GoogleConfig(BaseModel):
    """Gemini API credential and transport options.

    api_key may be left unset here; the client falls back to the
    GEMINI_API_KEY and API_KEY environment variables.
    """

    api_key: Optional[str] = None
    api_version: Optional[str] = None


class ModelsConfig(BaseModel):
    """Provider model identifiers per model classification."""

    fast_image: str = "gemini-2.5-flash-image"
    high_quality_image: str = "gemini-3-pro-image-preview"
    video: str = "veo-3.1-fast-generate-preview"


class GenerationConfig(BaseModel):
    """Retry, polling and reference-cap parameters."""

    retry_max_attempts: int = Field(default=3, ge=0)
    retry_initial_delay: float = Field(default=2.0, ge=0)
    video_poll_interval: float = Field(default=10.0, ge=0)
    # None keeps polling until the job is terminal
    video_poll_max: Optional[int] = Field(default=None, ge=1)
    video_poll_timeout: Optional[float] = Field(default=None, gt=0)
    image_reference_cap: int = Field(default=2, ge=0)
    video_reference_cap: int = Field(default=3, ge=0)
    download_timeout: float = Field(default=120.0, gt=0)


class StorageConfig(BaseModel):
    """Local storage for downloaded media blobs."""

    blob_dir: Path = Path("tmp/blobs")

    @field_validator("blob_dir", mode="before")
    @classmethod
    def convert_blob_dir_to_path(cls, v):
        """Convert string to Path object."""
        if isinstance(v, str):
            return Path(v)
        return v


class Settings(BaseSettings):
    """Main application settings with YAML and environment variable support.

    Configuration sources (in priority order):
    1. Environment variables (prefix: STUDIOGEN_, delimiter: __)
    2. .env file
    3. YAML file (config.yaml)
    4. Field defaults
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="STUDIOGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    google: GoogleConfig = Field(default_factory=GoogleConfig)
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ):
        """Customize settings sources to include YAML configuration.

        Priority order (highest to lowest):
        1. Environment variables
        2. .env file
        3. YAML file
        4. Init settings (programmatic defaults)
        """
        return (
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            init_settings,
        )


# Singleton instance
settings = Settings()
