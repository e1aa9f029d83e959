"""Configuration settings for the wiring graph normalizer."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WIRING_GRAPH_",
        case_sensitive=False,
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # Validation policy
    strict_mode: bool = False
    auto_repair: bool = True
    synthesize_spatial: bool = True

    # Spatial synthesis
    wire_bridge_offset_m: float = 0.2

    # Topology analysis
    power_trace_max_depth: int = 5
    distribution_max_depth: int = 3
    detection_threshold: float = 0.5
    critical_load_amps: float = 20.0
    zone_load_warning_amps: float = 30.0
    total_load_warning_amps: float = 100.0
    parallel_detectors: bool = False

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
