"""Process configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    pixelscatter_env: str = "development"
    pixelscatter_log_level: str = "info"

    # Defaults for RenderConfig when the caller does not pass one
    default_canvas_width: int = 900
    default_canvas_height: int = 900
    default_max_kurtosis: float = 10.0
    default_max_level: int = 4
    default_outlier_emphasis: float = 10.0
    default_non_outlier_mass: float = 0.5
    default_init_level_mode: str = "auto"
    default_init_level_manual: int = 0
    default_density_culling: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
