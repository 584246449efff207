from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads BANNER_* keys from process env, and also from a local .env file.
    model_config = SettingsConfigDict(env_prefix="BANNER_", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    # Fonts
    font_dirs: list[str] = ["assets/fonts"]
    default_font_family: str = "Pretendard"
    # "family:weight" faces loaded before the fonts-ready barrier resolves.
    preload_fonts: list[str] = ["Pretendard:400", "Pretendard:700"]
    font_ready_timeout: float = 10.0

    # Export
    default_export_format: str = "JPEG"
    default_export_quality: int = 92
    max_pixel_ratio: float = 4.0
    button_corner_radius: float = 20.0

    # Editing limits applied to free-form text input
    default_max_length: int = 100
    default_max_lines: int = 2

    # Compare live-view geometry against the scaler output and log mismatches.
    debug_geometry_checks: bool = False

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_dir: str | None = None


settings = Settings()
