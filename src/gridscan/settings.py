"""
Application settings using Pydantic.

Settings are loaded from environment variables with .env file support.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gridscan.graphics.uniforms import GridScanConfig


class EffectSettings(BaseSettings):
    """Look of the grid scan effect."""

    model_config = SettingsConfigDict(env_prefix="GRIDSCAN_EFFECT_", extra="ignore")

    sensitivity: float = Field(default=0.55, ge=0.0, le=1.0)
    line_thickness: float = Field(default=1.2, ge=0.0)
    lines_color: str = "#392e4e"
    scan_color: str = "#00fff2"
    scan_opacity: float = Field(default=0.5, ge=0.0, le=1.0)
    grid_scale: float = Field(default=0.1, gt=0.0)
    line_style: Literal["solid", "dashed", "dotted"] = "solid"
    line_jitter: float = Field(default=0.15, ge=0.0, le=1.0)
    scan_direction: Literal["forward", "backward", "pingpong"] = "pingpong"

    # Post-processing
    bloom_intensity: float = Field(default=1.5, ge=0.0)
    bloom_threshold: float = 0.1
    bloom_smoothing: float = 0.5
    chromatic_aberration: float = 0.005
    noise_intensity: float = Field(default=0.05, ge=0.0)

    # Scan band shape and timing
    scan_glow: float = 1.5
    scan_softness: float = 1.0
    phase_taper: float = 0.9
    scan_duration: float = 4.0
    scan_delay: float = 0.0
    scan_period: float = Field(default=5.0, gt=0.0)
    scan_initial_delay: float = Field(default=0.1, ge=0.0)

    # Host window
    window_width: int = 1280
    window_height: int = 720
    fullscreen: bool = False
    fps: int = Field(default=60, ge=1, le=240)
    pixel_ratio: float = Field(default=1.0, ge=1.0)
    render_scale: float = Field(default=0.5, gt=0.0, le=1.0)

    def to_config(self) -> GridScanConfig:
        """Build the immutable effect configuration."""
        return GridScanConfig(
            sensitivity=self.sensitivity,
            line_thickness=self.line_thickness,
            lines_color=self.lines_color,
            scan_color=self.scan_color,
            scan_opacity=self.scan_opacity,
            grid_scale=self.grid_scale,
            line_style=self.line_style,
            line_jitter=self.line_jitter,
            scan_direction=self.scan_direction,
            bloom_intensity=self.bloom_intensity,
            bloom_threshold=self.bloom_threshold,
            bloom_smoothing=self.bloom_smoothing,
            chromatic_aberration=self.chromatic_aberration,
            noise_intensity=self.noise_intensity,
            scan_glow=self.scan_glow,
            scan_softness=self.scan_softness,
            phase_taper=self.phase_taper,
            scan_duration=self.scan_duration,
            scan_delay=self.scan_delay,
        )


class RelaySettings(BaseSettings):
    """Question relay server settings."""

    model_config = SettingsConfigDict(
        env_prefix="GRIDSCAN_RELAY_",
        extra="ignore",
        populate_by_name=True,
    )

    spreadsheet_id: str = "1OScVjosJawwaMzfs20Ic8giS-WI_2SqeDMMij1XSOqs"
    poll_interval: float = Field(default=5.0, gt=0.0)

    host: str = "0.0.0.0"
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PORT", "GRIDSCAN_RELAY_PORT"),
    )

    # Service account: JSON in GOOGLE_CREDS, else a credentials file
    google_creds: str = Field(default="", validation_alias="GOOGLE_CREDS")
    credentials_file: Path = Path("credentials.json")

    static_dir: Path = Path("public")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="GRIDSCAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    env: Literal["effect", "relay"] = "effect"
    debug: bool = False

    # Nested settings
    effect: EffectSettings = Field(default_factory=EffectSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)

    @property
    def is_effect(self) -> bool:
        """Check if running the effect window."""
        return self.env == "effect"

    @property
    def is_relay(self) -> bool:
        """Check if running the relay server."""
        return self.env == "relay"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
