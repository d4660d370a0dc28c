"""Configuration management for the banner capture bot."""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

from .models import BannerIdentity, CaptureRegion

# Load environment variables
load_dotenv()

ROLE_PLACEHOLDER = "your_role_id_here"


class Config(BaseSettings):
    """Configuration class for the banner capture bot."""

    # Discord Configuration
    discord_token: str = Field(default="", description="Bot token for the chat client")
    channel_id: int = Field(default=0, description="Channel receiving banner captures")
    role_id: Optional[str] = Field(default=None, description="Role pinged with announced banners")
    command_prefix: str = Field(default="!")

    # Livestream
    livestream_url: str = Field(default="https://www.youtube.com/watch?v=your_livestream_id")
    stream_domains: list[str] = Field(default=["youtube.com", "youtu.be"])

    # Capture regions (page pixels). X and Y render in the same place.
    x_banner_area: CaptureRegion = Field(default=CaptureRegion(50, 50, 1200, 800))
    y_banner_area: CaptureRegion = Field(default=CaptureRegion(50, 50, 1200, 800))
    ocr_area: CaptureRegion = Field(default=CaptureRegion(50, 50, 500, 150))

    # Schedule
    x_banner_minute: int = Field(default=4, ge=0, le=59)
    y_banner_minute: int = Field(default=34, ge=0, le=59)
    min_time_between_captures_ms: int = Field(default=30000, ge=0)
    scheduler_tick_seconds: float = Field(default=60.0)

    # Deduplication
    hash_cache_size: int = Field(default=5)
    dedup_reset_per_session: bool = Field(default=True, description="Clear the image hash cache at every session start")

    # OCR
    ocr_attempt_delay_ms: int = Field(default=250, ge=0)
    ocr_probe_quality: int = Field(default=60)
    ocr_max_attempts: int = Field(default=240, ge=1)
    ocr_lang: str = Field(default="eng")
    ocr_psm: int = Field(default=6)
    ocr_threshold: bool = Field(default=False)  # Otsu binarisation before recognition
    # Path to the Tesseract OCR binary (leave None to use system PATH)
    tesseract_cmd: Optional[str] = Field(default=None, description="Path to Tesseract executable")

    # Delivery
    x_banner_announce: bool = Field(default=True, description="Send X banner with caption and role ping")
    y_banner_announce: bool = Field(default=False, description="Send Y banner with caption and role ping")
    banner_message_file: str = Field(default="banner-message.txt")
    banner_message_fallback: str = Field(default="🎯 New banner detected!")

    # Browser
    browser_headless: bool = Field(default=True)
    browser_user_data_dir: str = Field(default="browser-data")
    extension_dir: str = Field(default="extensions/ublock-origin-lite")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        )
    )
    viewport_width: int = Field(default=1920)
    viewport_height: int = Field(default=1080)
    browser_launch_retries: int = Field(default=1, ge=0)
    navigation_attempts: int = Field(default=3, ge=1)
    navigation_timeout_strict_ms: int = Field(default=60000)
    navigation_timeout_lenient_ms: int = Field(default=90000)
    navigation_retry_delay_s: float = Field(default=5.0)
    reload_timeout_ms: int = Field(default=8000)
    renavigate_timeout_ms: int = Field(default=30000)
    video_wait_timeout_ms: int = Field(default=10000)
    page_settle_seconds: float = Field(default=5.0)
    ad_skip_settle_seconds: float = Field(default=1.5)
    recovery_settle_seconds: float = Field(default=10.0)
    health_check_every_attempts: int = Field(default=40, ge=0)

    # Framework Configuration
    log_level: str = Field(default="INFO")
    logs_dir: str = Field(default="logs")

    class Config:
        """Pydantic configuration for environment loading."""

        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore unexpected env vars rather than raising errors

    def validate_config(self) -> bool:
        """Validate configuration values."""
        from ..utils.validation import validate_region

        for name in ("x_banner_area", "y_banner_area", "ocr_area"):
            ok, reason = validate_region(
                getattr(self, name), self.viewport_width, self.viewport_height
            )
            if not ok:
                raise ValueError(f"{name}: {reason}")

        if self.x_banner_minute == self.y_banner_minute:
            raise ValueError("X and Y banner minutes must differ")

        if self.hash_cache_size < 1:
            raise ValueError("Hash cache size must be at least 1")

        if not 1 <= self.ocr_probe_quality <= 100:
            raise ValueError("OCR probe quality must be between 1 and 100")

        return True

    @property
    def role_ping(self) -> str:
        """Mention string for the configured role, or an empty string."""
        if self.role_id and self.role_id != ROLE_PLACEHOLDER:
            return f"<@&{self.role_id}>"
        return ""

    def banner_area(self, identity: BannerIdentity) -> CaptureRegion:
        """Full-fidelity capture region for *identity*."""
        return self.x_banner_area if identity is BannerIdentity.X else self.y_banner_area

    def announces(self, identity: BannerIdentity) -> bool:
        """Whether *identity* is delivered with caption and role ping."""
        return self.x_banner_announce if identity is BannerIdentity.X else self.y_banner_announce

    def get_banner_message_path(self) -> str:
        """Get the full path to the editable caption file."""
        return os.path.join(os.getcwd(), self.banner_message_file)


# Global configuration instance
try:
    config = Config()
except Exception as e:
    print(f"Warning: Could not load configuration: {e}")
    # Create a minimal config for basic functionality
    config = Config(_env_file=None)
