"""Server configuration via environment variables."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

MB = 1024 * 1024
MIN_RETRY_DELAY_SECONDS = 5.0


def _default_scratch_dir() -> str:
    return str(Path.home() / ".cache" / "motion-clone-mcp" / "sessions")


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment."""

    gemini_api_key: str = Field(default="")
    default_model: str = Field(default="gemini-2.5-pro")
    default_temperature: float = Field(default=0.4)
    scratch_dir: str = Field(default_factory=_default_scratch_dir)
    frame_rate: float = Field(default=2.0)
    analysis_max_attempts: int = Field(default=3)
    analysis_retry_delay: float = Field(default=5.0)
    analysis_max_frames: int = Field(default=0)
    auth_payload_threshold_bytes: int = Field(default=1024)
    navigation_timeout: int = Field(default=30)
    max_download_bytes: int = Field(default=100 * MB)
    inline_video_max_bytes: int = Field(default=20 * MB)
    max_sessions: int = Field(default=20)
    session_timeout_hours: int = Field(default=6)
    subprocess_timeout: int = Field(default=120)

    @field_validator(
        "analysis_max_attempts",
        "auth_payload_threshold_bytes",
        "navigation_timeout",
        "max_download_bytes",
        "inline_video_max_bytes",
        "max_sessions",
        "session_timeout_hours",
        "subprocess_timeout",
    )
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator("frame_rate")
    @classmethod
    def validate_frame_rate(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("frame_rate must be > 0")
        return value

    @field_validator("analysis_retry_delay")
    @classmethod
    def validate_retry_delay(cls, value: float) -> float:
        if value < MIN_RETRY_DELAY_SECONDS:
            raise ValueError(f"analysis_retry_delay must be >= {MIN_RETRY_DELAY_SECONDS}s")
        return value

    @field_validator("analysis_max_frames")
    @classmethod
    def validate_max_frames(cls, value: int) -> int:
        if value < 0:
            raise ValueError("analysis_max_frames must be >= 0")
        return value

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            default_model=os.getenv("GEMINI_MODEL", "gemini-2.5-pro"),
            default_temperature=float(os.getenv("GEMINI_TEMPERATURE", "0.4")),
            scratch_dir=os.getenv("MOTION_SCRATCH_DIR", "") or _default_scratch_dir(),
            frame_rate=float(os.getenv("MOTION_FRAME_RATE", "2.0")),
            analysis_max_attempts=int(os.getenv("MOTION_ANALYSIS_MAX_ATTEMPTS", "3")),
            analysis_retry_delay=float(os.getenv("MOTION_ANALYSIS_RETRY_DELAY", "5.0")),
            analysis_max_frames=int(os.getenv("MOTION_ANALYSIS_MAX_FRAMES", "0")),
            auth_payload_threshold_bytes=int(os.getenv("MOTION_AUTH_PAYLOAD_THRESHOLD", "1024")),
            navigation_timeout=int(os.getenv("MOTION_NAVIGATION_TIMEOUT", "30")),
            max_download_bytes=int(float(os.getenv("MOTION_MAX_DOWNLOAD_MB", "100")) * MB),
            inline_video_max_bytes=int(float(os.getenv("MOTION_INLINE_VIDEO_MAX_MB", "20")) * MB),
            max_sessions=int(os.getenv("MOTION_MAX_SESSIONS", "20")),
            session_timeout_hours=int(os.getenv("MOTION_SESSION_TIMEOUT_HOURS", "6")),
            subprocess_timeout=int(os.getenv("MOTION_SUBPROCESS_TIMEOUT", "120")),
        )


_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.config/motion-clone-mcp/.env`` before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        from .dotenv import load_dotenv

        injected = load_dotenv()
        if injected:
            logger.info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = ServerConfig.from_env()
    return _config


def update_config(**overrides: object) -> ServerConfig:
    """Patch the live config (used by the ``infra_configure`` tool)."""
    global _config
    data = get_config().model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = ServerConfig(**data)
    return _config
