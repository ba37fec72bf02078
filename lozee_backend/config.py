"""
Configuration management using Pydantic Settings
"""
import logging
from functools import lru_cache
from typing import Literal, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .splitter import get_strategy

DEFAULT_ALLOWED_ORIGINS = (
    "http://127.0.0.1:5500",
    "http://localhost:5500",
    "https://lozee.netlify.app",
)


class Settings(BaseSettings):
    """Application settings, read from the environment and a local .env file"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        str_strip_whitespace=True,
        extra="ignore",
        frozen=True,
    )

    # Server
    port: int = Field(default=3000, ge=1, le=65535, description="Listen port when run as a script")
    log_level: str = Field(default="INFO", description="Logging level")
    allowed_origins: str = Field(
        default=",".join(DEFAULT_ALLOWED_ORIGINS),
        description="Allowed CORS origins (comma-separated)",
    )

    # OpenAI
    openai_api_key: str = Field(default="", description="Required for chat and speech-to-text")
    chat_model: str = Field(default="gpt-4-turbo", description="Chat completion model")
    chat_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    stt_model: str = Field(default="whisper-1", description="Whisper model")
    max_audio_bytes: int = Field(default=25 * 1024 * 1024, gt=0, description="Upload limit for speech-to-text")

    # Google Text-to-Speech
    tts_language_code: str = "ko-KR"
    tts_voice_name: str = "ko-KR-Neural2-C"
    tts_speaking_rate: float = Field(default=1.0, gt=0.0)

    # Firebase
    firebase_auth_required: bool = Field(default=False, description="Require a Firebase bearer token on /api routes")
    firebase_credentials: str = Field(default="", description="Service account JSON path; ADC when empty")

    # Reply splitting
    analysis_split_strategy: str = Field(default="first_brace", description="Split strategy name")
    analysis_field: Literal["text", "rephrasing"] = Field(default="text", description="Display-text field name")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("analysis_split_strategy")
    @classmethod
    def validate_split_strategy(cls, v: str) -> str:
        """Fail at startup rather than on the first request"""
        get_strategy(v)
        return v

    @property
    def origins(self) -> Tuple[str, ...]:
        """Parse allowed origins from comma-separated string"""
        origins = tuple(o.strip() for o in self.allowed_origins.split(",") if o.strip())
        return origins or DEFAULT_ALLOWED_ORIGINS


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
