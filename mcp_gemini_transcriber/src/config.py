from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

MIB = 1024 * 1024

# Shorthand values accepted in GEMINI_MODEL
SUPPORTED_MODELS = {
    "1": "gemini-flash-latest",
    "2": "gemini-2.5-flash-preview-05-20",
    "3": "gemini-2.5-flash-lite-preview-06-17",
    "4": "gemini-3-flash-preview",
}
DEFAULT_MODEL = "gemini-flash-latest"


class Settings(BaseSettings):
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_MODEL

    # TRANSCRIPT_OUTPUT_DIR: save every transcript there unless output_dir is passed
    default_output_dir: Optional[str] = Field(
        None, validation_alias=AliasChoices("TRANSCRIPT_OUTPUT_DIR", "default_output_dir")
    )

    max_file_size_bytes: int = 100 * MIB
    downsample_threshold_bytes: int = 15 * MIB

    poll_interval_seconds: float = 1.0
    poll_timeout_seconds: float = 300.0
    http_timeout_seconds: float = 120.0

    ffmpeg_binary: str = "ffmpeg"
    scp_binary: str = "scp"
    temp_dir: Optional[str] = None

    mcp_transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 8000
    metrics_port: int = 0

    class Config:
        env_file = ".env"
        extra = "ignore"
        frozen = True

    @property
    def model_name(self) -> str:
        """GEMINI_MODEL value with the numeric shorthands resolved."""
        value = (self.gemini_model or "").strip()
        if not value:
            return DEFAULT_MODEL
        return SUPPORTED_MODELS.get(value, value)


settings = Settings()
