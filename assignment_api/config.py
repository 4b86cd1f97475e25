"""
Runtime configuration read from the environment (and an optional .env file).
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_PORT = 3000
DEFAULT_MODEL_NAME = "gemini-1.5-flash"


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, read once at startup and passed to the app."""

    port: int = DEFAULT_PORT
    host: str = "0.0.0.0"
    gemini_api_key: Optional[str] = None
    model_name: str = DEFAULT_MODEL_NAME
    llm_timeout_seconds: float = 60.0
    upload_dir: Path = Path("uploads")
    cleanup_delay_seconds: float = 60.0
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            port=int(os.getenv("PORT", DEFAULT_PORT)),
            host=os.getenv("HOST", "0.0.0.0"),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            model_name=os.getenv("MODEL_NAME", DEFAULT_MODEL_NAME).strip(),
            llm_timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", 60)),
            upload_dir=Path(os.getenv("UPLOAD_DIR", "uploads")),
            cleanup_delay_seconds=float(os.getenv("CLEANUP_DELAY_SECONDS", 60)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE") or None,
        )
