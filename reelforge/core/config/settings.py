# File: reelforge/core/config/settings.py

import os
import shutil
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAX_WHISPER_FILE_SIZE = 25 * 1024 * 1024


class Settings:
    # --- Paths ---
    # reelforge/core/config/settings.py -> reelforge/core/config -> reelforge/core -> reelforge -> ROOT
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent.parent
    DATA_DIR: Path = Path(os.getenv("REELFORGE_DATA_DIR", str(BASE_DIR / "data")))
    TEMP_DIR: Path = DATA_DIR / "tmp"

    # --- Database ---
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "password")
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "reelforge_db")

    @property
    def DATABASE_URL(self) -> str:
        # Desktop installs and the test-suite run on a local SQLite file.
        if os.getenv("USE_SQLITE", "false").lower() == "true":
            sqlite_path = os.getenv("SQLITE_PATH", str(self.DATA_DIR / "reelforge.db"))
            return f"sqlite:///{sqlite_path}"

        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # --- External Tools ---
    # Auto-detect ffmpeg or use env var
    FFMPEG_BINARY: str = os.getenv("FFMPEG_BINARY_PATH", shutil.which("ffmpeg") or "ffmpeg")

    # --- Remote Transcription ---
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    WHISPER_MODEL_NAME: str = os.getenv("WHISPER_MODEL_NAME", "whisper-1")
    TRANSCRIPTION_TIMEOUT_SECONDS: float = float(os.getenv("TRANSCRIPTION_TIMEOUT_SECONDS", "120"))
    SHORT_API_TIMEOUT_SECONDS: float = float(os.getenv("SHORT_API_TIMEOUT_SECONDS", "10"))

    # --- Chunking ---
    CHUNK_DURATION_SECONDS: int = int(os.getenv("CHUNK_DURATION_SECONDS", "600"))
    CHUNK_OVERLAP_SECONDS: int = int(os.getenv("CHUNK_OVERLAP_SECONDS", "30"))

    @property
    def WHISPER_MAX_FILE_SIZE(self) -> int:
        """
        Largest audio file (bytes) sent to the API in a single call.
        Read on every access so tests can lower it through the environment.
        """
        raw = os.getenv("WHISPER_MAX_FILE_SIZE", "")
        if not raw:
            return DEFAULT_MAX_WHISPER_FILE_SIZE
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Invalid WHISPER_MAX_FILE_SIZE value '{raw}', using default")
            return DEFAULT_MAX_WHISPER_FILE_SIZE

    # --- Export ---
    EXPORT_PADDING_SECONDS: float = float(os.getenv("EXPORT_PADDING_SECONDS", "0.0"))

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE", "")

    def ensure_dirs(self):
        """Creates necessary data directories if they don't exist."""
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)
        self.TEMP_DIR.mkdir(parents=True, exist_ok=True)


settings = Settings()
