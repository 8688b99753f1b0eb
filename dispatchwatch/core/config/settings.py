# File: dispatchwatch/core/config/settings.py

import os
import shutil
from pathlib import Path
from typing import List, Tuple


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def parse_channel_list(raw: str) -> List[Tuple[int, int]]:
    """
    Parses "system:talkgroup,system:talkgroup" into (system, talkgroup) pairs.
    Entries without a system prefix default to system 1.
    """
    channels = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        if ":" in chunk:
            system, talkgroup = chunk.split(":", 1)
        else:
            system, talkgroup = "1", chunk
        channels.append((int(system), int(talkgroup)))
    return channels


class Settings:
    # --- Paths ---
    # dispatchwatch/core/config/settings.py -> config -> core -> dispatchwatch -> ROOT
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent.parent
    DATA_DIR: Path = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
    AUDIO_DIR: Path = Path(os.getenv("AUDIO_DIR", str(DATA_DIR / "audio")))
    ENHANCEMENT_DIR: Path = Path(os.getenv("ENHANCEMENT_DIR", str(DATA_DIR / "enhanced")))

    # --- Database ---
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "password")
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "dispatchwatch_db")

    @property
    def DATABASE_URL(self) -> str:
        # Only fall back to SQLite if explicitly requested.
        if os.getenv("USE_SQLITE", "false").lower() == "true":
            return "sqlite:///./test_dispatchwatch.db"

        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # --- Scanner Source (read-only) ---
    SCANNER_DB_URL: str = os.getenv(
        "SCANNER_DB_URL", f"sqlite:///{BASE_DIR / 'rdio-scanner-server' / 'rdio-scanner.db'}"
    )
    SCANNER_TABLE: str = os.getenv("SCANNER_TABLE", "rdioScannerCalls")
    SCANNER_CHANNELS: List[Tuple[int, int]] = parse_channel_list(
        os.getenv("SCANNER_CHANNELS", "1:10202,1:10244,1:10255,1:10256,1:10258")
    )
    SCANNER_POLL_SECONDS: float = _env_float("SCANNER_POLL_SECONDS", 10)
    SCANNER_BATCH_SIZE: int = _env_int("SCANNER_BATCH_SIZE", 50)
    SCANNER_TRAILING_WINDOW: int = _env_int("SCANNER_TRAILING_WINDOW", 100)
    SCANNER_CHECKPOINT_PATH: Path = Path(
        os.getenv("SCANNER_CHECKPOINT_PATH", str(DATA_DIR / ".last-processed-scanner-id.json"))
    )

    # --- External Tools ---
    # Auto-detect ffmpeg/ffprobe or use env var
    FFMPEG_BINARY: str = os.getenv("FFMPEG_BINARY_PATH", shutil.which("ffmpeg") or "ffmpeg")
    FFPROBE_BINARY: str = os.getenv("FFPROBE_BINARY_PATH", shutil.which("ffprobe") or "ffprobe")
    EXTERNAL_TOOL_TIMEOUT: float = _env_float("EXTERNAL_TOOL_TIMEOUT", 120)

    # --- Speech-to-Text ---
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_STT_MODEL: str = os.getenv("OPENAI_STT_MODEL", "whisper-1")
    OPENAI_TIMEOUT: float = _env_float("OPENAI_TIMEOUT", 60)
    WHISPER_MODEL_NAME: str = os.getenv("WHISPER_MODEL_NAME", "base")
    WHISPER_DEVICE: str = "cuda" if os.getenv("USE_CUDA", "false").lower() == "true" else "cpu"

    # --- Transcription Pipeline ---
    TRANSCRIPTION_CONCURRENCY: int = _env_int("TRANSCRIPTION_CONCURRENCY", 10)
    TRANSCRIPTION_QUEUE_SIZE: int = _env_int("TRANSCRIPTION_QUEUE_SIZE", 500)
    TRANSCRIPTION_TEMPERATURES: Tuple[float, ...] = tuple(
        float(t) for t in os.getenv("TRANSCRIPTION_TEMPERATURES", "0.0,0.2,0.4").split(",") if t.strip()
    )

    # --- Retry Escalator ---
    RETRY_TARGET_CONFIDENCE: float = _env_float("RETRY_TARGET_CONFIDENCE", 0.9)
    RETRY_MAX_ATTEMPTS: int = _env_int("RETRY_MAX_ATTEMPTS", 3)
    RETRY_BATCH_CONCURRENCY: int = _env_int("RETRY_BATCH_CONCURRENCY", 3)
    AUTO_RETRY_THRESHOLD: float = _env_float("AUTO_RETRY_THRESHOLD", 0.7)
    AUTO_RETRY_INTERVAL_MINUTES: float = _env_float("AUTO_RETRY_INTERVAL_MINUTES", 15)

    # --- Hospital Conversations ---
    CONVERSATION_TIMEOUT_MINUTES: float = _env_float("CONVERSATION_TIMEOUT_MINUTES", 10)
    CONVERSATION_SWEEP_SECONDS: float = _env_float("CONVERSATION_SWEEP_SECONDS", 30)

    # --- Incidents ---
    INCIDENT_SWEEP_SECONDS: float = _env_float("INCIDENT_SWEEP_SECONDS", 30)
    INCIDENT_GRACE_MINUTES: float = _env_float("INCIDENT_GRACE_MINUTES", 10)
    INCIDENT_LINK_WINDOW_MINUTES: float = _env_float("INCIDENT_LINK_WINDOW_MINUTES", 60)
    INCIDENT_DEFAULT_ETA_MINUTES: float = _env_float("INCIDENT_DEFAULT_ETA_MINUTES", 8)

    # --- Geocoding ---
    GEOCODER_URL: str = os.getenv("GEOCODER_URL", "https://nominatim.openstreetmap.org/search")
    GEOCODER_USER_AGENT: str = os.getenv("GEOCODER_USER_AGENT", "dispatchwatch/1.0")
    GEOCODER_MIN_INTERVAL: float = _env_float("GEOCODER_MIN_INTERVAL", 1.0)
    GOOGLE_MAPS_API_KEY: str = os.getenv("GOOGLE_MAPS_API_KEY", "")

    # --- Events / Logging ---
    EVENT_QUEUE_SIZE: int = _env_int("EVENT_QUEUE_SIZE", 500)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def ensure_dirs(self):
        """Creates necessary data directories if they don't exist."""
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)
        self.AUDIO_DIR.mkdir(parents=True, exist_ok=True)
        self.ENHANCEMENT_DIR.mkdir(parents=True, exist_ok=True)


settings = Settings()
