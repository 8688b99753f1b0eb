# File: dispatchwatch/features/storage/data/local_fs.py
import uuid
import logging
from pathlib import Path
from typing import Optional
from dispatchwatch.core.config.settings import settings

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "wav": ".wav",
    "mp3": ".mp3",
    "mpeg": ".mp3",
    "mp4": ".m4a",
    "m4a": ".m4a",
    "aac": ".m4a",
}


def extension_for_mime(mime_type: Optional[str]) -> str:
    """audio/wav -> .wav, audio/mpeg -> .mp3; scanner default is AAC in an mp4 box."""
    if not mime_type:
        return ".m4a"
    subtype = mime_type.lower().split("/")[-1].split(";")[0].strip()
    for key, ext in MIME_EXTENSIONS.items():
        if key in subtype:
            return ext
    return ".m4a"


class LocalAudioStore:
    """
    Writes raw scanner audio to the working directory.
    Originals written here are never deleted by the pipeline.
    """
    def __init__(self, audio_dir: Path = None):
        self.audio_dir = Path(audio_dir or settings.AUDIO_DIR)

    def write_audio(self, data: bytes, mime_type: Optional[str]) -> Path:
        self.audio_dir.mkdir(parents=True, exist_ok=True)
        path = self.audio_dir / f"{uuid.uuid4()}{extension_for_mime(mime_type)}"
        path.write_bytes(data)
        logger.debug(f"📂 Wrote {len(data)} bytes to {path.name}")
        return path
