# File: dispatchwatch/features/scanner_intake/data/checkpoint.py
import os
import json
import logging
from pathlib import Path
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.database.base import utc_now
from ..domain.interfaces import ICheckpointStore

logger = logging.getLogger(__name__)


class JsonFileCheckpoint(ICheckpointStore):
    """
    Watermark kept in a small JSON file.
    Saves go through a temp file and os.replace, so a crash mid-write leaves
    the previous watermark intact.
    """
    def __init__(self, path: Path = None):
        self.path = Path(path or settings.SCANNER_CHECKPOINT_PATH)

    def load(self) -> int:
        if not self.path.exists():
            return 0
        try:
            data = json.loads(self.path.read_text())
            return int(data.get("last_id", 0))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"⚠️ Unreadable checkpoint {self.path}, starting from 0: {e}")
            return 0

    def save(self, watermark: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        payload = {"last_id": int(watermark), "saved_at": utc_now().isoformat()}
        with open(tmp, "w") as f:
            json.dump(payload, f)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)
