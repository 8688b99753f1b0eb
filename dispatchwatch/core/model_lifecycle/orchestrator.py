# File: dispatchwatch/core/model_lifecycle/orchestrator.py

import gc
import torch
import logging
from threading import RLock
from .types import ModelType

logger = logging.getLogger(__name__)

class ModelOrchestrator:
    """
    Singleton Resource Manager for in-process models.
    Keeps at most one local model resident so the fallback path never
    doubles memory use when several workers fall back at once.
    """
    _instance = None
    _lock = RLock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super(ModelOrchestrator, cls).__new__(cls)
                cls._instance._current_type = None
                cls._instance._current_key = None
                cls._instance._loaded_model = None
        return cls._instance

    def request_model(self, model_type: ModelType, loader_func, key: str = ""):
        """
        Returns the resident model, loading it through loader_func when the
        requested (type, key) pair differs from what is loaded.
        """
        with self._lock:
            if (self._current_type == model_type and self._current_key == key
                    and self._loaded_model is not None):
                return self._loaded_model

            if self._loaded_model is not None:
                self._unload()

            logger.info(f"Orchestrator: Loading {model_type.value} ({key or 'default'})...")
            try:
                self._loaded_model = loader_func()
                self._current_type = model_type
                self._current_key = key
                return self._loaded_model
            except Exception as e:
                logger.error(f"Failed to load {model_type.value}: {e}")
                raise

    def release(self):
        """Drops the resident model, if any. Called on shutdown."""
        with self._lock:
            if self._loaded_model is not None:
                self._unload()

    def _unload(self):
        if self._current_type:
            logger.info(f"Orchestrator: Unloading {self._current_type.value}...")

        self._loaded_model = None
        self._current_type = None
        self._current_key = None

        gc.collect()
        if torch.cuda.is_available():
            torch.cuda.empty_cache()
