"""Process-wide engine initialisation.

An engine is initialised at most once per process, the first time a session
uses it, and destroyed when the interpreter exits. Engines are destroyed in
reverse order of initialisation.
"""

from __future__ import annotations

import atexit
import logging
import threading
from typing import Dict, List

from .backends.base import PDFEngine

LOGGER = logging.getLogger(__name__)


class EngineLibrary:
    """Tracks which engines have been initialised."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._loaded: Dict[int, PDFEngine] = {}
        self._order: List[int] = []
        self._exit_hook_registered = False

    def ensure_loaded(self, engine: PDFEngine) -> None:
        key = id(engine)
        with self._lock:
            if key in self._loaded:
                return
            LOGGER.debug("Initialising engine %s", type(engine).__name__)
            engine.init_library()
            self._loaded[key] = engine
            self._order.append(key)
            if not self._exit_hook_registered:
                atexit.register(self.shutdown)
                self._exit_hook_registered = True

    def is_loaded(self, engine: PDFEngine) -> bool:
        with self._lock:
            return id(engine) in self._loaded

    def shutdown(self) -> None:
        """Destroy every initialised engine, newest first."""
        with self._lock:
            keys = list(reversed(self._order))
            engines = [self._loaded.pop(key) for key in keys]
            self._order.clear()
        for engine in engines:
            LOGGER.debug("Destroying engine %s", type(engine).__name__)
            engine.destroy_library()


LIBRARY = EngineLibrary()


__all__ = ["EngineLibrary", "LIBRARY"]
