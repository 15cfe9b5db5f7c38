"""The shared, stateful OCR engine session.

Both passes of a detection cycle run on one engine session. Its configuration
is mutable state, so every change goes through :meth:`OCRSession.configured`,
which holds the session lock for the duration and restores the baseline on
exit, whatever happens inside.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import numpy as np

from fieldscan.errors import OCRInitError, RecognitionError
from fieldscan.ocr.base import BaseOCREngine, OCRConfig, RecognitionResult

EngineFactory = Callable[..., BaseOCREngine]


class OCRSession:
    def __init__(
        self,
        factory: EngineFactory,
        baseline: Optional[OCRConfig] = None,
        **engine_options: Any,
    ):
        self.logger = logging.getLogger(__name__)
        self._factory = factory
        self._engine_options = dict(engine_options)
        self.baseline = baseline or OCRConfig()
        self.config = self.baseline
        self.calls = 0
        self._lock = threading.RLock()
        self._engine: Optional[BaseOCREngine] = None
        self._create_engine()

    def _create_engine(self) -> None:
        try:
            self._engine = self._factory(**self._engine_options)
        except OCRInitError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to create OCR engine: {str(e)}")
            raise OCRInitError("OCR engine initialization failed") from e

    @property
    def engine(self) -> Optional[BaseOCREngine]:
        return self._engine

    @contextmanager
    def configured(self, **changes: Any) -> Iterator["OCRSession"]:
        """Hold the session with ``changes`` applied; restore the baseline afterwards"""
        with self._lock:
            self.config = self.baseline.with_changes(**changes)
            try:
                yield self
            finally:
                self.config = self.baseline

    def recognize(self, image: np.ndarray) -> RecognitionResult:
        """Run the engine with the current configuration"""
        with self._lock:
            if self._engine is None:
                raise OCRInitError("OCR engine is not initialized")
            self.calls += 1
            try:
                return self._engine.recognize(image, self.config)
            except RecognitionError:
                raise
            except Exception as e:
                raise RecognitionError(f"OCR engine error: {e}") from e

    def reinitialize(self, **engine_options: Any) -> None:
        """Tear down and recreate the engine, e.g. to switch language or model profile.

        Waits for any in-flight recognition to finish first.
        """
        with self._lock:
            self.close()
            self._engine_options.update(engine_options)
            self.config = self.baseline
            self._create_engine()
            self.logger.info(f"OCR engine reinitialized with {self._engine_options}")

    def close(self) -> None:
        with self._lock:
            if self._engine is not None:
                self._engine.close()
                self._engine = None
