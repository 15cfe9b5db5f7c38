from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from fieldscan.errors import CaptureSourceError
from fieldscan.types.frame import Frame


class FrameSource(ABC):
    """Something the scanner can rasterize into a :class:`Frame` on demand"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @abstractmethod
    def open(self) -> None:
        """Acquire the source; raise :class:`CaptureSourceError` if unavailable"""

    @abstractmethod
    def read(self) -> Optional[Frame]:
        """Capture the current frame, or ``None`` if none is ready yet"""

    def close(self) -> None:
        pass

    def __enter__(self) -> "FrameSource":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class CameraSource(FrameSource):
    def __init__(self, device: Union[int, str] = 0, width: int = 1280, height: int = 720):
        super().__init__()
        self.device = device
        self.width = width
        self.height = height
        self._cap: Optional[cv2.VideoCapture] = None

    def open(self) -> None:
        cap = cv2.VideoCapture(self.device)
        if not cap.isOpened():
            cap.release()
            self.logger.error(f"Failed to open camera {self.device}")
            raise CaptureSourceError(f"Camera {self.device!r} is not available")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._cap = cap
        self.logger.info(
            f"Camera initialized: {int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
            f"{int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
        )

    def read(self) -> Optional[Frame]:
        if self._cap is None:
            return None
        ok, img = self._cap.read()
        if not ok or img is None or img.size == 0:
            return None
        return Frame(img)

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None


class StillImageSource(FrameSource):
    """A single decoded image, returned on every read"""

    def __init__(self, image: Union[str, Path, np.ndarray]):
        super().__init__()
        self.image = image
        self._frame: Optional[Frame] = None

    def open(self) -> None:
        if isinstance(self.image, np.ndarray):
            if self.image.size == 0:
                raise CaptureSourceError("Empty image")
            self._frame = Frame(self.image)
            return
        path = Path(self.image)
        try:
            with Image.open(path) as im:
                rgb = np.array(im.convert("RGB"))
        except (OSError, UnidentifiedImageError) as e:
            self.logger.error(f"Failed to load image {path}: {str(e)}")
            raise CaptureSourceError(f"Could not load image from {path}") from e
        self._frame = Frame(cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))
        self.logger.info(f"Loaded {path.name} ({self._frame.width}x{self._frame.height})")

    def read(self) -> Optional[Frame]:
        return self._frame

    def close(self) -> None:
        self._frame = None
