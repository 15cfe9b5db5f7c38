from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in the pixel space of the image it was detected in"""

    x0: float
    y0: float
    x1: float
    y1: float

    def __post_init__(self):
        if self.x1 < self.x0 or self.y1 < self.y0:
            raise ValueError(f"Degenerate bounding box: {self}")

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    def scaled(self, factor: float) -> "BoundingBox":
        """Return the box moved into a coordinate space ``factor`` times larger"""
        return BoundingBox(
            self.x0 * factor, self.y0 * factor, self.x1 * factor, self.y1 * factor
        )

    def clamped(self, width: float, height: float) -> "BoundingBox":
        def clip(v: float, hi: float) -> float:
            return max(0.0, min(float(hi), v))

        x0, x1 = clip(self.x0, width), clip(self.x1, width)
        y0, y1 = clip(self.y0, height), clip(self.y1, height)
        return BoundingBox(x0, y0, max(x0, x1), max(y0, y1))

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            min(self.x0, other.x0),
            min(self.y0, other.y0),
            max(self.x1, other.x1),
            max(self.y1, other.y1),
        )

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        return cls(x, y, x + w, y + h)

    def to_xywh(self) -> Tuple[int, int, int, int]:
        return (
            int(round(self.x0)),
            int(round(self.y0)),
            int(round(self.width)),
            int(round(self.height)),
        )


@dataclass(frozen=True)
class Frame:
    """A captured raster image. Treat ``image`` as read-only."""

    image: np.ndarray = field(repr=False)

    def __post_init__(self):
        if self.image is None or self.image.size == 0:
            raise ValueError("Invalid image input")

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height
