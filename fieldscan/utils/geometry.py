"""Crop planning for the fine pass.

Boxes found in the coarse image are moved into full-resolution coordinates,
padded, extended and turned into an upscaled crop the engine can read.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from fieldscan.types.fields import Region
from fieldscan.types.frame import BoundingBox

DEFAULT_TARGET_HEIGHT = 700
DEFAULT_MAX_WIDTH = 2000


@dataclass(frozen=True)
class CropPlan:
    rect: BoundingBox  # full-image coordinates
    scale: float
    output_size: Tuple[int, int]  # (width, height) after rescaling

    def describe(self) -> str:
        x, y, w, h = self.rect.to_xywh()
        ow, oh = self.output_size
        return f"crop: {x},{y} {w}x{h} -> {ow}x{oh} (x{self.scale:.2f})"


def upscale_factor(
    width: float,
    height: float,
    target_height: int = DEFAULT_TARGET_HEIGHT,
    max_width: int = DEFAULT_MAX_WIDTH,
) -> float:
    """Scale that brings ``height`` to ``target_height`` without exceeding ``max_width``.

    Never below 1.0: crops are only ever enlarged.
    """
    if width <= 0 or height <= 0:
        return 1.0
    scale = max(1.0, target_height / float(height))
    if width * scale > max_width:
        scale = max(1.0, max_width / float(width))
    return scale


def _finish(
    rect: BoundingBox, target_height: int, max_width: int
) -> Optional[CropPlan]:
    if rect.width < 1 or rect.height < 1:
        return None
    scale = upscale_factor(rect.width, rect.height, target_height, max_width)
    out_w = max(1, int(round(rect.width * scale)))
    out_h = max(1, int(round(rect.height * scale)))
    return CropPlan(rect=rect, scale=scale, output_size=(out_w, out_h))


def plan_crop(
    label_box: BoundingBox,
    coarse_width: int,
    full_size: Tuple[int, int],
    target_height: int = DEFAULT_TARGET_HEIGHT,
    max_width: int = DEFAULT_MAX_WIDTH,
) -> Optional[CropPlan]:
    """Plan the crop for a value printed to the right of ``label_box``.

    ``label_box`` is in coarse-image pixels; ``full_size`` is ``(width, height)``
    of the full-resolution frame. Returns ``None`` when nothing of the crop lies
    inside the image.
    """
    full_w, full_h = full_size
    if coarse_width <= 0:
        raise ValueError("coarse_width must be positive")
    box = label_box.scaled(full_w / float(coarse_width))
    pad = box.height / 2.0
    rect = BoundingBox(box.x0, box.y0 - pad, max(float(full_w), box.x0), box.y1)
    return _finish(rect.clamped(full_w, full_h), target_height, max_width)


def plan_region_crop(
    container: BoundingBox,
    region: Region,
    full_size: Tuple[int, int],
    target_height: int = DEFAULT_TARGET_HEIGHT,
    max_width: int = DEFAULT_MAX_WIDTH,
) -> Optional[CropPlan]:
    """Plan the crop for a fixed-layout field inside ``container`` (full-image pixels)"""
    full_w, full_h = full_size
    x0 = container.x0 + container.width * region.x
    y0 = container.y0 + container.height * region.y
    rect = BoundingBox(
        x0, y0, x0 + container.width * region.w, y0 + container.height * region.h
    )
    return _finish(rect.clamped(full_w, full_h), target_height, max_width)


def render_crop(image: np.ndarray, plan: CropPlan) -> np.ndarray:
    """Cut ``plan.rect`` out of ``image`` and resample it to ``plan.output_size``"""
    h, w = image.shape[:2]
    x0 = max(0, int(math.floor(plan.rect.x0)))
    y0 = max(0, int(math.floor(plan.rect.y0)))
    x1 = min(w, max(x0 + 1, int(math.ceil(plan.rect.x1))))
    y1 = min(h, max(y0 + 1, int(math.ceil(plan.rect.y1))))
    crop = image[y0:y1, x0:x1]
    if (crop.shape[1], crop.shape[0]) == plan.output_size:
        return crop.copy()
    return cv2.resize(crop, plan.output_size, interpolation=cv2.INTER_CUBIC)
