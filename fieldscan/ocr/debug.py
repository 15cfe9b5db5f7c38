"""One-shot two-pass run with every knob exposed, for tuning crops and PSMs."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from fieldscan.ocr.session import OCRSession
from fieldscan.postprocessing.validators import SERIAL_PATTERN
from fieldscan.preprocessing.preprocess import PreprocessingPipeline
from fieldscan.types.fields import PSM
from fieldscan.types.frame import BoundingBox
from fieldscan.utils.geometry import CropPlan, render_crop

DEBUG_PADDING = 30
SCALE_CHOICES = (100, 150, 200, 300, 400, 500, 600)


@dataclass
class DebugReport:
    source_size: tuple
    label_text: Optional[str] = None
    label_box: Optional[BoundingBox] = None
    lines: List[str] = field(default_factory=list)
    crop_info: str = ""
    raw_text: str = ""
    serial: Optional[str] = None
    elapsed_ms: int = 0
    crop_image: Optional[np.ndarray] = None

    @property
    def found_label(self) -> bool:
        return self.label_box is not None


def debug_crop_plan(box: BoundingBox, width: int, height: int, scale_pct: int) -> CropPlan:
    """Fixed-padding crop from the label to the right edge, scaled by ``scale_pct``"""
    x0 = max(0.0, box.x0 - DEBUG_PADDING)
    y0 = max(0.0, box.y0 - DEBUG_PADDING)
    x1 = float(width)
    y1 = min(float(height), box.y1 + DEBUG_PADDING)
    rect = BoundingBox(x0, y0, x1, max(y0, y1))
    scale = scale_pct / 100.0
    out = (max(1, int(round(rect.width * scale))), max(1, int(round(rect.height * scale))))
    return CropPlan(rect=rect, scale=scale, output_size=out)


def run_two_pass_debug(
    session: OCRSession,
    image: np.ndarray,
    scale_pct: int = 400,
    psm: int = PSM.SINGLE_LINE,
    whitelist: Optional[str] = None,
    preprocess: str = "none",
    keyword: str = "serial",
) -> DebugReport:
    """Pass 1 at 100% to find the ``keyword`` line, pass 2 on the scaled crop"""
    if scale_pct not in SCALE_CHOICES:
        raise ValueError(f"scale_pct must be one of {SCALE_CHOICES}")
    start = time.perf_counter()
    h, w = image.shape[:2]
    report = DebugReport(source_size=(w, h))

    with session.configured(psm=PSM.SPARSE_TEXT) as s:
        detect = s.recognize(image)
    report.lines = [l.text for l in detect.lines]
    line = detect.find_line(keyword)
    if line is None:
        report.raw_text = detect.text
        report.elapsed_ms = int((time.perf_counter() - start) * 1000)
        return report

    report.label_text = line.text
    report.label_box = line.bbox
    plan = debug_crop_plan(line.bbox, w, h, scale_pct)
    crop = render_crop(image, plan)
    crop = PreprocessingPipeline(preprocess).process(crop)
    x, y, cw, ch = line.bbox.to_xywh()
    report.crop_info = f"bbox: {x},{y} {cw}x{ch} | {plan.describe()}"
    report.crop_image = crop

    with session.configured(psm=psm, whitelist=whitelist or None) as s:
        result = s.recognize(crop)
    report.raw_text = result.text
    m = SERIAL_PATTERN.search(result.text)
    report.serial = m.group(0) if m else None
    report.elapsed_ms = int((time.perf_counter() - start) * 1000)
    return report
