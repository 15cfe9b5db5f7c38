from typing import List, Optional, Tuple
from dataclasses import dataclass, field
import logging
import re

import numpy as np

from fieldscan.config import ScanConfig
from fieldscan.ocr.base import RecognitionResult
from fieldscan.ocr.session import OCRSession
from fieldscan.postprocessing.validators import (
    IMEI_PATTERN,
    SERIAL_PATTERN,
    clean_card_field,
    extract,
)
from fieldscan.preprocessing.preprocess import PreprocessingPipeline
from fieldscan.types.fields import FieldKind, PSM, ScreenType, field_spec
from fieldscan.types.frame import BoundingBox
from fieldscan.utils.geometry import CropPlan, plan_crop, plan_region_crop, render_crop
from fieldscan.utils.image import resize_to_width

SCREEN_KEYWORDS = {ScreenType.SERIAL: "serial", ScreenType.IMEI: "imei"}
SCREEN_PRIMARY_FIELD = {ScreenType.SERIAL: FieldKind.SERIAL, ScreenType.IMEI: FieldKind.IMEI}

_CARD_ID_GROUPED = re.compile(r"\d{4}[\s-]?\d{5}[\s-]?\d{2}[\s-]?\d")
_CARD_ID_RUN = re.compile(r"\d{10,13}")
_CARD_KEYWORDS = re.compile(r"thai|national|id|card|identification|name|birth", re.IGNORECASE)
CARD_MIN_WORDS = 3
CARD_PADDING = 0.1


@dataclass
class ScreenDetection:
    screen: ScreenType
    raw_text: str = ""
    label_box: Optional[BoundingBox] = None  # coarse-image coordinates


@dataclass
class ValueExtraction:
    kind: FieldKind
    candidates: List[str] = field(default_factory=list)
    raw_text: str = ""
    crop: Optional[CropPlan] = None
    crop_preview: Optional[np.ndarray] = None


@dataclass
class CardDetection:
    bounds: Optional[BoundingBox]  # coordinates of the image passed in
    raw_text: str = ""
    word_count: int = 0


def classify_screen(text: str) -> ScreenType:
    """Decide which field screen is visible from coarse-pass text.

    One keyword family present wins outright. With both present, the value
    pattern actually present decides; with both patterns present too, the
    keyword that appears first in the text wins.
    """
    lower = (text or "").lower()
    has_serial = "serial" in lower
    has_imei = "imei" in lower
    if has_imei and not has_serial:
        return ScreenType.IMEI
    if has_serial and not has_imei:
        return ScreenType.SERIAL
    if not (has_serial or has_imei):
        return ScreenType.NONE

    imei_pattern = IMEI_PATTERN.search(text) is not None
    serial_pattern = SERIAL_PATTERN.search(text) is not None
    if imei_pattern and not serial_pattern:
        return ScreenType.IMEI
    if serial_pattern and not imei_pattern:
        return ScreenType.SERIAL
    return ScreenType.IMEI if lower.index("imei") < lower.index("serial") else ScreenType.SERIAL


def looks_like_card(text: str) -> bool:
    text = text or ""
    has_id = bool(_CARD_ID_GROUPED.search(text) or _CARD_ID_RUN.search(re.sub(r"\s", "", text)))
    return has_id or bool(_CARD_KEYWORDS.search(text))


def card_bounds(result: RecognitionResult, size: Tuple[int, int]) -> Optional[BoundingBox]:
    """Estimate card bounds as the padded union of all word boxes"""
    words = result.words
    if len(words) < CARD_MIN_WORDS:
        return None
    box = words[0].bbox
    for w in words[1:]:
        box = box.union(w.bbox)
    pad_x = box.width * CARD_PADDING
    pad_y = box.height * CARD_PADDING
    padded = BoundingBox(box.x0 - pad_x, box.y0 - pad_y, box.x1 + pad_x, box.y1 + pad_y)
    return padded.clamped(*size)


class TwoPassRecognizer:
    """
    Coarse pass to classify the visible screen and find its label, fine pass
    on an upscaled crop to read the value.
    """

    def __init__(self, session: OCRSession, config: Optional[ScanConfig] = None):
        self.logger = logging.getLogger(__name__)
        self.session = session
        self.config = config or ScanConfig()
        self.preprocessor = PreprocessingPipeline(self.config.preprocess)

    def _whitelist(self, kind: FieldKind) -> Optional[str]:
        return field_spec(kind).whitelist if self.config.use_whitelist else None

    def coarse_image(self, image: np.ndarray) -> Tuple[np.ndarray, int]:
        small, _ = resize_to_width(image, self.config.coarse_width)
        return small, small.shape[1]

    def detect_screen(self, coarse_image: np.ndarray) -> ScreenDetection:
        with self.session.configured(psm=PSM.SPARSE_TEXT) as s:
            result = s.recognize(coarse_image)
        screen = classify_screen(result.text)
        label_box = None
        if screen == ScreenType.IMEI:
            # span every IMEI row so the second IMEI lands in the fine crop too
            key = SCREEN_KEYWORDS[screen]
            for line in result.lines:
                if key in line.text.lower():
                    label_box = line.bbox if label_box is None else label_box.union(line.bbox)
        elif screen in SCREEN_KEYWORDS:
            line = result.find_line(SCREEN_KEYWORDS[screen])
            label_box = line.bbox if line else None
        self.logger.debug(f"Coarse pass: screen={screen.value} label={label_box}")
        return ScreenDetection(screen=screen, raw_text=result.text, label_box=label_box)

    def extract_value(
        self,
        image: np.ndarray,
        screen: ScreenType,
        label_box: Optional[BoundingBox] = None,
        coarse_width: Optional[int] = None,
    ) -> ValueExtraction:
        """Read the value for ``screen`` from the full-resolution ``image``"""
        kind = SCREEN_PRIMARY_FIELD[screen]
        spec = field_spec(kind)
        h, w = image.shape[:2]

        plan = None
        if label_box is not None and coarse_width:
            plan = plan_crop(
                label_box,
                coarse_width,
                (w, h),
                self.config.crop_target_height,
                self.config.crop_max_width,
            )
        if plan is not None:
            target = render_crop(image, plan)
            psm = spec.psm
        else:
            # no label located: read the whole frame at moderate resolution
            target, _ = resize_to_width(image, self.config.fine_width, allow_upscale=False)
            psm = PSM.SINGLE_BLOCK
        target = self.preprocessor.process(target)

        # keep the 2-6-6-1 IMEI grouping intact
        spaced = kind == FieldKind.IMEI
        with self.session.configured(
            psm=psm, whitelist=self._whitelist(kind), preserve_spaces=spaced
        ) as s:
            result = s.recognize(target)
        candidates = extract(kind, result.text)
        self.logger.debug(f"Fine pass ({kind.value}): {candidates} from {result.text!r}")
        return ValueExtraction(
            kind=kind,
            candidates=candidates,
            raw_text=result.text,
            crop=plan,
            crop_preview=target if plan is not None else None,
        )

    def detect_card(self, image: np.ndarray) -> CardDetection:
        with self.session.configured(psm=PSM.SPARSE_TEXT) as s:
            result = s.recognize(image)
        if not looks_like_card(result.text):
            return CardDetection(bounds=None, raw_text=result.text)
        h, w = image.shape[:2]
        return CardDetection(
            bounds=card_bounds(result, (w, h)),
            raw_text=result.text,
            word_count=len(result.words),
        )

    def extract_card_field(
        self, image: np.ndarray, bounds: BoundingBox, kind: FieldKind
    ) -> Optional[str]:
        spec = field_spec(kind)
        h, w = image.shape[:2]
        plan = plan_region_crop(
            bounds, spec.region, (w, h),
            self.config.crop_target_height, self.config.crop_max_width,
        )
        if plan is None:
            return None
        crop = self.preprocessor.process(render_crop(image, plan))
        with self.session.configured(psm=spec.psm, whitelist=self._whitelist(kind)) as s:
            result = s.recognize(crop)
        return clean_card_field(kind, result.text)
