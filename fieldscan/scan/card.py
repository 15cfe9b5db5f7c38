"""National-ID card profile.

The card is located from the spread of all recognized words; each field is
then read from its fixed region of the card, so there is no label search.
"""
from __future__ import annotations

import logging
from typing import Dict, List

from fieldscan.scan.state_machine import BaseScanner, Observation, ObservationKind
from fieldscan.types.fields import CARD_FIELDS, FieldKind, ScreenType
from fieldscan.types.frame import Frame
from fieldscan.utils.image import resize_to_width

logger = logging.getLogger(__name__)


class CardScanner(BaseScanner):
    required = (FieldKind.ID_NUMBER, FieldKind.DATE_OF_BIRTH)
    tracked = CARD_FIELDS

    def _recognize(self, frame: Frame) -> Observation:
        small, scale = resize_to_width(
            frame.image, self.config.fine_width, allow_upscale=False
        )
        detection = self.recognizer.detect_card(small)
        if detection.bounds is None:
            return Observation(ObservationKind.NOTHING, frame=frame, raw_text=detection.raw_text)

        bounds = detection.bounds.scaled(1.0 / scale).clamped(frame.width, frame.height)
        readings: Dict[FieldKind, List[str]] = {}
        for kind in CARD_FIELDS:
            value = self.recognizer.extract_card_field(frame.image, bounds, kind)
            if value:
                readings[kind] = [value]
        logger.debug(f"Card at {bounds.to_xywh()}: {len(readings)} fields read")
        return Observation(
            ObservationKind.FOUND,
            frame=frame,
            screen=ScreenType.ID_CARD,
            raw_text=detection.raw_text,
            readings=readings,
        )

    def idle_status(self) -> str:
        return "Point camera at the ID card..."

    def detecting_status(self, screen: ScreenType) -> str:
        return "Card detected - extracting fields..."

    def locking_status(self, screen: ScreenType) -> str:
        return "Card detected - confirming remaining fields..."

    def idle_delay(self) -> float:
        return self.config.card_scanning_delay

    def found_delay(self) -> float:
        return self.config.card_found_delay
