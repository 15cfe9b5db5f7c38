"""Per-field detection and confirmation state machine.

A cycle is split in two halves:

* ``observe(frame)`` runs the sharpness gate and the OCR passes and returns an
  observation. It never touches a session.
* ``apply(session, observation)`` folds the observation into the session and
  returns the delay before the next cycle (``None`` once scanning is done).

Keeping the mutation in ``apply`` lets a driver discard observations that
complete after the scan was stopped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from fieldscan.config import ScanConfig
from fieldscan.ocr.recognition import (
    ScreenDetection,
    TwoPassRecognizer,
    ValueExtraction,
)
from fieldscan.postprocessing.aggregate import (
    CandidateHistory,
    confidence,
    resolve,
    tally,
)
from fieldscan.postprocessing.validators import format_imei
from fieldscan.preprocessing.sharpness import estimate_sharpness
from fieldscan.types.fields import FieldKind, ScreenType, SCREEN_FIELDS, field_spec
from fieldscan.types.frame import Frame

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    SCANNING = "scanning"
    DETECTING = "detecting"
    LOCKING = "locking"
    CONFIRMED = "confirmed"


class ObservationKind(str, Enum):
    NO_FRAME = "no_frame"
    BLURRY = "blurry"
    ERROR = "error"
    NOTHING = "nothing"
    FOUND = "found"


@dataclass
class Observation:
    kind: ObservationKind
    frame: Optional[Frame] = None
    sharpness: float = 0.0
    screen: ScreenType = ScreenType.NONE
    raw_text: str = ""
    # field -> values read this cycle, in reading order
    readings: Dict[FieldKind, List[str]] = field(default_factory=dict)
    error: Optional[str] = None
    detection: Optional[ScreenDetection] = None
    extraction: Optional[ValueExtraction] = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session for rendering"""

    phase: Phase
    current_screen: ScreenType
    status: str
    confirmed: Dict[FieldKind, str]
    confidence: Dict[FieldKind, int]
    current_confidence: int
    evidence: Dict[FieldKind, np.ndarray]
    tally: Dict[FieldKind, List[Tuple[str, int]]]
    raw_text: str
    frame_count: int
    cycles: int
    last_error: Optional[str]


class ScanSession:
    """All mutable state of one scan; created at start, zeroed by :meth:`reset`"""

    def __init__(
        self,
        required: Tuple[FieldKind, ...],
        tracked: Tuple[FieldKind, ...],
        history_cap: int = 20,
        min_support: int = 3,
    ):
        self.required = tuple(required)
        self.tracked = tuple(tracked)
        self.min_support = min_support
        self.history = CandidateHistory(history_cap)
        self.reset()

    def reset(self) -> None:
        self.phase = Phase.SCANNING
        self.current_screen = ScreenType.NONE
        self.history.reset()
        self.confirmed: Dict[FieldKind, str] = {}
        self.evidence: Dict[FieldKind, np.ndarray] = {}
        self.current_confidence = 0
        self.frame_count = 0
        self.cycles = 0
        self.status = "Scanning..."
        self.raw_text = ""
        self.last_error: Optional[str] = None
        self.last_sharpness = 0.0
        self._notified: set = set()
        self._notifications: List[str] = []

    @property
    def done(self) -> bool:
        return self.phase == Phase.CONFIRMED

    def all_required_confirmed(self) -> bool:
        return all(k in self.confirmed for k in self.required)

    def notify(self, key: str, message: str) -> None:
        """Queue ``message`` once per session"""
        if key in self._notified:
            return
        self._notified.add(key)
        self._notifications.append(message)
        logger.info(message)

    def pop_notifications(self) -> List[str]:
        out, self._notifications = self._notifications, []
        return out

    def snapshot(self) -> SessionSnapshot:
        kinds = [k for k in self.tracked if self.history.values(k) or k in self.confirmed]
        return SessionSnapshot(
            phase=self.phase,
            current_screen=self.current_screen,
            status=self.status,
            confirmed=dict(self.confirmed),
            confidence={k: confidence(self.history.values(k)) for k in kinds},
            current_confidence=self.current_confidence,
            evidence=dict(self.evidence),
            tally={k: tally(self.history.values(k)) for k in kinds},
            raw_text=self.raw_text,
            frame_count=self.frame_count,
            cycles=self.cycles,
            last_error=self.last_error,
        )


def display_value(kind: FieldKind, value: str) -> str:
    return format_imei(value) if kind in (FieldKind.IMEI, FieldKind.IMEI2) else value


class BaseScanner:
    """Shared gate, confirmation and phase logic for the scan profiles"""

    required: Tuple[FieldKind, ...] = ()
    tracked: Tuple[FieldKind, ...] = ()

    def __init__(self, recognizer: TwoPassRecognizer, config: Optional[ScanConfig] = None):
        self.recognizer = recognizer
        self.config = config or recognizer.config

    def new_session(self) -> ScanSession:
        return ScanSession(
            self.required,
            self.tracked,
            history_cap=self.config.history_cap,
            min_support=self.config.min_support,
        )

    def observe(self, frame: Optional[Frame]) -> Observation:
        if frame is None:
            return Observation(ObservationKind.NO_FRAME)
        score = estimate_sharpness(frame)
        if score < self.config.sharpness_threshold:
            return Observation(ObservationKind.BLURRY, frame=frame, sharpness=score)
        try:
            obs = self._recognize(frame)
        except Exception as e:
            logger.exception("Detection cycle failed")
            return Observation(ObservationKind.ERROR, frame=frame, sharpness=score, error=str(e))
        obs.sharpness = score
        return obs

    def _recognize(self, frame: Frame) -> Observation:
        raise NotImplementedError

    def run_cycle(self, session: ScanSession, frame: Optional[Frame]) -> Optional[float]:
        """Observe ``frame`` and apply the result; returns the next delay or ``None``"""
        if session.done:
            return None
        return self.apply(session, self.observe(frame))

    def apply(self, session: ScanSession, obs: Observation) -> Optional[float]:
        if session.done:
            return None
        session.cycles += 1
        session.last_sharpness = obs.sharpness

        if obs.kind == ObservationKind.NO_FRAME:
            session.status = "Waiting for frame..."
            return self.config.scanning_delay
        if obs.kind == ObservationKind.BLURRY:
            session.status = f"Image too blurry (sharpness {obs.sharpness:.0f})"
            return self.config.blur_delay
        if obs.kind == ObservationKind.ERROR:
            session.last_error = obs.error
            session.status = "Recognition failed, retrying..."
            return self.config.scanning_delay

        session.raw_text = obs.raw_text
        if obs.kind == ObservationKind.NOTHING:
            session.phase = Phase.SCANNING
            session.current_screen = ScreenType.NONE
            session.current_confidence = 0
            session.status = self.idle_status()
            return self.idle_delay()

        return self._apply_found(session, obs)

    def _apply_found(self, session: ScanSession, obs: Observation) -> Optional[float]:
        session.current_screen = obs.screen
        session.frame_count += 1
        screen_fields = SCREEN_FIELDS[obs.screen]

        for kind in screen_fields:
            session.history.extend(kind, obs.readings.get(kind, ()))

        primary = screen_fields[0]
        session.current_confidence = confidence(session.history.values(primary))

        for kind in screen_fields:
            if kind in session.confirmed:
                continue
            resolved = resolve(session.history.values(kind), session.min_support)
            if resolved is None:
                continue
            value, count = resolved
            session.confirmed[kind] = value
            session.evidence[kind] = obs.frame.image.copy()
            session.notify(
                kind.value,
                f"{field_spec(kind).label} confirmed: {display_value(kind, value)}",
            )
            logger.info(f"{kind.value} confirmed as {value!r} with {count} reads")

        if session.all_required_confirmed():
            session.phase = Phase.CONFIRMED
            session.status = "All values collected!"
            session.notify("all", "All values collected!")
            return None

        if any(k in session.confirmed for k in screen_fields):
            session.phase = Phase.LOCKING
        else:
            session.phase = Phase.DETECTING
        # the "confirmed" wording only once the screen's own field is in
        if primary in session.confirmed:
            session.status = self.locking_status(obs.screen)
        else:
            session.status = self.detecting_status(obs.screen)
        return self.found_delay()

    # status lines and timing, overridden per profile
    def idle_status(self) -> str:
        return "Scanning..."

    def detecting_status(self, screen: ScreenType) -> str:
        return "Extracting..."

    def locking_status(self, screen: ScreenType) -> str:
        return "Confirmed, move to the next field..."

    def idle_delay(self) -> float:
        return self.config.scanning_delay

    def found_delay(self) -> float:
        return self.config.detecting_delay


class PhoneScanner(BaseScanner):
    """Serial / IMEI reader for a phone's About screen"""

    required = (FieldKind.SERIAL, FieldKind.IMEI)
    tracked = (FieldKind.SERIAL, FieldKind.IMEI, FieldKind.IMEI2)

    def _recognize(self, frame: Frame) -> Observation:
        coarse, coarse_width = self.recognizer.coarse_image(frame.image)
        detection = self.recognizer.detect_screen(coarse)
        if detection.screen == ScreenType.NONE:
            return Observation(
                ObservationKind.NOTHING, frame=frame, raw_text=detection.raw_text,
                detection=detection,
            )

        extraction = self.recognizer.extract_value(
            frame.image, detection.screen, detection.label_box, coarse_width
        )
        readings: Dict[FieldKind, List[str]] = {}
        if detection.screen == ScreenType.SERIAL:
            readings[FieldKind.SERIAL] = extraction.candidates
        else:
            # first distinct IMEI on screen is IMEI, the second is IMEI2
            readings[FieldKind.IMEI] = extraction.candidates[:1]
            readings[FieldKind.IMEI2] = extraction.candidates[1:2]
        return Observation(
            ObservationKind.FOUND,
            frame=frame,
            screen=detection.screen,
            raw_text=extraction.raw_text,
            readings=readings,
            detection=detection,
            extraction=extraction,
        )

    def idle_status(self) -> str:
        return "Point camera at the Settings > About screen..."

    def detecting_status(self, screen: ScreenType) -> str:
        label = "Serial Number" if screen == ScreenType.SERIAL else "IMEI"
        return f"{label} screen detected - extracting..."

    def locking_status(self, screen: ScreenType) -> str:
        if screen == ScreenType.SERIAL:
            return "Serial confirmed - now show the IMEI screen"
        return "IMEI confirmed - now show the Serial Number screen"
