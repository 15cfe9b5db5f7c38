"""Field and screen vocabulary shared by extractors, recognizer and scanner"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class PSM(int, Enum):
    """Tesseract page-segmentation modes used by the scanner"""

    AUTO = 3
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7
    SINGLE_WORD = 8
    SPARSE_TEXT = 11


class FieldKind(str, Enum):
    SERIAL = "serial"
    IMEI = "imei"
    IMEI2 = "imei2"
    ID_NUMBER = "idNumber"
    NAME_THAI = "nameThai"
    NAME_ENGLISH = "nameEnglish"
    LAST_NAME_ENGLISH = "lastNameEnglish"
    DATE_OF_BIRTH = "dateOfBirth"
    DATE_OF_ISSUE = "dateOfIssue"
    DATE_OF_EXPIRY = "dateOfExpiry"
    LASER_ID = "laserId"


class ScreenType(str, Enum):
    NONE = "none"
    SERIAL = "serial"
    IMEI = "imei"
    ID_CARD = "idCard"


@dataclass(frozen=True)
class Region:
    """Rectangle relative to a container, all values in 0..1"""

    x: float
    y: float
    w: float
    h: float


@dataclass(frozen=True)
class FieldSpec:
    kind: FieldKind
    label: str
    psm: PSM
    whitelist: Optional[str] = None
    region: Optional[Region] = None


ALNUM_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
DIGITS = "0123456789"

FIELD_SPECS: Dict[FieldKind, FieldSpec] = {
    FieldKind.SERIAL: FieldSpec(FieldKind.SERIAL, "Serial Number", PSM.SINGLE_LINE, ALNUM_UPPER),
    FieldKind.IMEI: FieldSpec(FieldKind.IMEI, "IMEI", PSM.SINGLE_BLOCK, DIGITS + " "),
    FieldKind.IMEI2: FieldSpec(FieldKind.IMEI2, "IMEI2", PSM.SINGLE_BLOCK, DIGITS + " "),
    # Thai ID card layout, relative to the detected card bounds
    FieldKind.ID_NUMBER: FieldSpec(
        FieldKind.ID_NUMBER, "ID Number", PSM.SINGLE_LINE, DIGITS + " -",
        Region(0.35, 0.05, 0.63, 0.08),
    ),
    FieldKind.NAME_THAI: FieldSpec(
        FieldKind.NAME_THAI, "Name (Thai)", PSM.SINGLE_BLOCK, None,
        Region(0.22, 0.13, 0.55, 0.08),
    ),
    FieldKind.NAME_ENGLISH: FieldSpec(
        FieldKind.NAME_ENGLISH, "Name (English)", PSM.SINGLE_BLOCK, None,
        Region(0.22, 0.21, 0.55, 0.06),
    ),
    FieldKind.LAST_NAME_ENGLISH: FieldSpec(
        FieldKind.LAST_NAME_ENGLISH, "Last Name", PSM.SINGLE_BLOCK, None,
        Region(0.22, 0.27, 0.55, 0.06),
    ),
    FieldKind.DATE_OF_BIRTH: FieldSpec(
        FieldKind.DATE_OF_BIRTH, "Date of Birth", PSM.SINGLE_BLOCK, None,
        Region(0.22, 0.33, 0.55, 0.08),
    ),
    FieldKind.DATE_OF_ISSUE: FieldSpec(
        FieldKind.DATE_OF_ISSUE, "Date of Issue", PSM.SINGLE_BLOCK, None,
        Region(0.05, 0.75, 0.30, 0.12),
    ),
    FieldKind.DATE_OF_EXPIRY: FieldSpec(
        FieldKind.DATE_OF_EXPIRY, "Date of Expiry", PSM.SINGLE_BLOCK, None,
        Region(0.55, 0.75, 0.30, 0.12),
    ),
    FieldKind.LASER_ID: FieldSpec(
        FieldKind.LASER_ID, "Laser ID", PSM.SINGLE_LINE, DIGITS + "-",
        Region(0.55, 0.88, 0.43, 0.08),
    ),
}

CARD_FIELDS: Tuple[FieldKind, ...] = tuple(
    k for k, spec in FIELD_SPECS.items() if spec.region is not None
)

# fields whose histories belong to each screen
SCREEN_FIELDS: Dict[ScreenType, Tuple[FieldKind, ...]] = {
    ScreenType.NONE: (),
    ScreenType.SERIAL: (FieldKind.SERIAL,),
    ScreenType.IMEI: (FieldKind.IMEI, FieldKind.IMEI2),
    ScreenType.ID_CARD: CARD_FIELDS,
}


def field_spec(kind: FieldKind) -> FieldSpec:
    return FIELD_SPECS[kind]
