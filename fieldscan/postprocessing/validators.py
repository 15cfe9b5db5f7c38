"""Pattern extractors: raw OCR text -> syntactically valid candidate values.

All extractors are total: unmatched or garbage input yields an empty result.
"""
from __future__ import annotations
import re
from typing import Iterable, List, Optional

from fieldscan.types.fields import FieldKind

# maximal uppercase alphanumeric runs of 10-12 chars
SERIAL_PATTERN = re.compile(r"(?<![A-Z0-9])[A-Z0-9]{10,12}(?![A-Z0-9])")
IMEI_PATTERN = re.compile(r"\d{2}\s?\d{6}\s?\d{6}\s?\d|\d{15}")
_BARE_IMEI = re.compile(r"\d{15}")
_SERIAL_LABEL = re.compile(r"serial", re.IGNORECASE)

_LASER_ID = re.compile(r"(\d{4})-?(\d{2})-?(\d{8})")
_DATE = re.compile(r"(\d{1,2})\s*([^\W\d_]{3,}\.?)\s*(\d{4})")
_TITLED_NAME = re.compile(r"(Miss|Mr\.?|Mrs\.?|Ms\.?)\s+([A-Za-z]+)", re.IGNORECASE)
_LAST_NAME_LABEL = re.compile(r"^\s*last\s*name\s*:?\s*", re.IGNORECASE)
_WORD = re.compile(r"[A-Za-z]{3,}")
_LETTER = re.compile(r"[^\W\d_]")

def squash_spaces(s: str) -> str: return re.sub(r"\s+", " ", s or "").strip()

def unique(values: Iterable[str]) -> List[str]:
    """De-duplicate keeping first-seen order"""
    return list(dict.fromkeys(values))


def normalize_imei(s: str) -> str:
    return re.sub(r"\s", "", s or "")

def is_valid_imei(s: str) -> bool:
    """Luhn check over a 15-digit IMEI"""
    digits = normalize_imei(s)
    if len(digits) != 15 or not digits.isdigit():
        return False
    total = 0
    for i, ch in enumerate(digits[:14]):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return (10 - total % 10) % 10 == int(digits[14])

def format_imei(s: str) -> str:
    """Display form: 2-6-6-1 digit groups separated by spaces"""
    d = normalize_imei(s)
    if len(d) != 15:
        return d
    return f"{d[:2]} {d[2:8]} {d[8:14]} {d[14:]}"


def extract_serials(text: str) -> List[str]:
    text = text or ""
    lines = text.split("\n")
    found: List[str] = []
    for i, line in enumerate(lines):
        labelled = _SERIAL_LABEL.search(line) or (i > 0 and _SERIAL_LABEL.search(lines[i - 1]))
        if labelled:
            found += [m for m in SERIAL_PATTERN.findall(line) if not is_valid_imei(m)]
    if not found:
        found = [m for m in SERIAL_PATTERN.findall(text) if not _BARE_IMEI.fullmatch(m)]
    return unique(found)

def extract_imeis(text: str) -> List[str]:
    normalized = (normalize_imei(m) for m in IMEI_PATTERN.findall(text or ""))
    return unique(n for n in normalized if len(n) == 15)


def clean_card_field(kind: FieldKind, text: str) -> Optional[str]:
    """Clean the OCR text of one pre-cropped ID-card region"""
    cleaned = squash_spaces(text)
    if not cleaned:
        return None

    if kind == FieldKind.ID_NUMBER:
        m = re.search(r"\d{13}", re.sub(r"[\s-]", "", cleaned))
        return m.group(0) if m else None

    if kind == FieldKind.LASER_ID:
        m = _LASER_ID.search(cleaned)
        return f"{m.group(1)}-{m.group(2)}-{m.group(3)}" if m else None

    if kind in (FieldKind.DATE_OF_BIRTH, FieldKind.DATE_OF_ISSUE, FieldKind.DATE_OF_EXPIRY):
        m = _DATE.search(cleaned)
        return f"{m.group(1)} {m.group(2)} {m.group(3)}" if m else None

    if kind == FieldKind.NAME_ENGLISH:
        m = _TITLED_NAME.search(cleaned)
        if m:
            return f"{m.group(1)} {m.group(2)}"
        return cleaned if len(cleaned) > 2 and _LETTER.search(cleaned) else None

    if kind == FieldKind.LAST_NAME_ENGLISH:
        m = _WORD.search(_LAST_NAME_LABEL.sub("", cleaned))
        return m.group(0) if m else None

    # free text: at least two characters, one of them a letter
    return cleaned if len(cleaned) > 1 and _LETTER.search(cleaned) else None


def extract(kind: FieldKind, text: str) -> List[str]:
    """Candidate values of ``kind`` found in ``text`` (ordered, de-duplicated)"""
    try:
        if kind == FieldKind.SERIAL:
            return extract_serials(text)
        if kind in (FieldKind.IMEI, FieldKind.IMEI2):
            return extract_imeis(text)
        value = clean_card_field(kind, text)
        return [value] if value else []
    except (TypeError, AttributeError):
        return []
