from __future__ import annotations

from typing import Optional

from fieldscan.config import ScanConfig
from fieldscan.ocr.base import OCRConfig, TesseractEngine
from fieldscan.ocr.recognition import TwoPassRecognizer
from fieldscan.ocr.session import OCRSession
from fieldscan.scan.card import CardScanner
from fieldscan.scan.state_machine import BaseScanner, PhoneScanner
from fieldscan.types.fields import PSM

PROFILES = {"phone": PhoneScanner, "card": CardScanner}


def build_session(config: ScanConfig) -> OCRSession:
    """Tesseract session with sparse-text as the baseline mode"""
    return OCRSession(
        TesseractEngine,
        baseline=OCRConfig(psm=PSM.SPARSE_TEXT),
        lang=config.lang,
        oem=config.oem,
        tesseract_cmd=config.tesseract_cmd,
        tessdata_dir=config.tessdata_dir,
        timeout=config.ocr_timeout,
    )


def build_scanner(
    profile: str = "phone",
    config: Optional[ScanConfig] = None,
    session: Optional[OCRSession] = None,
) -> BaseScanner:
    if profile not in PROFILES:
        raise ValueError(f"Unknown profile '{profile}', expected one of {sorted(PROFILES)}")
    config = config or ScanConfig.from_env()
    recognizer = TwoPassRecognizer(session or build_session(config), config)
    return PROFILES[profile](recognizer, config)
