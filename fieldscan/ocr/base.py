from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
import pytesseract
from pytesseract import Output
import numpy as np
from pathlib import Path
import logging
from dataclasses import dataclass, field, replace

from fieldscan.errors import OCRInitError, RecognitionError
from fieldscan.types.fields import PSM
from fieldscan.types.frame import BoundingBox


@dataclass(frozen=True)
class OCRConfig:
    """Engine settings for one recognition call"""

    psm: int = PSM.SPARSE_TEXT
    oem: Optional[int] = None
    whitelist: Optional[str] = None
    preserve_spaces: bool = False

    def with_changes(self, **changes: Any) -> "OCRConfig":
        return replace(self, **changes)


@dataclass
class OCRWord:
    text: str
    bbox: BoundingBox
    confidence: float = -1.0


@dataclass
class OCRLine:
    text: str
    bbox: BoundingBox
    words: List[OCRWord] = field(default_factory=list)
    block: int = 0
    paragraph: int = 0


@dataclass
class RecognitionResult:
    """Flat text plus optional line/word geometry"""

    text: str
    lines: List[OCRLine] = field(default_factory=list)

    @property
    def words(self) -> List[OCRWord]:
        return [w for line in self.lines for w in line.words]

    def find_line(self, keyword: str) -> Optional[OCRLine]:
        """First line whose text contains ``keyword`` (case-insensitive)"""
        key = keyword.lower()
        return next((l for l in self.lines if key in l.text.lower()), None)


def build_tess_config(cfg: OCRConfig, tessdata_dir: Optional[str] = None) -> str:
    parts: List[str] = []
    if tessdata_dir:
        parts.append(f'--tessdata-dir "{tessdata_dir}"')
    parts += ["--psm", str(int(cfg.psm))]
    if cfg.oem is not None:
        parts += ["--oem", str(int(cfg.oem))]
    if cfg.preserve_spaces:
        parts += ["-c", "preserve_interword_spaces=1"]
    if cfg.whitelist:
        # tesseract's config parser splits on whitespace
        wl = cfg.whitelist.replace(" ", "")
        if wl:
            parts += ["-c", f"tessedit_char_whitelist={wl}"]
    return " ".join(parts)


class BaseOCREngine(ABC):
    """An OCR backend: ``recognize(image, config) -> RecognitionResult``"""

    @abstractmethod
    def recognize(self, image: np.ndarray, config: OCRConfig) -> RecognitionResult:
        pass

    def close(self) -> None:
        """Release engine resources"""


class TesseractEngine(BaseOCREngine):
    """Tesseract through pytesseract"""

    def __init__(
        self,
        lang: str = "eng",
        oem: int = 1,
        tesseract_cmd: Optional[str] = None,
        tessdata_dir: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.logger = logging.getLogger(__name__)
        self.lang = lang
        self.oem = oem
        self.tesseract_cmd = tesseract_cmd
        self.tessdata_dir = tessdata_dir
        self.timeout = timeout
        self._initialize_tesseract()
        self._check_languages()

    def _initialize_tesseract(self) -> None:
        """Point pytesseract at the binary and make sure it runs"""
        try:
            if self.tesseract_cmd:
                if not Path(self.tesseract_cmd).exists():
                    raise FileNotFoundError(
                        f"Tesseract binary not found at {self.tesseract_cmd}"
                    )
                pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd
            if self.tessdata_dir and not Path(self.tessdata_dir).is_dir():
                raise FileNotFoundError(f"tessdata dir not found at {self.tessdata_dir}")
            version = pytesseract.get_tesseract_version()
        except Exception as e:
            self.logger.error(f"Failed to initialize Tesseract: {str(e)}")
            raise OCRInitError("Tesseract initialization failed") from e
        self.logger.info(f"Tesseract {version} ready (lang={self.lang}, oem={self.oem})")

    def _check_languages(self) -> None:
        available = self.get_supported_languages()
        missing = [l for l in self.lang.split("+") if available and l not in available]
        if missing:
            self.logger.error(f"Missing traineddata for: {', '.join(missing)}")
            raise OCRInitError(f"Tesseract language data not installed: {'+'.join(missing)}")

    def get_supported_languages(self) -> List[str]:
        try:
            cfg = f'--tessdata-dir "{self.tessdata_dir}"' if self.tessdata_dir else ""
            return pytesseract.get_languages(config=cfg)
        except Exception as e:
            self.logger.error(f"Failed to get supported languages: {str(e)}")
            return []

    def recognize(self, image: np.ndarray, config: OCRConfig) -> RecognitionResult:
        if image is None or image.size == 0:
            raise RecognitionError("Invalid image input")
        if config.oem is None:
            config = config.with_changes(oem=self.oem)
        tess_config = build_tess_config(config, self.tessdata_dir)
        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.lang,
                config=tess_config,
                output_type=Output.DICT,
                timeout=self.timeout,
            )
        except Exception as e:
            raise RecognitionError(f"Tesseract failed ({tess_config}): {e}") from e
        lines = self._parse_data_dict_to_lines(data)
        return RecognitionResult(text="\n".join(l.text for l in lines), lines=lines)

    @staticmethod
    def _parse_data_dict_to_lines(d: Dict[str, Any]) -> List[OCRLine]:
        """Group image_to_data word rows into lines keyed by (page, block, par, line)"""
        grouped: Dict[Tuple[int, int, int, int], OCRLine] = {}
        n = len(d.get("text", []))
        for i in range(n):
            text = (d["text"][i] or "").strip()
            try:
                conf = float(d["conf"][i])
            except Exception:
                conf = -1.0
            if not text or conf < 0:
                continue
            bbox = BoundingBox.from_xywh(
                d["left"][i], d["top"][i], d["width"][i], d["height"][i]
            )
            key = (
                int(d.get("page_num", [1] * n)[i]),
                int(d["block_num"][i]),
                int(d["par_num"][i]),
                int(d["line_num"][i]),
            )
            word = OCRWord(text=text, bbox=bbox, confidence=conf)
            line = grouped.get(key)
            if line is None:
                grouped[key] = OCRLine(
                    text=text, bbox=bbox, words=[word], block=key[1], paragraph=key[2]
                )
            else:
                line.words.append(word)
                line.text = f"{line.text} {text}"
                line.bbox = line.bbox.union(bbox)
        return list(grouped.values())
