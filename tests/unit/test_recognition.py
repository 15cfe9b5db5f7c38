import numpy as np
import pytest

from fieldscan.config import ScanConfig
from fieldscan.ocr.base import RecognitionResult
from fieldscan.ocr.recognition import (
    TwoPassRecognizer,
    card_bounds,
    classify_screen,
    looks_like_card,
)
from fieldscan.ocr.session import OCRSession
from fieldscan.types.fields import FieldKind, PSM, ScreenType
from fieldscan.types.frame import BoundingBox
from tests.utils.fake_engine import ScriptedEngine, make_result


@pytest.mark.parametrize("text,screen", [
    ("Settings\nSerial Number FTJHR20GPY", ScreenType.SERIAL),
    ("IMEI 490154203237518", ScreenType.IMEI),
    ("Model Name\niPhone", ScreenType.NONE),
    ("", ScreenType.NONE),
    # both keywords, only the IMEI pattern present
    ("Serial Number\nIMEI 49 015420 323751 8", ScreenType.IMEI),
    # both keywords, only the serial pattern present
    ("IMEI\nSerial Number FTJHR20GPY", ScreenType.SERIAL),
    # both keywords and both patterns: first keyword wins
    ("IMEI 490154203237518\nSerial FTJHR20GPY", ScreenType.IMEI),
    ("Serial FTJHR20GPY\nIMEI 490154203237518", ScreenType.SERIAL),
])
def test_classify_screen(text, screen):
    assert classify_screen(text) == screen


def test_looks_like_card():
    assert looks_like_card("Thai National ID Card")
    assert looks_like_card("1 2345 67890 12 3")
    assert not looks_like_card("Settings General About")


def test_card_bounds_needs_words():
    few = make_result(("two words", (10, 10, 100, 20)))
    assert card_bounds(few, (640, 400)) is None
    many = make_result(("a b c", (100, 100, 200, 20)), ("d", (100, 200, 50, 20)))
    box = card_bounds(many, (640, 400))
    # union (100,100)-(300,220), padded by 10%
    assert box.x0 == pytest.approx(80) and box.x1 == pytest.approx(320)
    assert box.y0 == pytest.approx(88) and box.y1 == pytest.approx(232)


@pytest.fixture
def frame_image():
    return np.full((720, 1280, 3), 255, dtype=np.uint8)


def make_recognizer(engine, **cfg):
    return TwoPassRecognizer(OCRSession(lambda: engine), ScanConfig(**cfg))


def test_detect_screen_with_both_keywords(frame_image):
    engine = ScriptedEngine(coarse=make_result(
        ("Serial Number", (10, 40, 90, 10)),
        ("IMEI 49 015420 323751 8", (10, 80, 150, 10)),
    ))
    rec = make_recognizer(engine)
    coarse, width = rec.coarse_image(frame_image)
    assert width == 320 and coarse.shape[:2] == (180, 320)
    det = rec.detect_screen(coarse)
    assert det.screen == ScreenType.IMEI
    assert det.label_box == BoundingBox(10, 80, 160, 90)
    assert engine.psms == [PSM.SPARSE_TEXT]


def test_extract_value_uses_crop_and_restores_mode(frame_image):
    engine = ScriptedEngine(fine="Serial Number | FTJHR20GPY")
    rec = make_recognizer(engine)
    out = rec.extract_value(
        frame_image, ScreenType.SERIAL, BoundingBox(10, 50, 90, 62), coarse_width=320
    )
    assert out.candidates == ["FTJHR20GPY"]
    assert out.crop is not None
    shape, cfg = engine.calls[-1]
    assert cfg.psm == PSM.SINGLE_LINE
    assert cfg.whitelist is None
    assert (shape[1], shape[0]) == out.crop.output_size
    assert rec.session.config.psm == PSM.SPARSE_TEXT


def test_extract_value_without_label_reads_full_frame(frame_image):
    engine = ScriptedEngine(fine="IMEI 490154203237518\nIMEI2 356938035643809")
    rec = make_recognizer(engine, use_whitelist=True)
    out = rec.extract_value(frame_image, ScreenType.IMEI)
    assert out.crop is None
    assert out.candidates == ["490154203237518", "356938035643809"]
    shape, cfg = engine.calls[-1]
    assert shape[1] == 640
    assert cfg.psm == PSM.SINGLE_BLOCK
    assert cfg.whitelist == "0123456789 "
    assert cfg.preserve_spaces


def test_card_field_extraction(frame_image):
    def handler(image, config):
        if config.psm == PSM.SPARSE_TEXT:
            return make_result(
                ("Thai National ID Card", (100, 100, 400, 30)),
                ("1 2345 67890 12 3", (250, 140, 250, 30)),
            )
        return "1 2345 67890 12 3"

    rec = make_recognizer(ScriptedEngine(handler=handler))
    det = rec.detect_card(frame_image)
    assert det.bounds is not None and det.word_count == 9
    assert rec.extract_card_field(frame_image, det.bounds, FieldKind.ID_NUMBER) == "1234567890123"


def test_detect_card_rejects_other_text(frame_image):
    rec = make_recognizer(ScriptedEngine(coarse=RecognitionResult("Settings General")))
    assert rec.detect_card(frame_image).bounds is None


def test_imei_crop_spans_both_imei_rows(frame_image):
    engine = ScriptedEngine(
        coarse=make_result(
            ("IMEI 49 015420 323751 8", (10, 50, 200, 12)),
            ("IMEI2 35 693803 564380 9", (10, 80, 200, 12)),
        ),
        fine="IMEI 49 015420 323751 8\nIMEI2 35 693803 564380 9",
    )
    rec = make_recognizer(engine)
    coarse, width = rec.coarse_image(frame_image)
    det = rec.detect_screen(coarse)
    assert det.label_box == BoundingBox(10, 50, 210, 92)

    out = rec.extract_value(frame_image, det.screen, det.label_box, width)
    # the IMEI2 row spans y=320..368 at full resolution
    assert out.crop.rect.y0 <= 200
    assert out.crop.rect.y1 >= 368
    assert out.candidates == ["490154203237518", "356938035643809"]
