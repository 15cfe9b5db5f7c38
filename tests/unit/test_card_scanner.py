from fieldscan.ocr.recognition import TwoPassRecognizer
from fieldscan.ocr.session import OCRSession
from fieldscan.scan.card import CardScanner
from fieldscan.scan.state_machine import Phase
from fieldscan.types.fields import CARD_FIELDS, FieldKind, PSM, ScreenType
from fieldscan.types.frame import Frame
from tests.utils.fake_engine import ScriptedEngine, make_result


def card_handler(image, config):
    if config.psm == PSM.SPARSE_TEXT:
        return make_result(
            ("Thai National ID Card", (100, 60, 300, 20)),
            ("1 2345 67890 12 3", (150, 90, 250, 20)),
            ("Name Mr. Somchai", (150, 120, 250, 20)),
        )
    if config.psm == PSM.SINGLE_LINE:
        return "1 2345 67890 12 3"
    return "Date of Birth 12 Jan. 1990"


def test_card_scan_confirms_required_fields(config, sharp_image):
    engine = ScriptedEngine(handler=card_handler)
    scanner = CardScanner(TwoPassRecognizer(OCRSession(lambda: engine), config), config)
    session = scanner.new_session()
    frame = Frame(sharp_image)

    assert scanner.run_cycle(session, frame) == config.card_found_delay
    assert session.current_screen == ScreenType.ID_CARD
    assert session.status == "Card detected - extracting fields..."
    # coarse card pass on the downscaled frame, then one read per field
    assert len(engine.calls) == 1 + len(CARD_FIELDS)
    assert engine.calls[0][0][1] == config.fine_width

    scanner.run_cycle(session, frame)
    assert scanner.run_cycle(session, frame) is None
    assert session.phase == Phase.CONFIRMED
    assert session.confirmed[FieldKind.ID_NUMBER] == "1234567890123"
    assert session.confirmed[FieldKind.DATE_OF_BIRTH] == "12 Jan. 1990"
    assert FieldKind.LASER_ID not in session.confirmed


def test_no_card_in_view(config, sharp_image):
    engine = ScriptedEngine(coarse=make_result(("Settings", (0, 0, 50, 10))))
    scanner = CardScanner(TwoPassRecognizer(OCRSession(lambda: engine), config), config)
    session = scanner.new_session()
    assert scanner.run_cycle(session, Frame(sharp_image)) == config.card_scanning_delay
    assert session.status == "Point camera at the ID card..."
    assert len(engine.calls) == 1
