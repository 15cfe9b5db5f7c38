import pytest

from fieldscan.postprocessing.validators import (
    clean_card_field,
    extract,
    extract_imeis,
    extract_serials,
    format_imei,
    is_valid_imei,
    normalize_imei,
)
from fieldscan.types.fields import FieldKind


def test_serial_from_label_line():
    assert extract_serials("Serial Number | FTJHR20GPY") == ["FTJHR20GPY"]


def test_serial_on_line_after_label():
    text = "Serial number\nF2LXK1ABHG7F\nModel MN9X2LL2A0"
    assert extract_serials(text) == ["F2LXK1ABHG7F"]


def test_serial_fallback_without_label():
    assert extract_serials("foo C02ZK1ABCD12 bar") == ["C02ZK1ABCD12"]


def test_serial_ignores_imei_digits():
    # a 15-digit IMEI must not yield a 12-character serial substring
    assert extract_serials("490154203237518") == []


def test_serial_length_bounds():
    assert extract_serials("ABCDEFGHI") == []  # 9
    assert extract_serials("ABCDEFGHIJKLM") == []  # 13
    assert extract_serials("ABCDEFGHIJ") == ["ABCDEFGHIJ"]


def test_serial_dedup_keeps_order():
    assert extract_serials("Serial AAAAA11111 BBBBB22222 AAAAA11111") == [
        "AAAAA11111",
        "BBBBB22222",
    ]


def test_imei_grouped_and_plain():
    text = "IMEI 49 015420 323751 8\nIMEI2 356938035643809"
    assert extract_imeis(text) == ["490154203237518", "356938035643809"]


def test_imei_too_short():
    assert extract_imeis("IMEI 49015420323751") == []


@pytest.mark.parametrize("imei,ok", [
    ("490154203237518", True),
    ("49 015420 323751 8", True),
    ("490154203237519", False),
    ("4901542032375", False),
    ("49015420323751A", False),
])
def test_luhn(imei, ok):
    assert is_valid_imei(imei) is ok


def test_format_imei():
    assert format_imei("490154203237518") == "49 015420 323751 8"
    assert format_imei("1234") == "1234"


def test_card_fields():
    assert clean_card_field(FieldKind.ID_NUMBER, "1 2345 67890 12 3") == "1234567890123"
    assert clean_card_field(FieldKind.ID_NUMBER, "12345") is None
    assert clean_card_field(FieldKind.LASER_ID, "JT0 1234-56-12345678") == "1234-56-12345678"
    assert clean_card_field(FieldKind.DATE_OF_BIRTH, "Date of Birth 12 Jan. 1990") == "12 Jan. 1990"
    assert clean_card_field(FieldKind.DATE_OF_BIRTH, "12 34 1990") is None
    assert clean_card_field(FieldKind.NAME_ENGLISH, "Name Mr. Somchai") == "Mr. Somchai"
    assert clean_card_field(FieldKind.LAST_NAME_ENGLISH, "Last name Jaidee") == "Jaidee"
    assert clean_card_field(FieldKind.NAME_THAI, "   ") is None


@pytest.mark.parametrize("garbage", ["", "   ", "%%%", "\n\n", None])
def test_extractors_are_total(garbage):
    for kind in FieldKind:
        assert extract(kind, garbage) == []


def test_serial_excludes_labelled_imei():
    assert "356938035643809" not in extract(FieldKind.SERIAL, "IMEI 356938035643809")


@pytest.mark.parametrize("raw", ["490154203237518", "49 015420 323751 8", " 49 0154 20323751 8 "])
def test_normalize_imei_idempotent(raw):
    once = normalize_imei(raw)
    assert normalize_imei(once) == once == "490154203237518"


def test_luhn_detects_every_single_digit_change():
    valid = "490154203237518"
    for pos in range(15):
        for d in "0123456789":
            if d == valid[pos]:
                continue
            assert not is_valid_imei(valid[:pos] + d + valid[pos + 1:]), (pos, d)
