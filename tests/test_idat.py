import zlib

import pytest

from pngverify.errors import TruncatedPayload
from pngverify.findings import (
    ADLER_MISMATCH,
    FCHECK_MISMATCH,
    MISSING_IHDR,
    NLEN_MISMATCH,
    STORED_LENGTH_MISMATCH,
    TRUNCATED_IDAT,
    Report,
)
from pngverify.idat import IdatView, ZlibHeader, expected_stored_len, validate_idat
from pngverify.ihdr import decode_ihdr

from pngfactory import ihdr_payload, stored_zlib


def header(width=1, height=1, bit_depth=8, color_type=0):
    return decode_ihdr(ihdr_payload(width, height, bit_depth, color_type))


def kinds(findings):
    return [f.kind for f in findings]


def test_default_zlib_header_fields():
    zh = ZlibHeader(0x78, 0x9C)
    assert zh.check_ok
    assert zh.compression_method == 8
    assert zh.compression_info == 7
    assert zh.fcheck == 28
    assert zh.fdict == 0
    assert zh.flevel == 2


@pytest.mark.parametrize("bit", range(8))
def test_any_single_bit_change_in_flg_breaks_fcheck(bit):
    assert not ZlibHeader(0x78, 0x9C ^ (1 << bit)).check_ok


@pytest.mark.parametrize(
    "width, height, bit_depth, color_type, expected",
    [
        (5, 3, 8, 2, 3 * (1 + 3 * 5)),   # RGB
        (9, 2, 1, 0, 2 * (1 + 2)),       # 1 бит, 9 пикселей -> 2 байта
        (8, 2, 1, 0, 2 * (1 + 1)),       # ровно один байт на строку
        (3, 1, 4, 3, 1 + 2),             # палитра, 4 бита
        (5, 1, 2, 0, 1 + 2),
        (2, 1, 16, 6, 1 + 16),           # RGBA, 16 бит
        (4, 4, 8, 4, 4 * (1 + 8)),       # gray + alpha
    ],
)
def test_expected_stored_len(width, height, bit_depth, color_type, expected):
    assert expected_stored_len(header(width, height, bit_depth, color_type)) == expected


@pytest.mark.parametrize(
    "geometry",
    [
        dict(width=1, height=1, bit_depth=8, color_type=0),
        dict(width=7, height=3, bit_depth=1, color_type=0),
        dict(width=4, height=2, bit_depth=16, color_type=2),
        dict(width=3, height=5, bit_depth=8, color_type=6),
    ],
)
def test_block_built_from_expected_length_has_no_findings(geometry):
    hdr = header(**geometry)
    raw = bytes(range(expected_stored_len(hdr)))
    assert validate_idat(stored_zlib(raw), hdr) == []


def test_fcheck_mismatch_does_not_stop_later_checks():
    payload = stored_zlib(b"\x00\x7f", flg=0x02, adler=0)
    assert kinds(validate_idat(payload, header())) == [FCHECK_MISMATCH, ADLER_MISMATCH]


def test_nlen_mismatch():
    payload = stored_zlib(b"\x00\x7f", nlen=0x1234)
    assert kinds(validate_idat(payload, header())) == [NLEN_MISMATCH]


def test_stored_length_mismatch():
    # ширина 2 -> ожидается 3 байта на строку
    payload = stored_zlib(b"\x00\x7f")
    findings = validate_idat(payload, header(width=2))
    assert kinds(findings) == [STORED_LENGTH_MISMATCH]
    assert "(2)" in findings[0].message and "(3)" in findings[0].message


def test_adler_mismatch():
    payload = stored_zlib(b"\x00\x7f", adler=12345)
    assert kinds(validate_idat(payload, header())) == [ADLER_MISMATCH]


def test_huffman_blocks_are_not_checked_further():
    payload = zlib.compress(b"\x00" * 64)
    with IdatView(payload) as view:
        assert view.deflate_block_header().btype in (1, 2)
    assert validate_idat(payload, header(width=5, height=5)) == []


@pytest.mark.parametrize("cut", [0, 1, 2, 5])
def test_short_payload_reports_truncation(cut):
    payload = stored_zlib(b"\x00\x7f")[:cut]
    assert kinds(validate_idat(payload, header()))[-1] == TRUNCATED_IDAT


def test_declared_length_past_payload_is_truncation():
    payload = stored_zlib(b"\x00\x7f", length=200)
    assert kinds(validate_idat(payload, header())) == [STORED_LENGTH_MISMATCH, TRUNCATED_IDAT]


def test_missing_header_still_checks_adler():
    assert kinds(validate_idat(stored_zlib(b"\x00\x7f"), None)) == [MISSING_IHDR]
    assert kinds(validate_idat(stored_zlib(b"\x00\x7f", adler=1), None)) == [MISSING_IHDR, ADLER_MISMATCH]


def test_view_accessors_are_bounds_checked():
    with IdatView(b"\x78\x01") as view:
        assert view.zlib_header() == ZlibHeader(0x78, 0x01)
        with pytest.raises(TruncatedPayload):
            view.deflate_block_header()
        with pytest.raises(TruncatedPayload):
            view.trailer()


def test_report_receives_details_and_errors():
    report = Report()
    findings = validate_idat(stored_zlib(b"\x00\x7f", adler=7), header(), report)
    lines = report.lines()
    assert "\t CMF=120" in lines
    assert "\t\t BTYPE=0  (0=no compression; 1=fixed Huffman; 2=dynamic Huffman; 3=error)" in lines
    assert "\t\t LEN=2" in lines
    assert "\t\t NLEN=65533" in lines
    assert "\a!!! ERROR !!! ADLER-32 MISMATCH\n" in lines
    assert report.findings == findings
