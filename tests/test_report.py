from __future__ import annotations

import pytest

from deckctl.core.errors import DecodeError
from deckctl.core.report import decode, parse_report


def test_valid_press_decodes_to_key_code() -> None:
    assert decode(bytes([0x02, 0xF3, 0xFF])) == 0xF3


@pytest.mark.parametrize("raw", [b"", b"\x02", b"\x02\xf3", b"\x02\xf3\xff\x00", bytes(64)])
def test_wrong_length_is_dropped(raw: bytes) -> None:
    assert decode(raw) is None


@pytest.mark.parametrize("code", [0x00, 0xF1, 0xF5, 0xF9, 0xFF])
def test_release_never_produces_event(code: int) -> None:
    assert decode(bytes([0x02, code, 0x00])) is None


@pytest.mark.parametrize("code", [0x00, 0x3A, 0xE9, 0xF0, 0xFA, 0xFF])
def test_out_of_range_press_is_dropped(code: int) -> None:
    assert decode(bytes([0x02, code, 0x01])) is None


def test_range_bounds_are_inclusive() -> None:
    assert decode(bytes([0x02, 0xF1, 0x01])) == 0xF1
    assert decode(bytes([0x02, 0xF9, 0x01])) == 0xF9


def test_report_id_is_ignored() -> None:
    assert decode(bytes([0x07, 0xF4, 0xFF])) == 0xF4


def test_decode_logs_unexpected_code(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING"):
        decode(bytes([0x02, 0x42, 0xFF]))
    assert "not expected" in caplog.text


def test_parse_report_raises_for_malformed_report() -> None:
    with pytest.raises(DecodeError):
        parse_report(b"\x02\xf3")
    with pytest.raises(DecodeError):
        parse_report(b"\x02\x10\xff")
