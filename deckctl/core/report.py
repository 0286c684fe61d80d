"""Decoding of raw macro pad input reports.

Report layout (3 bytes)::

    byte 0  report id (consumer control is 0x02, unused here)
    byte 1  key code, 0xF1..0xF9 for the nine buttons
    byte 2  press flag, 0x00 on release and non-zero on press
"""

from __future__ import annotations

import logging

from deckctl.core.errors import DecodeError
from deckctl.core.model import KEY_CODE_MAX, KEY_CODE_MIN, REPORT_LENGTH

LOGGER = logging.getLogger(__name__)


def is_valid_key_code(code: int) -> bool:
    return KEY_CODE_MIN <= code <= KEY_CODE_MAX


def parse_report(raw: bytes) -> int | None:
    """Strict variant of :func:`decode` that raises on malformed reports.

    Returns ``None`` for a release, the key code for a press.
    """
    if len(raw) != REPORT_LENGTH:
        raise DecodeError(f"Unexpected HID report length: {len(raw)} bytes")

    report_id, code, press_flag = raw[0], raw[1], raw[2]
    LOGGER.debug("Processing HID report with report id 0x%02X", report_id)

    if press_flag == 0x00:
        return None
    if not is_valid_key_code(code):
        raise DecodeError(f"Key code 0x{code:02X} ({code}) is not expected")
    return code


def decode(raw: bytes) -> int | None:
    try:
        code = parse_report(bytes(raw))
    except DecodeError as exc:
        LOGGER.warning("Dropping HID report %s: %s", bytes(raw).hex(" "), exc)
        return None
    if code is None:
        LOGGER.debug("Key release detected, ignoring")
    return code
