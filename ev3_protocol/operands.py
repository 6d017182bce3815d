# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Direct command operand encoding/decoding.

Every operand starts with a tag byte:

    0b00svvvvv  LC0  short constant, 6-bit signed value in the tag itself
    0b01svvvvv  LV0/GV0  short local (bit 5 clear) / global (bit 5 set) index
    0x81 b      LC1  1-byte signed constant
    0x82 b b    LC2  2-byte signed constant (little endian)
    0x83 b*4    LC4  4-byte signed constant (little endian)
    0x84 s 0    LCS  NUL-terminated string
    0xC1 i      LV1  local variable, 1-byte index
    0xE1 i      GV1  global variable, 1-byte index
"""

from typing import Tuple, Union

from .errors import EncodingError, ProtocolError

LC1_TAG = 0x81
LC2_TAG = 0x82
LC4_TAG = 0x83
LCS_TAG = 0x84
LV1_TAG = 0xC1
GV1_TAG = 0xE1

_LONG_SIZES = {LC1_TAG: 1, LC2_TAG: 2, LC4_TAG: 4}


def _signed(value: int, size: int, name: str) -> bytes:
    low = -(1 << (8 * size - 1))
    high = (1 << (8 * size - 1)) - 1
    if not low <= value <= high:
        raise EncodingError(name, value, f"[{low}, {high}]")
    return value.to_bytes(size, "little", signed=True)


def lc0(value: int) -> bytes:
    """Encode a short constant in [-32, 31]."""
    if not -32 <= value <= 31:
        raise EncodingError("LC0", value, "[-32, 31]")
    return bytes([value & 0x3F])


def lc1(value: int) -> bytes:
    """Encode a 1-byte signed constant."""
    return bytes([LC1_TAG]) + _signed(value, 1, "LC1")


def lc2(value: int) -> bytes:
    """Encode a 2-byte signed constant."""
    return bytes([LC2_TAG]) + _signed(value, 2, "LC2")


def lc4(value: int) -> bytes:
    """Encode a 4-byte signed constant."""
    return bytes([LC4_TAG]) + _signed(value, 4, "LC4")


def lcs(text: Union[str, bytes]) -> bytes:
    """
    Encode a NUL-terminated string constant.

    Args:
        text: ASCII string (or raw bytes without NUL)

    Returns:
        Tag + string bytes + NUL
    """
    if isinstance(text, str):
        try:
            text = text.encode("ascii")
        except UnicodeEncodeError:
            raise EncodingError("LCS", text, "ASCII text") from None
    if b"\x00" in text:
        raise EncodingError("LCS", text, "no embedded NUL")
    return bytes([LCS_TAG]) + text + b"\x00"


def lv0(index: int) -> bytes:
    """Short reference to local variable memory."""
    if not 0 <= index <= 31:
        raise EncodingError("LV0", index, "[0, 31]")
    return bytes([0x40 | index])


def gv0(index: int) -> bytes:
    """Short reference to global variable memory (reply buffer)."""
    if not 0 <= index <= 31:
        raise EncodingError("GV0", index, "[0, 31]")
    return bytes([0x60 | index])


def lv1(index: int) -> bytes:
    """Long reference to local variable memory."""
    if not 0 <= index <= 0xFF:
        raise EncodingError("LV1", index, "[0, 255]")
    return bytes([LV1_TAG, index])


def gv1(index: int) -> bytes:
    """Long reference to global variable memory (reply buffer)."""
    if not 0 <= index <= 0xFF:
        raise EncodingError("GV1", index, "[0, 255]")
    return bytes([GV1_TAG, index])


def decode_operand(data: bytes, offset: int = 0) -> Tuple[Union[int, bytes], int]:
    """
    Decode one operand.

    Constants come back as ints, strings as bytes (without NUL) and
    variable references as their index.

    Args:
        data: Bytes containing the operand
        offset: Starting offset in data

    Returns:
        Tuple of (decoded value, new offset after operand)

    Raises:
        ProtocolError: If the operand is truncated or uses an unknown tag
    """
    if offset >= len(data):
        raise ProtocolError("Operand decode: unexpected end of data")

    tag = data[offset]
    offset += 1

    if not tag & 0x80:
        if tag & 0x40:
            return tag & 0x1F, offset
        value = tag & 0x3F
        if value & 0x20:
            value -= 0x40
        return value, offset

    if tag in _LONG_SIZES:
        size = _LONG_SIZES[tag]
        if offset + size > len(data):
            raise ProtocolError("Operand decode: truncated constant")
        value = int.from_bytes(data[offset:offset + size], "little", signed=True)
        return value, offset + size

    if tag == LCS_TAG:
        end = data.find(b"\x00", offset)
        if end < 0:
            raise ProtocolError("Operand decode: unterminated string")
        return bytes(data[offset:end]), end + 1

    if tag in (LV1_TAG, GV1_TAG):
        if offset >= len(data):
            raise ProtocolError("Operand decode: truncated variable index")
        return data[offset], offset + 1

    raise ProtocolError(f"Operand decode: unknown tag 0x{tag:02X}")
