# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import hashlib
import re
from typing import Sequence

from credproof.constants import FIELD_MODULUS
from credproof.errors import DecodeError

_DECIMAL = re.compile(r"[0-9]+")
_HEX = re.compile(r"[0-9a-fA-F]+")
_DECIMAL_CHUNK = 4000


def _fit(data: bytes, length: int) -> list[int]:
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    data = data[:length]
    return list(data) + [0] * (length - len(data))


def text_to_fixed_bytes(s: str, length: int) -> list[int]:
    """
    Encode text as exactly `length` raw bytes.

    The text is UTF-8 encoded, then truncated to the first `length` bytes or
    right-padded with zero bytes. Truncation works on bytes, so a multi-byte
    character at the boundary can be split; the circuit packs signals the
    same way.

    Args:
        s: Text to encode.
        length: Exact number of bytes to return.

    Returns:
        A list of `length` integers in [0, 255].
    """
    return _fit(s.encode("utf-8"), length)


def hex_to_fixed_bytes(s: str, length: int) -> list[int]:
    """
    Decode a hex string into exactly `length` bytes.

    An optional `0x` prefix is removed and an odd-length string gets one
    leading zero nibble. The decoded bytes keep the first `length` bytes or
    are right-padded with zero bytes.

    Args:
        s: Hex string, with or without `0x`.
        length: Exact number of bytes to return.

    Returns:
        A list of `length` integers in [0, 255].

    Raises:
        DecodeError: If `s` contains non-hex characters.
    """
    clean = s[2:] if s.startswith("0x") else s
    if len(clean) % 2 == 1:
        clean = "0" + clean
    try:
        data = bytes.fromhex(clean)
    except ValueError as e:
        raise DecodeError(f"invalid hex string {s!r}") from e
    return _fit(data, length)


def _reduce_decimal(digits: str) -> int:
    # chunked so inputs above the interpreter's int/str digit limit still parse
    n = 0
    for i in range(0, len(digits), _DECIMAL_CHUNK):
        chunk = digits[i : i + _DECIMAL_CHUNK]
        n = (n * 10 ** len(chunk) + int(chunk)) % FIELD_MODULUS
    return n


def to_field(x: int | str) -> int:
    """
    Map an integer or a string into the scalar field.

    - integers are reduced modulo the field prime (negatives are rejected)
    - decimal digit strings are parsed as base 10
    - `0x` followed by at least one hex digit is parsed as base 16
    - any other string is hashed with sha256 and the digest is reduced into
      the field; this keeps arbitrary labels stable but is not invertible

    Args:
        x: Value to encode.

    Returns:
        An integer in [0, FIELD_MODULUS).

    Raises:
        ValueError: If `x` is a negative integer.
        TypeError: If `x` is neither an int nor a str.
    """
    if isinstance(x, bool):
        raise TypeError("booleans are not field elements")
    if isinstance(x, int):
        if x < 0:
            raise ValueError(f"cannot map negative integer {x} into the field")
        return x % FIELD_MODULUS
    if not isinstance(x, str):
        raise TypeError(f"cannot map {type(x).__name__} into the field")

    if x.startswith("0x") and _HEX.fullmatch(x[2:]):
        return int(x[2:], 16) % FIELD_MODULUS
    if _DECIMAL.fullmatch(x):
        return _reduce_decimal(x)

    digest = hashlib.sha256(x.encode("utf-8")).digest()
    return int.from_bytes(digest, "big") % FIELD_MODULUS


def to_decimal(x: int | str) -> str:
    """Canonical decimal string of `to_field(x)`."""
    return str(to_field(x))


def pack_bytes(values: Sequence[int | str]) -> int:
    """
    Collapse a byte array into one field element.

    Every element is parsed as a decimal integer and reduced modulo 256, the
    bytes are concatenated big-endian and the resulting hex string is field
    encoded. An empty array packs to zero.

    Raises:
        DecodeError: If an element is not an integer.
    """
    if not values:
        return 0
    packed = []
    for v in values:
        try:
            n = int(v)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"cannot pack non-integer element {v!r}") from e
        packed.append(f"{n % 256:02x}")
    return to_field("0x" + "".join(packed))


def compact_date(date: str) -> str:
    """Turn `YYYY-MM-DD` into the 8-character `YYYYMMDD` form the circuit packs."""
    return date.replace("-", "")
