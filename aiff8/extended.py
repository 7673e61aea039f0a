"""
aiff8.extended

80-bit IEEE extended-precision decoding for the AIFF sample-rate field.

The on-disk layout is big-endian:
  exponent[s16], hi_mantissa[u32], lo_mantissa[u32]

The integer bit of the mantissa is explicit (bit 31 of hi_mantissa), so a
normalised value is hi * 2**(e - 31) + lo * 2**(e - 63) with e the unbiased
exponent.
"""

from __future__ import annotations

import math
import struct
import sys
from dataclasses import dataclass

EXTENDED = struct.Struct(">hII")
EXTENDED_BIAS = 16383
EXTENDED_MAX_EXPONENT = 0x7FFF


def decode_extended(exponent: int, hi: int, lo: int) -> float:
    """
    Convert an extended-precision triple to a Python float.

    Infinity and NaN encodings (exponent 0x7FFF) are not told apart; both map
    to the largest finite float.
    """
    if exponent == 0 and hi == 0 and lo == 0:
        return 0.0
    if exponent == EXTENDED_MAX_EXPONENT:
        return sys.float_info.max

    exp = int(exponent) - EXTENDED_BIAS - 31
    try:
        value = math.ldexp(float(hi), exp)
        exp -= 32
        value += math.ldexp(float(lo), exp)
    except OverflowError:
        return sys.float_info.max
    return value


@dataclass(frozen=True)
class ExtendedFloat:
    exponent: int
    hi: int
    lo: int

    def to_float(self) -> float:
        return decode_extended(self.exponent, self.hi, self.lo)


def unpack_extended(buf: bytes, offset: int = 0) -> ExtendedFloat:
    exponent, hi, lo = EXTENDED.unpack_from(buf, offset)
    return ExtendedFloat(int(exponent), int(hi), int(lo))
