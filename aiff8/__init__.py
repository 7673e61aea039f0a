"""
aiff8

Stable public API for the AIFF to 8-bit PCM converter.

This package keeps a hard separation between:
- container parsing and the error taxonomy (aiff8.aiff, aiff8.extended)
- bit-depth reduction and dither (aiff8.dither)
- text output (aiff8.emit)
- the one-shot file pipeline (aiff8.convert)
"""

from __future__ import annotations

__all__ = [
    "__version__",
    "AiffError",
    "FormatError",
    "UnsupportedFormatError",
    "ShortReadError",
    "ChunkNotFoundError",
    "AiffInfo",
    "parse_aiff",
    "scan_chunk",
    "decode_extended",
    "DitherState",
    "reduce_samples",
    "array_name",
    "format_array",
    "Conversion",
    "convert_file",
    "convert_stream",
]

__version__ = "0.1.0"

from .aiff import (
    AiffError,
    AiffInfo,
    ChunkNotFoundError,
    FormatError,
    ShortReadError,
    UnsupportedFormatError,
    parse_aiff,
    scan_chunk,
)
from .convert import Conversion, convert_file, convert_stream
from .dither import DitherState, reduce_samples
from .emit import array_name, format_array
from .extended import decode_extended
