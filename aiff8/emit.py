"""
aiff8.emit

Text output: the C array literal and the diagnostic lines.

    format_array("tone", [127, 128, 129])
    -> "tone[] = { 127, 128, 129 };\n"

    format_array("tone", data, c_type="prog_uchar", progmem=True)
    -> "prog_uchar tone[] PROGMEM = { ... };\n"
"""

from __future__ import annotations

import os
from typing import Iterable, List

from .aiff import AiffInfo


def array_name(path: str) -> str:
    """
    Base name of `path` with its extension stripped.
    """
    base = os.path.basename(os.path.normpath(path))
    root, _ext = os.path.splitext(base)
    return root


def _declaration(name: str, c_type: str, progmem: bool) -> str:
    decl = f"{name}[]"
    if c_type:
        decl = f"{c_type} {decl}"
    if progmem:
        decl += " PROGMEM"
    return decl


def format_array(
    name: str,
    values: Iterable[int],
    *,
    c_type: str = "",
    progmem: bool = False,
    columns: int = 0,
) -> str:
    items: List[str] = []
    for v in values:
        v = int(v)
        if v < 0 or v > 255:
            raise ValueError(f"Output value out of byte range: {v}")
        items.append(str(v))

    decl = _declaration(name, c_type.strip(), progmem)
    if not items:
        return f"{decl} = {{ }};\n"

    if columns and columns > 0:
        rows = [", ".join(items[i:i + columns]) for i in range(0, len(items), columns)]
        body = ",\n".join("    " + row for row in rows)
        return f"{decl} = {{\n{body}\n}};\n"

    return f"{decl} = {{ {', '.join(items)} }};\n"


def format_diagnostics(info: AiffInfo) -> List[str]:
    return [
        "Sample rate: %.15g" % info.sample_rate,
        f"Sample size: {info.sample_size}",
        f"Frames: {info.num_sample_frames}",
        f"Channels: {info.num_channels}",
    ]
