"""
aiff8.convert

One-shot pipeline: open an AIFF/AIFC file, parse it, reduce channel 0 to
8-bit unsigned PCM and close the file again.

Errors from aiff8.aiff propagate unchanged; nothing here prints or exits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional, Tuple

import numpy as np

from .aiff import AiffInfo, parse_aiff
from .dither import reduce_samples
from .emit import array_name, format_array

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Conversion:
    """
    Result of converting one file.
    """

    name: str
    info: AiffInfo
    data: np.ndarray

    def to_c_array(self, *, c_type: str = "", progmem: bool = False, columns: int = 0) -> str:
        return format_array(self.name, self.data.tolist(), c_type=c_type, progmem=progmem, columns=columns)


def convert_stream(
    fp: BinaryIO,
    *,
    dither: bool = False,
    seed: Optional[int] = None,
    noise: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[AiffInfo, np.ndarray]:
    info, samples = parse_aiff(fp)
    logger.debug(
        "Parsed %s: %d frames, %d channels, %d-bit, %.15g Hz",
        info.form_type.decode("latin-1"),
        info.num_sample_frames,
        info.num_channels,
        info.sample_size,
        info.sample_rate,
    )
    data = reduce_samples(samples, info.sample_size, dither=dither, seed=seed, noise=noise, rng=rng)
    data.setflags(write=False)
    return info, data


def convert_file(
    path: str,
    *,
    name: Optional[str] = None,
    dither: bool = False,
    seed: Optional[int] = None,
    noise: bool = True,
) -> Conversion:
    """
    Convert the file at `path`.

    Parameters
    ----------
    path : str
        AIFF or AIFC input file.
    name : str, optional
        Array identifier; defaults to the file's base name without extension.
    dither : bool
        Apply noise-shaped dither to 16-bit input.
    seed : int, optional
        Seed for reproducible dither noise.
    noise : bool
        Add triangular noise when dithering.
    """
    with open(path, "rb") as fp:
        info, data = convert_stream(fp, dither=dither, seed=seed, noise=noise)
    return Conversion(name=name or array_name(path), info=info, data=data)
