"""
aiff8.dither

Bit-depth reduction from 16-bit signed PCM to 8-bit unsigned PCM.

Without dither every sample is mapped with

    clamp(floor(s / 256 + 128 + 0.5), 0, 255)

With dither, each sample goes through a 5-tap error-feedback filter
(Lipshitz's minimally audible FIR) before rounding, plus optional triangular
noise. The quantization error of each sample is fed into the following ones,
which pushes the noise floor towards frequencies the ear is less sensitive to.

8-bit input is already at target depth and is copied through unchanged.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

HISTORY_SIZE = 8
HISTORY_MASK = HISTORY_SIZE - 1

# Lipshitz's minimally audible FIR
SHAPED_COEFFS = (2.033, -2.165, 1.959, -1.590, 0.6149)

OUT_MIN = 0
OUT_MAX = 255


def to_unsigned(sample: float) -> float:
    return float(sample) / 256.0 + 128.0


def clamp(value: float) -> int:
    if value > OUT_MAX:
        return OUT_MAX
    if value < OUT_MIN:
        return OUT_MIN
    return int(value)


def round_half_up(value: float) -> float:
    return float(np.floor(value + 0.5))


class DitherState:
    """
    Error-feedback state for noise-shaped requantization.

    Holds a circular history of the last HISTORY_SIZE quantization errors
    (only len(SHAPED_COEFFS) of them are weighted) and the index of the most
    recent one. One instance serves exactly one run; `update` is the only
    method that mutates it.

    Usage:
        state = DitherState(seed=1234)
        out = [state.update(to_unsigned(s)) for s in samples]
    """

    def __init__(
        self,
        *,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        noise: bool = True,
        coeffs: Sequence[float] = SHAPED_COEFFS,
    ) -> None:
        if len(coeffs) > HISTORY_SIZE:
            raise ValueError(f"At most {HISTORY_SIZE} filter taps are supported")
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.noise = bool(noise)
        self.coeffs = tuple(float(c) for c in coeffs)
        self.history = [0.0] * HISTORY_SIZE
        self.index = 0

    def shaped(self, value: float) -> float:
        """
        Return `value` plus the weighted error history, without mutating state.
        """
        xe = float(value)
        for k, coeff in enumerate(self.coeffs):
            xe += self.history[(self.index - k) & HISTORY_MASK] * coeff
        return xe

    def triangular_noise(self) -> float:
        # Sum of two independent uniform[-0.5, 0.5] draws.
        a, b = self.rng.uniform(-0.5, 0.5, size=2)
        return float(a + b)

    def noise_block(self, count: int) -> np.ndarray:
        """
        Triangular noise for `count` samples, drawn in one call.
        """
        return self.rng.uniform(-0.5, 0.5, size=(int(count), 2)).sum(axis=1)

    def update(self, value: float, noise: Optional[float] = None) -> int:
        """
        Requantize one sample already mapped to the 0..255 scale.

        `noise` is a pre-drawn triangular noise value; when omitted and noise
        is enabled, one is drawn here. Returns the clamped 8-bit output and
        records the quantization error.
        """
        xe = self.shaped(value)
        result = xe
        if self.noise:
            result += self.triangular_noise() if noise is None else float(noise)
        result = round_half_up(result)

        self.index = (self.index + 1) & HISTORY_MASK
        self.history[self.index] = xe - result
        return clamp(result)


def reduce_nominal(samples: np.ndarray) -> np.ndarray:
    """
    Map int16 samples to uint8 without dither.
    """
    s = np.asarray(samples, dtype=np.float64)
    out = np.floor(s / 256.0 + 128.0 + 0.5)
    return np.clip(out, OUT_MIN, OUT_MAX).astype(np.uint8)


def reduce_dithered(samples: np.ndarray, state: DitherState) -> np.ndarray:
    """
    Map int16 samples to uint8 through a DitherState, one sample at a time.
    """
    s = np.asarray(samples)
    out = np.empty(s.shape[0], dtype=np.uint8)
    if not state.noise:
        for i, v in enumerate(s.tolist()):
            out[i] = state.update(to_unsigned(v))
        return out

    noise = state.noise_block(s.shape[0]).tolist()
    for i, (v, n) in enumerate(zip(s.tolist(), noise)):
        out[i] = state.update(to_unsigned(v), n)
    return out


def reduce_samples(
    samples: np.ndarray,
    sample_size: int,
    *,
    dither: bool = False,
    seed: Optional[int] = None,
    noise: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Reduce channel-0 samples to the 8-bit unsigned output sequence.

    Parameters
    ----------
    samples : np.ndarray
        uint8 raw bytes for 8-bit input, int16 for 16-bit input.
    sample_size : int
        8 or 16.
    dither : bool
        Apply noise-shaped dithering to 16-bit input.
    seed : int, optional
        Seed for the dither noise; unseeded when None.
    noise : bool
        Add triangular noise on top of the error feedback.
    rng : np.random.Generator, optional
        Explicit generator; takes precedence over `seed`.

    Returns
    -------
    np.ndarray
        uint8 array with one value per sample.
    """
    if sample_size == 8:
        return np.asarray(samples, dtype=np.uint8).copy()
    if sample_size != 16:
        raise ValueError(f"Unsupported sample size: {sample_size}")

    if not dither:
        return reduce_nominal(samples)

    logger.debug("Dithering %d samples (noise=%s, seed=%s)", len(samples), noise, seed)
    state = DitherState(seed=seed, rng=rng, noise=noise)
    return reduce_dithered(samples, state)
