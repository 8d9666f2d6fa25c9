"""
Pitch/rate shift as a playback-rate multiplier on the source read.

The factor is drawn per invocation from an injected RandomSource, so
repeated runs over the same clip intentionally differ. Tests pin the
factor with ``FixedRandomSource``.
"""

from __future__ import annotations


import math
from typing import Optional, Protocol, Tuple


import numpy as np


from voice_anonymizer.config import PLAYBACK_RATE_BASE, PLAYBACK_RATE_JITTER


class RandomSource(Protocol):
    """Anything with ``uniform(low, high)``; numpy Generators qualify."""

    def uniform(self, low: float, high: float) -> float:
        ...


class FixedRandomSource:
    """Always returns the same offset, clamped into the requested range."""

    def __init__(self, value: float = 0.0) -> None:
        self.value = float(value)

    def uniform(self, low: float, high: float) -> float:
        return float(min(max(self.value, low), high))


def default_random_source() -> RandomSource:
    return np.random.default_rng()


def playback_rate_bounds(
    base: float = PLAYBACK_RATE_BASE,
    jitter: float = PLAYBACK_RATE_JITTER,
) -> Tuple[float, float]:
    return base - jitter, base + jitter


def draw_playback_rate(
    random_source: Optional[RandomSource] = None,
    base: float = PLAYBACK_RATE_BASE,
    jitter: float = PLAYBACK_RATE_JITTER,
) -> float:
    """``base + uniform(-jitter, +jitter)``, never outside that band."""
    source = random_source if random_source is not None else default_random_source()
    low, high = playback_rate_bounds(base, jitter)
    rate = base + float(source.uniform(-jitter, jitter))
    return float(min(max(rate, low), high))


def output_frames_for(n_frames: int, rate: float) -> int:
    """Frames needed to play ``n_frames`` source frames at ``rate``."""
    if n_frames <= 0:
        return 0
    return int(math.ceil(n_frames / rate))


def read_at_rate(
    audio: np.ndarray,
    rate: float,
    n_out: Optional[int] = None,
) -> np.ndarray:
    """
    Read ``audio`` (along its last axis) at ``rate`` source samples per
    output sample, with linear interpolation. Reads past the end produce
    silence; ``n_out`` defaults to the full scaled length.
    """
    x = np.asarray(audio, dtype=np.float32)
    if x.ndim not in (1, 2):
        raise ValueError(f"Audio must be 1D or 2D (channel-major), got shape {x.shape}")
    if rate <= 0.0:
        raise ValueError(f"rate must be positive, got {rate}")

    n_in = x.shape[-1]
    if n_out is None:
        n_out = output_frames_for(n_in, rate)

    if n_in == 0:
        return np.zeros(x.shape[:-1] + (n_out,), dtype=np.float32)
    if rate == 1.0 and n_out <= n_in:
        return x[..., :n_out].copy()

    positions = np.arange(n_out, dtype=float) * rate
    grid = np.arange(n_in, dtype=float)

    if x.ndim == 1:
        return np.interp(positions, grid, x, right=0.0).astype(np.float32)

    out = np.empty((x.shape[0], n_out), dtype=np.float32)
    for ch in range(x.shape[0]):
        out[ch] = np.interp(positions, grid, x[ch], right=0.0)
    return out
