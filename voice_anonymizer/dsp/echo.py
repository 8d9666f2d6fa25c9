from __future__ import annotations

import numpy as np


def delay_samples_for(sr: int, delay_seconds: float) -> int:
    return max(0, int(round(sr * delay_seconds)))


def delay(audio: np.ndarray, n_delay: int) -> np.ndarray:
    """
    Delay along the last axis by ``n_delay`` samples, zero-filling the start.
    Output length equals input length; the delayed tail is dropped.
    """
    x = np.asarray(audio, dtype=np.float32)
    if n_delay <= 0:
        return x.copy()
    out = np.zeros_like(x)
    n = x.shape[-1]
    if n_delay < n:
        out[..., n_delay:] = x[..., : n - n_delay]
    return out


def echo_mix(audio: np.ndarray, sr: int, delay_seconds: float, mix: float) -> np.ndarray:
    """
    Parallel fan-in of the dry signal and a delayed, attenuated copy:

        y = x + mix * delay(x)

    Both branches read the same input; this is not a feedback delay.
    """
    x = np.asarray(audio, dtype=np.float32)
    if mix == 0.0:
        return x.copy()
    wet = delay(x, delay_samples_for(sr, delay_seconds))
    return (x + np.float32(mix) * wet).astype(np.float32)
