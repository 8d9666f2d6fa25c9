from __future__ import annotations

import numpy as np
from scipy.signal import sosfilt


def design_lowpass_sos(sr: int, cutoff_hz: float, q: float = 1.0) -> np.ndarray:
    """
    Design a single low-pass biquad (RBJ audio-EQ cookbook) as one
    second-order section.

    Parameters
    ----------
    sr : int
        Sample rate in Hz.
    cutoff_hz : float
        Cutoff frequency in Hz. Clamped just below Nyquist so low sample
        rates (e.g. 8 kHz telephony clips) still get a valid filter.
    q : float
        Quality factor.

    Returns
    -------
    np.ndarray
        SOS array of shape (1, 6), normalized so a0 == 1.
    """
    nyquist = sr / 2.0
    if cutoff_hz <= 0.0:
        raise ValueError(f"Cutoff frequency must be positive, got {cutoff_hz} Hz")
    if q <= 0.0:
        raise ValueError(f"Q must be positive, got {q}")
    cutoff_hz = min(float(cutoff_hz), nyquist * 0.999)

    w0 = 2.0 * np.pi * cutoff_hz / sr
    cos_w0 = np.cos(w0)
    alpha = np.sin(w0) / (2.0 * q)

    b0 = (1.0 - cos_w0) / 2.0
    b1 = 1.0 - cos_w0
    b2 = (1.0 - cos_w0) / 2.0
    a0 = 1.0 + alpha
    a1 = -2.0 * cos_w0
    a2 = 1.0 - alpha

    return np.array([[b0 / a0, b1 / a0, b2 / a0, 1.0, a1 / a0, a2 / a0]], dtype=float)


def lowpass(audio: np.ndarray, sr: int, cutoff_hz: float, q: float = 1.0) -> np.ndarray:
    """
    Apply the low-pass biquad along the last axis.

    ``audio`` is (n_samples,) or channel-major (n_channels, n_samples);
    the output has the same shape, dtype float32.
    """
    x = np.asarray(audio, dtype=np.float32)
    if x.ndim not in (1, 2):
        raise ValueError(f"Audio must be 1D or 2D (channel-major), got shape {x.shape}")
    sos = design_lowpass_sos(sr, cutoff_hz, q)
    return sosfilt(sos, x, axis=-1).astype(np.float32)
