from __future__ import annotations


from typing import Tuple


import numpy as np


_LEVEL_FLOOR_DB = -120.0


def db_to_linear(db: float) -> float:
    return 10.0 ** (db / 20.0)


def linear_to_db(x: np.ndarray) -> np.ndarray:
    mag = np.maximum(np.abs(np.asarray(x, dtype=float)), db_to_linear(_LEVEL_FLOOR_DB))
    return 20.0 * np.log10(mag)


def static_curve_db(
    level_db: np.ndarray,
    threshold_db: float,
    knee_db: float,
    ratio: float,
) -> np.ndarray:
    """
    Soft-knee gain computer: output level (dB) for each input level (dB).

    Below ``threshold - knee/2`` the signal is untouched, above
    ``threshold + knee/2`` it is reduced by ``ratio``, and the knee is a
    quadratic blend between the two.
    """
    level = np.asarray(level_db, dtype=float)
    over = level - threshold_db
    out = level.copy()

    if knee_db > 0.0:
        in_knee = np.abs(2.0 * over) <= knee_db
        out[in_knee] = level[in_knee] + (
            (1.0 / ratio - 1.0) * (over[in_knee] + knee_db / 2.0) ** 2 / (2.0 * knee_db)
        )
        above = 2.0 * over > knee_db
    else:
        above = over > 0.0

    out[above] = threshold_db + over[above] / ratio
    return out


def makeup_gain_db(threshold_db: float, knee_db: float, ratio: float) -> float:
    full_scale = float(static_curve_db(np.array([0.0]), threshold_db, knee_db, ratio)[0])
    return 0.6 * -full_scale


def compress(
    audio: np.ndarray,
    sr: int,
    threshold_db: float = -24.0,
    knee_db: float = 30.0,
    ratio: float = 12.0,
    attack_s: float = 0.003,
    release_s: float = 0.25,
    auto_makeup: bool = True,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Feed-forward dynamics compressor with a linked detector.

    Parameters
    ----------
    audio : np.ndarray
        (n_samples,) or channel-major (n_channels, n_samples).
    sr : int
        Sample rate.
    threshold_db, knee_db, ratio : float
        Static curve, see ``static_curve_db``.
    attack_s, release_s : float
        Time constants of the gain smoother. Attack applies while gain
        reduction is increasing, release while it recovers.
    auto_makeup : bool
        Add back 0.6x the reduction a full-scale signal receives, so
        compressed speech keeps roughly its original loudness.

    Returns
    -------
    compressed : np.ndarray
        Same shape as ``audio``, float32.
    gain_curve : np.ndarray
        Linear gain applied at each sample (shared by all channels).
    """
    x = np.asarray(audio, dtype=np.float32)
    if x.ndim not in (1, 2):
        raise ValueError(f"Audio must be 1D or 2D (channel-major), got shape {x.shape}")

    n_samples = x.shape[-1]
    if n_samples == 0:
        return x.copy(), np.ones(0, dtype=np.float32)

    # Linked detection: the loudest channel drives the gain for all of them
    detector = np.max(np.abs(x), axis=0) if x.ndim == 2 else np.abs(x)
    level_db = linear_to_db(detector)
    target_db = static_curve_db(level_db, threshold_db, knee_db, ratio) - level_db

    attack_coeff = np.exp(-1.0 / max(1.0, attack_s * sr))
    release_coeff = np.exp(-1.0 / max(1.0, release_s * sr))

    smoothed = np.empty(n_samples, dtype=float)
    g = 0.0
    for n, target in enumerate(target_db.tolist()):
        coeff = attack_coeff if target < g else release_coeff
        g = coeff * g + (1.0 - coeff) * target
        smoothed[n] = g

    if auto_makeup:
        smoothed += makeup_gain_db(threshold_db, knee_db, ratio)

    gain = (10.0 ** (smoothed / 20.0)).astype(np.float32)
    y = (x * gain).astype(np.float32)
    return y, gain
