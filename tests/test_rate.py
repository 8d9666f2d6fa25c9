import numpy as np
import pytest

from voice_anonymizer.dsp.rate import (
    FixedRandomSource,
    draw_playback_rate,
    output_frames_for,
    playback_rate_bounds,
    read_at_rate,
)


class _WildSource:
    """Ignores the requested range."""

    def __init__(self, value: float) -> None:
        self.value = value

    def uniform(self, low: float, high: float) -> float:
        return self.value


def test_rate_always_within_band() -> None:
    rng = np.random.default_rng(1234)
    low, high = playback_rate_bounds()

    rates = [draw_playback_rate(rng) for _ in range(2000)]

    assert low == pytest.approx(0.96) and high == pytest.approx(1.00)
    assert min(rates) >= low
    assert max(rates) <= high
    # Draws are actually random, not pinned
    assert len(set(rates)) > 1000


def test_default_source_draws_fresh_values() -> None:
    rates = {draw_playback_rate() for _ in range(20)}

    assert len(rates) > 1
    assert all(0.96 <= r <= 1.0 for r in rates)


def test_fixed_source_pins_rate() -> None:
    assert draw_playback_rate(FixedRandomSource(0.0)) == pytest.approx(0.98)
    assert draw_playback_rate(FixedRandomSource(-0.02)) == pytest.approx(0.96)
    assert draw_playback_rate(FixedRandomSource(0.5)) == pytest.approx(1.00)


def test_misbehaving_source_is_clamped() -> None:
    assert draw_playback_rate(_WildSource(5.0)) == pytest.approx(1.00)
    assert draw_playback_rate(_WildSource(-5.0)) == pytest.approx(0.96)


def test_output_frames_scale_with_rate() -> None:
    assert output_frames_for(16000, 1.0) == 16000
    assert output_frames_for(16000, 0.96) == 16667
    assert output_frames_for(0, 0.98) == 0


def test_unit_rate_is_identity() -> None:
    x = np.random.default_rng(0).standard_normal((2, 1000)).astype(np.float32)

    y = read_at_rate(x, 1.0)

    assert np.array_equal(x, y)


def test_slower_rate_stretches_ramp() -> None:
    x = np.arange(10, dtype=np.float32)

    y = read_at_rate(x, 0.5)

    assert y.shape == (20,)
    assert np.allclose(y[:19], np.arange(19) * 0.5)
    # Past the last source sample: silence
    assert y[19] == 0.0


def test_slower_rate_lowers_pitch() -> None:
    sr = 16000
    t = np.arange(sr) / sr
    x = np.sin(2.0 * np.pi * 1000.0 * t).astype(np.float32)

    y = read_at_rate(x, 0.96)
    spectrum = np.abs(np.fft.rfft(y[:sr]))
    # one second of audio: 1 Hz per bin
    peak_hz = float(np.argmax(spectrum))

    assert peak_hz == pytest.approx(960.0, abs=2.0)


def test_explicit_length_truncates() -> None:
    y = read_at_rate(np.ones((1, 100), dtype=np.float32), 0.5, n_out=50)

    assert y.shape == (1, 50)


def test_empty_input() -> None:
    y = read_at_rate(np.zeros((2, 0), dtype=np.float32), 0.97)

    assert y.shape == (2, 0)
