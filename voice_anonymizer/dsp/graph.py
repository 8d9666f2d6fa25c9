from __future__ import annotations


from dataclasses import dataclass, replace


from voice_anonymizer.config import (
    DEFAULT_COMPRESSOR_ATTACK_SECONDS,
    DEFAULT_COMPRESSOR_KNEE_DB,
    DEFAULT_COMPRESSOR_RATIO,
    DEFAULT_COMPRESSOR_RELEASE_SECONDS,
    DEFAULT_COMPRESSOR_THRESHOLD_DB,
    DEFAULT_ECHO_DELAY_SECONDS,
    DEFAULT_ECHO_MIX,
    DEFAULT_LOWPASS_CUTOFF_HZ,
    DEFAULT_LOWPASS_Q,
    DEFAULT_OUTPUT_GAIN,
    MAX_ECHO_DELAY_SECONDS,
    PLAYBACK_RATE_BASE,
)


@dataclass(frozen=True)
class ProcessingGraph:
    """
    Configuration of the fixed anonymization graph.

    Topology::

        source (read at playback_rate)
          -> low-pass
          -> [dry] ---------------------------+
          -> [delay -> echo_mix gain] --------+-> compressor -> output gain

    Any stage can be bypassed (``None`` cutoff, zero echo mix,
    ``compressor_enabled=False``, unit gain, unit rate), which is how the
    identity graph is built. The graph holds no runtime state.
    """

    lowpass_cutoff_hz: float | None = DEFAULT_LOWPASS_CUTOFF_HZ
    lowpass_q: float = DEFAULT_LOWPASS_Q
    echo_delay_seconds: float = DEFAULT_ECHO_DELAY_SECONDS
    echo_mix: float = DEFAULT_ECHO_MIX
    compressor_enabled: bool = True
    compressor_threshold_db: float = DEFAULT_COMPRESSOR_THRESHOLD_DB
    compressor_knee_db: float = DEFAULT_COMPRESSOR_KNEE_DB
    compressor_ratio: float = DEFAULT_COMPRESSOR_RATIO
    compressor_attack_seconds: float = DEFAULT_COMPRESSOR_ATTACK_SECONDS
    compressor_release_seconds: float = DEFAULT_COMPRESSOR_RELEASE_SECONDS
    compressor_auto_makeup: bool = True
    output_gain: float = DEFAULT_OUTPUT_GAIN
    playback_rate: float = PLAYBACK_RATE_BASE

    def __post_init__(self) -> None:
        if self.playback_rate <= 0.0:
            raise ValueError(f"playback_rate must be positive, got {self.playback_rate}")
        if not 0.0 <= self.echo_delay_seconds <= MAX_ECHO_DELAY_SECONDS:
            raise ValueError(
                f"echo_delay_seconds must be within [0, {MAX_ECHO_DELAY_SECONDS}], "
                f"got {self.echo_delay_seconds}"
            )
        if self.compressor_ratio < 1.0:
            raise ValueError(f"compressor_ratio must be >= 1, got {self.compressor_ratio}")

    @classmethod
    def default(cls, playback_rate: float = PLAYBACK_RATE_BASE) -> "ProcessingGraph":
        return cls(playback_rate=playback_rate)

    @classmethod
    def identity(cls) -> "ProcessingGraph":
        """Every stage bypassed: output equals input up to float rounding."""
        return cls(
            lowpass_cutoff_hz=None,
            echo_mix=0.0,
            compressor_enabled=False,
            output_gain=1.0,
            playback_rate=1.0,
        )

    def with_playback_rate(self, rate: float) -> "ProcessingGraph":
        return replace(self, playback_rate=float(rate))
