from __future__ import annotations


from dataclasses import dataclass
from typing import Sequence


import numpy as np


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """
    Decoded multi-channel PCM.

    ``channels`` is a channel-major float32 array of shape
    (n_channels, frame_count). Buffers are never mutated in place: every
    processing stage builds a new one, so the decoded input stays available
    for fallback.
    """

    channels: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        data = np.array(self.channels, dtype=np.float32)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        if data.ndim != 2:
            raise ValueError(f"channels must be 1D or 2D, got shape {data.shape}")
        if data.shape[0] < 1:
            raise ValueError("SampleBuffer needs at least one channel")
        if int(self.sample_rate) <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        data.setflags(write=False)
        object.__setattr__(self, "channels", data)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    @property
    def channel_count(self) -> int:
        return int(self.channels.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.channels.shape[1])

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / float(self.sample_rate)

    def channel(self, index: int) -> np.ndarray:
        return self.channels[index]

    @classmethod
    def from_channels(cls, channels: Sequence[np.ndarray], sample_rate: int) -> "SampleBuffer":
        """Build a buffer from per-channel arrays, which must share one length."""
        if len(channels) == 0:
            raise ValueError("SampleBuffer needs at least one channel")
        lengths = {len(ch) for ch in channels}
        if len(lengths) != 1:
            raise ValueError(f"All channels must have the same frame count, got {sorted(lengths)}")
        return cls(np.stack([np.asarray(ch, dtype=np.float32) for ch in channels]), sample_rate)

    @classmethod
    def from_frames(cls, frames: np.ndarray, sample_rate: int) -> "SampleBuffer":
        """
        Build a buffer from frame-major audio as returned by soundfile,
        shape (n_frames,) or (n_frames, n_channels).
        """
        x = np.asarray(frames, dtype=np.float32)
        if x.ndim == 1:
            return cls(x[np.newaxis, :], sample_rate)
        if x.ndim == 2:
            return cls(x.T, sample_rate)
        raise ValueError(f"Unsupported audio shape; expected 1D or 2D array, got {x.shape}")

    @classmethod
    def silence(cls, frame_count: int, sample_rate: int, channel_count: int = 1) -> "SampleBuffer":
        return cls(np.zeros((channel_count, frame_count), dtype=np.float32), sample_rate)

    def to_frames(self) -> np.ndarray:
        """Frame-major copy, shape (n_frames, n_channels); mono stays 2D."""
        return np.ascontiguousarray(self.channels.T)

    def interleaved(self) -> np.ndarray:
        """Interleaved samples: frame 0 of every channel, then frame 1, ..."""
        return self.to_frames().reshape(-1)


@dataclass(frozen=True)
class EncodedAudio:
    """Terminal artifact handed back to the caller."""

    data: bytes
    mime_type: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))

    def __len__(self) -> int:
        return len(self.data)
