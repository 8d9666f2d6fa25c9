"""
Byte-exact 16-bit PCM WAV writer.

The layout is the canonical 44-byte RIFF/WAVE header followed by
interleaved little-endian int16 samples. Float samples are clamped to
[-1, 1] and scaled asymmetrically: negative values by 32768, non-negative
values by 32767, truncating toward zero. This keeps +1.0 from overflowing
and matches the bytes browser-side encoders of the same recordings produce.
"""

from __future__ import annotations


from dataclasses import dataclass
import struct


import numpy as np


from voice_anonymizer.buffer import EncodedAudio, SampleBuffer
from voice_anonymizer.config import WAV_MIME_TYPE


WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8
PCM_FORMAT_TAG = 1

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class WavHeader:
    riff_size: int
    audio_format: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int

    @property
    def frame_count(self) -> int:
        if self.block_align == 0:
            return 0
        return self.data_size // self.block_align


def quantize_int16(samples: np.ndarray) -> np.ndarray:
    """Clamp float samples to [-1, 1] and scale to int16 (asymmetric)."""
    x = np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0)
    x = np.clip(x, -1.0, 1.0)
    scaled = np.where(x < 0.0, x * 32768.0, x * 32767.0)
    return np.trunc(scaled).astype("<i2")


def wav_header(num_channels: int, sample_rate: int, frame_count: int) -> bytes:
    block_align = num_channels * BYTES_PER_SAMPLE
    byte_rate = sample_rate * block_align
    data_size = frame_count * block_align
    return _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT_TAG,
        num_channels,
        sample_rate,
        byte_rate,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def buffer_to_wav_bytes(buffer: SampleBuffer) -> bytes:
    header = wav_header(buffer.channel_count, buffer.sample_rate, buffer.frame_count)
    return header + quantize_int16(buffer.interleaved()).tobytes()


def encode_wav(buffer: SampleBuffer) -> EncodedAudio:
    """Pure and synchronous; cannot fail for a valid SampleBuffer."""
    return EncodedAudio(buffer_to_wav_bytes(buffer), WAV_MIME_TYPE)


def parse_wav_header(data: bytes) -> WavHeader:
    """
    Read the canonical 44-byte header written by ``wav_header``.

    Raises ValueError for anything that is not a canonical PCM WAV header.
    """
    if len(data) < WAV_HEADER_SIZE:
        raise ValueError(f"WAV data too short for a header: {len(data)} bytes")
    (
        riff,
        riff_size,
        wave,
        fmt,
        fmt_size,
        audio_format,
        num_channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_id,
        data_size,
    ) = _HEADER.unpack_from(data, 0)
    if riff != b"RIFF" or wave != b"WAVE":
        raise ValueError("Not a RIFF/WAVE stream")
    if fmt != b"fmt " or fmt_size != 16 or data_id != b"data":
        raise ValueError("Not a canonical 44-byte PCM WAV header")
    return WavHeader(
        riff_size=riff_size,
        audio_format=audio_format,
        num_channels=num_channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
        data_size=data_size,
    )
