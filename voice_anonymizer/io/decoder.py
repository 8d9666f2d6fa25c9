from __future__ import annotations


import io
import logging
from pathlib import Path
import tempfile
from typing import Tuple


import librosa
import numpy as np
import soundfile as sf


from voice_anonymizer.buffer import SampleBuffer
from voice_anonymizer.config import MAX_INPUT_BYTES
from voice_anonymizer.errors import DecodeError, InputTooLarge
from voice_anonymizer.mime import extension_for, normalize_mime_type


logger = logging.getLogger(__name__)


def _decode_with_soundfile(data: bytes) -> Tuple[np.ndarray, int]:
    # always_2d gives (n_frames, n_channels) even for mono
    with sf.SoundFile(io.BytesIO(data)) as f:
        audio = f.read(dtype="float32", always_2d=True)
        return audio, int(f.samplerate)


def _decode_with_librosa(data: bytes, mime_type: str) -> Tuple[np.ndarray, int]:
    """
    Containers libsndfile cannot read (WebM, MP4) go through librosa's
    audioread backend, which needs a real path on disk. The temporary file
    lives only for the duration of the call.
    """
    with tempfile.TemporaryDirectory(prefix="voice_anon_") as tmp:
        path = Path(tmp) / f"input{extension_for(mime_type)}"
        path.write_bytes(data)
        y, sr = librosa.load(str(path), sr=None, mono=False)
    y = np.asarray(y, dtype=np.float32)
    # librosa is channel-major: (n,) or (n_channels, n)
    if y.ndim == 2:
        y = y.T
    return y, int(sr)


def decode(data: bytes, mime_type: str | None = None) -> SampleBuffer:
    """
    Decode a supported container into a SampleBuffer.

    The sample rate and channel count are exactly those embedded in the
    container; no resampling or downmixing happens here.

    Raises
    ------
    InputTooLarge
        If ``data`` exceeds MAX_INPUT_BYTES.
    DecodeError
        If the bytes are empty, corrupt, or in an unsupported container.
    """
    mime = normalize_mime_type(mime_type)
    if not data:
        raise DecodeError("input is empty")
    if len(data) > MAX_INPUT_BYTES:
        raise InputTooLarge(f"input is {len(data)} bytes, limit is {MAX_INPUT_BYTES}")

    try:
        audio, sr = _decode_with_soundfile(data)
    except (RuntimeError, TypeError, ValueError) as sf_exc:
        logger.debug("soundfile could not decode %s input (%s); trying librosa", mime, sf_exc)
        try:
            audio, sr = _decode_with_librosa(data, mime)
        except Exception as exc:
            raise DecodeError(f"could not decode {mime} input: {exc}") from exc

    try:
        buffer = SampleBuffer.from_frames(audio, sr)
    except ValueError as exc:
        raise DecodeError(f"decoded audio is malformed: {exc}") from exc
    if buffer.frame_count == 0:
        raise DecodeError("decoded audio has no frames")

    logger.debug(
        "Decoded %s: %d ch, %d Hz, %d frames",
        mime,
        buffer.channel_count,
        buffer.sample_rate,
        buffer.frame_count,
    )
    return buffer
