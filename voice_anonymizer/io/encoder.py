from __future__ import annotations


from dataclasses import dataclass, field
import logging
import os
from typing import Optional, Sequence, Tuple


from voice_anonymizer.buffer import EncodedAudio, SampleBuffer
from voice_anonymizer.config import (
    CAPTURE_SLACK_SECONDS,
    CAPTURE_STOP_GRACE_SECONDS,
    CAPTURE_TIMESLICE_SECONDS,
    COMPRESSED_ENCODE_DEFAULT,
    COMPRESSED_ENCODE_ENV,
    PREFERRED_COMPRESSED_TYPES,
    REALTIME_CAPTURE_DEFAULT,
    REALTIME_CAPTURE_ENV,
)
from voice_anonymizer.errors import EncodePartial, EncodeUnsupported
from voice_anonymizer.io.recorder import CaptureSession, RecorderBackend, SoundfileRecorderBackend
from voice_anonymizer.io.wav import encode_wav
from voice_anonymizer.mime import normalize_mime_type, select_encode_path


logger = logging.getLogger(__name__)


def env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name, "").strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


@dataclass
class EncoderCapabilities:
    """
    What the compressed path may use for one invocation: the recorder
    backend, the ordered codec preferences, and capture timing. Passed
    explicitly instead of being probed from shared global state.
    """

    backend: Optional[RecorderBackend] = field(default_factory=SoundfileRecorderBackend)
    preferred_types: Tuple[str, ...] = PREFERRED_COMPRESSED_TYPES
    timeslice_s: float = CAPTURE_TIMESLICE_SECONDS
    slack_s: float = CAPTURE_SLACK_SECONDS
    stop_grace_s: float = CAPTURE_STOP_GRACE_SECONDS
    compressed_enabled: Optional[bool] = None
    realtime: Optional[bool] = None

    def compressed_allowed(self) -> bool:
        if self.compressed_enabled is not None:
            return self.compressed_enabled
        return env_flag(COMPRESSED_ENCODE_ENV, COMPRESSED_ENCODE_DEFAULT)

    def realtime_capture(self) -> bool:
        if self.realtime is not None:
            return self.realtime
        return env_flag(REALTIME_CAPTURE_ENV, REALTIME_CAPTURE_DEFAULT)


def negotiate_type(backend: Optional[RecorderBackend], preferred_types: Sequence[str]) -> str:
    """
    First preferred type the backend reports as supported.

    Raises EncodeUnsupported when there is no backend or nothing matches.
    """
    if backend is None:
        raise EncodeUnsupported("no recorder backend available")
    for mime_type in preferred_types:
        if backend.is_type_supported(mime_type):
            return mime_type
    raise EncodeUnsupported(f"none of {list(preferred_types)} is supported by the recorder")


def encode_compressed(buffer: SampleBuffer, capabilities: EncoderCapabilities) -> EncodedAudio:
    """
    Best-effort compressed re-encode; never raises.

    Partial captures are accepted as they are. Anything that leaves no
    usable compressed output (no codec, no backend, recorder error, nothing
    captured, a failing backend) downgrades to WAV.
    """
    try:
        mime_type = negotiate_type(capabilities.backend, capabilities.preferred_types)
        recorder = capabilities.backend.open(mime_type, buffer.sample_rate, buffer.channel_count)
        session = CaptureSession(
            buffer,
            recorder,
            timeslice_s=capabilities.timeslice_s,
            slack_s=capabilities.slack_s,
            stop_grace_s=capabilities.stop_grace_s,
            realtime=capabilities.realtime_capture(),
        )
        encoded = session.run()
    except EncodePartial as partial:
        logger.warning(
            "Accepting partial %s capture (%d bytes): %s",
            partial.mime_type,
            len(partial.data),
            partial.reason,
        )
        return EncodedAudio(partial.data, partial.mime_type)
    except EncodeUnsupported as exc:
        logger.warning("Compressed encode unavailable, downgrading to WAV: %s", exc)
        return encode_wav(buffer)
    except Exception as exc:
        logger.warning("Compressed encode failed, downgrading to WAV: %s", exc, exc_info=True)
        return encode_wav(buffer)

    logger.debug("Encoded %d bytes as %s", len(encoded.data), encoded.mime_type)
    return encoded


def encode(
    buffer: SampleBuffer,
    target_mime_type: str,
    capabilities: Optional[EncoderCapabilities] = None,
) -> EncodedAudio:
    """
    Encode a processed buffer for ``target_mime_type``.

    WAV and MP4 targets get byte-exact 16-bit WAV (MP4 is never
    re-encoded). Other targets go through the compressed recorder path,
    which itself falls back to WAV.
    """
    if capabilities is None:
        capabilities = EncoderCapabilities()
    target = normalize_mime_type(target_mime_type)

    if select_encode_path(target) == "wav":
        if "mp4" in target:
            logger.info("MP4 target %s is written as WAV", target)
        return encode_wav(buffer)

    if not capabilities.compressed_allowed():
        logger.info("Compressed encode disabled; writing WAV for %s", target)
        return encode_wav(buffer)

    return encode_compressed(buffer, capabilities)
