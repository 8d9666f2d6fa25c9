"""
Compressed re-encode through a streaming recorder.

A recorder behaves like a live capture encoder: blocks of PCM are pushed
into it while it is "recording", encoded bytes are pulled out in chunks at
a fixed timeslice, and ``stop`` flushes the tail of the container. The
capture session plays a SampleBuffer into a recorder on a worker thread and
settles on whichever comes first: natural end of stream, or the wall-clock
budget of ``duration + slack``.
"""

from __future__ import annotations


import io
import logging
import threading
import time
from typing import Dict, List, Optional, Tuple


import numpy as np
import soundfile as sf


from voice_anonymizer.buffer import EncodedAudio, SampleBuffer
from voice_anonymizer.config import (
    CAPTURE_SLACK_SECONDS,
    CAPTURE_STOP_GRACE_SECONDS,
    CAPTURE_TIMESLICE_SECONDS,
)
from voice_anonymizer.errors import EncodePartial, EncodeUnsupported


logger = logging.getLogger(__name__)


class StreamRecorder:
    """Interface of one recording; instances are never reused."""

    mime_type: str = ""

    def start(self) -> None:
        raise NotImplementedError

    def write(self, block: np.ndarray) -> None:
        """Push frame-major PCM, shape (n_frames, n_channels)."""
        raise NotImplementedError

    def request_data(self) -> bytes:
        """Encoded bytes produced since the previous call (may be empty)."""
        raise NotImplementedError

    def stop(self) -> bytes:
        """Finish the container and return the remaining bytes."""
        raise NotImplementedError

    def close(self) -> None:
        """Release resources. Safe to call more than once."""


class RecorderBackend:
    """Platform capability: codec probing plus recorder construction."""

    def is_type_supported(self, mime_type: str) -> bool:
        raise NotImplementedError

    def open(self, mime_type: str, sample_rate: int, channels: int) -> StreamRecorder:
        raise NotImplementedError


# MIME type -> (libsndfile major format, subtype). libsndfile has no WebM
# muxer, so WebM types are never reported as supported.
SOUNDFILE_TYPES: Dict[str, Tuple[str, str]] = {
    "audio/ogg;codecs=opus": ("OGG", "OPUS"),
    "audio/ogg;codecs=vorbis": ("OGG", "VORBIS"),
    "audio/ogg": ("OGG", "VORBIS"),
}


def _type_key(mime_type: str) -> str:
    return mime_type.replace(" ", "").lower()


class SoundfileStreamRecorder(StreamRecorder):
    def __init__(self, mime_type: str, sample_rate: int, channels: int, fmt: str, subtype: str) -> None:
        self.mime_type = mime_type
        self._sample_rate = sample_rate
        self._channels = channels
        self._format = fmt
        self._subtype = subtype
        self._sink = io.BytesIO()
        self._file: Optional[sf.SoundFile] = None
        self._read_pos = 0

    def start(self) -> None:
        self._file = sf.SoundFile(
            self._sink,
            mode="w",
            samplerate=self._sample_rate,
            channels=self._channels,
            format=self._format,
            subtype=self._subtype,
        )

    def write(self, block: np.ndarray) -> None:
        if self._file is None:
            raise RuntimeError("recorder is not recording")
        self._file.write(block)

    def _drain(self) -> bytes:
        data = self._sink.getvalue()[self._read_pos:]
        self._read_pos += len(data)
        return data

    def request_data(self) -> bytes:
        return self._drain()

    def stop(self) -> bytes:
        if self._file is None:
            raise RuntimeError("recorder is not recording")
        self._file.close()
        self._file = None
        return self._drain()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


class SoundfileRecorderBackend(RecorderBackend):
    """Recorder backend on libsndfile's Ogg encoders."""

    def is_type_supported(self, mime_type: str) -> bool:
        spec = SOUNDFILE_TYPES.get(_type_key(mime_type))
        if spec is None:
            return False
        fmt, subtype = spec
        return subtype in sf.available_subtypes(fmt) and sf.check_format(fmt, subtype)

    def open(self, mime_type: str, sample_rate: int, channels: int) -> StreamRecorder:
        spec = SOUNDFILE_TYPES.get(_type_key(mime_type))
        if spec is None:
            raise EncodeUnsupported(f"soundfile cannot record {mime_type}")
        fmt, subtype = spec
        return SoundfileStreamRecorder(mime_type, sample_rate, channels, fmt, subtype)


class CaptureSession:
    """
    One playback-and-capture run of a SampleBuffer through a recorder.

    The worker thread owns the recorder for its whole life; the calling
    thread only reads accumulated chunks, so a recorder that hangs cannot
    block the caller past the budget. The last ``stop_grace_s`` of the
    budget is left for the worker to stop and close the recorder.
    """

    def __init__(
        self,
        buffer: SampleBuffer,
        recorder: StreamRecorder,
        timeslice_s: float = CAPTURE_TIMESLICE_SECONDS,
        slack_s: float = CAPTURE_SLACK_SECONDS,
        realtime: bool = False,
        stop_grace_s: float = CAPTURE_STOP_GRACE_SECONDS,
    ) -> None:
        self.buffer = buffer
        self.recorder = recorder
        self.timeslice_s = timeslice_s
        self.budget_s = buffer.duration_seconds + slack_s
        self.realtime = realtime
        self.stop_grace_s = min(max(0.0, stop_grace_s), self.budget_s)

        self._chunks: List[bytes] = []
        self._lock = threading.Lock()
        self._stop_requested = threading.Event()
        self._finished = threading.Event()
        self._interrupted = False
        self._recorder_error: Optional[BaseException] = None
        self._stop_error: Optional[BaseException] = None

    def _append(self, chunk: bytes) -> None:
        if chunk:
            with self._lock:
                self._chunks.append(chunk)

    def _captured(self) -> bytes:
        with self._lock:
            return b"".join(self._chunks)

    def _play(self) -> None:
        frames = self.buffer.to_frames()
        block = max(1, int(round(self.timeslice_s * self.buffer.sample_rate)))
        started = time.monotonic()
        try:
            try:
                self.recorder.start()
                for i, pos in enumerate(range(0, frames.shape[0], block)):
                    if self._stop_requested.is_set():
                        self._interrupted = True
                        break
                    self.recorder.write(frames[pos:pos + block])
                    self._append(self.recorder.request_data())
                    if self.realtime:
                        due = started + (i + 1) * self.timeslice_s
                        self._stop_requested.wait(max(0.0, due - time.monotonic()))
            except Exception as exc:
                self._recorder_error = exc
                return
            try:
                self._append(self.recorder.stop())
            except Exception as exc:
                self._stop_error = exc
        finally:
            self.recorder.close()
            self._finished.set()

    def run(self) -> EncodedAudio:
        """
        Capture and settle within ``duration + slack`` seconds.

        Returns the full recording on a clean stop. When the budget runs
        out the worker is asked to stop and given ``stop_grace_s`` to close
        the recorder; a recorder still hung after that is left to its
        daemon thread.

        Raises
        ------
        EncodePartial
            Stop failed or the budget ran out, but some bytes were captured.
        EncodeUnsupported
            The recorder errored, or nothing was captured.
        """
        mime_type = self.recorder.mime_type
        worker = threading.Thread(target=self._play, name="voice-anon-capture", daemon=True)
        worker.start()

        timed_out = not self._finished.wait(self.budget_s - self.stop_grace_s)
        if timed_out:
            self._stop_requested.set()
            worker.join(self.stop_grace_s)
            if worker.is_alive():
                logger.warning(
                    "Capture worker still busy %.3fs after stop request; recorder closes when it returns",
                    self.stop_grace_s,
                )

        finished = self._finished.is_set()
        if finished and self._recorder_error is not None:
            raise EncodeUnsupported(f"recorder error: {self._recorder_error}") from self._recorder_error

        data = self._captured()
        if timed_out and (not finished or self._interrupted):
            logger.warning(
                "Capture exceeded %.3fs budget; %d bytes captured",
                self.budget_s,
                len(data),
            )
            if data:
                raise EncodePartial(data, mime_type, "capture budget exceeded")
            raise EncodeUnsupported("capture budget exceeded with no output")

        if self._stop_error is not None:
            if data:
                raise EncodePartial(data, mime_type, f"recorder stop failed: {self._stop_error}")
            raise EncodeUnsupported(f"recorder stop failed with no output: {self._stop_error}")

        if not data:
            raise EncodeUnsupported("recorder produced no output")
        return EncodedAudio(data, mime_type)
