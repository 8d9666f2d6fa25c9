"""
Decode -> render -> encode, with fallback to the original bytes.

The pipeline is an explicit state machine. Each working state has exactly
two exits: its successor on success, or FALLBACK on any error. No stage is
retried, and the caller never sees an exception.
"""

from __future__ import annotations


from dataclasses import dataclass, field
from enum import Enum
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple, Union


from voice_anonymizer.buffer import EncodedAudio, SampleBuffer
from voice_anonymizer.dsp.graph import ProcessingGraph
from voice_anonymizer.dsp.rate import RandomSource
from voice_anonymizer.dsp.renderer import build_render_request, render
from voice_anonymizer.errors import DecodeError, InputTooLarge
from voice_anonymizer.io.decoder import decode
from voice_anonymizer.io.encoder import EncoderCapabilities, encode


logger = logging.getLogger(__name__)


class Stage(str, Enum):
    START = "start"
    DECODING = "decoding"
    RENDERING = "rendering"
    ENCODING = "encoding"
    DONE = "done"
    FALLBACK = "fallback"


# Success edges. Every non-terminal stage also has an implicit edge to FALLBACK.
TRANSITIONS: Dict[Stage, Stage] = {
    Stage.START: Stage.DECODING,
    Stage.DECODING: Stage.RENDERING,
    Stage.RENDERING: Stage.ENCODING,
    Stage.ENCODING: Stage.DONE,
}

FALLBACK_REASONS: Dict[Stage, str] = {
    Stage.DECODING: "decode failed",
    Stage.RENDERING: "render failed",
    Stage.ENCODING: "encode failed",
}

TERMINAL_STAGES = (Stage.DONE, Stage.FALLBACK)


@dataclass(frozen=True)
class Success:
    audio: EncodedAudio
    playback_rate: float
    trace: Tuple[Stage, ...] = ()

    @property
    def data(self) -> bytes:
        return self.audio.data

    @property
    def mime_type(self) -> str:
        return self.audio.mime_type


@dataclass(frozen=True)
class Fallback:
    original: bytes
    original_mime_type: str
    reason: str
    trace: Tuple[Stage, ...] = ()

    @property
    def data(self) -> bytes:
        return self.original

    @property
    def mime_type(self) -> str:
        return self.original_mime_type


ProcessingOutcome = Union[Success, Fallback]


@dataclass
class _Invocation:
    """Per-call state; nothing here outlives the call."""
    data: bytes
    mime_type: str
    graph: Optional[ProcessingGraph]
    random_source: Optional[RandomSource]
    capabilities: EncoderCapabilities
    decoded: Optional[SampleBuffer] = None
    rendered: Optional[SampleBuffer] = None
    playback_rate: float = 1.0
    encoded: Optional[EncodedAudio] = None
    trace: List[Stage] = field(default_factory=list)


def _run_decode(inv: _Invocation) -> None:
    if not isinstance(inv.data, (bytes, bytearray, memoryview)):
        raise DecodeError(f"expected bytes, got {type(inv.data).__name__}")
    inv.data = bytes(inv.data)
    inv.decoded = decode(inv.data, inv.mime_type)


def _run_render(inv: _Invocation) -> None:
    request = build_render_request(inv.decoded, inv.graph, inv.random_source)
    inv.playback_rate = request.graph.playback_rate
    inv.rendered = render(request)


def _run_encode(inv: _Invocation) -> None:
    inv.encoded = encode(inv.rendered, inv.mime_type, inv.capabilities)


STEPS: Dict[Stage, Callable[[_Invocation], None]] = {
    Stage.DECODING: _run_decode,
    Stage.RENDERING: _run_render,
    Stage.ENCODING: _run_encode,
}


def _fallback_reason(stage: Stage, exc: Exception) -> str:
    if isinstance(exc, InputTooLarge):
        return "input too large"
    return FALLBACK_REASONS.get(stage, "processing failed")


def process_audio_for_anonymity(
    data: bytes,
    mime_type: str = "",
    *,
    graph: Optional[ProcessingGraph] = None,
    random_source: Optional[RandomSource] = None,
    capabilities: Optional[EncoderCapabilities] = None,
) -> ProcessingOutcome:
    """
    Anonymize one recorded clip.

    Parameters
    ----------
    data : bytes
        The recorded clip (WAV, WebM/Opus, Ogg/Opus or MP4 audio).
    mime_type : str
        Declared type of ``data``; also selects the output container.
    graph : ProcessingGraph, optional
        Overrides the default graph, including its playback rate. When
        omitted the rate is drawn from ``random_source`` on every call.
    random_source : RandomSource, optional
        Source of the per-call pitch factor; a fresh numpy Generator when
        omitted.
    capabilities : EncoderCapabilities, optional
        Recorder backend and codec preferences for compressed output.

    Returns
    -------
    Success with the processed audio, or Fallback carrying ``data``
    unchanged, its declared type, and the reason.
    """
    inv = _Invocation(
        data=data,
        mime_type=mime_type,
        graph=graph,
        random_source=random_source,
        capabilities=capabilities if capabilities is not None else EncoderCapabilities(),
    )

    started = time.perf_counter()
    stage = Stage.START
    inv.trace.append(stage)
    while stage not in TERMINAL_STAGES:
        next_stage = TRANSITIONS[stage]
        step = STEPS.get(next_stage)
        if step is not None:
            try:
                step(inv)
            except Exception as exc:
                reason = _fallback_reason(next_stage, exc)
                inv.trace.extend([next_stage, Stage.FALLBACK])
                logger.warning(
                    "Voice anonymization fell back to original (%s, %s): %s",
                    reason,
                    next_stage.value,
                    exc,
                    exc_info=logger.isEnabledFor(logging.DEBUG),
                )
                return Fallback(inv.data, mime_type, reason, tuple(inv.trace))
        stage = next_stage
        inv.trace.append(stage)

    logger.info(
        "Voice anonymization done in %.3fs: %s %d bytes -> %s %d bytes (rate=%.4f)",
        time.perf_counter() - started,
        mime_type or "<unknown>",
        len(inv.data),
        inv.encoded.mime_type,
        len(inv.encoded.data),
        inv.playback_rate,
    )
    return Success(inv.encoded, inv.playback_rate, tuple(inv.trace))
