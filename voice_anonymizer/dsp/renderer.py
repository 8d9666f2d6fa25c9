"""
Offline render: drive the processing graph over a whole clip in one pass.
"""

from __future__ import annotations


from dataclasses import dataclass
import logging
import math
from typing import Optional


from voice_anonymizer.buffer import SampleBuffer
from voice_anonymizer.dsp.graph import ProcessingGraph
from voice_anonymizer.dsp.pipeline import RenderTiming, process_buffer
from voice_anonymizer.dsp.rate import RandomSource, draw_playback_rate
from voice_anonymizer.errors import RenderError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderRequest:
    input: SampleBuffer
    graph: ProcessingGraph
    duration_seconds: float

    def __post_init__(self) -> None:
        if not self.duration_seconds > 0.0:
            raise ValueError(f"duration_seconds must be positive, got {self.duration_seconds}")

    @property
    def max_frames(self) -> int:
        # Small tolerance so float rounding of frames/sr/rate never adds a frame
        return int(math.ceil(self.duration_seconds * self.input.sample_rate - 1e-6))


def scaled_duration(buffer: SampleBuffer, playback_rate: float) -> float:
    return buffer.frame_count / float(buffer.sample_rate) / playback_rate


def build_render_request(
    buffer: SampleBuffer,
    graph: Optional[ProcessingGraph] = None,
    random_source: Optional[RandomSource] = None,
) -> RenderRequest:
    """
    Pair a buffer with a graph and its duration bound.

    Without an explicit graph the default anonymization graph is used,
    with a playback rate freshly drawn from ``random_source``.
    """
    if graph is None:
        graph = ProcessingGraph.default(playback_rate=draw_playback_rate(random_source))
    return RenderRequest(
        input=buffer,
        graph=graph,
        duration_seconds=scaled_duration(buffer, graph.playback_rate),
    )


def render(request: RenderRequest) -> SampleBuffer:
    """
    Process the entire request duration in one pass.

    The duration is a hard ceiling: output beyond it is truncated. The
    result keeps the input's channel count and sample rate.

    Raises RenderError on any failure while building or running the graph.
    """
    timing = RenderTiming()
    buffer = request.input
    try:
        output, _taps = process_buffer(
            buffer,
            request.graph,
            max_frames=request.max_frames,
            timing=timing,
        )
    except Exception as exc:
        raise RenderError(
            f"render failed for {buffer.channel_count} ch @ {buffer.sample_rate} Hz: {exc}"
        ) from exc

    if output.channel_count != buffer.channel_count:
        raise RenderError(
            f"render changed channel count {buffer.channel_count} -> {output.channel_count}"
        )

    logger.info(
        "%s rate=%.4f frames=%d->%d",
        timing.log_line(),
        request.graph.playback_rate,
        buffer.frame_count,
        output.frame_count,
    )
    return output
