from __future__ import annotations


from dataclasses import dataclass
from typing import Dict, Optional, Tuple
import time


import numpy as np


from voice_anonymizer.buffer import SampleBuffer
from voice_anonymizer.dsp.compressor import compress
from voice_anonymizer.dsp.echo import echo_mix
from voice_anonymizer.dsp.filters import lowpass
from voice_anonymizer.dsp.graph import ProcessingGraph
from voice_anonymizer.dsp.rate import output_frames_for, read_at_rate


TAP_NAMES = ("source", "filtered", "echo_mix", "compressed", "output")


@dataclass
class RenderTiming:
    """Timing measurements for one pass over the graph."""
    source: float = 0.0
    filter: float = 0.0
    echo: float = 0.0
    compressor: float = 0.0
    gain: float = 0.0
    total: float = 0.0

    def log_line(self) -> str:
        return (
            f"[RENDER_TIMING] "
            f"source={self.source:.3f}s "
            f"filter={self.filter:.3f}s "
            f"echo={self.echo:.3f}s "
            f"compressor={self.compressor:.3f}s "
            f"gain={self.gain:.3f}s "
            f"total={self.total:.3f}s"
        )


def process_buffer(
    buffer: SampleBuffer,
    graph: ProcessingGraph,
    max_frames: Optional[int] = None,
    timing: Optional[RenderTiming] = None,
) -> Tuple[SampleBuffer, Dict[str, np.ndarray]]:
    """
    Run ``buffer`` through ``graph`` and return a new SampleBuffer.

    Pipeline:
        source read at graph.playback_rate
          -> (optional) low-pass
          -> dry + delayed/attenuated echo (parallel fan-in)
          -> (optional) compressor
          -> output gain

    The output has the input's channel count and sample rate, and
    ``ceil(frame_count / playback_rate)`` frames, truncated to
    ``max_frames`` when given. The input buffer is only read.

    Returns (output_buffer, taps); taps are channel-major arrays keyed by
    TAP_NAMES.
    """
    if timing is None:
        timing = RenderTiming()
    sr = buffer.sample_rate
    total_start = time.perf_counter()

    n_out = output_frames_for(buffer.frame_count, graph.playback_rate)
    if max_frames is not None:
        n_out = min(n_out, max(0, int(max_frames)))

    # --- Stage A: source read at the playback rate (pitch/rate shift) ---
    t0 = time.perf_counter()
    x_source = read_at_rate(buffer.channels, graph.playback_rate, n_out)
    timing.source = time.perf_counter() - t0

    # --- Stage B: band-limiting filter ---
    t0 = time.perf_counter()
    if graph.lowpass_cutoff_hz is not None:
        x_filtered = lowpass(x_source, sr, graph.lowpass_cutoff_hz, graph.lowpass_q)
    else:
        x_filtered = x_source.copy()
    timing.filter = time.perf_counter() - t0

    # --- Stage C: echo branch, summed with the dry path ---
    t0 = time.perf_counter()
    x_echo = echo_mix(x_filtered, sr, graph.echo_delay_seconds, graph.echo_mix)
    timing.echo = time.perf_counter() - t0

    # --- Stage D: dynamics compression ---
    t0 = time.perf_counter()
    if graph.compressor_enabled:
        x_compressed, _gain = compress(
            x_echo,
            sr,
            threshold_db=graph.compressor_threshold_db,
            knee_db=graph.compressor_knee_db,
            ratio=graph.compressor_ratio,
            attack_s=graph.compressor_attack_seconds,
            release_s=graph.compressor_release_seconds,
            auto_makeup=graph.compressor_auto_makeup,
        )
    else:
        x_compressed = x_echo.copy()
    timing.compressor = time.perf_counter() - t0

    # --- Stage E: output gain ---
    t0 = time.perf_counter()
    x_out = (x_compressed * np.float32(graph.output_gain)).astype(np.float32)
    timing.gain = time.perf_counter() - t0

    timing.total = time.perf_counter() - total_start

    taps = {
        "source": x_source,
        "filtered": x_filtered,
        "echo_mix": x_echo,
        "compressed": x_compressed,
        "output": x_out.copy(),
    }
    return SampleBuffer(x_out, sr), taps
