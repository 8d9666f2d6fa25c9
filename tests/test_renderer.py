import numpy as np
import pytest

from voice_anonymizer.buffer import SampleBuffer
from voice_anonymizer.dsp.graph import ProcessingGraph
from voice_anonymizer.dsp.rate import FixedRandomSource
from voice_anonymizer.dsp.renderer import RenderRequest, build_render_request, render
from voice_anonymizer.errors import RenderError
from tests.utils.audio_test_utils import make_buffer


def test_request_duration_scaled_by_rate() -> None:
    buf = SampleBuffer.silence(16000, 16000)

    request = build_render_request(buf, random_source=FixedRandomSource(-0.02))

    assert request.graph.playback_rate == pytest.approx(0.96)
    assert request.duration_seconds == pytest.approx(1.0 / 0.96)
    assert request.max_frames == 16667


def test_explicit_graph_is_used_as_is() -> None:
    buf = SampleBuffer.silence(1000, 8000)
    graph = ProcessingGraph.identity()

    request = build_render_request(buf, graph)

    assert request.graph is graph
    assert request.duration_seconds == pytest.approx(1000 / 8000)


def test_render_covers_whole_clip() -> None:
    buf = make_buffer(440.0, sr=16000, seconds=1.0, channels=2)
    request = build_render_request(buf, random_source=FixedRandomSource(0.0))

    out = render(request)

    assert out.channel_count == 2
    assert out.sample_rate == 16000
    assert out.frame_count == int(np.ceil(16000 / 0.98))


def test_duration_is_a_hard_ceiling() -> None:
    buf = make_buffer(440.0, sr=16000, seconds=1.0)
    request = RenderRequest(buf, ProcessingGraph.default(playback_rate=0.96), duration_seconds=0.5)

    out = render(request)

    assert out.frame_count == 8000


def test_identity_render_preserves_shape() -> None:
    buf = make_buffer(440.0, sr=22050, seconds=0.3, channels=2)

    out = render(build_render_request(buf, ProcessingGraph.identity()))

    assert out.frame_count == buf.frame_count
    assert out.channel_count == buf.channel_count
    assert np.allclose(out.channels, buf.channels)


def test_render_failure_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    def _broken(*args, **kwargs):
        raise ValueError("graph exploded")

    monkeypatch.setattr("voice_anonymizer.dsp.renderer.process_buffer", _broken)
    request = build_render_request(make_buffer(seconds=0.1), ProcessingGraph.default())

    with pytest.raises(RenderError):
        render(request)


def test_non_positive_duration_rejected() -> None:
    with pytest.raises(ValueError):
        RenderRequest(SampleBuffer.silence(10, 8000), ProcessingGraph.default(), duration_seconds=0.0)
