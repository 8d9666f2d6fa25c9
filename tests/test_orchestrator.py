import numpy as np
import pytest

from voice_anonymizer import Fallback, Success, process_audio_for_anonymity
from voice_anonymizer.config import MAX_INPUT_BYTES
from voice_anonymizer.dsp.graph import ProcessingGraph
from voice_anonymizer.dsp.rate import FixedRandomSource
from voice_anonymizer.io.decoder import decode
from voice_anonymizer.io.encoder import EncoderCapabilities
from voice_anonymizer.io.wav import parse_wav_header
from voice_anonymizer.orchestrator import FALLBACK_REASONS, TRANSITIONS, Stage
from tests.utils.audio_test_utils import FakeBackend, make_sine, silence_wav_bytes, wav_bytes

OGG_OPUS = "audio/ogg;codecs=opus"


def _caps(*supported: str) -> EncoderCapabilities:
    return EncoderCapabilities(backend=FakeBackend(supported=supported), compressed_enabled=True, realtime=False)


def test_transition_table_is_linear() -> None:
    assert TRANSITIONS == {
        Stage.START: Stage.DECODING,
        Stage.DECODING: Stage.RENDERING,
        Stage.RENDERING: Stage.ENCODING,
        Stage.ENCODING: Stage.DONE,
    }
    assert set(FALLBACK_REASONS) == {Stage.DECODING, Stage.RENDERING, Stage.ENCODING}


def test_silence_scenario_wav_header() -> None:
    data = silence_wav_bytes(sr=16000, seconds=1.0)

    outcome = process_audio_for_anonymity(data, "audio/wav")

    assert isinstance(outcome, Success)
    header = parse_wav_header(outcome.data)
    assert outcome.mime_type == "audio/wav"
    assert header.sample_rate == 16000
    assert header.num_channels == 1
    # rate in [0.96, 1.00] -> between 16000 and ceil(16000 / 0.96) frames
    assert 16000 * 2 <= header.data_size <= 16667 * 2
    assert 0.96 <= outcome.playback_rate <= 1.0
    assert outcome.trace == (Stage.START, Stage.DECODING, Stage.RENDERING, Stage.ENCODING, Stage.DONE)


def test_pinned_rate_gives_exact_length() -> None:
    data = silence_wav_bytes(sr=16000, seconds=1.0)

    outcome = process_audio_for_anonymity(data, "audio/wav", random_source=FixedRandomSource(-0.02))

    assert parse_wav_header(outcome.data).data_size == 16667 * 2


def test_corrupt_input_falls_back_verbatim() -> None:
    data = b"\x00\x01garbage" * 200

    outcome = process_audio_for_anonymity(data, "audio/webm")

    assert isinstance(outcome, Fallback)
    assert outcome.reason == "decode failed"
    assert outcome.original == data
    assert outcome.mime_type == "audio/webm"
    assert outcome.trace == (Stage.START, Stage.DECODING, Stage.FALLBACK)


def test_oversized_input_falls_back() -> None:
    data = b"\0" * (MAX_INPUT_BYTES + 1)

    outcome = process_audio_for_anonymity(data, "audio/wav")

    assert isinstance(outcome, Fallback)
    assert outcome.reason == "input too large"
    assert outcome.data is not None and len(outcome.data) == len(data)


def test_render_failure_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    def _broken(*args, **kwargs):
        raise MemoryError("out of memory in graph")

    monkeypatch.setattr("voice_anonymizer.dsp.renderer.process_buffer", _broken)
    data = wav_bytes(make_sine(440.0, seconds=0.1), 16000)

    outcome = process_audio_for_anonymity(data, "audio/wav")

    assert isinstance(outcome, Fallback)
    assert outcome.reason == "render failed"
    assert outcome.original == data
    assert outcome.trace[-2:] == (Stage.RENDERING, Stage.FALLBACK)


def test_encode_failure_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    def _broken(*args, **kwargs):
        raise RuntimeError("encoder unavailable")

    monkeypatch.setattr("voice_anonymizer.orchestrator.encode", _broken)
    data = wav_bytes(make_sine(440.0, seconds=0.1), 16000)

    outcome = process_audio_for_anonymity(data, "audio/wav")

    assert isinstance(outcome, Fallback)
    assert outcome.reason == "encode failed"


def test_mp4_declared_input_returns_wav() -> None:
    # Decoding real MP4 needs ffmpeg; the container itself is irrelevant to routing
    data = wav_bytes(make_sine(440.0, seconds=0.2), 16000)

    outcome = process_audio_for_anonymity(data, "audio/mp4", capabilities=_caps(OGG_OPUS))

    assert isinstance(outcome, Success)
    assert outcome.mime_type == "audio/wav"


def test_no_supported_codec_returns_wav() -> None:
    data = wav_bytes(make_sine(440.0, seconds=0.2), 16000)

    outcome = process_audio_for_anonymity(data, "audio/webm;codecs=opus", capabilities=_caps())

    assert isinstance(outcome, Success)
    assert outcome.mime_type == "audio/wav"


def test_compressed_output_uses_negotiated_type() -> None:
    data = wav_bytes(make_sine(440.0, seconds=0.2), 16000)

    outcome = process_audio_for_anonymity(data, "audio/webm", capabilities=_caps(OGG_OPUS))

    assert isinstance(outcome, Success)
    assert outcome.mime_type == OGG_OPUS
    assert outcome.data.endswith(b"tail")


def test_codec_probe_error_still_returns_processed_wav() -> None:
    class ProbeFailsBackend(FakeBackend):
        def is_type_supported(self, mime_type: str) -> bool:
            raise RuntimeError("codec probe crashed")

    data = wav_bytes(make_sine(440.0, seconds=0.2), 16000)
    caps = EncoderCapabilities(backend=ProbeFailsBackend(), compressed_enabled=True, realtime=False)

    outcome = process_audio_for_anonymity(data, "audio/webm", capabilities=caps)

    assert isinstance(outcome, Success), "a rendered clip must never come back unprocessed"
    assert outcome.mime_type == "audio/wav"
    assert outcome.trace[-1] is Stage.DONE


def test_identity_graph_preserves_frames_and_channels() -> None:
    tone = make_sine(330.0, sr=22050, seconds=0.4)
    stereo = np.stack([tone, -tone], axis=1)
    data = wav_bytes(stereo, 22050)

    outcome = process_audio_for_anonymity(data, "audio/wav", graph=ProcessingGraph.identity())
    original = decode(data, "audio/wav")
    processed = decode(outcome.data, "audio/wav")

    assert processed.frame_count == original.frame_count
    assert processed.channel_count == original.channel_count
    # 16-bit quantization only
    assert np.allclose(processed.channels, original.channels, atol=2.0 / 32768)


def test_repeated_calls_stay_within_rate_band() -> None:
    data = silence_wav_bytes(sr=8000, seconds=0.25)

    rates = [process_audio_for_anonymity(data, "audio/wav").playback_rate for _ in range(10)]

    assert all(0.96 <= r <= 1.0 for r in rates)


@pytest.mark.parametrize("payload", [b"", b"RIFF", b"RIFF" + b"\xff" * 64, bytes(range(256)) * 4])
def test_never_raises(payload: bytes) -> None:
    outcome = process_audio_for_anonymity(payload, "audio/wav")

    assert isinstance(outcome, (Success, Fallback))
    if isinstance(outcome, Fallback):
        assert outcome.original == payload


@pytest.mark.parametrize("payload", [None, "RIFF....WAVE", 5])
def test_non_bytes_input_falls_back(payload) -> None:
    outcome = process_audio_for_anonymity(payload, "audio/webm")

    assert isinstance(outcome, Fallback)
    assert outcome.reason == "decode failed"
    assert outcome.original is payload
    assert outcome.mime_type == "audio/webm"


def test_bytearray_input_is_accepted() -> None:
    data = bytearray(silence_wav_bytes(sr=8000, seconds=0.25))

    outcome = process_audio_for_anonymity(data, "audio/wav")

    assert isinstance(outcome, Success)
