from voice_anonymizer.mime import (
    essence,
    extension_for,
    mime_type_for_suffix,
    normalize_mime_type,
    select_encode_path,
)


def test_normalize_defaults_non_audio_to_webm() -> None:
    assert normalize_mime_type(None) == "audio/webm"
    assert normalize_mime_type("") == "audio/webm"
    assert normalize_mime_type("video/webm") == "audio/webm"
    assert normalize_mime_type(" Audio/OGG;codecs=opus ") == "audio/ogg;codecs=opus"


def test_essence_strips_parameters() -> None:
    assert essence("audio/webm;codecs=opus") == "audio/webm"


def test_routing() -> None:
    assert select_encode_path("audio/wav") == "wav"
    assert select_encode_path("audio/x-wav") == "wav"
    assert select_encode_path("audio/mp4") == "wav"
    assert select_encode_path("audio/mp4;codecs=mp4a.40.2") == "wav"
    assert select_encode_path("audio/webm") == "compressed"
    assert select_encode_path("audio/ogg;codecs=opus") == "compressed"


def test_extensions() -> None:
    assert extension_for("audio/wav") == ".wav"
    assert extension_for("audio/ogg;codecs=opus") == ".ogg"
    assert extension_for("audio/webm;codecs=opus") == ".webm"
    assert mime_type_for_suffix(".WAV") == "audio/wav"
    assert mime_type_for_suffix(".xyz") == "audio/webm"
