from __future__ import annotations


from typing import Literal


from voice_anonymizer.config import DEFAULT_RECORDED_MIME_TYPE


EncodePath = Literal["wav", "compressed"]


_EXTENSIONS = {
    "audio/wav": ".wav",
    "audio/wave": ".wav",
    "audio/x-wav": ".wav",
    "audio/webm": ".webm",
    "audio/ogg": ".ogg",
    "audio/mp4": ".m4a",
    "audio/mpeg": ".mp3",
    "audio/flac": ".flac",
}

_SUFFIX_TYPES = {
    ".wav": "audio/wav",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".opus": "audio/ogg;codecs=opus",
    ".m4a": "audio/mp4",
    ".mp4": "audio/mp4",
    ".mp3": "audio/mpeg",
    ".flac": "audio/flac",
}


def normalize_mime_type(mime_type: str | None) -> str:
    """
    Lower-case and strip a declared type. Empty or non-audio types are
    treated as what a browser media recorder produces by default.
    """
    value = (mime_type or "").strip().lower()
    if not value.startswith("audio/"):
        return DEFAULT_RECORDED_MIME_TYPE
    return value


def essence(mime_type: str) -> str:
    """``audio/webm;codecs=opus`` -> ``audio/webm``."""
    return normalize_mime_type(mime_type).split(";", 1)[0].strip()


def select_encode_path(mime_type: str) -> EncodePath:
    """
    WAV and MP4 targets take the uncompressed path (MP4 is never
    re-encoded); everything else is re-encoded through the recorder.
    """
    value = normalize_mime_type(mime_type)
    if "wav" in value or "mp4" in value:
        return "wav"
    return "compressed"


def extension_for(mime_type: str) -> str:
    return _EXTENSIONS.get(essence(mime_type), ".bin")


def mime_type_for_suffix(suffix: str) -> str:
    return _SUFFIX_TYPES.get(suffix.lower(), DEFAULT_RECORDED_MIME_TYPE)
