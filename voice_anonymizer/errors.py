from __future__ import annotations


class AnonymizerError(Exception):
    """Base class for every error raised inside the anonymization pipeline."""


class DecodeError(AnonymizerError):
    """The input container could not be decoded into PCM."""


class InputTooLarge(DecodeError):
    """The input exceeds the configured size ceiling and is not decoded."""


class RenderError(AnonymizerError):
    """The DSP graph could not be constructed or run."""


class EncodeUnsupported(AnonymizerError):
    """No compressed codec can be negotiated, or the recorder is unavailable."""


class EncodePartial(AnonymizerError):
    """
    Capture settled before the recorder finished cleanly but produced output.

    Not a failure: the encoder accepts ``data`` as a best-effort result.
    """

    def __init__(self, data: bytes, mime_type: str, reason: str) -> None:
        super().__init__(reason)
        self.data = data
        self.mime_type = mime_type
        self.reason = reason
