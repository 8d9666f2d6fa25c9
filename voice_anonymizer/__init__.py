"""
Voice anonymization post-processor.

Decodes a recorded clip, runs it through a fixed DSP graph (low-pass, short
echo, compression, gain, randomized playback rate) and re-encodes it. Any
failure returns the original bytes untouched.
"""

from voice_anonymizer.orchestrator import (
    Fallback,
    ProcessingOutcome,
    Success,
    process_audio_for_anonymity,
)

__all__ = [
    "Fallback",
    "ProcessingOutcome",
    "Success",
    "process_audio_for_anonymity",
]
