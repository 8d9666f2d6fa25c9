"""
File-to-file wrapper around process_audio_for_anonymity, for scripts and
tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np

from voice_anonymizer.dsp.rate import RandomSource
from voice_anonymizer.io.audio_io import read_clip, write_clip
from voice_anonymizer.io.encoder import EncoderCapabilities
from voice_anonymizer.mime import extension_for
from voice_anonymizer.orchestrator import ProcessingOutcome, process_audio_for_anonymity


def output_path_for(outfile: Path, mime_type: str, fix_suffix: bool = False) -> Path:
    """Where process_file_to_file writes an outcome of type ``mime_type``."""
    outfile = Path(outfile)
    if fix_suffix:
        return outfile.with_suffix(extension_for(mime_type))
    return outfile


def process_file_to_file(
    infile: Path,
    outfile: Path,
    mime_type: Optional[str] = None,
    seed: Optional[int] = None,
    random_source: Optional[RandomSource] = None,
    capabilities: Optional[EncoderCapabilities] = None,
    fix_suffix: bool = False,
) -> ProcessingOutcome:
    """
    Read a clip, anonymize it, and write whatever came back.

    Args:
        infile: Recorded clip.
        outfile: Destination; parent directories are created.
        mime_type: Declared input type. Guessed from the suffix when omitted.
        seed: Seeds a numpy Generator for the pitch factor, for reproducible
              renders. Ignored when random_source is given.
        random_source: Explicit pitch-factor source.
        capabilities: Recorder backend / codec preferences.
        fix_suffix: Replace outfile's suffix with the one matching the
                    output MIME type (a WebM input may come back as WAV).

    Returns:
        The processing outcome. A Fallback still writes the original bytes.

    Raises:
        FileNotFoundError: If infile doesn't exist
    """
    infile = Path(infile)
    outfile = Path(outfile)
    if not infile.exists():
        raise FileNotFoundError(f"Input file not found: {infile}")

    data, guessed_type = read_clip(infile)
    if random_source is None and seed is not None:
        random_source = np.random.default_rng(seed)

    outcome = process_audio_for_anonymity(
        data,
        mime_type or guessed_type,
        random_source=random_source,
        capabilities=capabilities,
    )

    write_clip(output_path_for(outfile, outcome.mime_type, fix_suffix), outcome.data)
    return outcome
