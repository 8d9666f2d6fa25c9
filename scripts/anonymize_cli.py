from pathlib import Path

import argparse

import logging



from voice_anonymizer.harness import output_path_for, process_file_to_file

from voice_anonymizer.orchestrator import Fallback



def main() -> None:
    """
    Voice Anonymizer - Offline Processor

    Loads a recorded clip, runs it through the anonymization graph
    (low-pass, echo, compressor, gain, randomized playback rate), and saves
    the result. On any failure the original clip is written unchanged.
    """
    parser = argparse.ArgumentParser(description="Voice Anonymizer - Offline Processor")

    parser.add_argument("--infile", "-i", required=True)

    parser.add_argument("--outfile", "-o", required=True)

    parser.add_argument("--mime", "-m", default=None, help="Declared input MIME type (default: from suffix)")

    parser.add_argument("--seed", type=int, default=None, help="Seed for the pitch factor")

    parser.add_argument("--fix-suffix", action="store_true", help="Match outfile suffix to the output type")

    parser.add_argument("--verbose", "-v", action="store_true")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )



    print(f"Processing: {args.infile}")



    outcome = process_file_to_file(
        Path(args.infile),
        Path(args.outfile),
        mime_type=args.mime,
        seed=args.seed,
        fix_suffix=args.fix_suffix,
    )



    written = output_path_for(Path(args.outfile), outcome.mime_type, args.fix_suffix)

    if isinstance(outcome, Fallback):

        print(f"Fallback ({outcome.reason}); original written → {written}")

    else:

        print(f"Saved processed output ({outcome.mime_type}, rate={outcome.playback_rate:.4f}) → {written}")

    print("Stages:", " -> ".join(stage.value for stage in outcome.trace))



if __name__ == "__main__":

    main()
