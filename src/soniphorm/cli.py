"""
Command-line interface for applying effects to audio files.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from soniphorm.config import EngineConfig
from soniphorm.engine import EffectEngine
from soniphorm.errors import SoniphormError, UnknownEffectError
from soniphorm.io.audio_file import load_audio, save_audio

logger = logging.getLogger(__name__)


def parse_param(text: str) -> tuple[str, str]:
    """Split a key=value pair."""
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Expected key=value, got {text!r}")
    return key.strip(), value.strip()


def print_catalog(engine: EffectEngine) -> None:
    for key in engine.list_effects():
        effect = engine.get(key)
        extra = " (needs --source)" if effect.requires_source else ""
        print(f"{key}: {effect.label}{extra}")
        for spec in effect.parameters:
            print(f"    {spec.describe()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="soniphorm",
        description="Apply sample-editor effects to audio files",
    )

    parser.add_argument(
        "input",
        type=Path,
        nargs="?",
        help="Input audio file (wav, mp3, flac)",
    )

    parser.add_argument(
        "-e", "--effect",
        default=None,
        help="Effect key (see --list)",
    )

    parser.add_argument(
        "-p", "--param",
        type=parse_param,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Effect parameter, may be repeated",
    )

    parser.add_argument(
        "--start",
        type=float,
        default=None,
        help="Region start in seconds (default: 0)",
    )

    parser.add_argument(
        "--end",
        type=float,
        default=None,
        help="Region end in seconds (default: end of file)",
    )

    parser.add_argument(
        "--source",
        type=Path,
        default=None,
        help="Second audio file for convolve, ringmod-by-buffer and vocoder",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible output",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output file path (default: <input>_<effect>.wav)",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List available effects and their parameters",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress progress output",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.ERROR if args.quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    config = EngineConfig.from_env()
    if args.seed is not None:
        config.seed = args.seed
    engine = EffectEngine(config)

    if args.list:
        print_catalog(engine)
        return 0

    if args.input is None or args.effect is None:
        parser.print_usage(sys.stderr)
        print("Error: an input file and --effect are required", file=sys.stderr)
        return 1

    if not args.input.exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        return 1

    try:
        effect = engine.get(args.effect)
    except UnknownEffectError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if effect.requires_source and args.source is None:
        print(f"Error: {args.effect} needs --source", file=sys.stderr)
        return 1
    if args.source is not None and not args.source.exists():
        print(f"Error: Source file not found: {args.source}", file=sys.stderr)
        return 1

    buffer = load_audio(args.input)
    sr = buffer.sample_rate
    source = load_audio(args.source, sr=sr) if args.source is not None else None

    start = int(round(args.start * sr)) if args.start is not None else 0
    end = int(round(args.end * sr)) if args.end is not None else buffer.length
    end = min(end, buffer.length)

    output_path = args.output
    if output_path is None:
        output_path = args.input.with_name(f"{args.input.stem}_{args.effect}.wav")

    if not args.quiet:
        print(f"Processing: {args.input}")
        print(f"Effect: {effect.label}")

    try:
        result = asyncio.run(
            engine.apply(args.effect, buffer, start, end, dict(args.param), source)
        )
    except (SoniphormError, ValueError) as e:
        logger.debug("Processing failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    save_audio(result, output_path)

    if not args.quiet:
        print(f"Duration: {buffer.duration:.2f}s -> {result.duration:.2f}s")
        print(f"Output: {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
