"""PCMQC CLI - PCM Quality Control Tool."""
from __future__ import annotations
import argparse
import json
import sys

from pcmqc.version import __version__
from pcmqc.config import build_analysis_config, load_config_file
from pcmqc.io.audio import describe_stream, open_frame_source
from pcmqc.metrics.loudness import MeterInitError
from pcmqc.output import ProgressBar, configure_logging
from pcmqc.pipeline import build_analysers, run_pipeline
from pcmqc.reporting.json_report import write_report


# Exit codes 0-3 are the verdict bitmask; errors stay clear of those bits
EXIT_PASS = 0
EXIT_BAD_ARGS = 64
EXIT_DECODE_ERROR = 66
EXIT_INTERNAL_ERROR = 70


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(EXIT_BAD_ARGS, f"{self.prog}: error: {message}\n")


def _config_from_args(args) -> dict:
    """Merge defaults, an optional JSON config file and command-line flags."""
    file_overrides = load_config_file(args.config) if getattr(args, "config", None) else {}
    cli_overrides = {
        "silence": {
            "enabled": args.silence,
            "lufs_threshold": args.lufs,
            "percentage_threshold": args.silence_percentage,
        },
        "underrun": {
            "enabled": args.underrun,
            "min_samples": args.samples,
        },
    }
    merged = build_analysis_config(file_overrides)
    return build_analysis_config({
        section: {**merged[section], **{k: v for k, v in values.items() if v is not None}}
        for section, values in cli_overrides.items()
    })


def _log_header(logger, info, cfg: dict) -> None:
    logger.info(f"[+] sample rate:        {info.sample_rate}")
    logger.info(f"[+] channels:           {info.channels}")
    logger.info(f"[+] total samples:      {info.num_frames}")
    if cfg["silence"]["enabled"]:
        logger.info(f"[+] silence threshold:  {cfg['silence']['lufs_threshold']} LUFS-S")
    if cfg["underrun"]["enabled"]:
        logger.info(f"[+] underrun threshold: {cfg['underrun']['min_samples']} samples")


def cmd_analyze(args) -> int:
    """Handle analyze command."""
    try:
        cfg = _config_from_args(args)
    except FileNotFoundError as e:
        print(f"Error: Config file not found - {e}", file=sys.stderr)
        return EXIT_BAD_ARGS
    except json.JSONDecodeError as e:
        print(f"Error: Invalid config JSON - {e}", file=sys.stderr)
        return EXIT_BAD_ARGS
    except (TypeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_ARGS

    if not cfg["silence"]["enabled"] and not cfg["underrun"]["enabled"]:
        print(
            "Error: Neither underrun nor silence detection is active, exiting.",
            file=sys.stderr
        )
        return EXIT_BAD_ARGS

    try:
        source = open_frame_source(args.input)
    except FileNotFoundError:
        print(f"Error: Could not open file: {args.input}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    except (RuntimeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR

    info = source.info
    progress = None if args.no_progress else ProgressBar(info.num_frames)
    logger = configure_logging(debug=bool(args.debug), progress=progress)

    try:
        for warning in info.warnings:
            logger.warning(warning)
        _log_header(logger, info, cfg)

        try:
            analysers = build_analysers(cfg, info)
        except MeterInitError as e:
            print(f"Error: Could not initialize loudness meter - {e}", file=sys.stderr)
            return EXIT_INTERNAL_ERROR

        try:
            result = run_pipeline(source, analysers, progress=progress)
        except RuntimeError as e:
            print(f"Error: Decode failed - {e}", file=sys.stderr)
            return EXIT_DECODE_ERROR
        finally:
            if progress is not None:
                progress.finish()

        if args.json:
            written = write_report(args.json, result.fragments)
            if written is not None:
                logger.info(f"Wrote JSON output to {written}")

        return result.exit_code

    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR


def cmd_inspect(args) -> int:
    """Handle inspect command."""
    try:
        source = open_frame_source(args.input)
    except FileNotFoundError:
        print(f"Error: Could not open file: {args.input}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    except (RuntimeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    print(json.dumps(describe_stream(source.info), indent=2))
    return EXIT_PASS


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="pcmqc",
        description="PCMQC - detect digital silence and sample underruns in PCM audio"
    )
    parser.add_argument(
        "--version", action="version",
        version=f"pcmqc {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # analyze command
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyse an audio file for silence and underruns"
    )
    analyze_parser.add_argument(
        "input",
        help="Path to audio file"
    )
    analyze_parser.add_argument(
        "--silence", "-s",
        action="store_true",
        default=None,
        help="Enable silence detection"
    )
    analyze_parser.add_argument(
        "--lufs", "-l",
        type=float,
        help="Silence threshold in LUFS-S (default: -70.0)"
    )
    analyze_parser.add_argument(
        "--silence-percentage", "-p",
        type=float,
        help="Fail when at least this percentage of the file is silent (default: 99)"
    )
    analyze_parser.add_argument(
        "--underrun", "-u",
        action="store_true",
        default=None,
        help="Enable underrun detection"
    )
    analyze_parser.add_argument(
        "--samples", "-n",
        type=int,
        help="Minimum run of zero samples counted as an underrun (default: 16)"
    )
    analyze_parser.add_argument(
        "--config", "-c",
        help="JSON file with analysis configuration overrides"
    )
    analyze_parser.add_argument(
        "--json", "-j",
        help="Output path for the JSON report"
    )
    analyze_parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Log every loudness window and zero sample"
    )
    analyze_parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not draw the progress bar"
    )
    analyze_parser.set_defaults(func=cmd_analyze)

    # inspect command
    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Show stream metadata of an audio file"
    )
    inspect_parser.add_argument(
        "input",
        help="Path to audio file"
    )
    inspect_parser.set_defaults(func=cmd_inspect)
    return parser


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if hasattr(args, "func"):
        sys.exit(args.func(args))
    else:
        parser.print_help()
        sys.exit(EXIT_BAD_ARGS)


if __name__ == "__main__":
    main()
