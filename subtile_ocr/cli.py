# subtile_ocr/cli.py
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import AppConfig
from .errors import OcrFails, SubtileOcrError
from .glyphs.recognizer import GlyphCharAsker
from .log_manager import LogManager
from .models.enums import OcrEngine
from .pipeline import OcrPipeline

logger = logging.getLogger(__name__)


def _key_value(text: str) -> tuple[str, str]:
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got '{text}'")
    return key.strip(), value.strip()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="subtile-ocr",
        description="Convert image-based subtitles (VobSub, PGS) to SRT.",
    )
    p.add_argument("input", type=Path, help="subtitle file (.idx for VobSub, .sup for PGS)")
    p.add_argument("-o", "--output", type=Path, help="SRT file to write (stdout by default)")
    p.add_argument("--engine", choices=[e.value for e in OcrEngine], help="recognition engine")
    p.add_argument("--glyphs", type=Path, help="glyph library directory")
    p.add_argument(
        "--compact-glyphs", action="store_true", default=None,
        help="save glyph images in the compact layout",
    )
    p.add_argument("-t", "--threshold", type=float, help="luminance threshold (0.0 - 1.0)")
    p.add_argument("-b", "--border", type=int, help="white border added around images")
    p.add_argument("--tessdata-dir", help="Tesseract data directory")
    p.add_argument("-l", "--lang", help="Tesseract language")
    p.add_argument(
        "-c", "--config", type=_key_value, action="append", metavar="KEY=VALUE",
        help="Tesseract variable (repeatable)",
    )
    p.add_argument("--dpi", type=int, help="resolution hint given to Tesseract")
    p.add_argument("-j", "--jobs", type=int, help="Tesseract workers (0 = one per CPU)")
    p.add_argument("--dump", action="store_true", default=None, help="dump binarized images")
    p.add_argument("--dump-raw", action="store_true", default=None, help="dump raw images")
    p.add_argument(
        "--dump-pieces", action="store_true", default=None,
        help="dump the pieces found by the glyph engine",
    )
    p.add_argument("--settings", type=Path, help="JSON settings file")
    p.add_argument("--log-file", type=Path, help="also write a debug log to this file")
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="count", default=0)
    verbosity.add_argument("-q", "--quiet", action="store_true")
    return p


def _overrides(args: argparse.Namespace) -> dict:
    overrides = {
        "ocr_engine": args.engine,
        "glyph_library_dir": str(args.glyphs) if args.glyphs else None,
        "glyph_compact_format": args.compact_glyphs,
        "luma_threshold": args.threshold,
        "border": args.border,
        "tessdata_dir": args.tessdata_dir,
        "language": args.lang,
        "dpi": args.dpi,
        "max_workers": args.jobs,
        "dump_images": args.dump,
        "dump_raw_images": args.dump_raw,
        "dump_pieces": args.dump_pieces,
    }
    if args.verbose:
        overrides["log_level"] = "INFO" if args.verbose == 1 else "DEBUG"
    elif args.quiet:
        overrides["log_level"] = "ERROR"
    return overrides


def _print_error(error: BaseException):
    print(f"Error: {error}", file=sys.stderr)
    cause = error.__cause__
    while cause is not None:
        print(f"  Caused by: {cause}", file=sys.stderr)
        cause = cause.__cause__


def main(argv: list[str] | None = None, asker: GlyphCharAsker | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = AppConfig(args.settings)
    config.update(_overrides(args))
    if args.config:
        tesseract_config = dict(config.get("tesseract_config") or {})
        tesseract_config.update(dict(args.config))
        config.set("tesseract_config", tesseract_config)

    try:
        settings = config.to_settings()
    except (TypeError, ValueError) as e:
        _print_error(e)
        return 1

    log, handlers = LogManager.setup_run_log(settings.log_level, args.log_file)
    try:
        pipeline = OcrPipeline(settings, asker=asker)
        result = pipeline.run(args.input, args.output)
        if result.failed_count:
            logger.error(str(OcrFails(result.failed_count)))
            return 1
    except SubtileOcrError as e:
        _print_error(e)
        return 1
    finally:
        LogManager.cleanup_log(log, handlers)
    return 0


if __name__ == "__main__":
    sys.exit(main())
