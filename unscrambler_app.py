"""Command-line shell for unscrambling a text file against a word list."""

from __future__ import annotations

import argparse
import logging
import site
import sys
import sysconfig
from pathlib import Path

from unscrambler_models import STATUS_RESOLVED, UnscrambleOptions
from unscrambler_solver import Unscrambler, load_dictionary, write_report
from unscrambler_utils import export_report, load_config, save_config, setup_logging

USAGE = "USAGE: word-unscrambler [FILE_PATH]"
DICTIONARY_NAME = "german.dic"
# Source checkout first, then the data-files locations of a regular or --user install.
DEFAULT_DICTIONARY_PATHS = (
    Path(__file__).resolve().parent / "sample_data" / DICTIONARY_NAME,
    Path(sysconfig.get_path("data")) / "share" / "word-unscrambler" / DICTIONARY_NAME,
    Path(site.getuserbase()) / "share" / "word-unscrambler" / DICTIONARY_NAME,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="word-unscrambler",
        description="Resolve letter-scrambled words in a text file against a dictionary.",
    )
    parser.add_argument("file_path", nargs="?", help="Text file with scrambled words.")
    parser.add_argument("--dictionary", help="Word list with one word per line.")
    parser.add_argument("--no-cache", action="store_true", help="Rebuild the index instead of using the speed cache.")
    parser.add_argument("--report", help="Save per-token results as JSON (CSV is saved alongside).")
    parser.add_argument("--stats", action="store_true", help="Print dictionary index statistics to stderr.")
    return parser


def default_dictionary_path() -> Path:
    for candidate in DEFAULT_DICTIONARY_PATHS:
        if candidate.is_file():
            return candidate
    return DEFAULT_DICTIONARY_PATHS[0]


def resolve_dictionary_path(cli_value: str | None, config: dict) -> Path:
    if cli_value:
        return Path(cli_value)
    remembered = config.get("last_dictionary_path")
    if remembered and Path(remembered).is_file():
        return Path(remembered)
    return default_dictionary_path()


def read_input(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.exception("Failed reading input file %s", path)
        raise SystemExit(f"Failed to read in file: {path}") from exc


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if not args.file_path or not Path(args.file_path).is_file():
        print(USAGE, file=sys.stderr)
        return 0

    setup_logging()
    config = load_config()
    dictionary_path = resolve_dictionary_path(args.dictionary, config)
    options = UnscrambleOptions(use_speed_cache=not args.no_cache)

    try:
        index, result = load_dictionary(dictionary_path, options)
    except FileNotFoundError as exc:
        logger.exception("Failed building index")
        raise SystemExit(str(exc)) from exc

    source = "cache" if result.loaded_from_cache else "dictionary"
    logger.info(
        "Index ready from %s: %d words, %d fingerprints.",
        source,
        result.accepted_words,
        result.unique_fingerprints,
    )
    if args.stats:
        print(
            f"{result.unique_fingerprints} fingerprints, bucket sizes "
            f"min {result.smallest_bucket} / max {result.largest_bucket} / mean {result.mean_bucket_size:.2f}",
            file=sys.stderr,
        )
    config["last_dictionary_path"] = str(Path(result.dictionary_path).resolve())
    save_config(config)

    input_path = Path(args.file_path)
    report = Unscrambler(index).solve(read_input(input_path))
    write_report(report, sys.stdout)
    sys.stdout.flush()

    unresolved = sum(1 for line in report.lines for row in line if row.status != STATUS_RESOLVED)
    logger.info("Unscrambled %d lines from %s, %d tokens not uniquely resolved.", len(report.lines), input_path, unresolved)

    if args.report:
        json_path = Path(args.report)
        csv_path = json_path.with_suffix(".csv")
        export_report(json_path=json_path, csv_path=csv_path, report=report, dictionary_path=result.dictionary_path)
        logger.info("Saved: %s and %s", json_path, csv_path)

    return 0


if __name__ == "__main__":
    sys.exit(main())
