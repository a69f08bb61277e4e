"""Utility helpers for fingerprints, tokenising, rendering, config, and exports."""

from __future__ import annotations

import csv
import hashlib
import json
import logging
import re
import unicodedata
from pathlib import Path
from typing import Any, Iterable, Sequence

from unscrambler_models import UnscrambleReport


def _choose_app_dir() -> Path:
    """
    Pick a writable app directory.

    Preferred location is user home, with local workspace fallback when blocked.
    """
    preferred = Path.home() / ".word_unscrambler"
    try:
        preferred.mkdir(parents=True, exist_ok=True)
        return preferred
    except OSError:
        fallback = Path(".word_unscrambler")
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


APP_DIR = _choose_app_dir()
CONFIG_PATH = APP_DIR / "config.json"
CACHE_DIR = APP_DIR / "cache"
LOG_PATH = APP_DIR / "app.log"

SPECIAL_CHARS_PRE = ("(", "„")
SPECIAL_CHARS_POST = (",", ".", ")", "“", ":", "-", "?")

# str.split() would also break on non-ASCII whitespace such as NBSP.
TOKEN_PATTERN = re.compile(r"[^ \t\n\f\r]+")

FINGERPRINT_MASK = (1 << 64) - 1

ESCAPES = {
    "\"": "\\\"",
    "\\": "\\\\",
    "\t": "\\t",
    "\r": "\\r",
    "\n": "\\n",
    "\0": "\\0",
}


def ensure_app_dirs() -> None:
    """Create app directories if they do not already exist."""
    APP_DIR.mkdir(parents=True, exist_ok=True)
    CACHE_DIR.mkdir(parents=True, exist_ok=True)


def setup_logging() -> None:
    """Configure file logging once per app run."""
    ensure_app_dirs()
    logging.basicConfig(
        filename=str(LOG_PATH),
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_config() -> dict[str, Any]:
    """Load config from the app directory config file."""
    ensure_app_dirs()
    if not CONFIG_PATH.exists():
        return {}
    try:
        return json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        logging.exception("Failed to load config from %s", CONFIG_PATH)
        return {}


def save_config(config: dict[str, Any]) -> None:
    """Persist config to disk."""
    ensure_app_dirs()
    try:
        CONFIG_PATH.write_text(json.dumps(config, indent=2), encoding="utf-8")
    except Exception:
        logging.exception("Failed to save config to %s", CONFIG_PATH)


def fingerprint(word: str) -> int:
    """
    Permutation-invariant digest of a word.

    Wrapping 64-bit sum of the UTF-8 bytes. Case-sensitive and not injective,
    so bucket members still need an exact letter count comparison.
    """
    return wrapping_sum(word.encode("utf-8"))


def wrapping_sum(values: Iterable[int]) -> int:
    return sum(values) & FINGERPRINT_MASK


def split_lines(raw_text: str) -> list[str]:
    """Split text into lines; a trailing terminator does not add an empty line."""
    if not raw_text:
        return []
    lines = raw_text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def split_tokens(line: str) -> list[str]:
    """Split a line on runs of ASCII whitespace."""
    return TOKEN_PATTERN.findall(line)


def split_special_chars(token: str) -> tuple[str, str, str]:
    """
    Separate a scrambled token into prefix, clean core, and suffix.

    Special characters are collected from anywhere in the token, each group
    in the order encountered.
    """
    prefix: list[str] = []
    clean: list[str] = []
    suffix: list[str] = []
    for char in token:
        if char in SPECIAL_CHARS_PRE:
            prefix.append(char)
        elif char in SPECIAL_CHARS_POST:
            suffix.append(char)
        else:
            clean.append(char)
    return "".join(prefix), "".join(clean), "".join(suffix)


def upper_first(word: str) -> str:
    """Uppercase the first character unless that would change its length (ß -> SS)."""
    first = word[:1].upper()
    if len(first) != 1:
        return word
    return first + word[1:]


def quote_word(word: str) -> str:
    """
    Double-quote a word for the ambiguous-match list.

    Quotes, backslashes, tab, CR, LF and NUL get backslash escapes; any other
    control character is written as a braced hex code point, e.g. DEL -> u{7f}
    after a backslash.
    """
    parts = ['"']
    for char in word:
        if char in ESCAPES:
            parts.append(ESCAPES[char])
        elif unicodedata.category(char) == "Cc":
            parts.append(f"\\u{{{ord(char):x}}}")
        else:
            parts.append(char)
    parts.append('"')
    return "".join(parts)


def render_unresolved(clean_token: str) -> str:
    """Backtick-wrapped sorted letters for manual inspection."""
    return f"`{''.join(sorted(clean_token))}`"


def render_candidates(clean_token: str, candidates: Sequence[str]) -> str:
    if not candidates:
        return render_unresolved(clean_token)
    if len(candidates) == 1:
        return candidates[0]
    return "[" + ", ".join(quote_word(word) for word in candidates) + "]"


def cache_key(dictionary_path: Path, file_size: int, mtime_ns: int) -> str:
    """Create a deterministic cache key from file identity."""
    key_data = {
        "path": str(dictionary_path.resolve()),
        "size": file_size,
        "mtime_ns": mtime_ns,
        "fingerprint": "utf8-byte-sum-64",
    }
    digest = hashlib.sha256(json.dumps(key_data, sort_keys=True).encode("utf-8")).hexdigest()
    return digest


def export_report(json_path: Path, csv_path: Path, report: UnscrambleReport, dictionary_path: str) -> None:
    """Export unscramble report to both JSON and CSV."""
    payload = {
        "generated_at_utc": report.generated_at_utc,
        "dictionary_path": dictionary_path,
        "output_text": report.output_text,
        "input_lines": report.input_lines,
        "lines": [
            [
                {
                    "token": r.token,
                    "clean_token": r.clean_token,
                    "status": r.status,
                    "rendered": r.rendered,
                    "candidates": r.candidates,
                    "case_folded": r.case_folded,
                }
                for r in line
            ]
            for line in report.lines
        ],
    }

    json_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    with csv_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(["line", "token", "clean_token", "status", "rendered", "candidates"])
        for line_no, line in enumerate(report.lines, start=1):
            for row in line:
                writer.writerow([line_no, row.token, row.clean_token, row.status, row.rendered, "|".join(row.candidates)])
