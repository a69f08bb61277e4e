"""Dictionary index builder and unscramble engine."""

from __future__ import annotations

import logging
import pickle
from collections import defaultdict
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, TextIO

from unscrambler_models import (
    STATUS_AMBIGUOUS,
    STATUS_RESOLVED,
    STATUS_UNRESOLVED,
    IndexBuildResult,
    TokenResult,
    UnscrambleOptions,
    UnscrambleReport,
)
from unscrambler_utils import (
    CACHE_DIR,
    cache_key,
    ensure_app_dirs,
    fingerprint,
    render_candidates,
    split_lines,
    split_special_chars,
    split_tokens,
    upper_first,
)


class DictionaryIndex:
    """Read-only fingerprint -> words index, dictionary order kept per bucket."""

    __slots__ = ("_buckets", "word_count")

    def __init__(self, buckets: Mapping[int, tuple[str, ...]]) -> None:
        self._buckets = MappingProxyType({key: tuple(words) for key, words in buckets.items()})
        self.word_count = sum(len(words) for words in self._buckets.values())

    @classmethod
    def build(cls, words: Iterable[str]) -> DictionaryIndex:
        index_map: dict[int, list[str]] = defaultdict(list)
        for word in words:
            index_map[fingerprint(word)].append(word)
        return cls({key: tuple(bucket) for key, bucket in index_map.items()})

    @property
    def buckets(self) -> Mapping[int, tuple[str, ...]]:
        return self._buckets

    def lookup(self, key: int) -> tuple[str, ...]:
        return self._buckets.get(key, ())

    def __len__(self) -> int:
        return len(self._buckets)

    def stats(self) -> tuple[int, int, float]:
        """Smallest bucket, largest bucket, and mean bucket size."""
        sizes = [len(words) for words in self._buckets.values()]
        if not sizes:
            return 0, 0, 0.0
        return min(sizes), max(sizes), sum(sizes) / len(sizes)


def _read_dictionary_words(path: Path) -> tuple[list[str], int]:
    words: list[str] = []
    total_lines = 0
    with path.open("rb") as handle:
        for raw_line in handle:
            total_lines += 1

            word = raw_line.decode("utf-8", errors="ignore").strip()
            if word:
                words.append(word)
    return words, total_lines


def _build_result(path: Path, index: DictionaryIndex, total_lines: int, loaded_from_cache: bool) -> IndexBuildResult:
    smallest, largest, mean = index.stats()
    return IndexBuildResult(
        dictionary_path=str(path),
        total_lines=total_lines,
        accepted_words=index.word_count,
        unique_fingerprints=len(index),
        smallest_bucket=smallest,
        largest_bucket=largest,
        mean_bucket_size=mean,
        loaded_from_cache=loaded_from_cache,
    )


def load_dictionary(
    dictionary_path: str | Path,
    options: UnscrambleOptions,
) -> tuple[DictionaryIndex, IndexBuildResult]:
    """
    Build or load a dictionary index from a word list with one word per line.

    The pickled bucket mapping is reused when the file is unchanged and the
    speed cache is enabled.
    """
    path = Path(dictionary_path)
    if not path.exists():
        raise FileNotFoundError(f"Dictionary file not found: {dictionary_path}")

    ensure_app_dirs()
    file_stat = path.stat()
    cache_file = CACHE_DIR / f"{cache_key(path, file_stat.st_size, file_stat.st_mtime_ns)}.pkl"

    if options.use_speed_cache and cache_file.exists():
        with cache_file.open("rb") as handle:
            cached = pickle.load(handle)
        index = DictionaryIndex(cached["buckets"])
        logging.info("Loaded dictionary index for %s from %s", path, cache_file)
        return index, _build_result(path, index, cached["total_lines"], loaded_from_cache=True)

    words, total_lines = _read_dictionary_words(path)
    index = DictionaryIndex.build(words)
    logging.info("Indexed %d words from %s into %d buckets", index.word_count, path, len(index))

    if options.use_speed_cache:
        payload = {
            "buckets": dict(index.buckets),
            "total_lines": total_lines,
        }
        try:
            with cache_file.open("wb") as handle:
                pickle.dump(payload, handle, protocol=pickle.HIGHEST_PROTOCOL)
        except Exception:
            logging.exception("Failed writing cache file: %s", cache_file)

    return index, _build_result(path, index, total_lines, loaded_from_cache=False)


def find_word_candidates(
    index: DictionaryIndex,
    search_word: str,
    first_char: str | None = None,
) -> list[str]:
    """
    Return dictionary words that are exact anagrams of ``search_word``.

    With ``first_char`` set, a word must start with that letter once
    uppercased, and the first character of ``search_word`` is left out of the
    letter count comparison.
    """
    candidates = index.lookup(fingerprint(search_word))
    if first_char is not None:
        candidates = tuple(word for word in candidates if not word or word[0].upper() == first_char)

    checked = set(search_word[1:] if first_char is not None else search_word)
    return [
        word
        for word in candidates
        if all(search_word.count(char) == word.count(char) for char in checked)
    ]


def resolve_candidates(index: DictionaryIndex, clean_token: str) -> tuple[list[str], bool]:
    """
    Exact-case lookup, falling back to a case-folded lookup.

    The fallback takes the first uppercase letter of the token as the forced
    first letter and capitalizes every word it returns. The flag is True when
    the fallback ran.
    """
    candidates = find_word_candidates(index, clean_token)
    if candidates:
        return candidates, False

    first_char = next((char for char in clean_token if char.isupper()), None)
    candidates = find_word_candidates(index, clean_token.lower(), first_char)
    return [upper_first(word) for word in candidates], True


class Unscrambler:
    """Resolve scrambled text against a prebuilt dictionary index."""

    def __init__(self, index: DictionaryIndex) -> None:
        self.index = index

    def unscramble_token(self, token: str) -> TokenResult:
        prefix, clean_token, suffix = split_special_chars(token)
        candidates, case_folded = resolve_candidates(self.index, clean_token)

        if not candidates:
            status = STATUS_UNRESOLVED
        elif len(candidates) == 1:
            status = STATUS_RESOLVED
        else:
            status = STATUS_AMBIGUOUS

        return TokenResult(
            token=token,
            clean_token=clean_token,
            status=status,
            rendered=f"{prefix}{render_candidates(clean_token, candidates)}{suffix}",
            candidates=candidates,
            case_folded=case_folded and bool(candidates),
        )

    def render_token(self, token: str) -> str:
        return self.unscramble_token(token).rendered

    def unscramble_line(self, line: str) -> list[TokenResult]:
        return [self.unscramble_token(token) for token in split_tokens(line)]

    def solve(self, raw_text: str) -> UnscrambleReport:
        """Unscramble text and return per-token results in input order."""
        input_lines = split_lines(raw_text)
        lines = [self.unscramble_line(line) for line in input_lines]
        output_text = "\n".join(" ".join(row.rendered for row in line) for line in lines)
        return UnscrambleReport(input_lines=input_lines, lines=lines, output_text=output_text)

    def unscramble(self, raw_text: str) -> str:
        return self.solve(raw_text).output_text


def write_report(report: UnscrambleReport, stream: TextIO) -> None:
    """Write one output line per input line; write errors propagate."""
    for line in report.output_lines:
        stream.write(line)
        stream.write("\n")
