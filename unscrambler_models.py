"""Data models for unscramble results and indexing metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

STATUS_RESOLVED = "resolved"
STATUS_AMBIGUOUS = "ambiguous"
STATUS_UNRESOLVED = "unresolved"


@dataclass(slots=True)
class UnscrambleOptions:
    """Options used when loading the dictionary index."""

    use_speed_cache: bool = True


@dataclass(slots=True)
class TokenResult:
    """Result for a single scrambled token."""

    token: str
    clean_token: str
    status: str
    rendered: str
    candidates: list[str] = field(default_factory=list)
    case_folded: bool = False


@dataclass(slots=True)
class UnscrambleReport:
    """Aggregated unscramble output preserving line and token order."""

    input_lines: list[str]
    lines: list[list[TokenResult]]
    output_text: str
    generated_at_utc: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def output_lines(self) -> list[str]:
        return [" ".join(row.rendered for row in line) for line in self.lines]


@dataclass(slots=True)
class IndexBuildResult:
    """Summary returned after building or loading an index."""

    dictionary_path: str
    total_lines: int
    accepted_words: int
    unique_fingerprints: int
    smallest_bucket: int
    largest_bucket: int
    mean_bucket_size: float
    loaded_from_cache: bool
