import io
from pathlib import Path

import pytest

from unscrambler_models import STATUS_AMBIGUOUS, STATUS_RESOLVED, STATUS_UNRESOLVED, UnscrambleOptions
from unscrambler_solver import DictionaryIndex, Unscrambler, find_word_candidates, load_dictionary, resolve_candidates, write_report
from unscrambler_utils import fingerprint

REFERENCE_INPUT = (
    "eiD rüedW dse cnnesheM its atusar.tanbn eSi uz eahntc dnu uz shcenztü tis "
    "tincufhpegrlV ealrl iesnatclhat .eawltG"
)
REFERENCE_OUTPUT = (
    'Die Würde des Menschen ist unantastbar. ["Sei", "Sie"] zu achten und zu schützen ist '
    'Verpflichtung aller ["atlantische", "staatlichen"] Gewalt.'
)


@pytest.fixture
def german_unscrambler(sample_dictionary_path: Path) -> Unscrambler:
    index, _ = load_dictionary(sample_dictionary_path, UnscrambleOptions(use_speed_cache=False))
    return Unscrambler(index)


def test_build_keeps_dictionary_order_per_bucket() -> None:
    index = DictionaryIndex.build(["Lampe", "Tor", "Palme", "Ampel"])

    assert index.lookup(fingerprint("Lampe")) == ("Lampe", "Palme", "Ampel")
    assert index.lookup(fingerprint("lampe")) == ()
    assert index.word_count == 4
    assert len(index) == 2
    assert find_word_candidates(index, "pmeLa") == ["Lampe"]

    lower = DictionaryIndex.build(["sie", "sei", "eis"])
    assert lower.lookup(fingerprint("ies")) == ("sie", "sei", "eis")


def test_index_is_read_only() -> None:
    index = DictionaryIndex.build(["sei"])
    with pytest.raises(TypeError):
        index.buckets[0] = ("x",)  # type: ignore[index]


def test_index_stats() -> None:
    index = DictionaryIndex.build(["sei", "sie", "zu"])
    assert index.stats() == (1, 2, 1.5)
    assert DictionaryIndex.build([]).stats() == (0, 0, 0.0)


def test_fingerprint_collisions_are_filtered() -> None:
    index = DictionaryIndex.build(["ac", "bb"])

    assert fingerprint("ac") == fingerprint("bb")
    assert find_word_candidates(index, "bb") == ["bb"]
    assert find_word_candidates(index, "ca") == ["ac"]
    assert find_word_candidates(index, "zzq") == []


def test_forced_first_char_filters_on_uppercased_first_letter() -> None:
    index = DictionaryIndex.build(["sei", "sie", "Eis", "eis"])

    assert find_word_candidates(index, "esi", "S") == ["sei", "sie"]
    assert find_word_candidates(index, "esi", "E") == ["eis"]
    assert find_word_candidates(index, "esi") == ["sei", "sie", "eis"]


def test_resolve_prefers_exact_case() -> None:
    index = DictionaryIndex.build(["Tor", "Ort", "rot"])

    assert resolve_candidates(index, "roT") == (["Tor"], False)
    assert resolve_candidates(index, "tOr") == (["Ort"], False)
    assert resolve_candidates(index, "tor") == (["rot"], False)


def test_resolve_falls_back_to_forced_capital() -> None:
    index = DictionaryIndex.build(["die", "Eid", "sei", "sie"])

    assert resolve_candidates(index, "eiD") == (["Die"], True)
    assert resolve_candidates(index, "eSi") == (["Sei", "Sie"], True)
    assert resolve_candidates(index, "zzq") == ([], True)


def test_unscramble_token_statuses(german_unscrambler: Unscrambler) -> None:
    resolved = german_unscrambler.unscramble_token("cnnesheM")
    assert resolved.status == STATUS_RESOLVED
    assert resolved.rendered == "Menschen"
    assert resolved.case_folded is False

    ambiguous = german_unscrambler.unscramble_token("eSi")
    assert ambiguous.status == STATUS_AMBIGUOUS
    assert ambiguous.candidates == ["Sei", "Sie"]
    assert ambiguous.case_folded is True

    unresolved = german_unscrambler.unscramble_token("zzq")
    assert unresolved.status == STATUS_UNRESOLVED
    assert unresolved.rendered == "`qzz`"


def test_unscramble_token_reattaches_punctuation(german_unscrambler: Unscrambler) -> None:
    assert german_unscrambler.render_token("„(eiD?“,") == "„(Die?“,"
    assert german_unscrambler.render_token("ea.wltG") == "Gewalt."
    assert german_unscrambler.render_token("(zzq)") == "(`qzz`)"

    result = german_unscrambler.unscramble_token("(dnu,")
    assert result.clean_token == "dnu"
    assert result.rendered == "(und,"


def test_unscramble_reference_sentence(german_unscrambler: Unscrambler) -> None:
    assert german_unscrambler.unscramble(REFERENCE_INPUT) == REFERENCE_OUTPUT
    assert german_unscrambler.unscramble(REFERENCE_INPUT + "\n") == REFERENCE_OUTPUT


def test_unscramble_preserves_line_and_token_structure(german_unscrambler: Unscrambler) -> None:
    text = "  eiD   rüedW\n\nzzq\tuz  dnu \n"
    report = german_unscrambler.solve(text)

    assert report.input_lines == ["  eiD   rüedW", "", "zzq\tuz  dnu "]
    assert [len(line) for line in report.lines] == [2, 0, 3]
    assert report.output_text == "Die Würde\n\n`qzz` zu und"
    assert report.output_lines == ["Die Würde", "", "`qzz` zu und"]


def test_load_dictionary_counts_and_skips_blank_lines(tmp_path: Path) -> None:
    wordlist = tmp_path / "words.dic"
    wordlist.write_text("sei\n\nsie\n  Eis  \n", encoding="utf-8")
    index, result = load_dictionary(wordlist, UnscrambleOptions(use_speed_cache=False))

    assert result.total_lines == 4
    assert result.accepted_words == 3
    assert result.unique_fingerprints == 2
    assert result.largest_bucket == 2
    assert result.loaded_from_cache is False
    assert index.lookup(fingerprint("Eis")) == ("Eis",)


def test_load_dictionary_uses_speed_cache(tmp_path: Path) -> None:
    wordlist = tmp_path / "words.dic"
    wordlist.write_text("sei\nsie\nzu\n", encoding="utf-8")
    options = UnscrambleOptions(use_speed_cache=True)

    first, first_result = load_dictionary(wordlist, options)
    second, second_result = load_dictionary(wordlist, options)

    assert first_result.loaded_from_cache is False
    assert second_result.loaded_from_cache is True
    assert second_result.total_lines == 3
    assert dict(second.buckets) == dict(first.buckets)


def test_load_dictionary_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_dictionary(tmp_path / "missing.dic", UnscrambleOptions(use_speed_cache=False))


def test_sample_dictionary_loads(sample_dictionary_path: Path) -> None:
    _, result = load_dictionary(sample_dictionary_path, UnscrambleOptions(use_speed_cache=False))
    assert result.accepted_words == 99


def test_write_report_ends_every_line(german_unscrambler: Unscrambler) -> None:
    report = german_unscrambler.solve("eiD\n\nuz")
    stream = io.StringIO()

    write_report(report, stream)

    assert stream.getvalue() == "Die\n\nzu\n"


class _BrokenStream(io.StringIO):
    def write(self, text: str) -> int:
        raise OSError("disk full")


def test_write_report_propagates_write_errors(german_unscrambler: Unscrambler) -> None:
    report = german_unscrambler.solve("eiD")
    with pytest.raises(OSError):
        write_report(report, _BrokenStream())
