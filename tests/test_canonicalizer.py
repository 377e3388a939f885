"""Tests for spelling normalization, derived summaries and record merging."""

import pytest

from lexicon.canonicalizer import (
    build_variants,
    canonical_key,
    counterpart,
    derive_parts_of_speech,
    derive_symbol,
    merge_record,
    normalize,
    validate_term,
)
from lexicon.errors import InvalidInput
from lexicon.models import Entry

from conftest import make_entry


class TestNormalize:
    """Canonical key normalization"""

    def test_strips_edge_hyphens_and_lowercases(self):
        assert normalize("-Ability-") == "ability"

    def test_collapses_whitespace(self):
        assert normalize("take   care") == "take care"

    def test_drops_digits_and_punctuation(self):
        assert normalize("Don't 123 stop!") == "dont stop"

    def test_collapses_hyphen_runs(self):
        assert normalize("well---being") == "well-being"

    def test_non_string_is_empty(self):
        assert normalize(None) == ""
        assert normalize(42) == ""

    @pytest.mark.parametrize("raw", [
        "-Ability-",
        "take   care",
        "-- -word- --",
        "  a - b  ",
        "x--",
        "\tMixed\nCASE  words\t",
        "---",
        "",
        "é-accent",
    ])
    def test_idempotent(self, raw):
        once = normalize(raw)
        assert normalize(once) == once


class TestValidateTerm:
    def test_accepts_letters_spaces_hyphens(self):
        assert validate_term("  well-being ") == "well-being"
        assert validate_term("take care") == "take care"

    @pytest.mark.parametrize("raw", ["", "   ", None, "abc1", "hello!", "---"])
    def test_rejects_invalid(self, raw):
        with pytest.raises(InvalidInput):
            validate_term(raw)


def test_counterpart_swaps_hyphen_and_space():
    assert counterpart("well-being") == "well being"
    assert counterpart("ice cream") == "ice-cream"
    assert counterpart("ability") is None
    assert counterpart("") is None


def test_build_variants_dedupes_and_appends_counterparts():
    variants = build_variants(["Well-being", "well-being", "Well Being"])
    assert variants == ["well-being", "well being"]


def test_canonical_key_falls_back_to_requested_term():
    assert canonical_key([make_entry("Ability")], "abil") == "ability"
    assert canonical_key([], "Take  Care") == "take care"


class TestDeriveSymbol:
    def test_priority_order_wins_over_first_seen(self):
        entries = [make_entry("a", symbol="c1"), make_entry("b", symbol="a2")]
        assert derive_symbol(entries) == "a2"

    def test_unknown_symbol_falls_back_to_first_seen(self):
        entries = [make_entry("a", symbol=""), make_entry("b", symbol="c2"), make_entry("c", symbol="x")]
        assert derive_symbol(entries) == "c2"

    def test_no_symbols(self):
        assert derive_symbol([make_entry("a")]) == ""


def test_derive_parts_of_speech_sorted_and_unique():
    entries = [make_entry("a", "verb"), make_entry("b", "noun"), make_entry("c", " verb "), make_entry("d", "")]
    assert derive_parts_of_speech(entries) == ["noun", "verb"]


class TestMergeRecord:
    """Merging scraped entries into stored records"""

    def test_creates_record_when_missing(self):
        record = merge_record(None, [make_entry("ability", symbol="b1")], ["ability"], key="ability")
        assert record.key == "ability"
        assert record.headwords() == ["ability"]
        assert record.variants == ["ability"]
        assert record.symbol == "b1"
        assert record.parts_of_speech == ["noun"]
        assert record.created_at is not None

    def test_same_headword_twice_yields_one_entry(self):
        record = merge_record(None, [make_entry("ability")], ["ability"], key="ability")
        again = merge_record(record, [make_entry("ability")], ["ability"])
        assert again.headwords() == ["ability"]
        assert again.entries[0].id == record.entries[0].id

    def test_new_headword_appends_and_preserves_prior(self):
        first = make_entry("light", "noun", symbol="a1")
        record = merge_record(None, [first], ["light"], key="light")
        merged = merge_record(record, [make_entry("light", "verb"), make_entry("Light", "adjective")],
                              ["Light", "light"])

        assert merged.headwords() == ["light", "Light"]
        assert merged.entries[0] is first
        assert merged.variants == ["light", "Light"]
        assert merged.parts_of_speech == ["adjective", "noun"]
        assert merged.created_at == record.created_at

    def test_headword_comparison_trims_whitespace(self):
        record = merge_record(None, [make_entry("ability")], [], key="ability")
        merged = merge_record(record, [Entry(headword="  ability ")], [])
        assert len(merged.entries) == 1

    def test_existing_record_not_mutated(self):
        record = merge_record(None, [make_entry("run")], ["run"], key="run")
        merge_record(record, [make_entry("Run")], ["Run"])
        assert record.headwords() == ["run"]
        assert record.variants == ["run"]
