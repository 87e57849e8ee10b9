"""Tests for checklist_reconcile.options."""

import pytest

from checklist_reconcile.options import OPTION_SYNONYMS, extract_option


class TestLeadingOption:
    @pytest.mark.parametrize(("text", "expected"), [
        ("Option A—Sprinting", "option a"),
        ("Option A – Sprinting", "option a"),
        ("Option B: Running", "option b"),
        ("Option C. Long distance", "option c"),
        ("option d hiking", "option d"),
        ("Option E", "option e"),
        ("Option 2 - Something", "option 2"),
        ("Option 3", "option 3"),
    ])
    def test_leading_option(self, text: str, expected: str) -> None:
        assert extract_option(text) == expected

    def test_letter_must_be_followed_by_separator(self) -> None:
        # "Avian" is a word, not the letter A
        assert extract_option("Option Avian care") == "avian"


class TestSynonyms:
    @pytest.mark.parametrize(("text", "expected"), [
        ("Beef Cattle", "beef"),
        ("Dairy Cattle Option", "dairy"),
        ("Raising swine", "hog"),
        ("Ice Skating", "ice"),
        ("Inline Skating", "line"),
        ("Roller skating", "roll"),
        ("Snowboarding", "snow"),
        ("Group 2 activities", "grp 2"),
        ("Opt B", "opt b"),
    ])
    def test_synonym(self, text: str, expected: str) -> None:
        assert extract_option(text) == expected

    def test_longer_phrase_precedes_prefix(self) -> None:
        phrases = list(OPTION_SYNONYMS)
        assert phrases.index("alpine skiing") < phrases.index("alpine")
        assert phrases.index("nordic skiing") < phrases.index("nordic")

    def test_tokens_are_lowercase_without_punctuation(self) -> None:
        for token in OPTION_SYNONYMS.values():
            assert token == token.lower()
            assert not any(ch in token for ch in "()[].,")


class TestTrailingOption:
    def test_first_word_of_prefix(self) -> None:
        assert extract_option("Llama Packing Option") == "llama"

    def test_case_insensitive(self) -> None:
        assert extract_option("Goat option") == "goat"


class TestNoOption:
    @pytest.mark.parametrize("text", [
        None, "", "   ", "Do the following:", "Optional reading", "Explain why",
    ])
    def test_none(self, text: str | None) -> None:
        assert extract_option(text) is None

    def test_deterministic(self) -> None:
        assert extract_option("Option A—Sprinting") == extract_option("Option A—Sprinting")
