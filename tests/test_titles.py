"""Tests for the title matchers and strategy dispatch."""

from __future__ import annotations

import pytest

from libdupes.core.titles import (
    find_duplicate_entries,
    find_duplicates_by_title,
    find_duplicates_exact_title,
    find_duplicates_fuzzy_title,
    find_duplicates_title_substring,
)
from libdupes.models.config import TitleStrategy
from libdupes.models.entry import LibraryEntry


def _ids(groups: dict[str, list[LibraryEntry]]) -> dict[str, list[object]]:
    return {label: [e.id for e in members] for label, members in groups.items()}


class TestExactTitle:
    def test_groups_identical_titles(self) -> None:
        entries = [
            LibraryEntry(id="A", title="Foo"),
            LibraryEntry(id="B", title="Foo"),
            LibraryEntry(id="C", title="Bar"),
        ]
        assert _ids(find_duplicates_exact_title(entries)) == {"Foo": ["A", "B"]}

    def test_case_sensitive(self) -> None:
        entries = [LibraryEntry(id=1, title="Foo"), LibraryEntry(id=2, title="foo")]
        assert find_duplicates_exact_title(entries) == {}

    def test_empty_titles_not_grouped(self) -> None:
        entries = [LibraryEntry(id=1, title=""), LibraryEntry(id=2, title="")]
        assert find_duplicates_exact_title(entries) == {}

    def test_candidates_limit_groups(self) -> None:
        entries = [
            LibraryEntry(id=1, title="Foo"),
            LibraryEntry(id=2, title="Foo"),
            LibraryEntry(id=3, title="Bar"),
            LibraryEntry(id=4, title="Bar"),
        ]
        groups = find_duplicates_exact_title(entries, candidates=entries[2:3])
        assert _ids(groups) == {"Bar": [3, 4]}

    def test_empty_input(self) -> None:
        assert find_duplicates_exact_title([]) == {}


class TestNormalizedTitle:
    def test_groups_formatting_variants(self, library: list[LibraryEntry]) -> None:
        groups = find_duplicates_by_title(library)
        assert _ids(groups) == {"One Piece": [1, 2]}

    def test_label_is_first_original_title(self) -> None:
        entries = [LibraryEntry(id=1, title="BERSERK!"), LibraryEntry(id=2, title="Berserk")]
        assert list(find_duplicates_by_title(entries)) == ["BERSERK!"]

    def test_no_singletons(self, library: list[LibraryEntry]) -> None:
        for members in find_duplicates_by_title(library).values():
            assert len(members) >= 2


class TestFuzzyTitle:
    def test_word_boundary_match(self) -> None:
        entries = [
            LibraryEntry(id=1, title="Vagabond"),
            LibraryEntry(id=2, title="Swordsman Vagabond"),
            LibraryEntry(id=3, title="Vagabonds United"),
        ]
        groups = find_duplicates_fuzzy_title(entries)
        assert _ids(groups)["Vagabond"] == [1, 2]
        assert 3 not in _ids(groups)["Vagabond"]

    def test_match_is_symmetric(self) -> None:
        entries = [
            LibraryEntry(id=1, title="Swordsman Vagabond"),
            LibraryEntry(id=2, title="vagabond"),
        ]
        groups = _ids(find_duplicates_fuzzy_title(entries))
        assert groups["Swordsman Vagabond"] == [1, 2]
        assert groups["vagabond"] == [2, 1]

    def test_regex_characters_escaped(self) -> None:
        entries = [
            LibraryEntry(id=1, title="Who? (2020)"),
            LibraryEntry(id=2, title="The Who? (2020)"),
            LibraryEntry(id=3, title="Whoo 2020"),
        ]
        groups = _ids(find_duplicates_fuzzy_title(entries))
        assert groups["Who? (2020)"] == [1, 2]

    def test_untitled_never_seeds(self) -> None:
        entries = [LibraryEntry(id=1, title=""), LibraryEntry(id=2, title="Anything")]
        assert find_duplicates_fuzzy_title(entries) == {}


class TestSubstring:
    def test_plain_containment(self) -> None:
        entries = [
            LibraryEntry(id=1, title="Vagabond"),
            LibraryEntry(id=2, title="VAGABONDS united"),
            LibraryEntry(id=3, title="Berserk"),
        ]
        groups = _ids(find_duplicates_title_substring(entries))
        assert groups == {"Vagabond": [1, 2], "VAGABONDS united": [2, 1]}


class TestStrategyDispatch:
    def test_default_is_alternative_titles(self, library: list[LibraryEntry]) -> None:
        groups = _ids(find_duplicate_entries(library))
        assert groups == {"One Piece": [1, 2], "Kenpuu Denki Berserk": [4, 3]}

    @pytest.mark.parametrize(
        "strategy,expected",
        [
            (TitleStrategy.EXACT, {}),
            (TitleStrategy.FUZZY, {"Vagabond": [5, 6], "Swordsman Vagabond": [6, 5]}),
        ],
    )
    def test_other_strategies(self, strategy: TitleStrategy, expected: dict) -> None:
        entries = [
            LibraryEntry(id=5, title="Vagabond"),
            LibraryEntry(id=6, title="Swordsman Vagabond"),
        ]
        assert _ids(find_duplicate_entries(entries, strategy=strategy)) == expected

    def test_accepts_string_value(self) -> None:
        entries = [LibraryEntry(id=1, title="Foo"), LibraryEntry(id=2, title="Foo")]
        assert _ids(find_duplicate_entries(entries, strategy="exact")) == {"Foo": [1, 2]}  # type: ignore[arg-type]

    def test_unknown_strategy(self) -> None:
        with pytest.raises(ValueError):
            find_duplicate_entries([], strategy="levenshtein")  # type: ignore[arg-type]
