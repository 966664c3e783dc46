"""Tests for fuzzy matching, word overlap and node lookup."""

import pytest

from connex.core.constants import NODE_PERSON, NODE_SCHOOL
from connex.core.graph import EntityGraph
from connex.core.matching import (
    flatten_interests,
    format_node_suggestions,
    fuzzy_find_node,
    fuzzy_match,
    levenshtein_distance,
    normalize_city,
    words_overlap,
)
from connex.core.types import Interest


class TestFuzzyMatch:
    """Tests for the shared fuzzy-match rule."""

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ("product", "product strategy"),
            ("Product Strategy", "product"),
            ("Crypto", "crypto"),
            ("kitten", "sitten"),
        ],
    )
    def test_matches(self, a: str, b: str) -> None:
        """Containment or a small edit distance is a match."""
        assert fuzzy_match(a, b), f"Expected {a!r} ~ {b!r}"

    @pytest.mark.parametrize(
        ("a", "b"),
        [("ai", "crypto"), ("", "crypto"), (None, "crypto"), ("design", None)],
    )
    def test_non_matches(self, a: str | None, b: str | None) -> None:
        """Unrelated or empty values never match."""
        assert not fuzzy_match(a, b), f"Expected {a!r} !~ {b!r}"

    def test_levenshtein_distance(self) -> None:
        """Classic unit-cost edit distance."""
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0


class TestWordsOverlap:
    """Tests for the complementary need/offer rule."""

    def test_shared_long_word(self) -> None:
        """A shared word of four or more letters links need and offer."""
        assert words_overlap("crypto knowledge", "a crypto advisor")

    def test_word_containment(self) -> None:
        """A word contained in a longer word counts."""
        assert words_overlap("design help", "senior designer")

    def test_short_words_ignored(self) -> None:
        """Words under four letters never link two phrases."""
        assert not words_overlap("ai ml", "ai ml")


class TestNormalizeCity:
    """Tests for city alias normalisation."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("BKK", "bangkok"),
            ("sf", "san francisco"),
            (" San Francisco ", "san francisco"),
            ("Lisbon", "lisbon"),
        ],
    )
    def test_aliases(self, raw: str, expected: str) -> None:
        """Aliases map to canonical lower-case names; others are lower-cased."""
        assert normalize_city(raw) == expected

    def test_empty(self) -> None:
        """Empty input stays empty."""
        assert normalize_city(None) is None
        assert normalize_city("") is None


def test_flatten_interests_accepts_both_shapes() -> None:
    """Strings and Interest records flatten to lower-case tokens."""
    interests = ["AI", Interest("crypto", ("bitcoin", "defi"))]
    assert flatten_interests(interests) == ["ai", "crypto", "bitcoin", "defi"]


@pytest.fixture
def people_graph() -> EntityGraph:
    """Graph with two people and a school."""
    graph = EntityGraph()
    graph.add_node("Alice Chen", NODE_PERSON)
    graph.add_node("Bob Smith", NODE_PERSON)
    graph.add_node("Stanford", NODE_SCHOOL)
    return graph


class TestFuzzyFindNode:
    """Tests for CLI node lookup."""

    def test_exact_label_case_insensitive(self, people_graph: EntityGraph) -> None:
        """A case-insensitive label match is exact."""
        result = fuzzy_find_node(people_graph, "alice chen")

        assert result.match is not None
        assert result.match.id == "alice_chen"
        assert result.is_exact
        assert result.score == 100.0

    def test_exact_canonical_id(self, people_graph: EntityGraph) -> None:
        """The canonical id is accepted as an exact match."""
        result = fuzzy_find_node(people_graph, "bob_smith")
        assert result.match is not None and result.match.label == "Bob Smith"

    def test_typo_is_fuzzy_match(self, people_graph: EntityGraph) -> None:
        """A small typo still finds the node, flagged as not exact."""
        result = fuzzy_find_node(people_graph, "Alice Chn")

        assert result.match is not None, f"Expected a match, got {result}"
        assert result.match.label == "Alice Chen"
        assert not result.is_exact

    def test_unknown_name_gives_no_match(self, people_graph: EntityGraph) -> None:
        """Nothing close enough returns no match."""
        result = fuzzy_find_node(people_graph, "qqqqqqqq")
        assert result.match is None

    def test_type_filter(self, people_graph: EntityGraph) -> None:
        """Nodes of other types are not considered."""
        result = fuzzy_find_node(people_graph, "Stanford", node_type=NODE_PERSON)
        assert result.match is None

    def test_empty_graph(self) -> None:
        """An empty graph returns an empty result."""
        result = fuzzy_find_node(EntityGraph(), "Alice")
        assert result.match is None
        assert result.suggestions == []


class TestFormatNodeSuggestions:
    """Tests for suggestion formatting."""

    def test_no_suggestions(self) -> None:
        assert "No matching" in format_node_suggestions([])

    def test_truncates_long_lists(self) -> None:
        """Only the first five are shown, with a count of the rest."""
        text = format_node_suggestions([f"Person {i}" for i in range(7)])

        assert "Did you mean" in text
        assert "  - Person 4" in text
        assert "Person 5" not in text
        assert "... and 2 more" in text
