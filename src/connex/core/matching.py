"""Fuzzy matching utilities for Connex.

Holds the shared fuzzy-match rule used by the fit scorer and graph
matching, the complementary word-overlap rule for needs and offers,
city normalisation, and fuzzy node lookup for the CLI. Uses RapidFuzz
for edit distance and for ranked node suggestions.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rapidfuzz import fuzz, process
from rapidfuzz.distance import Levenshtein

from connex.core.constants import (
    CITY_ALIASES,
    FUZZY_DISTANCE_RATIO,
    MAX_SUGGESTIONS,
    MIN_OVERLAP_WORD_LENGTH,
    NODE_LOOKUP_THRESHOLD,
)
from connex.core.types import Interest, Node

if TYPE_CHECKING:
    from connex.core.graph import EntityGraph


def levenshtein_distance(a: str, b: str) -> int:
    """Return the classic edit distance between a and b (unit costs)."""
    return Levenshtein.distance(a, b)


def fuzzy_match(a: str | None, b: str | None) -> bool:
    """Check whether two phrases refer to the same thing.

    Two strings match when either contains the other (case-insensitive),
    or when their edit distance is at most 30% of the shorter length.
    Empty or missing values never match.

    Examples:
        >>> fuzzy_match("product", "product strategy")
        True
        >>> fuzzy_match("kitten", "sitten")
        True
        >>> fuzzy_match("ai", "crypto")
        False
    """
    if not a or not b:
        return False
    a_lower = a.lower()
    b_lower = b.lower()
    if a_lower in b_lower or b_lower in a_lower:
        return True
    threshold = min(len(a_lower), len(b_lower)) * FUZZY_DISTANCE_RATIO
    return levenshtein_distance(a_lower, b_lower) <= threshold


def words_overlap(phrase_a: str, phrase_b: str) -> bool:
    """Complementary need/offer rule.

    True when any word longer than 3 characters in one phrase equals,
    contains, or is contained in any such word of the other phrase.
    """
    words_a = [w for w in phrase_a.split() if len(w) >= MIN_OVERLAP_WORD_LENGTH]
    words_b = [w for w in phrase_b.split() if len(w) >= MIN_OVERLAP_WORD_LENGTH]
    for word_a in words_a:
        for word_b in words_b:
            if word_a in word_b or word_b in word_a:
                return True
    return False


def normalize_city(city: str | None) -> str | None:
    """Normalise a city name through the alias table.

    Args:
        city: Raw city text, e.g. "BKK" or " San Francisco ".

    Returns:
        Lower-case canonical city name, or None for empty input.
    """
    if not city:
        return None
    lowered = city.lower().strip()
    return CITY_ALIASES.get(lowered, lowered)


def flatten_interests(interests: Iterable["str | Interest"]) -> list[str]:
    """Flatten interest records to lower-case tokens.

    Plain strings are kept; Interest records contribute their category
    followed by every keyword. Empty tokens are dropped.
    """
    tokens: list[str] = []
    for interest in interests:
        if isinstance(interest, Interest):
            candidates = [interest.category, *interest.keywords]
        else:
            candidates = [interest]
        tokens.extend(t.lower() for t in candidates if t)
    return tokens


@dataclass
class MatchResult:
    """Result of a fuzzy node lookup.

    Attributes:
        match: The matched node, or None if no match found.
        is_exact: True if the match was exact (not fuzzy).
        score: The fuzzy match score (0-100), or 100 for exact match.
        suggestions: Suggested node labels when no single match was found.
    """

    match: Node | None = None
    is_exact: bool = False
    score: float = 0.0
    suggestions: list[str] = field(default_factory=list)


def fuzzy_find_node(
    graph: "EntityGraph",
    query: str,
    node_type: str | None = None,
    threshold: int = NODE_LOOKUP_THRESHOLD,
) -> MatchResult:
    """Find a node by canonical id or display name, tolerating typos.

    Exact matches (canonical id or case-insensitive label) win. Otherwise
    RapidFuzz WRatio picks the best label above the threshold; when
    several labels score within 10 points of the best, the lookup is
    ambiguous and only suggestions are returned.

    Args:
        graph: The entity graph to search.
        query: Name typed by the user.
        node_type: Optional node type restriction (e.g. "person").
        threshold: Minimum fuzzy score (0-100).

    Returns:
        MatchResult with the matched node or suggestions.
    """
    from connex.core.graph import canonical_id

    eligible = [n for n in graph.nodes if node_type is None or n.type == node_type]
    if not eligible:
        return MatchResult()

    wanted_id = canonical_id(query)
    query_lower = query.lower()
    for node in eligible:
        if node.id == wanted_id or node.label.lower() == query_lower:
            return MatchResult(match=node, is_exact=True, score=100.0)

    choices = {n.label: n for n in eligible}
    matches = process.extract(
        query,
        choices.keys(),
        scorer=fuzz.WRatio,
        score_cutoff=threshold,
        limit=MAX_SUGGESTIONS,
    )

    if not matches:
        closest = process.extract(query, choices.keys(), scorer=fuzz.WRatio, limit=MAX_SUGGESTIONS)
        return MatchResult(suggestions=[m[0] for m in closest])

    top_score = matches[0][1]
    contenders = [m[0] for m in matches if m[1] >= top_score - 10]
    if len(contenders) > 1:
        return MatchResult(suggestions=contenders, score=top_score)

    best_label, best_score, _ = matches[0]
    return MatchResult(match=choices[best_label], score=best_score)


def format_node_suggestions(suggestions: list[str], max_show: int = MAX_SUGGESTIONS) -> str:
    """Format node suggestions for display in error messages."""
    if not suggestions:
        return "No matching people or entities in this transcript."

    shown = suggestions[:max_show]
    formatted = "\n".join(f"  - {s}" for s in shown)

    if len(suggestions) > max_show:
        formatted += f"\n  ... and {len(suggestions) - max_show} more"

    return f"Did you mean one of these?\n{formatted}"
