"""Tests for graph queries: paths, bridges, shared context, help matches."""

import pytest

from connex.core.constants import (
    EDGE_ATTENDED,
    EDGE_CAN_HELP_WITH,
    EDGE_INTERESTED_IN,
    EDGE_KNOWS,
    EDGE_WANTS_HELP_WITH,
    EDGE_WANTS_TO_MEET,
    NODE_INTEREST,
    NODE_PERSON,
    NODE_SCHOOL,
)
from connex.core.graph import EntityGraph
from connex.core.graph_ops import (
    extract_neighborhood,
    find_bridge_opportunities,
    find_help_matches,
    find_path,
    find_shared_context,
    suggest_bridge_intro,
)
from connex.core.types import BridgeOpportunity


def _people(graph: EntityGraph, *names: str) -> None:
    for name in names:
        graph.add_node(name, NODE_PERSON)


@pytest.fixture
def chain_graph() -> EntityGraph:
    """Nathan - Alice - Bob - Carol, one knows edge per link."""
    graph = EntityGraph()
    _people(graph, "Nathan", "Alice", "Bob", "Carol")
    graph.add_edge("Nathan", "Alice", EDGE_KNOWS)
    graph.add_edge("Alice", "Bob", EDGE_KNOWS)
    graph.add_edge("Bob", "Carol", EDGE_KNOWS)
    return graph


@pytest.fixture
def triangle_graph() -> EntityGraph:
    """Nathan knows Alice and Bob; Alice wants to meet Bob."""
    graph = EntityGraph()
    _people(graph, "Nathan", "Alice", "Bob")
    graph.add_edge("Nathan", "Alice", EDGE_KNOWS)
    graph.add_edge("Nathan", "Bob", EDGE_KNOWS)
    graph.add_edge("Alice", "Bob", EDGE_WANTS_TO_MEET, {"detail": "talk about housing policy"})
    return graph


class TestFindPath:
    """Tests for bounded BFS path search."""

    def test_finds_shortest_path(self, chain_graph: EntityGraph) -> None:
        """The path lists canonical ids from source to target."""
        path = find_path(chain_graph, "Nathan", "Carol")
        assert path == ["nathan", "alice", "bob", "carol"], f"Got {path}"

    def test_edges_are_traversed_both_ways(self, chain_graph: EntityGraph) -> None:
        """Direction does not matter for connectivity."""
        assert find_path(chain_graph, "Carol", "Nathan") == ["carol", "bob", "alice", "nathan"]

    def test_respects_max_depth(self, chain_graph: EntityGraph) -> None:
        """A target further than max_depth hops is unreachable."""
        assert find_path(chain_graph, "Nathan", "Carol", max_depth=2) is None
        assert find_path(chain_graph, "Nathan", "Bob", max_depth=2) == ["nathan", "alice", "bob"]
        assert find_path(chain_graph, "Nathan", "Carol", max_depth=3) is not None

    def test_same_node(self, chain_graph: EntityGraph) -> None:
        assert find_path(chain_graph, "Alice", "alice") == ["alice"]

    def test_unknown_node(self, chain_graph: EntityGraph) -> None:
        assert find_path(chain_graph, "Nathan", "Zed") is None


class TestFindBridgeOpportunities:
    """Tests for bridge detection."""

    def test_exactly_one_bridge(self, triangle_graph: EntityGraph) -> None:
        """Requester knows A and B, A wants to meet B: one opportunity."""
        opportunities = find_bridge_opportunities(triangle_graph, "Nathan")

        assert len(opportunities) == 1, f"Expected 1 bridge, got {opportunities}"
        opp = opportunities[0]
        assert opp.person_a == "Alice"
        assert opp.person_b == "Bob"
        assert opp.what_a_wants == "talk about housing policy"
        assert opp.your_relationship_to_a == EDGE_KNOWS
        assert opp.your_relationship_to_b == EDGE_KNOWS
        assert opp.strength == 3

    def test_interest_in_a_person_counts(self) -> None:
        """interested_in pointing at a person node is treated as wanting to meet."""
        graph = EntityGraph()
        _people(graph, "Nathan", "Alice", "Bob")
        graph.add_edge("Nathan", "Alice", EDGE_KNOWS)
        graph.add_edge("Nathan", "Bob", EDGE_KNOWS)
        graph.add_edge("Alice", "Bob", EDGE_INTERESTED_IN)

        opportunities = find_bridge_opportunities(graph, "Nathan")

        assert [(o.person_a, o.person_b) for o in opportunities] == [("Alice", "Bob")]
        assert opportunities[0].what_a_wants == "to connect"

    def test_interest_in_a_topic_does_not_count(self) -> None:
        """interested_in pointing at a non-person is not a bridge."""
        graph = EntityGraph()
        _people(graph, "Nathan", "Alice")
        graph.add_node("Housing", NODE_INTEREST)
        graph.add_edge("Nathan", "Alice", EDGE_KNOWS)
        graph.add_edge("Nathan", "Housing", EDGE_KNOWS)
        graph.add_edge("Alice", "Housing", EDGE_INTERESTED_IN)

        assert find_bridge_opportunities(graph, "Nathan") == []

    def test_requester_must_know_both(self) -> None:
        """No opportunity when the requester does not know B."""
        graph = EntityGraph()
        _people(graph, "Nathan", "Alice", "Bob")
        graph.add_edge("Nathan", "Alice", EDGE_KNOWS)
        graph.add_edge("Alice", "Bob", EDGE_WANTS_TO_MEET)

        assert find_bridge_opportunities(graph, "Nathan") == []

    def test_sorted_by_strength(self, triangle_graph: EntityGraph) -> None:
        """Stronger triangles come first."""
        _people(triangle_graph, "Carol", "Dave")
        triangle_graph.add_edge("Nathan", "Carol", EDGE_KNOWS, {"weight": 4})
        triangle_graph.add_edge("Nathan", "Dave", EDGE_KNOWS, {"weight": 4})
        triangle_graph.add_edge("Carol", "Dave", EDGE_WANTS_TO_MEET)

        opportunities = find_bridge_opportunities(triangle_graph, "Nathan")

        assert [o.person_a for o in opportunities] == ["Carol", "Alice"]
        assert [o.strength for o in opportunities] == [9, 3]


class TestSuggestBridgeIntro:
    """Tests for the drafted intro message."""

    def test_message_mentions_relationship_and_school(self) -> None:
        opp = BridgeOpportunity(
            person_a="Alice Chen",
            person_b="Matt Mahan",
            what_a_wants="meet Matt about housing",
            your_relationship_to_a="knows",
            your_relationship_to_b="classmate",
            strength=3,
            context_b={"school": "Stanford"},
        )

        message = suggest_bridge_intro(opp)

        assert message == (
            "Hey Alice, you mentioned wanting to meet Matt about housing. "
            "Matt is actually my classmate from Stanford. Happy to make the intro."
        )

    def test_generic_wish(self) -> None:
        """Without 'meet' in the wish, the message asks to connect with B."""
        opp = BridgeOpportunity("Alice", "Bob", "to connect", "knows", "knows", 3)
        assert "wanting to connect with Bob." in suggest_bridge_intro(opp)


class TestFindSharedContext:
    """Tests for shared context between two people."""

    @pytest.mark.parametrize(("their_year", "same_year"), [(2015, True), (2016, False)])
    def test_same_school(self, their_year: int, same_year: bool) -> None:
        graph = EntityGraph()
        _people(graph, "Nathan", "Matt")
        graph.add_node("Stanford", NODE_SCHOOL)
        graph.add_edge("Nathan", "Stanford", EDGE_ATTENDED, {"year": 2015})
        graph.add_edge("Matt", "Stanford", EDGE_ATTENDED, {"year": their_year})

        shared = find_shared_context(graph, "Nathan", "Matt")

        assert len(shared) == 1, f"Expected 1 shared node, got {shared}"
        assert shared[0].node == "Stanford"
        assert shared[0].node_type == NODE_SCHOOL
        assert shared[0].your_relation == EDGE_ATTENDED
        assert shared[0].their_relation == EDGE_ATTENDED
        assert shared[0].same_year is same_year

    def test_direct_link_is_not_shared_context(self, chain_graph: EntityGraph) -> None:
        """The two people themselves are never reported."""
        assert find_shared_context(chain_graph, "Nathan", "Alice") == []


class TestFindHelpMatches:
    """Tests for matching needs and offers among the requester's contacts."""

    def test_needer_and_helper(self) -> None:
        graph = EntityGraph()
        _people(graph, "Nathan", "Alice", "Bob")
        graph.add_node("fundraising", NODE_INTEREST)
        graph.add_edge("Nathan", "Alice", EDGE_KNOWS)
        graph.add_edge("Nathan", "Bob", EDGE_KNOWS)
        graph.add_edge("Alice", "fundraising", EDGE_WANTS_HELP_WITH)
        graph.add_edge("Bob", "fundraising", EDGE_CAN_HELP_WITH)
        graph.add_edge("Bob", "fundraising", EDGE_WANTS_HELP_WITH)

        matches = find_help_matches(graph, "Nathan")

        assert [(m.needer, m.helper, m.topic) for m in matches] == [
            ("Alice", "Bob", "fundraising")
        ], f"Got {matches}"

    def test_strangers_are_ignored(self) -> None:
        """Only first-degree contacts of the requester are considered."""
        graph = EntityGraph()
        _people(graph, "Nathan", "Alice", "Bob")
        graph.add_edge("Nathan", "Alice", EDGE_KNOWS)
        graph.add_edge("Alice", "design", EDGE_WANTS_HELP_WITH)
        graph.add_edge("Bob", "design", EDGE_CAN_HELP_WITH)

        assert find_help_matches(graph, "Nathan") == []


class TestExtractNeighborhood:
    """Tests for neighborhood extraction."""

    def test_depth_one(self, chain_graph: EntityGraph) -> None:
        sub = extract_neighborhood(chain_graph, "Alice", depth=1)
        assert {n.id for n in sub.nodes} == {"nathan", "alice", "bob"}
        assert len(sub.edges) == 2

    def test_depth_zero_is_focal_only(self, chain_graph: EntityGraph) -> None:
        sub = extract_neighborhood(chain_graph, "Alice", depth=0)
        assert [n.id for n in sub.nodes] == ["alice"]
        assert sub.edges == ()

    def test_negative_depth_raises(self, chain_graph: EntityGraph) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            extract_neighborhood(chain_graph, "Alice", depth=-1)
