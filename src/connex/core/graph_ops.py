"""Graph queries for Connex.

Bounded path search, bridge-opportunity enumeration, shared-context
intersection, help matching and neighborhood extraction over an
EntityGraph. Edges are directed but every query here treats them as
undirected for connectivity. This module must NOT import from cli/ or
viz/ - it's pure graph logic.
"""

import logging
from collections import deque

from connex.core.constants import (
    DEFAULT_MAX_PATH_DEPTH,
    EDGE_CAN_HELP_WITH,
    EDGE_INTERESTED_IN,
    EDGE_KNOWS,
    EDGE_WANTS_HELP_WITH,
    EDGE_WANTS_TO_MEET,
    NODE_PERSON,
)
from connex.core.graph import EntityGraph, canonical_id
from connex.core.types import BridgeOpportunity, Edge, HelpMatch, SharedContext

logger = logging.getLogger(__name__)


def find_path(
    graph: EntityGraph,
    source: str,
    target: str,
    max_depth: int = DEFAULT_MAX_PATH_DEPTH,
) -> list[str] | None:
    """Find a path between two nodes with breadth-first search.

    Neighbors are explored in edge insertion order and the first path that
    reaches the target is returned.

    Args:
        graph: The entity graph.
        source: Start node (display name or id).
        target: End node (display name or id).
        max_depth: Maximum number of hops.

    Returns:
        Canonical ids from source to target inclusive, or None if the
        target is not reachable within max_depth hops.
    """
    start = canonical_id(source)
    goal = canonical_id(target)
    if start == goal:
        return [start]

    queue: deque[list[str]] = deque([[start]])
    visited: set[str] = {start}

    while queue:
        path = queue.popleft()
        if len(path) > max_depth:
            continue
        for next_id in graph.neighbors(path[-1]):
            if next_id == goal:
                return [*path, next_id]
            if next_id not in visited:
                visited.add(next_id)
                queue.append([*path, next_id])

    return None


def _people_known_by(graph: EntityGraph, node_id: str) -> dict[str, Edge]:
    """Map each person directly connected to node_id to the first edge joining them."""
    known: dict[str, Edge] = {}
    for edge in graph.connections(node_id):
        other = edge.other(node_id)
        if other == node_id or other in known:
            continue
        node = graph.get_node(other)
        if node is not None and node.type == NODE_PERSON:
            known[other] = edge
    return known


def _wants_to_meet(graph: EntityGraph, edge: Edge) -> bool:
    if edge.type == EDGE_WANTS_TO_MEET:
        return True
    # interested_in pointing at a person counts as wanting to meet them
    if edge.type == EDGE_INTERESTED_IN:
        target = graph.get_node(edge.target_id)
        return target is not None and target.type == NODE_PERSON
    return False


def find_bridge_opportunities(graph: EntityGraph, requester: str) -> list[BridgeOpportunity]:
    """Find triangles where the requester is the missing link.

    For every pair of people A and B the requester is directly connected
    to, an opportunity is reported when A has a wants_to_meet edge to B
    (or an interested_in edge to B as a person). Only the requester's
    immediate neighborhood is examined.

    Args:
        graph: The entity graph.
        requester: Requester display name or id.

    Returns:
        Opportunities sorted by strength, strongest first. Ties keep
        discovery order.
    """
    you = canonical_id(requester)
    known = _people_known_by(graph, you)
    opportunities: list[BridgeOpportunity] = []

    for person_a, edge_to_a in known.items():
        for edge in graph.edges_from(person_a):
            if not _wants_to_meet(graph, edge):
                continue
            person_b = edge.target_id
            if person_b not in known or person_b == person_a:
                continue
            edge_to_b = known[person_b]
            context = edge.context
            opportunities.append(
                BridgeOpportunity(
                    person_a=graph.label(person_a),
                    person_b=graph.label(person_b),
                    what_a_wants=str(
                        context.get("detail") or context.get("reason") or "to connect"
                    ),
                    your_relationship_to_a=edge_to_a.type or EDGE_KNOWS,
                    your_relationship_to_b=edge_to_b.type or EDGE_KNOWS,
                    strength=edge_to_a.weight + edge_to_b.weight + edge.weight,
                    context_a=edge_to_a.context,
                    context_b=edge_to_b.context,
                )
            )

    logger.debug("Found %d bridge opportunities for %s", len(opportunities), you)
    return sorted(opportunities, key=lambda o: o.strength, reverse=True)


def find_shared_context(graph: EntityGraph, person_x: str, person_y: str) -> list[SharedContext]:
    """Find nodes both X and Y are directly connected to.

    Args:
        graph: The entity graph.
        person_x: First node ("you").
        person_y: Second node ("them").

    Returns:
        One entry per edge from Y to a common neighbor. same_year is set
        when both connecting edges carry the same non-empty "year".
    """
    you = canonical_id(person_x)
    them = canonical_id(person_y)

    your_edges: dict[str, Edge] = {}
    for edge in graph.connections(you):
        your_edges[edge.other(you)] = edge

    shared: list[SharedContext] = []
    for edge in graph.connections(them):
        common = edge.other(them)
        if common not in your_edges or common in (you, them):
            continue
        yours = your_edges[common]
        node = graph.get_node(common)
        year = yours.context.get("year")
        shared.append(
            SharedContext(
                node=graph.label(common),
                node_type=node.type if node is not None else None,
                your_relation=yours.type,
                their_relation=edge.type,
                same_year=bool(year) and year == edge.context.get("year"),
            )
        )
    return shared


def find_help_matches(graph: EntityGraph, requester: str) -> list[HelpMatch]:
    """Match people the requester knows who need help with those who offer it.

    Topics are the target nodes of wants_help_with and can_help_with edges
    from the requester's first-degree person neighbors. Every (needer,
    helper) pair on the same topic is reported, except a person paired
    with themselves.
    """
    you = canonical_id(requester)
    wants_help: dict[str, list[Edge]] = {}
    can_help: dict[str, list[Edge]] = {}

    for person in _people_known_by(graph, you):
        for edge in graph.edges_from(person):
            if edge.type == EDGE_WANTS_HELP_WITH:
                wants_help.setdefault(edge.target_id, []).append(edge)
            elif edge.type == EDGE_CAN_HELP_WITH:
                can_help.setdefault(edge.target_id, []).append(edge)

    matches: list[HelpMatch] = []
    for topic, needs in wants_help.items():
        for need in needs:
            for offer in can_help.get(topic, []):
                if need.source_id == offer.source_id:
                    continue
                matches.append(
                    HelpMatch(
                        topic=graph.label(topic),
                        needer=graph.label(need.source_id),
                        helper=graph.label(offer.source_id),
                        needer_context=need.context,
                        helper_context=offer.context,
                    )
                )
    return matches


def suggest_bridge_intro(opportunity: BridgeOpportunity) -> str:
    """Draft the message the requester could send to person A."""
    first_a = opportunity.person_a.split(" ")[0]
    first_b = opportunity.person_b.split(" ")[0]
    if "meet" in opportunity.what_a_wants.lower():
        wish = opportunity.what_a_wants
    else:
        wish = f"connect with {opportunity.person_b}"
    relation = opportunity.your_relationship_to_b
    school = opportunity.context_b.get("school")
    if school:
        relation += f" from {school}"
    return (
        f"Hey {first_a}, you mentioned wanting to {wish}. "
        f"{first_b} is actually my {relation}. Happy to make the intro."
    )


def extract_neighborhood(graph: EntityGraph, focal: str, depth: int = 2) -> EntityGraph:
    """Extract a subgraph centered on a focal node.

    Performs BFS traversal to find all nodes within `depth` hops
    of the focal node, then keeps all edges between those nodes.

    Args:
        graph: The full graph to extract from.
        focal: The center node (display name or id).
        depth: Maximum number of hops from focal node (default: 2).

    Returns:
        A new EntityGraph containing only the neighborhood.

    Raises:
        ValueError: If depth is negative.
    """
    if depth < 0:
        raise ValueError("Depth must be non-negative")

    focal_id = canonical_id(focal)
    visited: set[str] = {focal_id}
    queue: deque[tuple[str, int]] = deque([(focal_id, 0)])

    while queue:
        node_id, current_depth = queue.popleft()
        if current_depth >= depth:
            continue
        for neighbor_id in graph.neighbors(node_id):
            if neighbor_id not in visited:
                visited.add(neighbor_id)
                queue.append((neighbor_id, current_depth + 1))

    return graph.subgraph(visited)
