"""Relationship graphs for Connex.

Two graphs are built from one transcript:

- the interaction graph: undirected, strength-weighted relationships
  between chat members derived from replies and mentions;
- the entity graph: a typed, directed multi-relational graph of people,
  schools, companies and interests extracted from message text.

The entity graph is an arena: nodes live in a dict keyed by canonical id
and edges in a dict keyed by (source, target, type). Everything refers
to nodes by id, never by object, and re-insertion merges instead of
duplicating.
"""

import dataclasses
import logging
import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from connex.core.constants import (
    BIDIRECTIONAL_MIN_REPLIES,
    EDGE_KNOWS,
    EDGE_TARGET_NODE_TYPES,
    FULL_TEXT_LIMIT,
    MAX_STRENGTH,
    MAX_TARGET_LENGTH,
    MENTION_WEIGHT,
    MIN_FIRST_NAME_LENGTH,
    MIN_TARGET_LENGTH,
    MODERATE_RELATIONSHIP,
    NODE_INTEREST,
    NODE_PERSON,
    REPLY_WEIGHT,
    STRONG_RELATIONSHIP,
)
from connex.core.rules import ENTITY_RULES, apply_rules, captured_detail
from connex.core.types import Edge, EdgeKey, Member, Message, Node, Relationship, RelationshipLabel

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def canonical_id(name: str) -> str:
    """Return the canonical node id for a display name.

    The name is lower-cased and every character outside [a-z0-9] becomes
    an underscore, so "Nathan" and "nathan" share one id and "Matt Mahan"
    becomes "matt_mahan".
    """
    return _NON_ALNUM.sub("_", name.lower())


class EntityGraph:
    """Typed entity graph stored as an arena of nodes and edges.

    Node and edge order is insertion order; merging an existing node or
    edge keeps its original position.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}
        self._edges: dict[EdgeKey, Edge] = {}
        # node id -> keys of incident edges, in edge creation order
        self._incident: dict[str, list[EdgeKey]] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, ref: object) -> bool:
        return isinstance(ref, str) and canonical_id(ref) in self._nodes

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> tuple[Edge, ...]:
        return tuple(self._edges.values())

    def add_node(
        self,
        name: str,
        node_type: str,
        attributes: Mapping[str, Any] | None = None,
    ) -> str:
        """Add a node or merge attributes into an existing one.

        Args:
            name: Display name; its canonical form is the node id.
            node_type: Entity type, kept from the first insertion.
            attributes: Extra attributes. On merge, new values override
                existing ones key by key.

        Returns:
            The canonical id of the node.
        """
        node_id = canonical_id(name)
        existing = self._nodes.get(node_id)
        if existing is None:
            self._nodes[node_id] = Node(
                id=node_id,
                type=node_type,
                attributes={"name": name, **(attributes or {})},
            )
        elif attributes:
            merged = {**existing.attributes, **attributes}
            self._nodes[node_id] = dataclasses.replace(existing, attributes=merged)
        return node_id

    def add_edge(
        self,
        source: str,
        target: str,
        edge_type: str,
        context: Mapping[str, Any] | None = None,
    ) -> Edge:
        """Add a directed edge or strengthen an existing identical one.

        Re-inserting the same (source, target, type) increments the weight
        by one and appends the context; the edge is never duplicated.

        Args:
            source: Source display name or id.
            target: Target display name or id.
            edge_type: Relationship type.
            context: Provenance record. An integer "weight" sets the initial
                weight of a new edge; "timestamp" is copied onto the edge.

        Returns:
            The stored edge after the insert or merge.
        """
        ctx: Mapping[str, Any] = dict(context or {})
        key = (canonical_id(source), canonical_id(target), edge_type)
        existing = self._edges.get(key)
        if existing is not None:
            edge = dataclasses.replace(
                existing,
                weight=existing.weight + 1,
                contexts=(*existing.contexts, ctx),
            )
        else:
            edge = Edge(
                source_id=key[0],
                target_id=key[1],
                type=edge_type,
                weight=max(int(ctx.get("weight") or 1), 1),
                contexts=(ctx,),
                timestamp=str(ctx.get("timestamp") or ""),
            )
            self._index_edge(key)
        self._edges[key] = edge
        return edge

    def _index_edge(self, key: EdgeKey) -> None:
        source_id, target_id, _ = key
        self._incident.setdefault(source_id, []).append(key)
        if target_id != source_id:
            self._incident.setdefault(target_id, []).append(key)

    def get_node(self, ref: str) -> Node | None:
        """Return the node for a display name or canonical id, if present."""
        return self._nodes.get(canonical_id(ref))

    def get_edge(self, source: str, target: str, edge_type: str) -> Edge | None:
        return self._edges.get((canonical_id(source), canonical_id(target), edge_type))

    def connections(self, ref: str) -> list[Edge]:
        """Return every edge touching a node, in either direction."""
        keys = self._incident.get(canonical_id(ref), [])
        return [self._edges[k] for k in keys]

    def edges_from(self, ref: str) -> list[Edge]:
        node_id = canonical_id(ref)
        return [e for e in self.connections(node_id) if e.source_id == node_id]

    def edges_to(self, ref: str) -> list[Edge]:
        node_id = canonical_id(ref)
        return [e for e in self.connections(node_id) if e.target_id == node_id]

    def neighbors(self, ref: str) -> Iterator[str]:
        """Yield adjacent node ids (undirected), in edge order, with repeats."""
        node_id = canonical_id(ref)
        for edge in self.connections(node_id):
            yield edge.other(node_id)

    def nodes_of_type(self, node_type: str) -> list[Node]:
        return [n for n in self._nodes.values() if n.type == node_type]

    def label(self, node_id: str) -> str:
        """Return the display name for a node id, falling back to the id."""
        node = self._nodes.get(node_id)
        return node.label if node is not None else node_id

    def stats(self) -> dict[str, Any]:
        """Summarise node and edge counts, overall and per type."""
        nodes_by_type: dict[str, int] = {}
        for node in self._nodes.values():
            nodes_by_type[node.type] = nodes_by_type.get(node.type, 0) + 1
        edges_by_type: dict[str, int] = {}
        for edge in self._edges.values():
            edges_by_type[edge.type] = edges_by_type.get(edge.type, 0) + 1
        return {
            "total_nodes": len(self._nodes),
            "total_edges": len(self._edges),
            "nodes_by_type": nodes_by_type,
            "edges_by_type": edges_by_type,
        }

    def subgraph(self, node_ids: Iterable[str]) -> "EntityGraph":
        """Return the induced subgraph over the given node ids.

        Node and edge order follow this graph, not the order of node_ids.
        """
        wanted = set(node_ids)
        sub = EntityGraph()
        sub._nodes = {k: n for k, n in self._nodes.items() if k in wanted}
        for key, edge in self._edges.items():
            if edge.source_id in wanted and edge.target_id in wanted:
                sub._edges[key] = edge
                sub._index_edge(key)
        return sub

    def copy(self) -> "EntityGraph":
        """Return an independent copy; nodes and edges are immutable."""
        clone = EntityGraph()
        clone._nodes = dict(self._nodes)
        clone._edges = dict(self._edges)
        clone._incident = {k: list(v) for k, v in self._incident.items()}
        return clone

    def to_dict(self) -> dict[str, Any]:
        """Serialise the graph to plain JSON-compatible data."""
        return {
            "nodes": [
                {"id": n.id, "type": n.type, "attributes": dict(n.attributes)}
                for n in self._nodes.values()
            ],
            "edges": [
                {
                    "source": e.source_id,
                    "target": e.target_id,
                    "type": e.type,
                    "weight": e.weight,
                    "contexts": [dict(c) for c in e.contexts],
                    "timestamp": e.timestamp,
                }
                for e in self._edges.values()
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EntityGraph":
        """Rebuild a graph from to_dict() output.

        Stored ids are kept as-is. The "data"/"from"/"to"/"context" field
        names of older exports are accepted too. Repeated nodes and edges
        merge as with add_node and add_edge.

        Raises:
            ValueError: If a node or edge record lacks its id, type or
                endpoints.
        """
        graph = cls()
        for raw in data.get("nodes") or []:
            attributes = raw.get("attributes", raw.get("data")) or {}
            node_id = raw.get("id") or attributes.get("name")
            node_type = raw.get("type")
            if not node_id or not node_type:
                raise ValueError(f"Node record needs an id and a type: {raw!r}")
            node_id = canonical_id(str(node_id))
            existing = graph._nodes.get(node_id)
            if existing is None:
                attributes = {"name": node_id, **attributes}
                graph._nodes[node_id] = Node(id=node_id, type=node_type, attributes=attributes)
            else:
                merged = {**existing.attributes, **attributes}
                graph._nodes[node_id] = dataclasses.replace(existing, attributes=merged)

        for raw in data.get("edges") or []:
            source = raw.get("source", raw.get("from"))
            target = raw.get("target", raw.get("to"))
            edge_type = raw.get("type")
            if not source or not target or not edge_type:
                raise ValueError(f"Edge record needs source, target and type: {raw!r}")
            contexts = raw.get("contexts")
            if contexts is None:
                contexts = [raw.get("context") or {}]
            key = (canonical_id(str(source)), canonical_id(str(target)), edge_type)
            existing_edge = graph._edges.get(key)
            if existing_edge is not None:
                graph._edges[key] = dataclasses.replace(
                    existing_edge,
                    weight=existing_edge.weight + 1,
                    contexts=(*existing_edge.contexts, *(dict(c) for c in contexts)),
                )
                continue
            graph._edges[key] = Edge(
                source_id=key[0],
                target_id=key[1],
                type=edge_type,
                weight=max(int(raw.get("weight") or 1), 1),
                contexts=tuple(dict(c) for c in contexts),
                timestamp=str(raw.get("timestamp") or ""),
            )
            graph._index_edge(key)
        return graph


@dataclass
class _Interaction:
    person_a: str
    person_b: str
    replies: int = 0
    mentions: int = 0


def relationship_label(strength: int) -> RelationshipLabel:
    if strength >= STRONG_RELATIONSHIP:
        return "strong"
    if strength >= MODERATE_RELATIONSHIP:
        return "moderate"
    return "weak"


def build_interaction_graph(
    messages: Sequence[Message], members: Iterable[Member]
) -> list[Relationship]:
    """Build the weighted interaction graph between chat members.

    A reply is counted whenever consecutive messages have different
    senders. A mention is counted when a message contains a member's
    first name (case-insensitive, names of 3+ characters only) and was
    sent by someone else.

    Args:
        messages: Transcript messages in order.
        members: Chat roster; only used for mention detection.

    Returns:
        One Relationship per interacting pair, in first-seen order.
    """
    interactions: dict[tuple[str, str], _Interaction] = {}

    def pair(a: str, b: str) -> _Interaction:
        key = (a, b) if a <= b else (b, a)
        if key not in interactions:
            interactions[key] = _Interaction(person_a=a, person_b=b)
        return interactions[key]

    for prev, curr in zip(messages, messages[1:]):
        if prev.sender != curr.sender:
            pair(prev.sender, curr.sender).replies += 1

    first_names: dict[str, str] = {}
    for member in members:
        first = member.name.lower().split(" ")[0]
        if len(first) >= MIN_FIRST_NAME_LENGTH:
            first_names[first] = member.name

    for message in messages:
        text = message.text.lower()
        for first, full_name in first_names.items():
            if first in text and message.sender != full_name:
                pair(message.sender, full_name).mentions += 1

    relationships = []
    for item in interactions.values():
        strength = min(item.replies * REPLY_WEIGHT + item.mentions * MENTION_WEIGHT, MAX_STRENGTH)
        relationships.append(
            Relationship(
                person_a=item.person_a,
                person_b=item.person_b,
                strength=strength,
                interactions=item.replies + item.mentions,
                bidirectional=item.replies >= BIDIRECTIONAL_MIN_REPLIES,
                label=relationship_label(strength),
            )
        )

    logger.debug("Built interaction graph with %d relationships", len(relationships))
    return relationships


def extract_entity_graph(
    messages: Iterable[Message], graph: EntityGraph | None = None
) -> EntityGraph:
    """Extract typed entities and edges from message text.

    Every sender becomes a person node. Each entity rule match whose
    captured target is 3-49 characters long becomes a node (person,
    school, company or interest depending on the edge type) joined to the
    sender by an edge carrying the message provenance.

    Args:
        messages: Transcript messages.
        graph: Graph to extend in place. A new graph is created if omitted.

    Returns:
        The extended graph.
    """
    if graph is None:
        graph = EntityGraph()

    for message in messages:
        graph.add_node(message.sender, NODE_PERSON)
        for rule, match in apply_rules(ENTITY_RULES, message.text):
            target = captured_detail(rule, match)
            if not target or not MIN_TARGET_LENGTH < len(target) < MAX_TARGET_LENGTH:
                continue
            node_type = EDGE_TARGET_NODE_TYPES.get(rule.category, NODE_INTEREST)
            graph.add_node(target, node_type)
            graph.add_edge(
                message.sender,
                target,
                rule.category,
                {
                    "source": "chat",
                    "timestamp": message.timestamp,
                    "quote": message.text[:FULL_TEXT_LIMIT],
                },
            )

    logger.debug("Entity graph now has %d nodes, %d edges", len(graph), len(graph.edges))
    return graph


def add_relationship_edges(graph: EntityGraph, relationships: Iterable[Relationship]) -> None:
    """Record interaction relationships as "knows" edges between person nodes."""
    for rel in relationships:
        graph.add_node(rel.person_a, NODE_PERSON)
        graph.add_node(rel.person_b, NODE_PERSON)
        graph.add_edge(
            rel.person_a,
            rel.person_b,
            EDGE_KNOWS,
            {"source": "chat", "strength": rel.strength, "label": rel.label},
        )
