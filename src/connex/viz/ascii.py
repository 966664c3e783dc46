"""ASCII graph visualization using phart.

This module converts Connex EntityGraph objects to NetworkX DiGraphs
and renders them as ASCII art using the phart library.
"""

import logging

import networkx as nx
from phart import ASCIIRenderer, NodeStyle

from connex.core.constants import NODE_PERSON
from connex.core.graph import EntityGraph
from connex.core.types import Node

logger = logging.getLogger(__name__)

# Maximum nodes for full render before showing warning
MAX_NODES_FOR_FULL_RENDER = 50


def _format_node_label(node: Node, highlight: bool = False) -> str:
    """Format node label with type-appropriate brackets.

    Args:
        node: The node to format.
        highlight: Whether to mark this as the focal node.

    Returns:
        [Name] for people, (Name) for every other entity type.
        If highlighted, adds ">>" prefix.
    """
    if node.type == NODE_PERSON:
        base = f"[{node.label}]"
    else:
        base = f"({node.label})"

    if highlight:
        return f">> {base}"
    return base


def graph_to_networkx(graph: EntityGraph, focal_id: str | None = None) -> nx.DiGraph:
    """Convert an EntityGraph to a NetworkX DiGraph for phart.

    Uses formatted labels as node IDs so phart displays styled labels.
    Repeated edges are collapsed; their weight is kept as an attribute.

    Args:
        graph: The entity graph.
        focal_id: Optional canonical id of the node to highlight.

    Returns:
        NetworkX DiGraph with nodes and edges suitable for phart rendering.
    """
    graph_nx = nx.DiGraph()
    id_to_label: dict[str, str] = {}

    for node in graph.nodes:
        formatted_label = _format_node_label(node, highlight=node.id == focal_id)
        id_to_label[node.id] = formatted_label
        graph_nx.add_node(formatted_label, original_id=node.id, type=node.type)

    for edge in graph.edges:
        source_label = id_to_label.get(edge.source_id, edge.source_id)
        target_label = id_to_label.get(edge.target_id, edge.target_id)
        graph_nx.add_edge(source_label, target_label, label=edge.type, weight=edge.weight)

    return graph_nx


def _format_relationships(graph: EntityGraph) -> str:
    """List every edge as "source --type--> target", with weight when > 1."""
    if not graph.edges:
        return ""

    id_to_label = {node.id: _format_node_label(node) for node in graph.nodes}
    lines = ["Relationships:"]
    for edge in graph.edges:
        source = id_to_label.get(edge.source_id, edge.source_id)
        target = id_to_label.get(edge.target_id, edge.target_id)
        weight = f" (x{edge.weight})" if edge.weight > 1 else ""
        lines.append(f"  {source} --{edge.type}--> {target}{weight}")

    return "\n".join(lines)


def render_ascii(graph: EntityGraph, focal_id: str | None = None) -> str:
    """Render an EntityGraph as ASCII art using phart.

    Args:
        graph: The graph to render.
        focal_id: Optional canonical id of a node to highlight with ">>".

    Returns:
        ASCII art representation of the graph, or friendly message if empty.
        For large graphs (>50 nodes), includes a warning first.
    """
    if not len(graph):
        return "No people or entities found in this transcript."

    try:
        parts: list[str] = []

        # Plain text, no Rich markup - output uses markup=False
        if len(graph) > MAX_NODES_FOR_FULL_RENDER:
            parts.append(
                f"⚠ Large graph detected ({len(graph)} nodes). Use a focal node and --depth."
            )
            parts.append("")

        nx_graph = graph_to_networkx(graph, focal_id=focal_id)

        # Use MINIMAL style since labels already have brackets
        renderer = ASCIIRenderer(nx_graph, node_style=NodeStyle.MINIMAL)
        parts.append(renderer.render().strip())

        relationships = _format_relationships(graph)
        if relationships:
            parts.append("")
            parts.append(relationships)

        return "\n".join(parts)

    except Exception as e:
        logger.warning("Visualization failed: %s", e)
        return "⚠ Could not render graph visualization."
