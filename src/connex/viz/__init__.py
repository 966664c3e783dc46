"""Visualization module for Connex.

Provides ASCII graph rendering.
"""

from connex.viz.ascii import graph_to_networkx, render_ascii

__all__ = ["render_ascii", "graph_to_networkx"]
