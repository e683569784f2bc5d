"""Dependency graph builder for derived fields.

Usage:
    >>> from form_engine.graph import build_graph, DependencyGraph
"""

from form_engine.graph.dependencies import DependencyGraph, build_graph

__all__ = ["DependencyGraph", "build_graph"]
