"""Diagram rendering."""

from depgraph.render.mermaid import MermaidRenderer

__all__ = ["MermaidRenderer"]
