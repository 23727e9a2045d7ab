"""Heuristic service dependency mapping and blast radius analysis."""

from depgraph.pipeline import AnalysisResult, analyze

__all__ = ["AnalysisResult", "analyze"]

__version__ = "0.1.0"
