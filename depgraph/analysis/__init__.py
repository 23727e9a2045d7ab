"""Blast radius analysis over a built dependency graph."""

from depgraph.analysis.impact import ImpactAnalyzer, criticality_score, recommend

__all__ = ["ImpactAnalyzer", "criticality_score", "recommend"]
