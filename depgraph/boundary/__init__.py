"""Dependency extraction, normalization and graph construction."""

from depgraph.boundary.extraction import CancelToken, ExtractionRunner, extract_mentions
from depgraph.boundary.files import CodeFileWalker, FileLister, IgnoreSet
from depgraph.boundary.graph import DependencyGraph, GraphBuilder
from depgraph.boundary.normalizer import EdgeNormalizer, NormalizedEdges
from depgraph.boundary.patterns import DEFAULT_RULES, PatternRule, PatternRuleSet

__all__ = [
    "CancelToken",
    "CodeFileWalker",
    "DEFAULT_RULES",
    "DependencyGraph",
    "EdgeNormalizer",
    "ExtractionRunner",
    "FileLister",
    "GraphBuilder",
    "IgnoreSet",
    "NormalizedEdges",
    "PatternRule",
    "PatternRuleSet",
    "extract_mentions",
]
