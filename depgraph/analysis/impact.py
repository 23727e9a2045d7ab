"""Impact analysis: dependents, database fan-in and criticality.

For every node the analyzer answers "who breaks if this goes down?":
direct dependents are the services with an edge into the node, indirect
dependents are everything reachable backwards from those, excluding the
node itself.
"""

from __future__ import annotations

import logging
from collections import deque

from depgraph.boundary.graph import DependencyGraph
from depgraph.config import ScoringPolicy
from depgraph.models.types import EdgeKind, ImpactReport, Recommendation

logger = logging.getLogger(__name__)


def criticality_score(
    direct: int,
    indirect: int,
    databases: int,
    policy: ScoringPolicy = ScoringPolicy(),
) -> int:
    """Weighted, saturating blast radius score in [0, policy.max_score]."""
    raw = (
        direct * policy.direct_weight
        + indirect * policy.indirect_weight
        + databases * policy.database_weight
    )
    return max(0, min(policy.max_score, raw))


def recommend(
    score: int,
    direct: int,
    databases: int,
    policy: ScoringPolicy = ScoringPolicy(),
) -> Recommendation:
    """Pick the recommendation tier. Thresholds are checked in order."""
    if score >= policy.critical_threshold:
        return Recommendation.CRITICAL
    if score >= policy.high_threshold:
        return Recommendation.HIGH_IMPACT
    if databases > 0 and direct > 0:
        return Recommendation.MODERATE
    if direct == 0:
        return Recommendation.LOW_IMPACT_LEAF
    return Recommendation.NORMAL


class ImpactAnalyzer:
    """Computes an ImpactReport for every node of a graph."""

    def __init__(self, policy: ScoringPolicy | None = None) -> None:
        self._policy = policy or ScoringPolicy()

    def analyze(self, graph: DependencyGraph) -> list[ImpactReport]:
        """Analyze every node and rank them.

        Returns:
            Reports sorted by criticality score descending; equal scores
            keep node discovery order.
        """
        reports = [self.analyze_node(graph, node.id) for node in graph.nodes]
        # sorted() is stable, so ties stay in discovery order
        ranked = sorted(reports, key=lambda r: -r.criticality_score)
        if ranked:
            logger.info(
                "impact_analyzed nodes=%d top=%s score=%d",
                len(ranked),
                ranked[0].service,
                ranked[0].criticality_score,
            )
        return ranked

    def analyze_node(self, graph: DependencyGraph, node_id: str) -> ImpactReport:
        direct = self.direct_dependents(graph, node_id)
        indirect = self.indirect_dependents(graph, node_id, direct)
        databases = self.database_dependencies(graph, node_id)

        score = criticality_score(len(direct), len(indirect), len(databases), self._policy)
        return ImpactReport(
            service=node_id,
            direct_dependents=tuple(direct),
            indirect_dependents=tuple(indirect),
            databases=tuple(databases),
            criticality_score=score,
            recommendation=recommend(score, len(direct), len(databases), self._policy),
        )

    @staticmethod
    def direct_dependents(graph: DependencyGraph, node_id: str) -> list[str]:
        """Services with an edge pointing at node_id, in edge order."""
        return [
            caller
            for caller in graph.callers(node_id)
            if caller != node_id and graph.is_service(caller)
        ]

    @staticmethod
    def indirect_dependents(
        graph: DependencyGraph,
        node_id: str,
        direct: list[str],
    ) -> list[str]:
        """Breadth-first walk over reverse edges starting from the direct frontier.

        The visited set holds the origin and every direct dependent up
        front, so cycles terminate and neither ever shows up here.
        """
        visited = {node_id, *direct}
        queue = deque(direct)
        found: list[str] = []

        while queue:
            current = queue.popleft()
            for caller in graph.callers(current):
                if caller in visited or not graph.is_service(caller):
                    continue
                visited.add(caller)
                found.append(caller)
                queue.append(caller)

        return found

    @staticmethod
    def database_dependencies(graph: DependencyGraph, node_id: str) -> list[str]:
        """Targets of database-kind edges leaving node_id. Caches don't count."""
        seen: dict[str, None] = {}
        for edge in graph.edges_from(node_id):
            if edge.kind == EdgeKind.DATABASE:
                seen.setdefault(edge.target, None)
        return list(seen)
