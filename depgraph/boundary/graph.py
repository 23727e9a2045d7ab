"""Service dependency graph construction and querying.

Builds an immutable directed multigraph of services, datastores and
external placeholders from normalized edges, and answers blast radius
queries over it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Sequence

import networkx as nx

from depgraph.boundary.normalizer import NormalizedEdges
from depgraph.config import family_for_type, infer_datastore_type
from depgraph.core.errors import InvalidServicesError
from depgraph.models.types import (
    DetectedDatabase,
    Edge,
    EdgeKind,
    Node,
    NodeKind,
    ServiceSource,
)

logger = logging.getLogger(__name__)

DATASTORE_EDGE_KINDS = frozenset({EdgeKind.DATABASE, EdgeKind.CACHE, EdgeKind.QUEUE})


class DependencyGraph:
    """Read-only dependency graph.

    Node order is discovery order and edge order is normalizer order; both
    are stable for a fixed input. Parallel edges of different kinds between
    the same pair are kept (one per kind).
    """

    def __init__(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> None:
        """Build the graph. Prefer GraphBuilder over calling this directly."""
        graph = nx.MultiDiGraph()
        for node in nodes:
            graph.add_node(node.id, kind=node.kind)
        for edge in edges:
            graph.add_edge(edge.source, edge.target, key=edge.kind, evidence=edge.evidence)

        self._graph = nx.freeze(graph)
        self._nodes: tuple[Node, ...] = tuple(nodes)
        self._edges: tuple[Edge, ...] = tuple(edges)
        self._order = {node.id: index for index, node in enumerate(self._nodes)}
        self._outgoing: dict[str, list[Edge]] = defaultdict(list)
        self._incoming: dict[str, list[Edge]] = defaultdict(list)
        for edge in self._edges:
            self._outgoing[edge.source].append(edge)
            self._incoming[edge.target].append(edge)

    @classmethod
    def empty(cls) -> DependencyGraph:
        return cls(nodes=(), edges=())

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self._nodes

    @property
    def edges(self) -> tuple[Edge, ...]:
        return self._edges

    @property
    def node_count(self) -> int:
        """Return the number of nodes."""
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        """Return the number of edges."""
        return len(self._edges)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._order

    def kind_of(self, node_id: str) -> NodeKind:
        return self._graph.nodes[node_id]["kind"]

    def is_service(self, node_id: str) -> bool:
        return node_id in self and self.kind_of(node_id) == NodeKind.SERVICE

    def discovery_index(self, node_id: str) -> int:
        """Position of a node in discovery order."""
        return self._order[node_id]

    def services(self) -> list[str]:
        return [n.id for n in self._nodes if n.kind == NodeKind.SERVICE]

    def datastores(self) -> list[str]:
        return [n.id for n in self._nodes if n.kind == NodeKind.DATABASE]

    def externals(self) -> list[str]:
        return [n.id for n in self._nodes if n.kind == NodeKind.EXTERNAL]

    def callers(self, node_id: str) -> list[str]:
        """Distinct nodes with an edge into node_id, in edge order."""
        if node_id not in self:
            return []
        return list(self._graph.predecessors(node_id))

    def edges_from(self, node_id: str) -> list[Edge]:
        return list(self._outgoing.get(node_id, ()))

    def edges_to(self, node_id: str) -> list[Edge]:
        return list(self._incoming.get(node_id, ()))

    def blast_radius(self, node_id: str) -> set[str]:
        """Calculate the blast radius of a node failure.

        Returns every service that reaches this node, directly or
        transitively. The node itself is never included.

        Args:
            node_id: The node to analyze.

        Returns:
            Set of service names that would be affected.
        """
        if node_id not in self:
            return set()
        ancestors: set[str] = nx.ancestors(self._graph, node_id)
        return {n for n in ancestors if self.is_service(n)}

    def downstream(self, node_id: str) -> set[str]:
        """Get every node this node depends on (transitively)."""
        if node_id not in self:
            return set()
        descendants: set[str] = nx.descendants(self._graph, node_id)
        return descendants

    def to_dict(self) -> dict[str, object]:
        """Serialize the graph in the dependency map output shape."""
        return {
            "services": self.services(),
            "dependencies": [edge.to_dict() for edge in self._edges],
            "databases": [
                {"name": name, "type": infer_datastore_type(name)} for name in self.datastores()
            ],
            "externalServices": self.externals(),
        }


class GraphBuilder:
    """Assembles a DependencyGraph from services, edges and detected databases."""

    def build(
        self,
        services: Sequence[ServiceSource],
        normalized: NormalizedEdges,
        detected_databases: Iterable[DetectedDatabase] = (),
    ) -> DependencyGraph:
        """Build the final graph.

        Node order: declared services, then datastores in first-edge order,
        then project-declared databases, then external placeholders.

        Args:
            services: Declared services, in declaration order
            normalized: Output of EdgeNormalizer.normalize
            detected_databases: Project-level database detections

        Returns:
            Immutable DependencyGraph

        Raises:
            InvalidServicesError: If two services share a name.
        """
        nodes: dict[str, Node] = {}

        for service in services:
            if service.name in nodes:
                raise InvalidServicesError(f"duplicate service name {service.name!r}")
            nodes[service.name] = Node(id=service.name, kind=NodeKind.SERVICE)

        externals = set(normalized.external_targets)
        for edge in normalized.edges:
            if edge.kind in DATASTORE_EDGE_KINDS and edge.target not in nodes:
                nodes[edge.target] = Node(id=edge.target, kind=NodeKind.DATABASE)

        for database in detected_databases:
            if not database.detected or not database.type:
                continue
            name = self.canonical_database_name(database.type)
            if name not in nodes:
                nodes[name] = Node(id=name, kind=NodeKind.DATABASE)

        for edge in normalized.edges:
            if edge.target in externals and edge.target not in nodes:
                nodes[edge.target] = Node(id=edge.target, kind=NodeKind.EXTERNAL)

        edges = [e for e in normalized.edges if e.source in nodes and e.target in nodes]
        if len(edges) != len(normalized.edges):
            logger.debug(
                "edges_without_nodes dropped=%d", len(normalized.edges) - len(edges)
            )

        graph = DependencyGraph(nodes=list(nodes.values()), edges=edges)
        logger.info(
            "graph_built services=%d datastores=%d externals=%d edges=%d",
            len(services),
            len(graph.datastores()),
            len(graph.externals()),
            graph.edge_count,
        )
        return graph

    @staticmethod
    def canonical_database_name(db_type: str) -> str:
        """Map a detected database type to its node id.

        postgres -> postgresql-db, redis -> redis-cache, neo4j -> neo4j-db
        """
        family = family_for_type(db_type)
        if family is not None:
            return family.node_id
        return f"{db_type.lower()}-db"
