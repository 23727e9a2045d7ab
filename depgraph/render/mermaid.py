"""Mermaid flowchart rendering of a dependency graph.

The output is a pure function of node and edge order, so the same graph
always renders to the same text.
"""

from __future__ import annotations

import re

from depgraph.boundary.graph import DependencyGraph
from depgraph.config import infer_datastore_type
from depgraph.models.types import EdgeKind, NodeKind

ID_UNSAFE = re.compile(r"[^a-zA-Z0-9]")

# Keywords that end or restyle a flowchart when used as a bare node id
RESERVED_IDS = frozenset(
    {
        "end",
        "graph",
        "flowchart",
        "subgraph",
        "direction",
        "style",
        "linkstyle",
        "classdef",
        "class",
        "click",
        "default",
    }
)

# Unclassified kinds (internal imports) render without a label
EDGE_LABELS: dict[EdgeKind, str] = {
    EdgeKind.API: "API",
    EdgeKind.DATABASE: "DB",
    EdgeKind.CACHE: "CACHE",
    EdgeKind.QUEUE: "QUEUE",
}

CLASS_DEFS: tuple[str, ...] = (
    "classDef service fill:#4A90E2,stroke:#2E5C8A,stroke-width:2px,color:#fff",
    "classDef database fill:#E27D60,stroke:#C45A3C,stroke-width:2px,color:#fff",
    "classDef external fill:#9B9B9B,stroke:#6B6B6B,stroke-width:2px,color:#fff,stroke-dasharray:4",
)

INDENT = "    "


def sanitize_id(name: str) -> str:
    """Replace everything Mermaid ids can't hold with underscores."""
    return ID_UNSAFE.sub("_", name)


def _label(text: str) -> str:
    return text.replace('"', "#quot;")


class MermaidRenderer:
    """Renders a DependencyGraph as a Mermaid `graph TD` block."""

    def __init__(self, direction: str = "TD") -> None:
        self._direction = direction

    def render(self, graph: DependencyGraph) -> str:
        ids = self._assign_ids(graph)
        lines = [f"graph {self._direction}"]

        for node in graph.nodes:
            if node.kind == NodeKind.SERVICE:
                lines.append(f'{INDENT}{ids[node.id]}["{_label(node.id)}"]:::service')
        for node in graph.nodes:
            if node.kind == NodeKind.DATABASE:
                db_type = infer_datastore_type(node.id)
                lines.append(
                    f'{INDENT}{ids[node.id]}[("{_label(node.id)} ({db_type})")]:::database'
                )
        for node in graph.nodes:
            if node.kind == NodeKind.EXTERNAL:
                lines.append(f'{INDENT}{ids[node.id]}["{_label(node.id)}"]:::external')

        for edge in graph.edges:
            label = EDGE_LABELS.get(edge.kind, "")
            arrow = f"-->|{label}|" if label else "-->"
            lines.append(f"{INDENT}{ids[edge.source]} {arrow} {ids[edge.target]}")

        lines.append("")
        lines.extend(f"{INDENT}{class_def}" for class_def in CLASS_DEFS)
        return "\n".join(lines)

    @staticmethod
    def _assign_ids(graph: DependencyGraph) -> dict[str, str]:
        """Sanitized ids, suffixed on collisions and Mermaid keywords."""
        ids: dict[str, str] = {}
        used: set[str] = set()
        for node in graph.nodes:
            base = sanitize_id(node.id) or "node"
            if base.lower() in RESERVED_IDS:
                base = f"{base}_node"
            candidate = base
            suffix = 2
            while candidate in used:
                candidate = f"{base}_{suffix}"
                suffix += 1
            used.add(candidate)
            ids[node.id] = candidate
        return ids
