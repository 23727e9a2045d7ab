"""End-to-end dependency analysis.

extract -> normalize -> build graph -> analyze impact -> render diagram

Each stage finishes completely before the next one starts; only the
extraction stage runs in parallel.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Sequence

from depgraph.analysis.impact import ImpactAnalyzer
from depgraph.boundary.extraction import CancelToken, ExtractionRunner
from depgraph.boundary.files import CodeFileWalker, FileLister
from depgraph.boundary.graph import DependencyGraph, GraphBuilder
from depgraph.boundary.normalizer import EdgeNormalizer
from depgraph.boundary.patterns import DEFAULT_RULES
from depgraph.config import AnalysisConfig
from depgraph.core.errors import AnalysisCancelledError, InvalidServicesError
from depgraph.models.types import (
    DetectedDatabase,
    ExtractionStats,
    ImpactReport,
    ServiceSource,
    SourceFile,
)
from depgraph.render.mermaid import MermaidRenderer

logger = logging.getLogger(__name__)

# In-memory file contents: service name -> [(path, content), ...]
FileContents = Mapping[str, Sequence[tuple[str, "bytes | str"]]]


@dataclass(frozen=True)
class AnalysisResult:
    """Everything one analysis run produces."""

    graph: DependencyGraph
    impact: tuple[ImpactReport, ...] = ()
    diagram: str = ""
    stats: ExtractionStats = field(default_factory=ExtractionStats)

    def report_for(self, node_id: str) -> ImpactReport | None:
        for report in self.impact:
            if report.service == node_id:
                return report
        return None

    def to_dict(self) -> dict[str, Any]:
        data = self.graph.to_dict()
        data["impactAnalysis"] = [report.to_dict() for report in self.impact]
        data["mermaidDiagram"] = self.diagram
        return data


def coerce_services(services: Any) -> list[ServiceSource]:
    """Validate the services input.

    Accepts ServiceSource objects or mappings with a name ("name" or
    "serviceName") and an optional root ("path", "root" or "sourceRootPath").

    Raises:
        InvalidServicesError: If the list itself is missing or malformed.
    """
    if services is None:
        raise InvalidServicesError("services list is missing")
    if isinstance(services, (str, bytes, Mapping)) or not isinstance(services, Iterable):
        raise InvalidServicesError(f"expected a sequence of services, got {type(services).__name__}")

    result: list[ServiceSource] = []
    seen: set[str] = set()
    for index, item in enumerate(services):
        if isinstance(item, ServiceSource):
            name, root = item.name, item.root
        elif isinstance(item, Mapping):
            name = item.get("name") or item.get("serviceName")
            root = item.get("path") or item.get("root") or item.get("sourceRootPath")
        else:
            raise InvalidServicesError(
                f"service #{index} has unsupported type {type(item).__name__}"
            )
        if not isinstance(name, str):
            raise InvalidServicesError(f"service #{index} has no name")
        if root is not None and not isinstance(root, (str, os.PathLike)):
            raise InvalidServicesError(
                f"service {name!r} has a root of type {type(root).__name__}"
            )
        service = ServiceSource(name=name, root=Path(root) if root else None)
        if not service.name or not service.name.strip():
            raise InvalidServicesError(f"service #{index} has an empty name")
        if service.name in seen:
            raise InvalidServicesError(f"duplicate service name {service.name!r}")
        seen.add(service.name)
        result.append(service)
    return result


def collect_files(
    services: Sequence[ServiceSource],
    contents: FileContents | None = None,
    lister: FileLister | None = None,
    cancel: CancelToken | None = None,
) -> list[SourceFile]:
    """List the files to scan, in service declaration order.

    In-memory contents win over walking source roots; a service with
    neither contributes no files.

    Raises:
        AnalysisCancelledError: If the token fires while walking.
    """
    lister = lister or CodeFileWalker()
    files: list[SourceFile] = []

    for service in services:
        if contents is not None:
            for path, content in contents.get(service.name, ()):
                files.append(SourceFile(service=service.name, path=str(path), content=content))
        elif service.root is not None:
            for path in lister.iter_files(service.root):
                if cancel is not None and cancel.cancelled:
                    raise AnalysisCancelledError(cancel.reason)
                files.append(SourceFile(service=service.name, path=str(path)))

    return files


def analyze(
    services: Any,
    contents: FileContents | None = None,
    detected_databases: Iterable[DetectedDatabase] = (),
    config: AnalysisConfig | None = None,
    lister: FileLister | None = None,
    cancel: CancelToken | None = None,
) -> AnalysisResult:
    """Map service dependencies and rank every node by blast radius.

    Args:
        services: Ordered services (ServiceSource or mappings)
        contents: Optional in-memory file contents per service; when None
            each service's source root is walked
        detected_databases: Project-level database detections
        config: Analysis settings; defaults apply when None
        lister: File enumeration collaborator for source roots
        cancel: Optional cancellation token / deadline

    Returns:
        AnalysisResult with graph, ranked impact reports and diagram text

    Raises:
        InvalidServicesError: If the services input is malformed.
        AnalysisCancelledError: If the token fires before the graph is built.
    """
    config = config or AnalysisConfig()
    declared = coerce_services(services)
    renderer = MermaidRenderer()

    if not declared:
        logger.info("analysis_empty reason=no_services")
        graph = DependencyGraph.empty()
        return AnalysisResult(graph=graph, diagram=renderer.render(graph))

    files = collect_files(declared, contents, lister, cancel)
    if not files:
        logger.info("analysis_no_files services=%d", len(declared))

    runner = ExtractionRunner(
        rules=config.rules or DEFAULT_RULES,
        max_workers=config.max_workers,
        max_file_bytes=config.max_file_bytes,
    )
    mentions, stats = runner.run(files, cancel)

    normalizer = EdgeNormalizer(
        declared,
        policy=config.unresolved_policy,
        generic_segments=config.generic_segments,
    )
    normalized = normalizer.normalize(mentions)
    logger.info(
        "mentions_normalized files=%d skipped=%d mentions=%d edges=%d dropped=%d",
        stats.files_scanned,
        stats.files_skipped,
        stats.mentions,
        len(normalized.edges),
        normalized.dropped,
    )

    if cancel is not None and cancel.cancelled:
        raise AnalysisCancelledError(cancel.reason)

    graph = GraphBuilder().build(declared, normalized, detected_databases)
    impact = ImpactAnalyzer(config.scoring).analyze(graph)
    return AnalysisResult(
        graph=graph,
        impact=tuple(impact),
        diagram=renderer.render(graph),
        stats=stats,
    )
