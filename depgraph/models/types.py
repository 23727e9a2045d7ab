"""Core type definitions: enums, graph records, analyzer inputs.

These types flow through the whole pipeline:
SourceFile -> Mention -> Edge -> DependencyGraph -> ImpactReport
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class NodeKind(Enum):
    """What a graph vertex stands for."""

    SERVICE = "service"
    DATABASE = "database"  # databases and caches alike
    EXTERNAL = "external"  # placeholder for an unresolved call target


class EdgeKind(Enum):
    """Kind tag carried by every dependency edge."""

    API = "api"
    DATABASE = "database"
    CACHE = "cache"
    QUEUE = "queue"
    INTERNAL = "internal"


class MentionCategory(Enum):
    """Category of a raw, unresolved dependency mention."""

    HTTP_CALL = "httpCall"
    DATABASE_USAGE = "databaseUsage"
    INTERNAL_IMPORT = "internalImport"


class UnresolvedPolicy(Enum):
    """What happens to mentions that match no known node.

    DROP discards them. PLACEHOLDER turns unresolved HTTP call targets
    into EXTERNAL nodes so their callers still show up as dependents.
    """

    DROP = "drop"
    PLACEHOLDER = "placeholder"


class Recommendation(Enum):
    """Operational recommendation tier derived from the criticality score."""

    CRITICAL = "critical"
    HIGH_IMPACT = "high-impact"
    MODERATE = "moderate"
    LOW_IMPACT_LEAF = "low-impact-leaf"
    NORMAL = "normal"

    @property
    def advice(self) -> str:
        """Human-readable guidance for this tier."""
        return _ADVICE[self]


_ADVICE: dict[Recommendation, str] = {
    Recommendation.CRITICAL: (
        "CRITICAL: high blast radius. Add redundancy/replicas, implement "
        "circuit breakers, set up failover and monitor closely"
    ),
    Recommendation.HIGH_IMPACT: (
        "HIGH IMPACT: add health checks, implement graceful degradation "
        "and monitor dependencies"
    ),
    Recommendation.MODERATE: (
        "MODERATE: shared database detected. Consider read replicas and "
        "connection pooling"
    ),
    Recommendation.LOW_IMPACT_LEAF: (
        "LOW IMPACT: leaf with no dependents. Safe to modify independently"
    ),
    Recommendation.NORMAL: "NORMAL: standard monitoring and best practices",
}


# =============================================================================
# Inputs from collaborators
# =============================================================================


@dataclass(frozen=True)
class ServiceSource:
    """A deployable unit as reported by service discovery."""

    name: str
    root: Path | None = None

    @property
    def directory_name(self) -> str | None:
        """Basename of the source root, used to match relative imports."""
        return self.root.name if self.root is not None else None


@dataclass(frozen=True)
class DetectedDatabase:
    """A project-level database detection result."""

    type: str
    detected: bool = True


@dataclass(frozen=True)
class SourceFile:
    """One code file belonging to a service.

    content is None when the file should be read lazily from path by the
    extraction worker.
    """

    service: str
    path: str
    content: bytes | str | None = None


# =============================================================================
# Pipeline records
# =============================================================================


@dataclass(frozen=True)
class Mention:
    """A raw dependency mention found by a pattern rule."""

    service: str
    file_path: str
    category: MentionCategory
    hint: str  # URL path, database keyword or import path
    evidence: str  # matched source text
    offset: int = 0


@dataclass(frozen=True)
class Node:
    """A graph vertex. Identity is the id."""

    id: str
    kind: NodeKind


@dataclass(frozen=True)
class Edge:
    """A directed, kind-tagged dependency between two nodes."""

    source: str  # from
    target: str  # to
    kind: EdgeKind
    evidence: str | None = None

    @property
    def key(self) -> tuple[str, str, EdgeKind]:
        """Canonical dedup key."""
        return (self.source, self.target, self.kind)

    def to_dict(self) -> dict[str, str]:
        data = {"from": self.source, "to": self.target, "kind": self.kind.value}
        if self.evidence:
            data["details"] = self.evidence
        return data


@dataclass(frozen=True)
class ImpactReport:
    """Blast radius metrics for one node."""

    service: str
    direct_dependents: tuple[str, ...] = ()
    indirect_dependents: tuple[str, ...] = ()
    databases: tuple[str, ...] = ()
    criticality_score: int = 0
    recommendation: Recommendation = Recommendation.LOW_IMPACT_LEAF

    def to_dict(self) -> dict[str, object]:
        return {
            "service": self.service,
            "directDependents": list(self.direct_dependents),
            "indirectDependents": list(self.indirect_dependents),
            "databases": list(self.databases),
            "criticalityScore": self.criticality_score,
            "recommendation": self.recommendation.value,
        }


@dataclass
class ExtractionStats:
    """Counters collected while scanning files. Used for log summaries."""

    files_scanned: int = 0
    files_skipped: int = 0
    mentions: int = 0
    skipped_paths: list[str] = field(default_factory=list)
