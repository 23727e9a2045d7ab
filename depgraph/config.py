"""Analyzer configuration: constants, datastore table and policies.

The datastore family table IS the database-resolution logic. Supporting a
new client library means adding one keyword to a row, or one new row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from depgraph.core.errors import ConfigError
from depgraph.models.types import EdgeKind, UnresolvedPolicy

if TYPE_CHECKING:
    from depgraph.boundary.patterns import PatternRuleSet

# File enumeration
CODE_EXTENSIONS: frozenset[str] = frozenset(
    {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".py", ".java", ".go", ".rs", ".rb", ".php"}
)

# Directories skipped by every traversal (see boundary.files.IgnoreSet)
SKIP_DIRS: frozenset[str] = frozenset(
    {
        "node_modules",
        "dist",
        "build",
        ".git",
        "coverage",
        "vendor",
        "__pycache__",
        ".venv",
        "venv",
        ".tox",
        ".pytest_cache",
        ".mypy_cache",
        "target",
        ".next",
    }
)

# Extraction budget
MAX_FILE_BYTES: int = 1_000_000  # larger files are skipped
BINARY_SNIFF_BYTES: int = 8192  # a NUL byte in this prefix marks a binary file
MAX_WORKERS: int = 8  # caps concurrently open files

# Path segments that never name a service ("/api/users" -> "users")
GENERIC_PATH_SEGMENTS: frozenset[str] = frozenset({"api"})


@dataclass(frozen=True)
class DatastoreFamily:
    """A canonical datastore node and the client keywords that imply it."""

    node_id: str
    type: str
    edge_kind: EdgeKind
    keywords: tuple[str, ...]


DATASTORE_FAMILIES: tuple[DatastoreFamily, ...] = (
    DatastoreFamily(
        node_id="postgresql-db",
        type="postgresql",
        edge_kind=EdgeKind.DATABASE,
        keywords=("pg", "postgres", "postgresql", "psycopg", "psycopg2", "asyncpg"),
    ),
    DatastoreFamily(
        node_id="mongodb-db",
        type="mongodb",
        edge_kind=EdgeKind.DATABASE,
        keywords=("mongodb", "mongoose", "mongoclient", "pymongo", "mongo"),
    ),
    DatastoreFamily(
        node_id="redis-cache",
        type="redis",
        edge_kind=EdgeKind.CACHE,
        keywords=("redis", "ioredis", "aioredis"),
    ),
    DatastoreFamily(
        node_id="mysql-db",
        type="mysql",
        edge_kind=EdgeKind.DATABASE,
        keywords=("mysql", "mariadb", "pymysql", "mysql2"),
    ),
)


def family_for_keyword(keyword: str) -> DatastoreFamily | None:
    """Map a matched client keyword to its datastore family."""
    lowered = keyword.lower()
    for family in DATASTORE_FAMILIES:
        if lowered in family.keywords:
            return family
    return None


def family_for_type(db_type: str) -> DatastoreFamily | None:
    """Map a project-level database type ("postgres", "redis") to a family."""
    lowered = db_type.lower()
    for family in DATASTORE_FAMILIES:
        if lowered == family.type or lowered in family.keywords:
            return family
    return None


def infer_datastore_type(node_id: str) -> str:
    """Best-effort type label for a datastore node id."""
    for family in DATASTORE_FAMILIES:
        if node_id == family.node_id:
            return family.type
    for family in DATASTORE_FAMILIES:
        if family.type[:5] in node_id:
            return family.type
    return "unknown"


@dataclass(frozen=True)
class ScoringPolicy:
    """Weights and tier thresholds for the criticality score.

    Direct callers weigh twice as much as indirect ones; database fan-in
    sits in between. The score saturates at max_score.
    """

    direct_weight: int = 20
    indirect_weight: int = 10
    database_weight: int = 15
    max_score: int = 100
    critical_threshold: int = 80
    high_threshold: int = 50

    def __post_init__(self) -> None:
        for name in ("direct_weight", "indirect_weight", "database_weight"):
            if getattr(self, name) < 0:
                raise ConfigError(name, "weights must be non-negative")
        if self.max_score <= 0:
            raise ConfigError("max_score", "must be positive")
        if not 0 <= self.high_threshold < self.critical_threshold:
            raise ConfigError(
                "high_threshold",
                f"expected 0 <= high ({self.high_threshold}) < critical ({self.critical_threshold})",
            )


@dataclass(frozen=True)
class AnalysisConfig:
    """Settings for one analysis run.

    rules defaults to the built-in pattern table; pass a PatternRuleSet to
    add ecosystems without touching the extractor.
    """

    rules: PatternRuleSet | None = None
    scoring: ScoringPolicy = field(default_factory=ScoringPolicy)
    unresolved_policy: UnresolvedPolicy = UnresolvedPolicy.DROP
    generic_segments: frozenset[str] = GENERIC_PATH_SEGMENTS
    max_file_bytes: int = MAX_FILE_BYTES
    max_workers: int = MAX_WORKERS

    def __post_init__(self) -> None:
        if self.max_file_bytes <= 0:
            raise ConfigError("max_file_bytes", "must be positive")
        if self.max_workers < 1:
            raise ConfigError("max_workers", "must be at least 1")
