"""Resolution of raw mentions to canonical, de-duplicated edges.

HTTP paths and import paths are matched against known services; client
keywords are mapped through the datastore family table. Anything that
cannot be resolved is dropped, or becomes an external placeholder when the
policy asks for it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Sequence
from urllib.parse import urlparse

from depgraph.config import DATASTORE_FAMILIES, GENERIC_PATH_SEGMENTS, family_for_keyword
from depgraph.models.types import (
    Edge,
    EdgeKind,
    Mention,
    MentionCategory,
    ServiceSource,
    UnresolvedPolicy,
)

logger = logging.getLogger(__name__)

SEGMENT_REGEX = re.compile(r"^[A-Za-z0-9_-]+")
DATASTORE_IDS = frozenset(family.node_id for family in DATASTORE_FAMILIES)


@dataclass(frozen=True)
class NormalizedEdges:
    """Output of the normalizer.

    Attributes:
        edges: De-duplicated edges in discovery order
        external_targets: Placeholder node ids in first-seen order
        dropped: Number of mentions that resolved to nothing
    """

    edges: tuple[Edge, ...] = ()
    external_targets: tuple[str, ...] = ()
    dropped: int = 0


class EdgeNormalizer:
    """Turns raw mentions into canonical edges between known nodes."""

    def __init__(
        self,
        services: Sequence[ServiceSource],
        policy: UnresolvedPolicy = UnresolvedPolicy.DROP,
        generic_segments: Iterable[str] = GENERIC_PATH_SEGMENTS,
    ) -> None:
        """Initialize the normalizer.

        Args:
            services: Known services, in declaration order
            policy: What to do with unresolved HTTP call targets
            generic_segments: Path segments that never name a service
        """
        self._services = list(services)
        self._by_lower = {s.name.lower(): s.name for s in self._services}
        self._policy = policy
        self._generic = frozenset(seg.lower() for seg in generic_segments)

    def normalize(self, mentions: Iterable[Mention]) -> NormalizedEdges:
        """Resolve and de-duplicate mentions.

        The first mention producing a given (from, to, kind) key supplies
        the edge evidence; later duplicates are discarded.
        """
        edges: dict[tuple[str, str, EdgeKind], Edge] = {}
        externals: dict[str, None] = {}
        dropped = 0

        for mention in mentions:
            edge = self.resolve(mention)
            if edge is None:
                edge = self._placeholder(mention)
                if edge is None:
                    dropped += 1
                    logger.debug(
                        "mention_dropped service=%s category=%s hint=%s",
                        mention.service,
                        mention.category.value,
                        mention.hint,
                    )
                    continue
                externals.setdefault(edge.target, None)
            if edge.source == edge.target:
                continue
            edges.setdefault(edge.key, edge)

        return NormalizedEdges(
            edges=tuple(edges.values()),
            external_targets=tuple(externals),
            dropped=dropped,
        )

    def resolve(self, mention: Mention) -> Edge | None:
        """Resolve one mention against known nodes, or return None."""
        if mention.category == MentionCategory.HTTP_CALL:
            return self._resolve_http(mention)
        if mention.category == MentionCategory.DATABASE_USAGE:
            return self._resolve_database(mention)
        if mention.category == MentionCategory.INTERNAL_IMPORT:
            return self._resolve_import(mention)
        return None

    def _resolve_http(self, mention: Mention) -> Edge | None:
        if _is_absolute(mention.hint):
            return None
        candidate = self.service_segment(mention.hint)
        if candidate is None:
            return None
        target = self._by_lower.get(candidate.lower())
        if target is None or target == mention.service:
            return None
        return Edge(
            source=mention.service,
            target=target,
            kind=EdgeKind.API,
            evidence=f"API call to {mention.hint}",
        )

    def _resolve_database(self, mention: Mention) -> Edge | None:
        family = family_for_keyword(mention.hint)
        if family is None:
            return None
        return Edge(
            source=mention.service,
            target=family.node_id,
            kind=family.edge_kind,
            evidence=f"Uses {mention.hint}",
        )

    def _resolve_import(self, mention: Mention) -> Edge | None:
        path = mention.hint.lower()
        for service in self._services:
            if service.name == mention.service:
                continue
            names = {service.name.lower()}
            if service.directory_name:
                names.add(service.directory_name.lower())
            if any(name and name in path for name in names):
                return Edge(
                    source=mention.service,
                    target=service.name,
                    kind=EdgeKind.INTERNAL,
                    evidence=f"Imports from {mention.hint}",
                )
        return None

    def _placeholder(self, mention: Mention) -> Edge | None:
        if self._policy != UnresolvedPolicy.PLACEHOLDER:
            return None
        if mention.category != MentionCategory.HTTP_CALL:
            return None

        if _is_absolute(mention.hint):
            target = urlparse(mention.hint).hostname
        else:
            target = self.service_segment(mention.hint)
        if not target:
            return None
        target = target.lower()
        # Never shadow a known service or datastore with a placeholder
        if target in self._by_lower or target in DATASTORE_IDS:
            return None
        return Edge(
            source=mention.service,
            target=target,
            kind=EdgeKind.API,
            evidence=f"API call to {mention.hint}",
        )

    def service_segment(self, url_path: str) -> str | None:
        """First non-generic path segment of a relative URL.

        "/api/users/42" -> "users", "orders?id=1" -> "orders".
        """
        path = url_path.split("?", 1)[0].split("#", 1)[0]
        for segment in path.split("/"):
            match = SEGMENT_REGEX.match(segment)
            if not match:
                continue
            value = match.group(0)
            if value.lower() in self._generic:
                continue
            return value
        return None


def _is_absolute(hint: str) -> bool:
    return hint.lower().startswith(("http://", "https://"))
