"""Tests for EdgeNormalizer."""

from __future__ import annotations

from pathlib import Path

import pytest

from depgraph.boundary.normalizer import EdgeNormalizer
from depgraph.models.types import (
    EdgeKind,
    Mention,
    MentionCategory,
    ServiceSource,
    UnresolvedPolicy,
)

SERVICES = [
    ServiceSource("gateway", Path("apps/gateway")),
    ServiceSource("users", Path("apps/users")),
    ServiceSource("orders", Path("apps/order-service")),
]


def http(service: str, hint: str) -> Mention:
    return Mention(service, "a.js", MentionCategory.HTTP_CALL, hint, f"fetch('{hint}')")


def db(service: str, keyword: str) -> Mention:
    return Mention(service, "a.js", MentionCategory.DATABASE_USAGE, keyword, keyword)


def imp(service: str, path: str) -> Mention:
    return Mention(service, "a.js", MentionCategory.INTERNAL_IMPORT, path, path)


@pytest.fixture
def normalizer() -> EdgeNormalizer:
    return EdgeNormalizer(SERVICES)


class TestHttpResolution:
    """HTTP mentions resolve to known services by path segment."""

    def test_api_prefix_skipped(self, normalizer: EdgeNormalizer) -> None:
        edge = normalizer.resolve(http("gateway", "/api/users/42"))

        assert edge is not None
        assert (edge.source, edge.target, edge.kind) == ("gateway", "users", EdgeKind.API)
        assert edge.evidence == "API call to /api/users/42"

    def test_plain_path(self, normalizer: EdgeNormalizer) -> None:
        edge = normalizer.resolve(http("gateway", "/orders?id=3"))

        assert edge is not None and edge.target == "orders"

    def test_case_insensitive(self, normalizer: EdgeNormalizer) -> None:
        edge = normalizer.resolve(http("gateway", "/API/Users"))

        assert edge is not None and edge.target == "users"

    def test_unknown_service_dropped(self, normalizer: EdgeNormalizer) -> None:
        assert normalizer.resolve(http("gateway", "/api/inventory")) is None

    def test_self_call_dropped(self, normalizer: EdgeNormalizer) -> None:
        assert normalizer.resolve(http("users", "/api/users/me")) is None

    def test_absolute_url_dropped(self, normalizer: EdgeNormalizer) -> None:
        assert normalizer.resolve(http("gateway", "http://users/api/users")) is None

    def test_only_generic_segments(self, normalizer: EdgeNormalizer) -> None:
        assert normalizer.resolve(http("gateway", "/api/")) is None

    def test_custom_generic_segments(self) -> None:
        normalizer = EdgeNormalizer(SERVICES, generic_segments={"api", "v1"})

        edge = normalizer.resolve(http("gateway", "/v1/users"))

        assert edge is not None and edge.target == "users"


class TestDatabaseResolution:
    """Keywords map to one canonical datastore node each."""

    @pytest.mark.parametrize(
        ("keyword", "target", "kind"),
        [
            ("pg", "postgresql-db", EdgeKind.DATABASE),
            ("postgres", "postgresql-db", EdgeKind.DATABASE),
            ("asyncpg", "postgresql-db", EdgeKind.DATABASE),
            ("mongoose", "mongodb-db", EdgeKind.DATABASE),
            ("mongodb", "mongodb-db", EdgeKind.DATABASE),
            ("redis", "redis-cache", EdgeKind.CACHE),
            ("ioredis", "redis-cache", EdgeKind.CACHE),
            ("mysql", "mysql-db", EdgeKind.DATABASE),
            ("mariadb", "mysql-db", EdgeKind.DATABASE),
        ],
    )
    def test_family_mapping(
        self, normalizer: EdgeNormalizer, keyword: str, target: str, kind: EdgeKind
    ) -> None:
        edge = normalizer.resolve(db("users", keyword))

        assert edge is not None
        assert (edge.target, edge.kind) == (target, kind)

    def test_unknown_keyword(self, normalizer: EdgeNormalizer) -> None:
        assert normalizer.resolve(db("users", "cassandra")) is None


class TestImportResolution:
    """Import paths match service names or source directory names."""

    def test_match_by_name(self, normalizer: EdgeNormalizer) -> None:
        edge = normalizer.resolve(imp("gateway", "users/client"))

        assert edge is not None
        assert (edge.target, edge.kind) == ("users", EdgeKind.INTERNAL)
        assert edge.evidence == "Imports from users/client"

    def test_match_by_directory(self, normalizer: EdgeNormalizer) -> None:
        edge = normalizer.resolve(imp("gateway", "order-service/lib"))

        assert edge is not None and edge.target == "orders"

    def test_self_import_skipped(self, normalizer: EdgeNormalizer) -> None:
        assert normalizer.resolve(imp("users", "users/models")) is None

    def test_first_declared_service_wins(self, normalizer: EdgeNormalizer) -> None:
        edge = normalizer.resolve(imp("orders", "shared/users/gateway"))

        assert edge is not None and edge.target == "gateway"


class TestNormalize:
    """Dedup, ordering and the unresolved policy."""

    def test_dedup_keeps_first_evidence(self, normalizer: EdgeNormalizer) -> None:
        result = normalizer.normalize(
            [http("gateway", "/api/users/1"), http("gateway", "/api/users/2")]
        )

        assert len(result.edges) == 1
        assert result.edges[0].evidence == "API call to /api/users/1"

    def test_same_pair_different_kinds(self, normalizer: EdgeNormalizer) -> None:
        result = normalizer.normalize([http("gateway", "/api/users"), imp("gateway", "users/x")])

        assert [e.kind for e in result.edges] == [EdgeKind.API, EdgeKind.INTERNAL]

    def test_discovery_order(self, normalizer: EdgeNormalizer) -> None:
        result = normalizer.normalize(
            [db("orders", "redis"), http("gateway", "/api/orders"), db("orders", "pg")]
        )

        assert [e.target for e in result.edges] == ["redis-cache", "orders", "postgresql-db"]

    def test_unresolved_dropped_by_default(self, normalizer: EdgeNormalizer) -> None:
        result = normalizer.normalize([http("gateway", "/api/inventory"), imp("users", "lib/x")])

        assert result.edges == ()
        assert result.external_targets == ()
        assert result.dropped == 2

    def test_placeholder_policy(self) -> None:
        normalizer = EdgeNormalizer(SERVICES, policy=UnresolvedPolicy.PLACEHOLDER)

        result = normalizer.normalize(
            [
                http("gateway", "/api/inventory/1"),
                http("users", "https://Hooks.Example.com/notify"),
                http("orders", "/api/inventory"),
                imp("users", "lib/x"),
            ]
        )

        assert [(e.source, e.target) for e in result.edges] == [
            ("gateway", "inventory"),
            ("users", "hooks.example.com"),
            ("orders", "inventory"),
        ]
        assert result.external_targets == ("inventory", "hooks.example.com")
        assert result.dropped == 1

    def test_placeholder_never_shadows_known_service(self) -> None:
        normalizer = EdgeNormalizer(SERVICES, policy=UnresolvedPolicy.PLACEHOLDER)

        result = normalizer.normalize([http("users", "/api/users/me")])

        assert result.edges == ()
        assert result.external_targets == ()

    @pytest.mark.parametrize("url", ["/redis-cache/x", "/api/postgresql-db", "http://mongodb-db/q"])
    def test_placeholder_never_shadows_datastore(self, url: str) -> None:
        """An HTTP call is never turned into an api edge onto a datastore id."""
        normalizer = EdgeNormalizer(SERVICES, policy=UnresolvedPolicy.PLACEHOLDER)

        result = normalizer.normalize([http("gateway", url)])

        assert result.edges == ()
        assert result.external_targets == ()
        assert result.dropped == 1
