"""Pattern rules for dependency mention extraction.

A rule is an immutable (category, matcher, extractor) triple. The default
table below covers the common JavaScript/TypeScript, Python and Java client
idioms; adding an ecosystem means adding rows, not touching the extractor.
These are textual heuristics - they do not parse the source.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from depgraph.models.types import MentionCategory

HintExtractor = Callable[["re.Match[str]"], "str | None"]


def first_group(match: re.Match[str]) -> str | None:
    """Return the first non-empty capture group of a match."""
    for group in match.groups():
        if group:
            return group
    return None


def lowered_group(match: re.Match[str]) -> str | None:
    """Like first_group, lowercased. Used for client keywords."""
    value = first_group(match)
    return value.lower() if value else None


@dataclass(frozen=True)
class PatternRule:
    """One textual matcher for one mention category.

    Attributes:
        category: Mention category emitted on a match
        matcher: Compiled regex run over the whole file
        extractor: Pulls the raw target hint out of a match; None skips it
        name: Short identifier for logs and tests
    """

    category: MentionCategory
    matcher: re.Pattern[str]
    extractor: HintExtractor = first_group
    name: str = ""


@dataclass(frozen=True)
class PatternRuleSet:
    """An ordered, immutable collection of pattern rules."""

    rules: tuple[PatternRule, ...] = ()

    def __iter__(self) -> Iterator[PatternRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def for_category(self, category: MentionCategory) -> tuple[PatternRule, ...]:
        """Rules emitting the given category, in table order."""
        return tuple(r for r in self.rules if r.category == category)

    def extend(self, rules: Iterable[PatternRule]) -> PatternRuleSet:
        """Return a new rule set with extra rules appended."""
        return PatternRuleSet(rules=self.rules + tuple(rules))


def _rule(
    category: MentionCategory,
    pattern: str,
    name: str,
    flags: int = 0,
    extractor: HintExtractor = first_group,
) -> PatternRule:
    return PatternRule(
        category=category,
        matcher=re.compile(pattern, flags),
        extractor=extractor,
        name=name,
    )


_QUOTED = r"""\s*['"`]([^'"`\s]+)['"`]"""

HTTP_CALL_RULES: tuple[PatternRule, ...] = (
    _rule(MentionCategory.HTTP_CALL, r"\bfetch\(" + _QUOTED, "fetch"),
    _rule(MentionCategory.HTTP_CALL, r"\baxios\.(?:get|post|put|patch|delete)\(" + _QUOTED, "axios"),
    _rule(MentionCategory.HTTP_CALL, r"\bhttp\.(?:get|post|put|delete)\(" + _QUOTED, "node-http"),
    _rule(MentionCategory.HTTP_CALL, r"\b[Rr]estTemplate\.\w+\(" + _QUOTED, "rest-template"),
    _rule(MentionCategory.HTTP_CALL, r"\brequests\.(?:get|post|put|patch|delete)\(" + _QUOTED, "requests"),
    _rule(MentionCategory.HTTP_CALL, r"\bhttpx\.(?:get|post|put|patch|delete)\(" + _QUOTED, "httpx"),
)

# Client keywords match in any case; hints are lowercased for family lookup
DATABASE_USAGE_RULES: tuple[PatternRule, ...] = (
    _rule(
        MentionCategory.DATABASE_USAGE,
        r"\b(pg|postgres(?:ql)?|psycopg2?|asyncpg)\b",
        "postgresql-client",
        re.IGNORECASE,
        extractor=lowered_group,
    ),
    _rule(
        MentionCategory.DATABASE_USAGE,
        r"\b(mongoose|mongodb|mongoclient|pymongo)\b",
        "mongodb-client",
        re.IGNORECASE,
        extractor=lowered_group,
    ),
    _rule(
        MentionCategory.DATABASE_USAGE,
        r"\b(redis|ioredis|aioredis)\b",
        "redis-client",
        re.IGNORECASE,
        extractor=lowered_group,
    ),
    _rule(
        MentionCategory.DATABASE_USAGE,
        r"\b(mysql2?|mariadb|pymysql)\b",
        "mysql-client",
        re.IGNORECASE,
        extractor=lowered_group,
    ),
)

INTERNAL_IMPORT_RULES: tuple[PatternRule, ...] = (
    _rule(MentionCategory.INTERNAL_IMPORT, r"""\bfrom\s+['"]\.\./([^'"]+)['"]""", "es-relative"),
    _rule(MentionCategory.INTERNAL_IMPORT, r"""\brequire\(\s*['"]\.\./([^'"]+)['"]""", "cjs-relative"),
    _rule(MentionCategory.INTERNAL_IMPORT, r"""\bimport\s+[^\n]*?\s+from\s+['"]@/([^'"]+)['"]""", "alias"),
    _rule(
        MentionCategory.INTERNAL_IMPORT,
        r"^\s*from\s+\.{2,}([\w.]+)\s+import\b",
        "py-relative",
        re.MULTILINE,
    ),
)

DEFAULT_RULES = PatternRuleSet(
    rules=HTTP_CALL_RULES + DATABASE_USAGE_RULES + INTERNAL_IMPORT_RULES
)
