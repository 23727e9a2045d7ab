"""Per-file dependency mention extraction.

extract_mentions() is a pure function of (service, path, text, rules), so
files can be scanned in any order and on any thread. ExtractionRunner fans
the files out over a bounded thread pool and joins the results back in
submission order.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from depgraph.boundary.patterns import DEFAULT_RULES, PatternRuleSet
from depgraph.config import BINARY_SNIFF_BYTES, MAX_FILE_BYTES, MAX_WORKERS
from depgraph.core.errors import AnalysisCancelledError, ExtractionError
from depgraph.models.types import ExtractionStats, Mention, SourceFile

logger = logging.getLogger(__name__)

EVIDENCE_MAX_CHARS = 120


class CancelToken:
    """Cooperative cancellation flag with an optional deadline.

    Checked between file tasks; a cancelled run never yields a graph.
    """

    def __init__(self, deadline: float | None = None) -> None:
        """Initialize the token.

        Args:
            deadline: Absolute time.monotonic() value after which the token
                counts as cancelled. None means no deadline.
        """
        self._event = threading.Event()
        self._deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: float) -> CancelToken:
        """Create a token that expires `seconds` from now."""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def reason(self) -> str:
        if self._event.is_set():
            return "cancelled by caller"
        return "deadline exceeded"


def extract_mentions(
    service: str,
    file_path: str,
    text: str,
    rules: PatternRuleSet = DEFAULT_RULES,
) -> list[Mention]:
    """Run every pattern rule over one file's text.

    Args:
        service: Name of the service owning the file
        file_path: Path used for evidence and logs
        text: Decoded file content
        rules: Pattern rules to apply

    Returns:
        Mentions ordered by offset, ties broken by rule order
    """
    found: list[tuple[int, int, Mention]] = []

    for rule_index, rule in enumerate(rules):
        for match in rule.matcher.finditer(text):
            hint = rule.extractor(match)
            if not hint:
                continue
            found.append(
                (
                    match.start(),
                    rule_index,
                    Mention(
                        service=service,
                        file_path=file_path,
                        category=rule.category,
                        hint=hint,
                        evidence=_snippet(match.group(0)),
                        offset=match.start(),
                    ),
                )
            )

    found.sort(key=lambda item: (item[0], item[1]))
    return [mention for _, _, mention in found]


def _snippet(text: str) -> str:
    collapsed = " ".join(text.split())
    if len(collapsed) > EVIDENCE_MAX_CHARS:
        return collapsed[:EVIDENCE_MAX_CHARS] + "..."
    return collapsed


def load_source(source: SourceFile, max_bytes: int = MAX_FILE_BYTES) -> str:
    """Return the decoded text of a source file.

    Invalid UTF-8 sequences become U+FFFD; the rest of the file is kept.

    Raises:
        ExtractionError: If the file is unreadable, oversized or binary.
    """
    content = source.content
    if content is None:
        path = Path(source.path)
        try:
            if path.stat().st_size > max_bytes:
                raise ExtractionError(source.path, f"larger than {max_bytes} bytes")
            content = path.read_bytes()
        except OSError as exc:
            raise ExtractionError(source.path, f"unreadable: {exc}") from exc

    if isinstance(content, str):
        if len(content.encode("utf-8", errors="replace")) > max_bytes:
            raise ExtractionError(source.path, f"larger than {max_bytes} bytes")
        if "\x00" in content[:BINARY_SNIFF_BYTES]:
            raise ExtractionError(source.path, "binary content")
        return content

    if len(content) > max_bytes:
        raise ExtractionError(source.path, f"larger than {max_bytes} bytes")
    if b"\x00" in content[:BINARY_SNIFF_BYTES]:
        raise ExtractionError(source.path, "binary content")
    return content.decode("utf-8", errors="replace")


@dataclass
class _FileResult:
    mentions: list[Mention] = field(default_factory=list)
    skipped: bool = False


class ExtractionRunner:
    """Scans many files concurrently with a bounded worker pool."""

    def __init__(
        self,
        rules: PatternRuleSet = DEFAULT_RULES,
        max_workers: int = MAX_WORKERS,
        max_file_bytes: int = MAX_FILE_BYTES,
    ) -> None:
        self._rules = rules
        self._max_workers = max_workers
        self._max_file_bytes = max_file_bytes

    def run(
        self,
        files: Sequence[SourceFile],
        cancel: CancelToken | None = None,
    ) -> tuple[list[Mention], ExtractionStats]:
        """Extract mentions from every file.

        Results are concatenated in the order of `files`, regardless of
        which worker finished first.

        Args:
            files: Files to scan, in the order results should be merged
            cancel: Optional token checked between file tasks

        Returns:
            Tuple of (mentions, stats)

        Raises:
            AnalysisCancelledError: If the token fires before all files
                are scanned. No partial results are returned.
        """
        stats = ExtractionStats()
        if not files:
            return [], stats

        futures: list[Future[_FileResult]] = []
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            for source in files:
                if cancel is not None and cancel.cancelled:
                    break
                futures.append(pool.submit(self._scan, source, cancel))

            results: list[_FileResult] = []
            for future in futures:
                if cancel is not None and cancel.cancelled:
                    for pending in futures:
                        pending.cancel()
                    break
                results.append(future.result())

        if cancel is not None and cancel.cancelled:
            logger.warning(
                "extraction_cancelled reason=%s scanned=%d total=%d",
                cancel.reason,
                len(results),
                len(files),
            )
            raise AnalysisCancelledError(cancel.reason)

        mentions: list[Mention] = []
        for source, result in zip(files, results):
            if result.skipped:
                stats.files_skipped += 1
                stats.skipped_paths.append(source.path)
                continue
            stats.files_scanned += 1
            mentions.extend(result.mentions)
        stats.mentions = len(mentions)
        return mentions, stats

    def _scan(self, source: SourceFile, cancel: CancelToken | None) -> _FileResult:
        if cancel is not None and cancel.cancelled:
            return _FileResult(skipped=True)
        try:
            text = load_source(source, self._max_file_bytes)
        except ExtractionError as exc:
            logger.debug("file_skipped path=%s reason=%s", exc.file_path, exc.reason)
            return _FileResult(skipped=True)
        return _FileResult(
            mentions=extract_mentions(source.service, source.path, text, self._rules)
        )
