"""Code file enumeration for service source roots.

Every directory traversal goes through IgnoreSet so the skip rules live in
one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Protocol

from depgraph.config import CODE_EXTENSIONS, SKIP_DIRS


@dataclass(frozen=True)
class IgnoreSet:
    """Directory names to prune and file extensions to keep."""

    skip_dirs: frozenset[str] = SKIP_DIRS
    extensions: frozenset[str] = CODE_EXTENSIONS
    skip_hidden: bool = True

    def skips_dir(self, name: str) -> bool:
        """True if a directory with this name should not be descended into."""
        if name in self.skip_dirs:
            return True
        return self.skip_hidden and name.startswith(".")

    def keeps_file(self, path: Path) -> bool:
        """True if the file looks like source code worth scanning."""
        return path.suffix in self.extensions


class FileLister(Protocol):
    """Yields code files below a service source root."""

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Yield code file paths in a stable order."""
        ...


class CodeFileWalker:
    """Walks a source root and yields code files.

    Entries are visited in sorted order so the same tree always produces
    the same file sequence. Unreadable directories and symlinked
    directories are skipped; symlinked files are kept.
    """

    def __init__(self, ignore: IgnoreSet | None = None) -> None:
        self._ignore = ignore or IgnoreSet()

    def iter_files(self, root: Path) -> Iterator[Path]:
        if not root.is_dir():
            # Single file mode
            if root.is_file() and self._ignore.keeps_file(root):
                yield root
            return

        try:
            entries = sorted(root.iterdir(), key=lambda p: p.name)
        except OSError:
            return

        for entry in entries:
            # Symlinked directories can loop back up the tree
            if entry.is_symlink() and entry.is_dir():
                continue
            if entry.is_dir():
                if not self._ignore.skips_dir(entry.name):
                    yield from self.iter_files(entry)
            elif entry.is_file() and self._ignore.keeps_file(entry):
                yield entry
