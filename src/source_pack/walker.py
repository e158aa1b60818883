"""
Tree walker module for source-pack.

Yields the files under a root directory in a deterministic depth-first order, pruning
directories rejected by the ignore filter before they are opened.
"""

from __future__ import annotations

import os
from collections import defaultdict
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from .config import FileEntry, WalkIssue, get_language
from .errors import WalkError
from .ignore import IgnoreFilter
from .utils import file_extension

IssueCallback = Callable[[WalkIssue], None]


@dataclass
class WalkStats:
    """Statistics from one walk.

    Attributes:
        entries_seen: Directory entries examined (files and directories).
        files_yielded: Files handed to the caller.
        excluded: Excluded entry counts keyed by ignore rule.
        issues: Entries skipped because they could not be read.
    """

    entries_seen: int = 0
    files_yielded: int = 0
    excluded: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    issues: list[WalkIssue] = field(default_factory=list)


class TreeWalker:
    """
    Walks a directory tree.

    Entries within a directory are visited in lexicographic order of their names and
    directories are descended into where they appear, so output order only depends on
    the tree contents. Symbolic links are classified by their target; a directory whose
    canonical path is one of its own ancestors is skipped, which breaks symlink cycles.
    Aliases of directories elsewhere in the tree are walked under both paths.
    """

    def __init__(
        self,
        root_path: Path,
        ignore_filter: IgnoreFilter,
        on_issue: IssueCallback | None = None,
    ):
        """
        Initialize the walker.

        Args:
            root_path: Directory to walk
            ignore_filter: Filter consulted for every entry
            on_issue: Called once per skipped entry, as soon as it is skipped
        """
        self.root_path = Path(root_path)
        self.ignore_filter = ignore_filter
        self.on_issue = on_issue
        self.stats = WalkStats()
        self._ancestors: set[str] = set()

    def walk(self) -> Iterator[FileEntry]:
        """
        Walk the tree and yield included files.

        Yields:
            FileEntry objects in traversal order
        """
        self._ancestors = {os.path.realpath(self.root_path)}
        yield from self._walk_dir(self.root_path, "")

    def _record(self, relative_path: str, error: BaseException | str) -> None:
        reason = error if isinstance(error, str) else _describe(error)
        issue = WalkIssue(relative_path=relative_path or ".", reason=reason)
        self.stats.issues.append(issue)
        if self.on_issue is not None:
            self.on_issue(issue)

    def _walk_dir(self, dir_path: Path, rel_dir: str) -> Iterator[FileEntry]:
        try:
            with os.scandir(dir_path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            self._record(rel_dir, e)
            return

        for entry in entries:
            self.stats.entries_seen += 1
            rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name

            try:
                is_dir = entry.is_dir()
                is_file = not is_dir and entry.is_file()
                if not is_dir and not is_file:
                    if entry.is_symlink():
                        raise WalkError("broken symbolic link")
                    raise WalkError("not a regular file")

                rule = self.ignore_filter.excluded_by(rel_path, is_dir)
                if rule is not None:
                    self.stats.excluded[rule] += 1
                    continue

                if is_dir:
                    real = os.path.realpath(entry.path)
                    if real in self._ancestors:
                        raise WalkError("symbolic link cycle to an ancestor directory")
                    sub_path = Path(entry.path)
                else:
                    size = entry.stat().st_size
            except (OSError, WalkError) as e:
                self._record(rel_path, e)
                continue

            if is_dir:
                self._ancestors.add(real)
                try:
                    yield from self._walk_dir(sub_path, rel_path)
                finally:
                    self._ancestors.discard(real)
                continue

            ext = file_extension(entry.name)
            self.stats.files_yielded += 1
            yield FileEntry(
                path=Path(entry.path).absolute(),
                relative_path=rel_path,
                size_bytes=size,
                extension=ext,
                language=get_language(ext, entry.name),
            )


def _describe(error: BaseException) -> str:
    if isinstance(error, PermissionError):
        return "permission denied"
    if isinstance(error, OSError) and error.strerror:
        return error.strerror.lower()
    return str(error)


def walk(
    root_path: Path,
    ignore_filter: IgnoreFilter,
    on_issue: IssueCallback | None = None,
) -> Iterator[FileEntry]:
    """
    Convenience function to walk a tree without keeping the walker around.

    Returns:
        A lazy, single-use iterator of FileEntry
    """
    return TreeWalker(root_path, ignore_filter, on_issue=on_issue).walk()
