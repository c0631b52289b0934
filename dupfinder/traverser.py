"""
Lazy, restartable filesystem traversal.

Features:
- Iterative depth-first walk (no recursion limit), entries in name order
- Per-kind emission gates from TraversalPolicy (enter/leave/files/failures)
- Symbolic links either followed or treated as leaves
- Link cycle suppression via (st_dev, st_ino) of the open directory chain
- Continue-on-error across roots and entries
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

import structlog

from dupfinder.config.exceptions import EntryVisitFailure, PathError, RootNotFound
from dupfinder.models import TraversalPolicy

logger = structlog.get_logger(__name__)

DirKey = tuple[int, int]


def as_roots(roots: Iterable[Path | str] | Path | str) -> tuple[Path, ...]:
    """Normalise roots to a tuple of paths; a single path is one root, not a sequence."""
    if isinstance(roots, (str, os.PathLike)):
        roots = [roots]
    return tuple(Path(root) for root in roots)


@dataclass
class _Frame:
    """A directory open on the current descent path."""

    path: Path
    key: DirKey
    children: Iterator[Path]


class PathTraverser:
    """
    Iterable over the paths found under one or more roots.

    Each call to iter() performs a fresh walk, so two consumers never
    share state or cached results. Only stat/scandir are used; nothing
    on disk is modified.
    """

    def __init__(
        self,
        roots: Iterable[Path | str] | Path | str,
        policy: Optional[TraversalPolicy] = None,
        failure_callback: Optional[Callable[[PathError], None]] = None,
    ):
        """
        Initialize traverser.

        Args:
            roots: Files or directories to walk, in order (or a single path)
            policy: Emission gates (default: files only, links followed)
            failure_callback: Called with every RootNotFound / EntryVisitFailure
        """
        self.roots = as_roots(roots)
        self.policy = policy if policy is not None else TraversalPolicy()
        self.failure_callback = failure_callback

    def __iter__(self) -> Iterator[Path]:
        for root in self.roots:
            yield from self._walk_root(root)

    def _walk_root(self, root: Path) -> Iterator[Path]:
        try:
            os.lstat(root)
        except FileNotFoundError:
            logger.warning("traverse_root_not_found", root=str(root))
            yield from self._fail(RootNotFound(root, "no such file or directory"))
            return
        except OSError as e:
            yield from self._fail(EntryVisitFailure(root, e.strerror or str(e)))
            return

        stack: list[_Frame] = []
        open_dirs: set[DirKey] = set()

        yield from self._visit(root, stack, open_dirs)

        while stack:
            frame = stack[-1]
            child = next(frame.children, None)
            if child is None:
                stack.pop()
                open_dirs.discard(frame.key)
                if self.policy.visit_directories_on_leave:
                    yield frame.path
                continue
            yield from self._visit(child, stack, open_dirs)

    def _visit(self, path: Path, stack: list[_Frame], open_dirs: set[DirKey]) -> Iterator[Path]:
        policy = self.policy

        try:
            st = os.stat(path, follow_symlinks=policy.follow_symbolic_links)
        except OSError as e:
            # Broken link when following, or entry vanished since readdir
            yield from self._fail(EntryVisitFailure(path, e.strerror or str(e)))
            return

        if stat.S_ISLNK(st.st_mode):
            yield from self._visit_link_leaf(path)
            return

        if stat.S_ISDIR(st.st_mode):
            key = (st.st_dev, st.st_ino)
            if key in open_dirs:
                yield from self._fail(EntryVisitFailure(path, "symbolic link cycle"))
                return

            try:
                with os.scandir(path) as entries:
                    children = sorted(entry.name for entry in entries)
            except OSError as e:
                yield from self._fail(EntryVisitFailure(path, e.strerror or str(e)))
                return

            if policy.visit_directories_on_enter:
                yield path
            open_dirs.add(key)
            stack.append(_Frame(path, key, (path / name for name in children)))

        elif stat.S_ISREG(st.st_mode):
            if policy.visit_files:
                yield path

        else:
            logger.debug("traverse_special_file_skipped", path=str(path))

    def _visit_link_leaf(self, path: Path) -> Iterator[Path]:
        """Symbolic link not followed: emit per the kind of its target."""
        try:
            target = os.stat(path)
        except OSError as e:
            yield from self._fail(EntryVisitFailure(path, e.strerror or str(e)))
            return

        if stat.S_ISDIR(target.st_mode):
            if self.policy.visit_directories_on_enter or self.policy.visit_directories_on_leave:
                yield path
        elif stat.S_ISREG(target.st_mode):
            if self.policy.visit_files:
                yield path

    def _fail(self, failure: PathError) -> Iterator[Path]:
        logger.debug(
            "traverse_entry_failed",
            path=str(failure.path),
            reason=failure.reason,
            error_type=type(failure).__name__,
        )
        if self.failure_callback:
            self.failure_callback(failure)
        if self.policy.visit_failed_entries:
            yield failure.path


def traverse(
    roots: Iterable[Path | str] | Path | str,
    policy: Optional[TraversalPolicy] = None,
    failure_callback: Optional[Callable[[PathError], None]] = None,
) -> PathTraverser:
    """Build a restartable traversal over roots."""
    return PathTraverser(roots, policy=policy, failure_callback=failure_callback)
