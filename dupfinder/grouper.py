"""
Duplicate grouping: size buckets, then content clusters.

Steps:
1. cliques(): one pass over the traversal, bucket paths by exact length
2. spread_duplicates(): per bucket, compare each candidate against one
   representative per tentative group
3. find_files() / scan(): cluster every bucket with >1 member as an
   independent unit of work on a bounded pool, then merge

Grouping compares a candidate only with each group's representative.
This is valid because byte equality over same-length files is an
equivalence relation: if the representative equals the candidate, every
member does. A file modified between its length query and its comparison
gives undefined grouping; the deleter re-checks content before acting.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections import defaultdict
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, Optional

import structlog

from dupfinder.config.exceptions import IOFailure, PathError, ScanIncompleteError
from dupfinder.file_ops import DEFAULT_CHUNK_SIZE, content_equals, length
from dupfinder.models import (
    BucketFailure,
    DuplicateGroup,
    ScanConfig,
    ScanResult,
    TraversalPolicy,
)
from dupfinder.traverser import PathTraverser, as_roots

logger = structlog.get_logger(__name__)

Clique = list[Path]
DuplicateFiles = list[Path]


def default_max_workers() -> int:
    """Same sizing as concurrent.futures.ThreadPoolExecutor."""
    return min(32, (os.cpu_count() or 1) + 4)


class DuplicateFinder:
    """
    Finds groups of byte-identical files under a set of roots.

    The traversal policy is fixed to files only; directories and failed
    entries are never candidates.
    """

    def __init__(
        self,
        roots: Iterable[Path | str] | Path | str,
        follow_symbolic_links: bool = True,
        max_workers: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        strict: bool = False,
        length_fn: Callable[[Path], int] = length,
        equals_fn: Optional[Callable[[Path, Path], bool]] = None,
        failure_callback: Optional[Callable[[PathError], None]] = None,
    ):
        """
        Initialize finder.

        Args:
            roots: Files or directories to scan (or a single path)
            follow_symbolic_links: Descend into symbolic links
            max_workers: Concurrent bucket tasks (default: min(32, cpu_count + 4))
            chunk_size: Read buffer for the default content comparison
            strict: scan() raises ScanIncompleteError instead of returning a partial result
            length_fn: Length collaborator (raises NotAccessible)
            equals_fn: Content collaborator (raises IOFailure)
            failure_callback: Receives traversal failures that were skipped

        Raises:
            ValueError: If max_workers is below 1
        """
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")

        self.roots = as_roots(roots)
        self.follow_symbolic_links = follow_symbolic_links
        self.traversable_paths = PathTraverser(
            self.roots,
            policy=TraversalPolicy.files_only(follow_symbolic_links),
            failure_callback=failure_callback,
        )
        self.max_workers = max_workers if max_workers is not None else default_max_workers()
        self.strict = strict
        self.length_fn = length_fn
        self.equals_fn = equals_fn or partial(content_equals, chunk_size=chunk_size)

    @classmethod
    def from_config(
        cls,
        config: ScanConfig,
        failure_callback: Optional[Callable[[PathError], None]] = None,
    ) -> "DuplicateFinder":
        return cls(
            config.roots,
            follow_symbolic_links=config.follow_symbolic_links,
            max_workers=config.max_workers,
            chunk_size=config.chunk_size,
            strict=config.strict,
            failure_callback=failure_callback,
        )

    def cliques(self) -> dict[int, Clique]:
        """
        Bucket every candidate by exact byte length.

        A candidate's identity is its resolved path: the same file reached
        again (repeated root, followed link) is kept only once, first seen.

        Returns:
            Mapping length -> candidates of that length (empty if no candidates)

        Raises:
            NotAccessible: If any candidate's length cannot be queried
        """
        buckets: dict[int, Clique] = defaultdict(list)
        seen: set[str] = set()

        for path in self.traversable_paths:
            identity = os.path.realpath(path)
            if identity in seen:
                logger.debug("dupfinder_candidate_repeated", path=str(path), resolved=identity)
                continue
            seen.add(identity)
            buckets[self.length_fn(path)].append(path)

        return dict(buckets)

    def spread_duplicates(self, clique: Clique) -> list[DuplicateFiles]:
        """
        Spread one size bucket into groups of identical files.

        Each candidate is compared with the first member of each tentative
        group until one matches; it then joins that group. With no match it
        starts a new group. Groups left with a single member are dropped.

        Raises:
            IOFailure: If a comparison cannot complete; the bucket is abandoned
        """
        groups: list[DuplicateFiles] = []

        for candidate in clique:
            for group in groups:
                if self.equals_fn(candidate, group[0]):
                    group.append(candidate)
                    break
            else:
                groups.append([candidate])

        return [group for group in groups if len(group) > 1]

    async def scan(self) -> ScanResult:
        """
        Main scan entry point.

        Returns:
            ScanResult with duplicate groups and any failed buckets

        Raises:
            NotAccessible: Length query failed (whole scan aborted)
            ScanIncompleteError: A bucket failed and strict=True
        """
        start_time = time.time()
        logger.info(
            "dupfinder_scan_started",
            roots=[str(root) for root in self.roots],
            follow_symbolic_links=self.follow_symbolic_links,
            max_workers=self.max_workers,
        )

        buckets = await asyncio.to_thread(self.cliques)
        total_scanned = sum(len(clique) for clique in buckets.values())
        crowds = {size: clique for size, clique in buckets.items() if len(clique) > 1}

        logger.info(
            "dupfinder_buckets_built",
            total_scanned=total_scanned,
            buckets=len(buckets),
            candidate_buckets=len(crowds),
        )

        groups, failures = await self._spread_all(crowds)

        result = ScanResult(
            total_scanned=total_scanned,
            groups=[
                DuplicateGroup(group_id=group_id, size_bytes=size, files=files)
                for group_id, (size, files) in enumerate(groups, start=1)
            ],
            failures=failures,
        )

        logger.info(
            "dupfinder_scan_completed",
            total_scanned=result.total_scanned,
            duplicate_groups=result.duplicate_groups_count,
            total_duplicates=result.total_duplicates,
            space_reclaimable_bytes=result.space_reclaimable_bytes,
            failed_buckets=len(failures),
            elapsed_seconds=round(time.time() - start_time, 3),
        )

        if failures and self.strict:
            raise ScanIncompleteError(failures, result.as_paths())

        return result

    async def find_files(self) -> list[DuplicateFiles]:
        """
        Duplicate groups as plain path lists, each with at least two members.

        Raises:
            NotAccessible: Length query failed
            ScanIncompleteError: Any bucket failed (groups of the others attached)
        """
        result = await self.scan()
        if result.failures:
            raise ScanIncompleteError(result.failures, result.as_paths())
        return result.as_paths()

    async def _spread_all(
        self, crowds: dict[int, Clique]
    ) -> tuple[list[tuple[int, DuplicateFiles]], list[BucketFailure]]:
        """Fan out one task per bucket, join, then merge in bucket order."""
        semaphore = asyncio.Semaphore(self.max_workers)

        async def spread_one(clique: Clique) -> list[DuplicateFiles]:
            async with semaphore:
                return await asyncio.to_thread(self.spread_duplicates, clique)

        sizes = list(crowds)
        outcomes = await asyncio.gather(
            *(spread_one(crowds[size]) for size in sizes),
            return_exceptions=True,
        )

        groups: list[tuple[int, DuplicateFiles]] = []
        failures: list[BucketFailure] = []
        unexpected: Optional[BaseException] = None

        for size, outcome in zip(sizes, outcomes):
            if isinstance(outcome, IOFailure):
                logger.error(
                    "dupfinder_bucket_failed",
                    size_bytes=size,
                    candidates=len(crowds[size]),
                    path=str(outcome.path),
                    error=str(outcome),
                )
                failures.append(
                    BucketFailure(
                        size_bytes=size,
                        path=outcome.path,
                        error=str(outcome),
                        candidates=crowds[size],
                    )
                )
            elif isinstance(outcome, BaseException):
                logger.error(
                    "dupfinder_bucket_crashed",
                    size_bytes=size,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                unexpected = unexpected or outcome
            else:
                groups.extend((size, files) for files in outcome)

        if unexpected is not None:
            raise unexpected

        return groups, failures


async def find_duplicates(
    roots: Iterable[Path | str] | Path | str,
    follow_symbolic_links: bool = True,
    *,
    max_workers: Optional[int] = None,
) -> list[DuplicateFiles]:
    """
    Find groups of byte-identical files under roots.

    Args:
        roots: Files or directories to scan
        follow_symbolic_links: Descend into symbolic links (cycles suppressed)
        max_workers: Concurrent bucket tasks

    Returns:
        List of duplicate groups, each with at least two paths

    Raises:
        NotAccessible: A candidate's length could not be queried
        ScanIncompleteError: A content comparison failed in some bucket
    """
    finder = DuplicateFinder(
        roots,
        follow_symbolic_links=follow_symbolic_links,
        max_workers=max_workers,
    )
    return await finder.find_files()
