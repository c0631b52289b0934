"""
Batch deletion of duplicates with safety checks.

Features:
- Keeper selection: members under a keep root, else the representative
- 4 safety checks before each deletion (content re-verified against keeper)
- send2trash (recoverable from the system trash)
- Dry-run mode (checks only)
"""

from __future__ import annotations

import asyncio
import os
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, Optional

import send2trash
import structlog

from dupfinder.config.exceptions import IOFailure
from dupfinder.file_ops import DEFAULT_CHUNK_SIZE, content_equals
from dupfinder.models import DuplicateGroup

logger = structlog.get_logger(__name__)


class DeletionResult:
    """Result of batch deletion."""

    def __init__(self):
        self.total_to_delete: int = 0
        self.deleted: int = 0
        self.skipped: int = 0
        self.errors: int = 0
        self.space_reclaimed_bytes: int = 0
        self.skip_reasons: list[tuple[str, str]] = []  # (file_path, reason)
        self.error_details: list[tuple[str, str]] = []  # (file_path, error)
        self.deleted_files: list[str] = []


def is_under(path: Path, roots: Iterable[Path]) -> bool:
    """True if path is one of roots or lies below one of them (lexically)."""
    absolute = Path(os.path.abspath(path))
    return any(absolute.is_relative_to(os.path.abspath(root)) for root in roots)


def plan_group(
    group: DuplicateGroup,
    keep_roots: Iterable[Path] = (),
) -> tuple[list[Path], list[Path]]:
    """
    Split a group into keepers and files to delete.

    Every member under a keep root is kept. When no member is, the
    representative is kept. At least one file always survives.

    Returns:
        (keepers, to_delete)
    """
    keep_roots = list(keep_roots)
    keepers = [path for path in group.files if keep_roots and is_under(path, keep_roots)]
    if not keepers:
        keepers = [group.representative]
    to_delete = [path for path in group.files if path not in keepers]
    return keepers, to_delete


class SafeDeleter:
    """
    Batch file deleter with safety checks and send2trash.

    Safety checks (per file):
    1. File still exists
    2. Keeper still exists
    3. File is not the keeper itself (reached through a link)
    4. Content still equals the keeper (not modified since scan)
    """

    def __init__(
        self,
        dry_run: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        equals_fn: Optional[Callable[[Path, Path], bool]] = None,
        progress_callback: Optional[Callable[[DeletionResult], None]] = None,
    ):
        """
        Initialize deleter.

        Args:
            dry_run: Run safety checks and count, but never delete
            chunk_size: Read buffer for the content re-check
            equals_fn: Content collaborator (default: content_equals)
            progress_callback: Called after each file for progress updates
        """
        self.dry_run = dry_run
        self.equals_fn = equals_fn or partial(content_equals, chunk_size=chunk_size)
        self.progress_callback = progress_callback

    async def delete_duplicates(
        self,
        groups: list[DuplicateGroup],
        keep_roots: Iterable[Path] = (),
    ) -> DeletionResult:
        """
        Delete every non-keeper member of the duplicate groups.

        Args:
            groups: Duplicate groups from a scan
            keep_roots: Files under these roots are never deleted

        Returns:
            DeletionResult with counts and details
        """
        result = DeletionResult()
        keep_roots = list(keep_roots)
        plans = [(group, *plan_group(group, keep_roots)) for group in groups]
        result.total_to_delete = sum(len(to_delete) for _, _, to_delete in plans)

        logger.info(
            "dupfinder_deletion_started",
            total_to_delete=result.total_to_delete,
            groups=len(groups),
            dry_run=self.dry_run,
        )

        for group, keepers, to_delete in plans:
            keeper = keepers[0]
            for file_path in to_delete:
                safe, reason = await asyncio.to_thread(self._safety_check, file_path, keeper)

                if not safe:
                    result.skipped += 1
                    result.skip_reasons.append((str(file_path), reason))
                    logger.info(
                        "dupfinder_file_skipped",
                        file_path=str(file_path),
                        keeper=str(keeper),
                        reason=reason,
                    )
                elif self.dry_run:
                    result.deleted_files.append(str(file_path))
                    result.space_reclaimed_bytes += group.size_bytes
                else:
                    self._delete(file_path, group, result)

                if self.progress_callback:
                    self.progress_callback(result)

        logger.info(
            "dupfinder_deletion_completed",
            deleted=result.deleted,
            skipped=result.skipped,
            errors=result.errors,
            space_reclaimed_bytes=result.space_reclaimed_bytes,
            dry_run=self.dry_run,
        )

        return result

    def _delete(self, file_path: Path, group: DuplicateGroup, result: DeletionResult) -> None:
        try:
            send2trash.send2trash(str(file_path))
        except OSError as e:
            result.errors += 1
            result.error_details.append((str(file_path), str(e)))
            logger.error(
                "dupfinder_delete_failed",
                file_path=str(file_path),
                error=str(e),
            )
            return

        result.deleted += 1
        result.space_reclaimed_bytes += group.size_bytes
        result.deleted_files.append(str(file_path))
        logger.info(
            "dupfinder_file_deleted",
            file_path=str(file_path),
            size_bytes=group.size_bytes,
        )

    def _safety_check(self, file_path: Path, keeper: Path) -> tuple[bool, str]:
        """
        Run 4 safety checks before deleting a file.

        Returns:
            (is_safe, reason_if_not_safe)
        """
        # Check 1: File still exists
        if not file_path.exists():
            return False, "File no longer exists"

        # Check 2: Keeper still exists
        if not keeper.exists():
            return False, "Keeper file no longer exists"

        # Check 3: Same underlying file as the keeper (symlink or hard link)
        try:
            if os.path.samefile(file_path, keeper):
                return False, "Same file as keeper"
        except OSError as e:
            return False, f"Cannot stat file: {e}"

        # Check 4: Content unchanged since scan
        try:
            if not self.equals_fn(file_path, keeper):
                return False, "Content mismatch (file modified since scan)"
        except IOFailure as e:
            return False, f"Cannot read file for content check: {e}"

        return True, ""
