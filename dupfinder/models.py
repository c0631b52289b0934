"""
Pydantic models for dupfinder.

Models:
- TraversalPolicy: Which entry kinds the traverser emits
- ScanConfig: Scan configuration (roots, links, workers, strictness)
- DuplicateGroup: Group of byte-identical files (same length, same content)
- BucketFailure: A size bucket whose clustering was aborted
- ScanResult: Final scan result
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class TraversalPolicy(BaseModel):
    """Immutable gates controlling which entries a traversal emits."""

    model_config = ConfigDict(frozen=True)

    visit_directories_on_enter: bool = False
    visit_directories_on_leave: bool = False
    visit_files: bool = True
    follow_symbolic_links: bool = True
    visit_failed_entries: bool = False

    @classmethod
    def files_only(cls, follow_symbolic_links: bool = True) -> "TraversalPolicy":
        """Policy used for duplicate finding: files only, never directories or failures."""
        return cls(
            visit_directories_on_enter=False,
            visit_directories_on_leave=False,
            visit_files=True,
            follow_symbolic_links=follow_symbolic_links,
            visit_failed_entries=False,
        )


class ScanConfig(BaseModel):
    """Configuration for a duplicate scan."""

    roots: list[Path] = Field(
        default_factory=list,
        description="Files or directories to scan, in order",
    )
    follow_symbolic_links: bool = Field(
        default=True,
        description="Descend into symbolic links (cycles are suppressed)",
    )
    max_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Concurrent bucket clustering tasks (None = min(32, cpu_count + 4))",
    )
    chunk_size: int = Field(
        default=65536,
        ge=1,
        description="Read buffer size in bytes for content comparison",
    )
    strict: bool = Field(
        default=False,
        description="Fail the whole scan when any bucket fails instead of returning a partial result",
    )
    keep_roots: list[Path] = Field(
        default_factory=list,
        description="Files under these roots are never selected for deletion",
    )

    @field_validator("roots", "keep_roots", mode="before")
    @classmethod
    def validate_paths(cls, v):
        """Accept a single path or a sequence of paths."""
        if isinstance(v, (str, Path)):
            return [v]
        return v


class DuplicateGroup(BaseModel):
    """Group of files known to be mutually byte-identical (discovery order)."""

    group_id: int
    size_bytes: int
    files: list[Path] = Field(min_length=2)

    @property
    def representative(self) -> Path:
        """First-seen member, the comparison anchor."""
        return self.files[0]

    @property
    def reclaimable_bytes(self) -> int:
        return self.size_bytes * (len(self.files) - 1)


class BucketFailure(BaseModel):
    """A size bucket whose clustering aborted on an I/O failure."""

    size_bytes: int
    path: Path = Field(description="Path whose content could not be read")
    error: str
    candidates: list[Path] = Field(default_factory=list)


class ScanResult(BaseModel):
    """Final scan result."""

    scan_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    total_scanned: int = 0
    groups: list[DuplicateGroup] = Field(default_factory=list)
    failures: list[BucketFailure] = Field(default_factory=list)

    @computed_field
    @property
    def duplicate_groups_count(self) -> int:
        return len(self.groups)

    @computed_field
    @property
    def total_duplicates(self) -> int:
        """Files beyond the first in every group."""
        return sum(len(group.files) - 1 for group in self.groups)

    @computed_field
    @property
    def space_reclaimable_bytes(self) -> int:
        return sum(group.reclaimable_bytes for group in self.groups)

    @computed_field
    @property
    def partial(self) -> bool:
        """True when at least one bucket could not be clustered."""
        return bool(self.failures)

    def as_paths(self) -> list[list[Path]]:
        """Plain duplicate groups, representative first."""
        return [list(group.files) for group in self.groups]
