"""
dupfinder - Canonical exception hierarchy.

Source of truth for every error raised by the traverser, the grouper,
the deleter and the configuration loader.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from dupfinder.models import BucketFailure


class DupFinderError(Exception):
    """Base exception dupfinder."""


class ConfigError(DupFinderError):
    """Invalid configuration (YAML file, environment or CLI overrides)."""


class PathError(DupFinderError):
    """Error bound to a single filesystem path."""

    def __init__(self, path: Path | str, reason: str = ""):
        self.path = Path(path)
        self.reason = reason
        message = str(self.path)
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RootNotFound(PathError):
    """A configured root does not exist. Sibling roots are unaffected."""


class EntryVisitFailure(PathError):
    """An entry could not be visited (permission, broken link, link cycle)."""


class NotAccessible(PathError):
    """File length could not be queried. Fatal to the whole scan."""


class IOFailure(PathError):
    """File content could not be fully read during comparison. Fatal to its bucket."""


class ScanIncompleteError(DupFinderError):
    """
    One or more size buckets could not be clustered.

    Carries the failures and the duplicate groups of every bucket that
    did complete, so callers can still act on them.
    """

    def __init__(
        self,
        failures: list["BucketFailure"],
        groups: Optional[list[list[Path]]] = None,
    ):
        self.failures = failures
        self.groups = groups if groups is not None else []
        paths = ", ".join(str(f.path) for f in failures)
        super().__init__(f"{len(failures)} bucket(s) failed: {paths}")
