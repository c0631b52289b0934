"""
dupfinder - find groups of byte-identical files.

Modules:
- traverser: lazy, restartable filesystem walk with emission policy
- grouper: size buckets, representative-only content clustering, parallel buckets
- file_ops: length and content comparison collaborators
- report_generator: CSV dry-run report
- deleter: safe deletion with send2trash
- models: Pydantic data models
"""

from dupfinder.grouper import DuplicateFinder, find_duplicates
from dupfinder.models import (
    BucketFailure,
    DuplicateGroup,
    ScanConfig,
    ScanResult,
    TraversalPolicy,
)
from dupfinder.traverser import PathTraverser, traverse

__all__ = [
    "BucketFailure",
    "DuplicateFinder",
    "DuplicateGroup",
    "PathTraverser",
    "ScanConfig",
    "ScanResult",
    "TraversalPolicy",
    "find_duplicates",
    "traverse",
]
