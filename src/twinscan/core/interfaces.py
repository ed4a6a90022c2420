"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the scanning engine.
These protocols enforce structural typing using Python's `typing.Protocol` to ensure
consistency across modules while maintaining flexibility and modularity.

Key Components:
---------------
- HashAlgorithm: Incremental hash function (SHA-256, xxHash64).
- Hasher: Interface for computing partial and full digests of files.
- FileScanner: Interface for walking directories and returning file records.
- FileGrouper: Interface for bucketing files by size, digests, or metadata.
- GroupingStage: Interface for one stage of the grouping pipeline.
- Deduplicator: Interface for the engine coordinating all stages.
"""

from typing import Protocol, List, Dict, Tuple, Optional, Callable, Set, Any
from twinscan.core.models import (
    FileRecord,
    DuplicateGroup,
    PipelineStats,
    WalkResult,
)

StoppedFlag = Optional[Callable[[], bool]]
ProgressCallback = Optional[Callable[[str, int, Optional[int]], None]]


# ===== Interfaces =====

class HashAlgorithm(Protocol):
    """
    Interface for incremental hash algorithms.

    Allows plugging in different hashing functions like SHA-256 or xxHash
    without affecting the rest of the grouping logic.
    """
    name: str

    def new(self) -> Any:
        """Returns a fresh hash object exposing update() and hexdigest()."""
        ...


class Hasher(Protocol):
    """Interface for hashing different parts of a file."""
    def compute_partial_hash(self, file: FileRecord) -> str: ...
    def compute_full_hash(self, file: FileRecord) -> str: ...
    def read_prefix(self, file: FileRecord, length: int) -> bytes: ...


class FileScanner(Protocol):
    """
    Interface for walking file systems and collecting file records.
    """
    def scan(
        self,
        stopped_flag: StoppedFlag = None,
        progress_callback: ProgressCallback = None
    ) -> WalkResult:
        """
        Walk the configured directory.

        Args:
            stopped_flag: Function that returns True if the walk should stop.
            progress_callback: Optional callback for reporting progress (stage, current, total).

        Returns:
            WalkResult with the collected records and the visited-entry count.
        """
        ...


class FileGrouper(Protocol):
    """
    Interface for bucketing files by a computed key.
    Every returned bucket holds at least two files.
    """
    def group_by_size(self, files: List[FileRecord]) -> Dict[int, List[FileRecord]]: ...

    def group_by_partial_hash(
        self, files: List[FileRecord], stopped_flag: StoppedFlag = None
    ) -> Optional[Dict[str, List[FileRecord]]]: ...

    def group_by_full_hash(
        self, files: List[FileRecord], stopped_flag: StoppedFlag = None
    ) -> Optional[Dict[str, List[FileRecord]]]: ...

    def group_by_name_and_size(self, files: List[FileRecord]) -> Dict[Tuple[str, int], List[FileRecord]]: ...


# =============================
# Stage Interfaces
# =============================

class GroupingStage(Protocol):
    """
    One step of the grouping pipeline.

    A stage receives candidate buckets from the previous stage, appends any
    groups it confirms to `confirmed`, records claimed paths in `claimed`,
    and returns the buckets the next stage should refine.
    """

    def get_stage_name(self) -> str:
        ...

    def process(
        self,
        candidates: List[List[FileRecord]],
        confirmed: List[DuplicateGroup],
        claimed: Set[str],
        stopped_flag: StoppedFlag = None,
        progress_callback: ProgressCallback = None
    ) -> List[List[FileRecord]]:
        ...


class Deduplicator(Protocol):
    """
    Interface for the grouping engine.
    """
    def find_duplicates(
        self,
        files: List[FileRecord],
        stopped_flag: StoppedFlag = None,
        progress_callback: ProgressCallback = None
    ) -> Tuple[List[DuplicateGroup], PipelineStats]:
        """
        Run the full pipeline over a flat file list.

        Returns:
            A tuple of the groups resolved so far and the per-stage statistics.
        """
        ...
