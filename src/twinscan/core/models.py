"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models and domain logic for directory scanning and duplicate grouping.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Dict, Optional, Tuple, Union, Callable, Any
import os
from enum import Enum
import logging

from twinscan.utils.convert_utils import ConvertUtils

logger = logging.getLogger(__name__)


class ScanConfigurationError(ValueError):
    """Raised for a malformed or disallowed scan request, before any traversal."""


# =============================
# Configuration
# =============================

class ScanConfig:
    """Default limits and fixed policies of the scanning engine."""
    MAX_FILES = 10000
    MAX_DEPTH = 10
    MAX_HASH_SIZE = 100 * 1024 * 1024  # Files above this are never hashed
    PARTIAL_CHUNK_SIZE = 4096  # Leading window for the partial digest
    FULL_HASH_CHUNK_SIZE = 64 * 1024
    SNIPPET_WINDOW = 1024  # Leading bytes inspected by the snippet filter
    TIMEOUT_MS = 60000
    LEVENSHTEIN_THRESHOLD = 3
    FUZZY_CANDIDATE_LIMIT = 500
    HASH_WORKERS = 4
    DISPLAY_HASH_LENGTH = 12

    SKIPPED_DIRS = frozenset({
        ".git", ".svn", ".hg", "node_modules", "__pycache__", ".claude",
        ".venv", ".mypy_cache", ".pytest_cache", ".tox",
    })

    EXECUTABLE_EXTENSIONS = frozenset({
        ".exe", ".bat", ".cmd", ".sh", ".bash", ".py", ".pl", ".rb",
        ".msi", ".dll", ".so", ".patch", ".com", ".scr", ".pif",
        ".ps1", ".vbs", ".wsf",
    })

    PARTIAL_HASH_ALGORITHMS = ("sha256", "xxhash")


# =============================
# Enums
# =============================

class MatchType(str, Enum):
    EXACT = "exact"
    METADATA = "metadata"
    FUZZY_NAME = "fuzzy_name"

    @property
    def display_name(self) -> str:
        """Human-readable name for console output."""
        mapping = {
            MatchType.EXACT: "Exact content",
            MatchType.METADATA: "Same name and size",
            MatchType.FUZZY_NAME: "Similar name",
        }
        return mapping.get(self, self.value)


class Stage(str, Enum):
    SIZE = "size"
    PARTIAL = "partial"
    FULL = "full"
    METADATA = "metadata"
    FUZZY = "fuzzy"

    @classmethod
    def get_all(cls):
        return [cls.SIZE, cls.PARTIAL, cls.FULL, cls.METADATA, cls.FUZZY]


class ScanState(str, Enum):
    IDLE = "idle"
    WALKING = "walking"
    GROUPING = "grouping"
    CANCELLED = "cancelled"
    DONE = "done"


# ======================
#  Core Data Models
# ======================

def is_executable_name(name: str) -> bool:
    _, ext = os.path.splitext(name)
    return ext.lower() in ScanConfig.EXECUTABLE_EXTENSIONS


@dataclass(frozen=True)
class FileRecord:
    """
    Represents a single file found during traversal.
    Immutable once created; lives only as long as the scan that produced it.
    """
    path: str
    size: int  # in bytes
    mtime: float = 0.0
    inode: Optional[Tuple[int, int]] = None  # (st_dev, st_ino), None if the platform has no identity
    name: str = ""
    is_executable: bool = field(default=False, init=False)

    def __post_init__(self):
        """Derive the base name (when not provided) and the executable flag."""
        if not self.name:
            object.__setattr__(self, "name", os.path.basename(self.path))
        object.__setattr__(self, "is_executable", is_executable_name(self.name))

    @property
    def parent(self) -> str:
        return os.path.dirname(self.path)

    @property
    def lower_name(self) -> str:
        return self.name.lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "size": self.size,
            "mtime": datetime.fromtimestamp(self.mtime, tz=timezone.utc).isoformat(),
            "isExecutable": self.is_executable,
        }

    def __repr__(self):
        return f"<FileRecord path={self.path}, size={self.size}>"


@dataclass
class DuplicateGroup:
    """
    A set of two or more files considered duplicates of each other.
    `key` is the full content digest for exact groups, otherwise the literal
    "metadata" or "fuzzy" tag.
    """
    key: str
    match_type: MatchType
    files: List[FileRecord]

    def __post_init__(self):
        if len(self.files) < 2:
            raise ValueError("A duplicate group needs at least two files.")

    @property
    def duplicate_count(self) -> int:
        """How many files are in this group."""
        return len(self.files)

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]

    @property
    def display_hash(self) -> str:
        """Shortened key for presentation; never compare groups with it."""
        if self.match_type == MatchType.EXACT:
            return self.key[:ScanConfig.DISPLAY_HASH_LENGTH]
        return self.key

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.display_hash,
            "matchType": self.match_type.value,
            "files": [f.to_dict() for f in self.files],
        }

    def __repr__(self):
        return f"<DuplicateGroup {self.match_type.value} key={self.display_hash}, count={len(self.files)}>"


@dataclass
class WalkResult:
    """Output of one directory traversal."""
    files: List[FileRecord] = field(default_factory=list)
    scanned: int = 0
    truncated: bool = False  # max_files was reached
    cancelled: bool = False


@dataclass
class ScanStats:
    scanned: int = 0
    matched: int = 0
    groups: int = 0
    total_duplicates: int = 0
    elapsed_ms: int = 0
    timed_out: bool = False

    def to_dict(self) -> Dict[str, Union[int, bool]]:
        return {
            "scanned": self.scanned,
            "matched": self.matched,
            "groups": self.groups,
            "totalDuplicates": self.total_duplicates,
            "elapsedMs": self.elapsed_ms,
            "timedOut": self.timed_out,
        }


class PipelineStats:
    """
    Per-stage statistics collected while grouping.
    """
    def __init__(self):
        self.total_time: float = 0.0
        self.stage_stats: Dict[str, Dict[str, Union[int, float]]] = {}
        self._listeners: List[Callable[[str, Dict], None]] = []

    def add_listener(self, listener: Callable[[str, Dict], None]):
        """Adds a listener to receive updates when stats are updated."""
        self._listeners.append(listener)

    def update_stage(
            self,
            stage_name: str,
            groups_found: int,
            files_processed: int,
            duration: float
    ) -> None:
        if stage_name not in self.stage_stats:
            self.stage_stats[stage_name] = {
                "groups": 0,
                "files": 0,
                "time": 0.0
            }
        self.stage_stats[stage_name]["groups"] += groups_found
        self.stage_stats[stage_name]["files"] += files_processed
        self.stage_stats[stage_name]["time"] += duration

        self._notify(stage_name, self.stage_stats[stage_name])

    def notify_stage_start(self, stage_name: str):
        self._notify(stage_name, {"status": "started"})

    def _notify(self, stage_name: str, payload: Dict) -> None:
        for listener in self._listeners:
            try:
                listener(stage_name, payload)
            except Exception as e:
                logger.warning(f"Error in stats event handler: {e}")

    def print_summary(self) -> str:
        labels = {
            "size": "Size buckets",
            "partial": "Partial digest buckets",
            "full": "Exact groups",
            "metadata": "Metadata groups",
            "fuzzy": "Fuzzy name groups",
        }

        lines = [
            "Grouping Statistics:",
            f"Total Execution Time: {self.total_time:.3f}s\n",
            "Stage: GROUPS / FILES / TIME"
        ]

        for stage, data in self.stage_stats.items():
            label = labels.get(stage.lower(), stage.title())
            lines.append(f"{label}: {data['groups']} / {data['files']} / {data['time']:.3f}s")

        return "\n".join(lines)


@dataclass
class ScanResult:
    """Structured, serializable outcome of one scan."""
    groups: List[DuplicateGroup]
    stats: ScanStats
    root_dir: str = ""
    stage_stats: Optional[PipelineStats] = None
    success: bool = True

    @property
    def summary(self) -> str:
        if self.stats.matched == 0:
            return "No files found matching the criteria."
        if not self.groups:
            return (f"No duplicate files found in {self.root_dir} "
                    f"(scanned {self.stats.scanned} entries in {self.stats.elapsed_ms}ms).")
        return (f"Found {len(self.groups)} group(s) of duplicate files "
                f"({self.stats.total_duplicates} total) in {self.root_dir}.")

    def groups_of(self, match_type: MatchType) -> List[DuplicateGroup]:
        return [g for g in self.groups if g.match_type == match_type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "scanPath": self.root_dir,
            "groups": [g.to_dict() for g in self.groups],
            "stats": self.stats.to_dict(),
            "text": self.summary,
        }


"""
DTO for scan parameters with built-in validation.
Interface-agnostic; used by the CLI and any other calling layer.
"""


def normalize_extension(ext: Optional[str]) -> Optional[str]:
    """'JPG', '.jpg' and ' .Jpg ' all become '.jpg'; blank becomes None."""
    if ext is None:
        return None
    ext = ext.strip().lower()
    if not ext:
        return None
    if not ext.startswith('.'):
        ext = f".{ext}"
    return ext


@dataclass
class ScanRequest:
    """Parameters for one scan, validated immediately after creation."""
    root_dir: Optional[str] = None
    max_depth: int = ScanConfig.MAX_DEPTH
    max_files: int = ScanConfig.MAX_FILES
    name_filter: Optional[str] = None
    type_filter: Optional[str] = None
    snippet_filter: Optional[str] = None
    timeout_ms: int = ScanConfig.TIMEOUT_MS
    max_hash_size: int = ScanConfig.MAX_HASH_SIZE
    partial_hash: str = "sha256"
    hash_workers: int = ScanConfig.HASH_WORKERS

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        self.name_filter = self.name_filter or None
        self.snippet_filter = self.snippet_filter or None
        self.type_filter = normalize_extension(self.type_filter)

        if not self.root_dir and not (self.name_filter or self.type_filter or self.snippet_filter):
            raise ScanConfigurationError(
                "At least one filter (path, name, type, or snippet) must be provided")

        if self.max_depth < 0:
            raise ScanConfigurationError("Maximum depth cannot be negative")

        if self.max_files <= 0:
            raise ScanConfigurationError("Maximum file count must be positive")

        if self.timeout_ms <= 0:
            raise ScanConfigurationError("Timeout must be positive")

        if self.max_hash_size < 0:
            raise ScanConfigurationError("Maximum hashable size cannot be negative")

        if self.hash_workers < 1:
            raise ScanConfigurationError("At least one hashing worker is required")

        self.partial_hash = self.partial_hash.strip().lower()
        if self.partial_hash not in ScanConfig.PARTIAL_HASH_ALGORITHMS:
            raise ScanConfigurationError(
                f"Unknown partial hash algorithm: '{self.partial_hash}'. "
                f"Valid options: {', '.join(ScanConfig.PARTIAL_HASH_ALGORITHMS)}")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @staticmethod
    def from_human_readable(
            root_dir: Optional[str],
            max_hash_size_str: str = "100MB",
            name_filter: Optional[str] = None,
            type_filter: Optional[str] = None,
            snippet_filter: Optional[str] = None,
            max_depth: int = ScanConfig.MAX_DEPTH,
            max_files: int = ScanConfig.MAX_FILES,
            timeout_ms: int = ScanConfig.TIMEOUT_MS,
            partial_hash: str = "sha256",
            hash_workers: int = ScanConfig.HASH_WORKERS,
    ) -> 'ScanRequest':
        """
        Factory method to create a request from human-readable inputs.
        Useful for CLI argument parsing.
        """
        try:
            max_hash_size = ConvertUtils.human_to_bytes(max_hash_size_str)
        except ValueError as e:
            raise ScanConfigurationError(f"Invalid size format: {e}") from e

        return ScanRequest(
            root_dir=root_dir,
            max_depth=max_depth,
            max_files=max_files,
            name_filter=name_filter,
            type_filter=type_filter,
            snippet_filter=snippet_filter,
            timeout_ms=timeout_ms,
            max_hash_size=max_hash_size,
            partial_hash=partial_hash,
            hash_workers=hash_workers,
        )
