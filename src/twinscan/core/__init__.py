"""
Core scanning engine: walker, hasher, grouper, and pipeline orchestrator.

This package contains the performance-critical foundation of TwinScan:
- DirectoryWalker: bounded directory traversal with name/extension filters
- HasherImpl + Sha256AlgorithmImpl / XXHashAlgorithmImpl: partial and full content digests
- FileGrouperImpl: size, digest and metadata bucketing on a bounded thread pool
- DuplicateEngine: five-stage pipeline (size → partial → full → metadata → fuzzy name)
- CancellationToken / ScanDeadline: cooperative cancellation
- Models: FileRecord, DuplicateGroup, ScanRequest, ScanResult

Pure Python, no I/O besides reading the scanned files; never modifies them.
"""

from .scanner import DirectoryWalker
from .grouper import FileGrouperImpl
from .hasher import HasherImpl, Sha256AlgorithmImpl, XXHashAlgorithmImpl, get_algorithm
from .deduplicator import DuplicateEngine
from .cancellation import CancellationToken, ScanDeadline
from .stages import levenshtein
from .models import (
    FileRecord, DuplicateGroup, MatchType, ScanRequest, ScanResult, ScanStats,
    ScanConfig, ScanConfigurationError, ScanState, PipelineStats, WalkResult)

__all__ = [
    "DirectoryWalker",
    "FileGrouperImpl",
    "HasherImpl",
    "Sha256AlgorithmImpl",
    "XXHashAlgorithmImpl",
    "get_algorithm",
    "DuplicateEngine",
    "CancellationToken",
    "ScanDeadline",
    "levenshtein",
    "FileRecord",
    "DuplicateGroup",
    "MatchType",
    "ScanRequest",
    "ScanResult",
    "ScanStats",
    "ScanConfig",
    "ScanConfigurationError",
    "ScanState",
    "PipelineStats",
    "WalkResult",
]
