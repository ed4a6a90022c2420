"""
Unified scan orchestrator.
This is the SINGLE entry point to the engine, used by the CLI and any other calling layer.
Transport, path allow-listing and scan-id bookkeeping live in the caller.
"""
import logging
import os
from pathlib import Path
from typing import List, Optional, Callable

from twinscan.core.cancellation import CancellationToken, ScanDeadline
from twinscan.core.deduplicator import DuplicateEngine
from twinscan.core.models import (
    DuplicateGroup, FileRecord, ScanConfigurationError, ScanRequest, ScanResult, ScanState, ScanStats,
)
from twinscan.core.scanner import DirectoryWalker

logger = logging.getLogger(__name__)


class ScanCommand:
    """
    Drives one scan through Idle → Walking → Grouping → Done.

    A timeout or caller cancellation during Walking skips grouping; during
    Grouping it keeps the groups already resolved. Either way the result is
    flagged `timed_out` and returned normally. Only a malformed request raises
    (ScanConfigurationError), and it does so before any traversal.

    Usage:
        request = ScanRequest(root_dir="/data/photos", type_filter="jpg")
        token = CancellationToken()
        result = ScanCommand().execute(request, cancel_token=token)
    """

    def __init__(self):
        self.state = ScanState.IDLE
        self._files: List[FileRecord] = []

    def execute(
            self,
            request: ScanRequest,
            cancel_token: Optional[CancellationToken] = None,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None
    ) -> ScanResult:
        """
        Run a scan with the given request.

        Args:
            request: Validated scan parameters (root already allow-listed by the caller)
            cancel_token: Optional caller-owned token; cancelling it ends the scan early
            progress_callback: (stage: str, current: int, total: Optional[int]) -> None

        Returns:
            ScanResult, possibly partial

        Raises:
            ScanConfigurationError: If the root is missing or not a directory
        """
        root_dir = self._resolve_root(request)
        deadline = ScanDeadline(request.timeout_seconds, cancel_token)
        groups: List[DuplicateGroup] = []
        stage_stats = None

        logger.debug(f"Scanning {root_dir} (timeout {request.timeout_ms}ms)")

        # Step 1: Walk
        self.state = ScanState.WALKING
        walker = DirectoryWalker(
            root_dir=root_dir,
            max_depth=request.max_depth,
            max_files=request.max_files,
            name_filter=request.name_filter,
            type_filter=request.type_filter,
        )
        walk = walker.scan(stopped_flag=deadline, progress_callback=progress_callback)
        self._files = walk.files

        # Step 2: Group, unless the walk was interrupted
        if deadline.fired:
            self.state = ScanState.CANCELLED
        elif self._files:
            self.state = ScanState.GROUPING
            engine = DuplicateEngine.from_request(request)
            groups, stage_stats = engine.find_duplicates(
                self._files,
                stopped_flag=deadline,
                progress_callback=progress_callback
            )
            if deadline.fired:
                self.state = ScanState.CANCELLED

        if deadline.expired:
            logger.warning("Scan timed out, returning partial results")
        elif deadline.cancelled:
            logger.warning("Scan cancelled, returning partial results")

        stats = ScanStats(
            scanned=walk.scanned,
            matched=len(self._files),
            groups=len(groups),
            total_duplicates=sum(len(g.files) for g in groups),
            elapsed_ms=deadline.elapsed_ms(),
            timed_out=deadline.fired,
        )
        self.state = ScanState.DONE
        logger.debug(f"Found {stats.groups} duplicate groups in {stats.elapsed_ms}ms"
                     f"{' (timed out)' if stats.timed_out else ''}")

        return ScanResult(groups=groups, stats=stats, root_dir=root_dir, stage_stats=stage_stats)

    @staticmethod
    def _resolve_root(request: ScanRequest) -> str:
        """A filter-only request scans the working directory."""
        root_dir = os.path.abspath(request.root_dir or os.getcwd())
        root = Path(root_dir)
        try:
            if not root.exists():
                raise ScanConfigurationError(f"Directory does not exist: {root_dir}")
            if not root.is_dir():
                raise ScanConfigurationError(f"Not a directory: {root_dir}")
        except OSError as e:
            raise ScanConfigurationError(f"Cannot access {root_dir}: {e}") from e
        return root_dir

    def get_files(self) -> List[FileRecord]:
        """Get walked files after execution."""
        return self._files.copy()


def scan_duplicates(
        request: ScanRequest,
        cancel_token: Optional[CancellationToken] = None,
        progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None
) -> ScanResult:
    """Run one scan with a fresh ScanCommand."""
    return ScanCommand().execute(request, cancel_token=cancel_token, progress_callback=progress_callback)
