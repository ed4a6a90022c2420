"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Implements bounded directory traversal.
Features:
- Walks directories with os.walk, pruning subdirectories before they are entered
- Bounds traversal by depth (root = depth 0) and by collected file count
- Applies case-insensitive name-substring and extension filters
- Never follows symbolic links and never re-enters a directory identity
- Returns a WalkResult with the records and the visited-entry count
"""

import os
import stat
import time
from pathlib import Path
from typing import Optional, Set, Tuple
import logging

from twinscan.core.models import FileRecord, ScanConfig, ScanConfigurationError, WalkResult, normalize_extension
from twinscan.core.interfaces import FileScanner, StoppedFlag, ProgressCallback

logger = logging.getLogger(__name__)


class DirectoryWalker(FileScanner):
    """
    Walks a directory tree and collects FileRecords that pass the filters.

    Attributes:
        root_dir: Root directory to walk (already validated by the calling layer)
        max_depth: Deepest directory level that is still listed
        max_files: Walk stops once this many records are collected
        name_filter: Case-insensitive substring the base name must contain
        type_filter: Extension the file must have (".txt", "txt" and "TXT" are equivalent)
    """

    def __init__(
        self,
        root_dir: str,
        max_depth: int = ScanConfig.MAX_DEPTH,
        max_files: int = ScanConfig.MAX_FILES,
        name_filter: Optional[str] = None,
        type_filter: Optional[str] = None,
        skipped_dirs=ScanConfig.SKIPPED_DIRS,
    ):
        self.root_dir = root_dir
        self.max_depth = max_depth
        self.max_files = max_files
        self.name_filter = name_filter.lower() if name_filter else None
        self.type_filter = normalize_extension(type_filter)
        self.skipped_dirs = frozenset(skipped_dirs)

    def scan(self,
             stopped_flag: StoppedFlag = None,
             progress_callback: ProgressCallback = None) -> WalkResult:
        """
        Single-pass walk with progress updates and debug logging.
        Returns whatever was collected when a limit or the stop flag is hit.
        """
        logger.debug(f"Root directory: {self.root_dir}")
        logger.debug(f"Filters: name={self.name_filter}, type={self.type_filter}, "
                     f"max_depth={self.max_depth}, max_files={self.max_files}")

        root_path = Path(self.root_dir)
        if not root_path.is_dir():
            raise ScanConfigurationError(f"Not a directory: {self.root_dir}")

        result = WalkResult()
        if stopped_flag and stopped_flag():
            result.cancelled = True
            return result

        visited: Set[Tuple[int, int]] = set()
        root_identity = self._dir_identity(str(root_path))
        if root_identity:
            visited.add(root_identity)

        start_time = time.time()
        root_depth = str(root_path).rstrip(os.sep).count(os.sep)

        for current, dirs, files in os.walk(str(root_path), onerror=self._on_walk_error):
            if stopped_flag and stopped_flag():
                result.cancelled = True
                break

            depth = current.rstrip(os.sep).count(os.sep) - root_depth
            dirs[:] = [d for d in dirs if self._prefilter_dir(current, d, depth + 1, visited)]

            for filename in files:
                if stopped_flag and stopped_flag():
                    result.cancelled = True
                    break
                if len(result.files) >= self.max_files:
                    break

                result.scanned += 1
                record = self._process_file(os.path.join(current, filename))
                if record:
                    result.files.append(record)

            if result.cancelled:
                break
            if len(result.files) >= self.max_files:
                result.truncated = True
                logger.debug(f"File limit reached ({self.max_files}), stopping walk")
                break

            if progress_callback:
                progress_callback("walking", result.scanned, None)

        logger.debug(f"Walk finished in {time.time() - start_time:.2f}s: "
                     f"{len(result.files)} files kept, {result.scanned} entries visited")
        return result

    def _prefilter_dir(self, parent: str, name: str, depth: int, visited: Set[Tuple[int, int]]) -> bool:
        """Decide before os.walk enters a subdirectory."""
        if name in self.skipped_dirs:
            logger.debug(f"Skipping well-known directory: {os.path.join(parent, name)}")
            return False

        if depth > self.max_depth:
            return False

        path = os.path.join(parent, name)
        identity = self._dir_identity(path)
        if identity is None:
            return False
        if identity in visited:
            logger.debug(f"Skipping already visited directory: {path}")
            return False
        visited.add(identity)
        return True

    @staticmethod
    def _dir_identity(path: str) -> Optional[Tuple[int, int]]:
        """(st_dev, st_ino) of a real directory; None for links and unreadable entries."""
        try:
            st = os.lstat(path)
        except OSError as e:
            logger.debug(f"Could not stat directory {path}: {e}")
            return None
        if stat.S_ISLNK(st.st_mode) or not stat.S_ISDIR(st.st_mode):
            return None
        return (st.st_dev, st.st_ino)

    @staticmethod
    def _on_walk_error(error: OSError) -> None:
        logger.debug(f"Could not list directory: {error}")

    def _process_file(self, path: str) -> Optional[FileRecord]:
        """
        Build a FileRecord for one listed entry if it passes the filters.
        Returns None for filtered, linked, special, or vanished entries.
        """
        name = os.path.basename(path)

        if not self._name_passes(name):
            return None

        if not self._extension_passes(name):
            return None

        try:
            st = os.lstat(path)
        except OSError as e:
            logger.debug(f"Could not stat {path}: {e}")
            return None

        if stat.S_ISLNK(st.st_mode):
            logger.debug(f"Skipping symbolic link: {path}")
            return None
        if not stat.S_ISREG(st.st_mode):
            return None

        inode = (st.st_dev, st.st_ino) if st.st_ino else None
        return FileRecord(
            path=os.path.abspath(path),
            size=st.st_size,
            mtime=st.st_mtime,
            inode=inode,
            name=name,
        )

    def _name_passes(self, name: str) -> bool:
        if not self.name_filter:
            return True
        return self.name_filter in name.lower()

    def _extension_passes(self, name: str) -> bool:
        if not self.type_filter:
            return True
        _, ext = os.path.splitext(name)
        return ext.lower() == self.type_filter
