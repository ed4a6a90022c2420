"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Implements file grouping strategies using FileRecord objects and a Hasher.
Hash-based grouping runs on a bounded thread pool; a bucket is only returned
once every member has been hashed.
"""

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import List, Dict, Tuple, Any, Callable, Optional

from twinscan.core.interfaces import FileGrouper, StoppedFlag
from twinscan.core.models import FileRecord, ScanConfig
from twinscan.core.hasher import HasherImpl, Hasher

logger = logging.getLogger(__name__)

_STOPPED = object()


class FileGrouperImpl(FileGrouper):
    """
    A concrete implementation of FileGrouper.
    Uses an injected Hasher instance for flexibility and testability.
    """

    def __init__(self, hasher: Hasher = None, max_workers: int = ScanConfig.HASH_WORKERS):
        self.hasher = hasher or HasherImpl()
        self.max_workers = max(1, max_workers)
        self._executor: Optional[ThreadPoolExecutor] = None

    def group_by_size(self, files: List[FileRecord]) -> Dict[int, List[FileRecord]]:
        """Groups files by their size."""
        return self._group_by(files, lambda f: f.size)

    def group_by_name_and_size(self, files: List[FileRecord]) -> Dict[Tuple[str, int], List[FileRecord]]:
        """Groups files by lowercased base name and size."""
        return self._group_by(files, lambda f: (f.lower_name, f.size))

    def group_by_partial_hash(
        self, files: List[FileRecord], stopped_flag: StoppedFlag = None
    ) -> Optional[Dict[str, List[FileRecord]]]:
        """Groups files by the digest of their leading window. None if interrupted."""
        return self._group_by_io(files, self.hasher.compute_partial_hash, stopped_flag)

    def group_by_full_hash(
        self, files: List[FileRecord], stopped_flag: StoppedFlag = None
    ) -> Optional[Dict[str, List[FileRecord]]]:
        """Groups files by full content digest. None if interrupted."""
        return self._group_by_io(files, self.hasher.compute_full_hash, stopped_flag)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @staticmethod
    def _group_by(files: List[FileRecord], key_func: Callable[[FileRecord], Any]) -> Dict[Any, List[FileRecord]]:
        """
        Helper method to group files by any computed key.
        Args:
            files: List of files to group
            key_func: Function that computes a hashable key from a FileRecord
        Returns:
            Dict[key, List[FileRecord]] with only the buckets holding 2+ files
        """
        groups = defaultdict(list)
        for file in files:
            key = key_func(file)
            if key is not None:
                groups[key].append(file)
        return FileGrouperImpl._keep_multiples(groups)

    def _group_by_io(
        self,
        files: List[FileRecord],
        key_func: Callable[[FileRecord], Any],
        stopped_flag: StoppedFlag = None
    ) -> Optional[Dict[Any, List[FileRecord]]]:
        """
        Like _group_by, for keys that read file content.

        The stop flag is checked before each file; a hash already running is
        allowed to finish. If any member was skipped because of the flag the
        whole bucket is abandoned and None is returned. Files that fail to
        read are dropped with a debug log.
        """
        def compute(file: FileRecord):
            if stopped_flag and stopped_flag():
                return _STOPPED
            try:
                return key_func(file)
            except OSError as e:
                logger.debug(f"Error hashing {file.path}: {e}")
                return None

        if self.max_workers == 1 or len(files) < 2:
            keys = [compute(f) for f in files]
        else:
            keys = list(self._get_executor().map(compute, files))

        if any(key is _STOPPED for key in keys):
            return None

        skipped_files = sum(1 for key in keys if key is None)
        if skipped_files > 0:
            logger.debug(f"Skipped {skipped_files} files due to read errors")

        groups = defaultdict(list)
        for file, key in zip(files, keys):
            if key is not None:
                groups[key].append(file)
        return FileGrouperImpl._keep_multiples(groups)

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="twinscan-hash")
        return self._executor

    @staticmethod
    def _keep_multiples(groups: Dict[Any, List[FileRecord]]) -> Dict[Any, List[FileRecord]]:
        # A bucket with a single file cannot hold a duplicate
        return {key: group for key, group in groups.items() if len(group) >= 2}
