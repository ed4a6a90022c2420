"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/stages.py
Grouping pipeline stages of TwinScan's duplicate detection engine.

STAGES
------
SizeStage          : Buckets files by exact size, drops unique sizes
PartialHashStage   : Rebuckets by (size, digest of the leading 4 KiB); skips oversized files
FullHashStage      : Rebuckets by full SHA-256, collapses hard links, emits EXACT groups
MetadataStage      : (lowercased name, size) across 2+ folders, emits METADATA groups
FuzzyNameStage     : Edit distance between names, emits FUZZY_NAME pairs

STAGE CONTRACTS
---------------
Each stage implements `process(candidates, confirmed, claimed, ...)`:
  • Accepts candidate buckets from the previous stage
  • Returns refined buckets for the next stage
  • Appends confirmed groups to the shared list and their paths to `claimed`
  • Reports progress via callback (stage name, processed count, total count)
  • Respects cancellation via stopped_flag; a bucket is never half-processed

The first three stages refine content buckets. The last two ignore
`candidates` and look at every scanned file not yet in `claimed`, so they
are given the full file list at construction time.
"""

import logging
from typing import List, Set, Dict, Tuple

from twinscan.core.grouper import FileGrouperImpl
from twinscan.core.hasher import HasherImpl
from twinscan.core.interfaces import GroupingStage, StoppedFlag, ProgressCallback
from twinscan.core.models import FileRecord, DuplicateGroup, MatchType, ScanConfig, Stage

logger = logging.getLogger(__name__)


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance (substitution, insertion, deletion all cost 1)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


def collapse_hard_links(files: List[FileRecord]) -> List[FileRecord]:
    """Keep the first record per on-disk identity; records without identity are kept as is."""
    seen = set()
    distinct = []
    for f in files:
        if f.inode is not None:
            if f.inode in seen:
                continue
            seen.add(f.inode)
        distinct.append(f)
    return distinct


# =============================
# Content stages
# =============================
class SizeStage(GroupingStage):
    def __init__(self, grouper: FileGrouperImpl):
        self.grouper = grouper

    def get_stage_name(self) -> str:
        return Stage.SIZE.value

    def process(
            self,
            candidates: List[List[FileRecord]],
            confirmed: List[DuplicateGroup],
            claimed: Set[str],
            stopped_flag: StoppedFlag = None,
            progress_callback: ProgressCallback = None
    ) -> List[List[FileRecord]]:
        """
        Group by file size.
        `candidates` is a single bucket holding every scanned file.
        """
        if stopped_flag and stopped_flag():
            return []

        files = [f for bucket in candidates for f in bucket]
        size_groups = self.grouper.group_by_size(files)

        if progress_callback:
            progress_callback(self.get_stage_name(), len(files), len(files))

        return list(size_groups.values())


class PartialHashStage(GroupingStage):
    """
    Cheap pre-filter: files that differ in their first few KiB never reach full hashing.
    """
    def __init__(self, grouper: FileGrouperImpl, max_hash_size: int = ScanConfig.MAX_HASH_SIZE):
        self.grouper = grouper
        self.max_hash_size = max_hash_size

    def get_stage_name(self) -> str:
        return Stage.PARTIAL.value

    def process(
            self,
            candidates: List[List[FileRecord]],
            confirmed: List[DuplicateGroup],
            claimed: Set[str],
            stopped_flag: StoppedFlag = None,
            progress_callback: ProgressCallback = None
    ) -> List[List[FileRecord]]:
        new_candidates = []
        total_files = sum(len(bucket) for bucket in candidates)
        processed_files = 0

        for bucket in candidates:
            if stopped_flag and stopped_flag():
                break

            hashable = [f for f in bucket if f.size <= self.max_hash_size]
            if len(hashable) < len(bucket):
                logger.debug(f"Excluded {len(bucket) - len(hashable)} files above "
                             f"{self.max_hash_size} bytes from hashing")

            if len(hashable) >= 2:
                hash_groups = self.grouper.group_by_partial_hash(hashable, stopped_flag)
                if hash_groups is None:
                    break
                new_candidates.extend(hash_groups.values())

            processed_files += len(bucket)
            if progress_callback:
                progress_callback(self.get_stage_name(), processed_files, total_files)

        return new_candidates


class FullHashStage(GroupingStage):
    """
    Final content verification. Surviving buckets become EXACT groups.
    """
    def __init__(
        self,
        grouper: FileGrouperImpl,
        snippet_filter: str = None,
        snippet_window: int = ScanConfig.SNIPPET_WINDOW,
    ):
        self.grouper = grouper
        self.snippet_filter = snippet_filter
        self.snippet_window = snippet_window

    def get_stage_name(self) -> str:
        return Stage.FULL.value

    def process(
            self,
            candidates: List[List[FileRecord]],
            confirmed: List[DuplicateGroup],
            claimed: Set[str],
            stopped_flag: StoppedFlag = None,
            progress_callback: ProgressCallback = None
    ) -> List[List[FileRecord]]:
        total_files = sum(len(bucket) for bucket in candidates)
        processed_files = 0

        for bucket in candidates:
            if stopped_flag and stopped_flag():
                break

            hash_groups = self.grouper.group_by_full_hash(bucket, stopped_flag)
            if hash_groups is None:
                break

            for digest, files in hash_groups.items():
                distinct = collapse_hard_links(files)
                if len(distinct) < 2:
                    logger.debug(f"Dropped hard-linked group {digest[:12]} ({len(files)} links)")
                    continue
                if self.snippet_filter and not self._snippet_matches(distinct):
                    continue
                confirmed.append(DuplicateGroup(key=digest, match_type=MatchType.EXACT, files=distinct))
                claimed.update(f.path for f in distinct)

            processed_files += len(bucket)
            if progress_callback:
                progress_callback(self.get_stage_name(), processed_files, total_files)

        return []

    def _snippet_matches(self, files: List[FileRecord]) -> bool:
        """Best effort: only the leading window of each member is inspected."""
        hasher = getattr(self.grouper, "hasher", None) or HasherImpl()
        for f in files:
            try:
                prefix = hasher.read_prefix(f, self.snippet_window)
            except OSError as e:
                logger.debug(f"Could not read snippet window of {f.path}: {e}")
                continue
            if self.snippet_filter in prefix.decode("utf-8", errors="replace"):
                return True
        return False


# =============================
# Name stages
# =============================
class MetadataStage(GroupingStage):
    """
    Same lowercased name and size in different folders. Never reads content.
    """
    def __init__(self, grouper: FileGrouperImpl, files: List[FileRecord]):
        self.grouper = grouper
        self.files = files

    def get_stage_name(self) -> str:
        return Stage.METADATA.value

    def process(
            self,
            candidates: List[List[FileRecord]],
            confirmed: List[DuplicateGroup],
            claimed: Set[str],
            stopped_flag: StoppedFlag = None,
            progress_callback: ProgressCallback = None
    ) -> List[List[FileRecord]]:
        if stopped_flag and stopped_flag():
            return []

        unclaimed = [f for f in self.files if f.path not in claimed]
        name_groups = self.grouper.group_by_name_and_size(unclaimed)

        for (name, size), files in name_groups.items():
            if len({f.parent for f in files}) < 2:
                continue
            if any(f.path in claimed for f in files):
                continue
            confirmed.append(DuplicateGroup(key="metadata", match_type=MatchType.METADATA, files=files))
            claimed.update(f.path for f in files)

        if progress_callback:
            progress_callback(self.get_stage_name(), len(unclaimed), len(unclaimed))
        return []


class FuzzyNameStage(GroupingStage):
    """
    Pairs of unclaimed files whose lowercased names are within a small edit distance.
    Quadratic, so only the first `candidate_limit` unclaimed files are compared.
    """
    def __init__(
        self,
        files: List[FileRecord],
        threshold: int = ScanConfig.LEVENSHTEIN_THRESHOLD,
        candidate_limit: int = ScanConfig.FUZZY_CANDIDATE_LIMIT,
    ):
        self.files = files
        self.threshold = threshold
        self.candidate_limit = candidate_limit

    def get_stage_name(self) -> str:
        return Stage.FUZZY.value

    def process(
            self,
            candidates: List[List[FileRecord]],
            confirmed: List[DuplicateGroup],
            claimed: Set[str],
            stopped_flag: StoppedFlag = None,
            progress_callback: ProgressCallback = None
    ) -> List[List[FileRecord]]:
        if stopped_flag and stopped_flag():
            return []

        names = [f for f in self.files if f.path not in claimed][:self.candidate_limit]
        emitted: Set[Tuple[str, str]] = set()
        distance_cache: Dict[Tuple[str, str], int] = {}

        for i, first in enumerate(names):
            if stopped_flag and stopped_flag():
                break
            for second in names[i + 1:]:
                pair_names = (first.lower_name, second.lower_name)
                distance = distance_cache.get(pair_names)
                if distance is None:
                    distance = levenshtein(*pair_names)
                    distance_cache[pair_names] = distance
                if not 0 < distance <= self.threshold:
                    continue

                pair_key = tuple(sorted((first.path, second.path)))
                if pair_key in emitted:
                    continue
                emitted.add(pair_key)
                confirmed.append(DuplicateGroup(
                    key="fuzzy", match_type=MatchType.FUZZY_NAME, files=[first, second]))

            if progress_callback:
                progress_callback(self.get_stage_name(), i + 1, len(names))

        return []
