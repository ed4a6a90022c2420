"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

deduplicator.py
Implements the pipeline-based grouping engine.

    size → partial digest → full digest (EXACT) → name+size (METADATA) → name distance (FUZZY_NAME)

Each stage only sees files that no earlier stage has claimed.
"""
import time
import logging
from typing import List, Tuple, Set, Optional

from twinscan.core.models import FileRecord, DuplicateGroup, PipelineStats, ScanConfig
from twinscan.core.grouper import FileGrouperImpl
from twinscan.core.hasher import HasherImpl, get_algorithm
from twinscan.core.interfaces import Deduplicator, GroupingStage, StoppedFlag, ProgressCallback
from twinscan.core.stages import SizeStage, PartialHashStage, FullHashStage, MetadataStage, FuzzyNameStage

logger = logging.getLogger(__name__)


# =============================
# Main Engine Class
# =============================
class DuplicateEngine(Deduplicator):
    """
    Implements multi-stage duplicate detection using a pipeline architecture.
    Holds no state between calls; every call builds its own accumulators.
    """
    def __init__(
        self,
        grouper: Optional[FileGrouperImpl] = None,
        max_hash_size: int = ScanConfig.MAX_HASH_SIZE,
        snippet_filter: Optional[str] = None,
        fuzzy_threshold: int = ScanConfig.LEVENSHTEIN_THRESHOLD,
        fuzzy_candidate_limit: int = ScanConfig.FUZZY_CANDIDATE_LIMIT,
    ):
        self.grouper = grouper or FileGrouperImpl()
        self.max_hash_size = max_hash_size
        self.snippet_filter = snippet_filter
        self.fuzzy_threshold = fuzzy_threshold
        self.fuzzy_candidate_limit = fuzzy_candidate_limit

    @classmethod
    def from_request(cls, request) -> 'DuplicateEngine':
        """Build an engine configured from a ScanRequest."""
        hasher = HasherImpl(partial_algorithm=get_algorithm(request.partial_hash))
        return cls(
            grouper=FileGrouperImpl(hasher, max_workers=request.hash_workers),
            max_hash_size=request.max_hash_size,
            snippet_filter=request.snippet_filter,
        )

    def find_duplicates(
        self,
        files: List[FileRecord],
        stopped_flag: StoppedFlag = None,
        progress_callback: ProgressCallback = None
    ) -> Tuple[List[DuplicateGroup], PipelineStats]:
        """
        Main grouping pipeline.
        Args:
            files: Records produced by the directory walker
            stopped_flag: Function that returns True if the pipeline should stop.
                Groups confirmed before that point are still returned.
            progress_callback: Reports progress per stage.
        Returns:
            Tuple[List[DuplicateGroup], PipelineStats]
        """
        stats = PipelineStats()
        total_start_time = time.time()

        confirmed: List[DuplicateGroup] = []
        claimed: Set[str] = set()
        candidates: List[List[FileRecord]] = [list(files)]

        try:
            for stage in self._build_pipeline(files):
                if stopped_flag and stopped_flag():
                    logger.debug(f"Pipeline stopped before stage '{stage.get_stage_name()}'")
                    break
                stats.notify_stage_start(stage.get_stage_name())
                groups_before = len(confirmed)
                start_time = time.time()
                candidates = stage.process(
                    candidates,
                    confirmed,
                    claimed,
                    stopped_flag=stopped_flag,
                    progress_callback=progress_callback
                )
                duration = time.time() - start_time
                DuplicateEngine._update_stats(stats, stage.get_stage_name(), duration,
                                              candidates, confirmed[groups_before:])
        finally:
            self.grouper.close()

        stats.total_time = time.time() - total_start_time
        logger.debug(f"Pipeline produced {len(confirmed)} groups in {stats.total_time:.3f}s")
        return confirmed, stats

    def _build_pipeline(self, files: List[FileRecord]) -> List[GroupingStage]:
        return [
            SizeStage(self.grouper),
            PartialHashStage(self.grouper, max_hash_size=self.max_hash_size),
            FullHashStage(self.grouper, snippet_filter=self.snippet_filter),
            MetadataStage(self.grouper, files),
            FuzzyNameStage(files, threshold=self.fuzzy_threshold,
                           candidate_limit=self.fuzzy_candidate_limit),
        ]

    @staticmethod
    def _update_stats(
        stats: PipelineStats,
        stage: str,
        duration: float,
        candidates: List[List[FileRecord]],
        new_groups: List[DuplicateGroup]
    ):
        """
        Candidate buckets still in flight plus groups confirmed by this stage.
        """
        total_files = sum(len(b) for b in candidates) + sum(len(g.files) for g in new_groups)
        total_groups = len(candidates) + len(new_groups)
        stats.update_stage(
            stage_name=stage,
            groups_found=total_groups,
            files_processed=total_files,
            duration=duration
        )
