"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements file hashing utilities using FileRecord and pluggable hash algorithms.

HasherImpl computes a digest of a file's leading window (partial digest) and a
streamed digest of the whole file (full digest). Read errors propagate as OSError;
callers decide whether a file is dropped.
"""

import hashlib
import logging

import xxhash

from twinscan.core.models import FileRecord, ScanConfig
from twinscan.core.interfaces import Hasher, HashAlgorithm

logger = logging.getLogger(__name__)


class Sha256AlgorithmImpl(HashAlgorithm):
    name = "sha256"

    @staticmethod
    def new():
        return hashlib.sha256()


# Non-cryptographic; only suitable where a full SHA-256 pass verifies afterwards
class XXHashAlgorithmImpl(HashAlgorithm):
    name = "xxhash"

    @staticmethod
    def new():
        return xxhash.xxh64()


ALGORITHMS = {
    Sha256AlgorithmImpl.name: Sha256AlgorithmImpl,
    XXHashAlgorithmImpl.name: XXHashAlgorithmImpl,
}


def get_algorithm(name: str) -> HashAlgorithm:
    try:
        return ALGORITHMS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown hash algorithm: '{name}'")


class HasherImpl(Hasher):
    """
    A hasher implementation that supports any algorithm via the HashAlgorithm interface.
    The full digest always uses `full_algorithm`; the partial digest may use a cheaper one.
    """

    def __init__(
        self,
        partial_algorithm: HashAlgorithm = None,
        full_algorithm: HashAlgorithm = None,
        partial_chunk_size: int = ScanConfig.PARTIAL_CHUNK_SIZE,
        read_chunk_size: int = ScanConfig.FULL_HASH_CHUNK_SIZE,
    ):
        self.partial_algorithm = partial_algorithm or Sha256AlgorithmImpl()
        self.full_algorithm = full_algorithm or Sha256AlgorithmImpl()
        self.partial_chunk_size = partial_chunk_size
        self.read_chunk_size = read_chunk_size

    def compute_partial_hash(self, file: FileRecord) -> str:
        """Hash of the first `partial_chunk_size` bytes (the whole file if smaller)."""
        h = self.partial_algorithm.new()
        h.update(self.read_prefix(file, self.partial_chunk_size))
        return h.hexdigest()

    def compute_full_hash(self, file: FileRecord) -> str:
        """Streams the whole file through the full algorithm."""
        h = self.full_algorithm.new()
        with open(file.path, 'rb') as f:
            while chunk := f.read(self.read_chunk_size):
                h.update(chunk)
        return h.hexdigest()

    @staticmethod
    def read_prefix(file: FileRecord, length: int) -> bytes:
        """Reads up to `length` leading bytes of a file."""
        with open(file.path, 'rb') as f:
            return f.read(length)
