"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/hasher.py
Implements file content hashing for FileRef objects.
Uses xxHash3 (128-bit) to compute full or partial digests efficiently.

Two modes are supported:
- full: the whole file is streamed through the hash in fixed-size chunks
- partial: for large files only the first and last chunk plus the file size are hashed
"""

import logging
import threading
from typing import Dict, Optional, Tuple

import xxhash

from keepone.core.interfaces import HashAlgorithm
from keepone.core.models import FileRef

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024 * 1024  # 1 MiB
PARTIAL_CHUNK_SIZE = 1024 * 1024  # head and tail size for partial digests


class XXHashAlgorithmImpl:
    """xxHash3 128-bit. Non-cryptographic, but collisions between distinct files are negligible."""

    def new(self):
        return xxhash.xxh3_128()


class HasherImpl:
    """
    Computes content digests and memoizes them for the lifetime of the instance.
    The memo key includes size and mtime so a modified file is re-hashed.
    """

    def __init__(self, algorithm: HashAlgorithm = None, partial: bool = False):
        self.algorithm = algorithm or XXHashAlgorithmImpl()
        self.partial = partial
        self._cache: Dict[Tuple[str, int, Optional[float]], str] = {}
        self._lock = threading.Lock()

    def compute_digest(self, file: FileRef) -> Optional[str]:
        """
        Returns the hex digest of the file, or None when it cannot be read.
        Busy, vanished and permission-denied files are skipped with a warning.
        """
        key = (file.path, file.size, file.mtime_ms)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            if self.partial and file.size > PARTIAL_CHUNK_SIZE * 2:
                digest = self._partial_digest(file.path, file.size)
            else:
                digest = self._full_digest(file.path)
        except FileNotFoundError:
            logger.warning(f"File not found, skipping: {file.path}")
            return None
        except PermissionError:
            logger.warning(f"Permission denied, skipping: {file.path}")
            return None
        except OSError as e:
            logger.warning(f"Failed to read {file.path}, skipping: {e}")
            return None

        with self._lock:
            self._cache[key] = digest
        return digest

    def _full_digest(self, path: str) -> str:
        h = self.algorithm.new()
        with open(path, 'rb') as f:
            for chunk in iter(lambda: f.read(READ_CHUNK_SIZE), b""):
                h.update(chunk)
        return h.hexdigest()

    def _partial_digest(self, path: str, size: int) -> str:
        h = self.algorithm.new()
        with open(path, 'rb') as f:
            h.update(f.read(PARTIAL_CHUNK_SIZE))
            f.seek(size - PARTIAL_CHUNK_SIZE)
            h.update(f.read(PARTIAL_CHUNK_SIZE))
        # Size is part of the digest so equal head/tail with different length never match
        h.update(str(size).encode("ascii"))
        return h.hexdigest()
