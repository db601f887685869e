"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Groups FileRef objects by size and by content digest.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

from keepone.core.hasher import HasherImpl
from keepone.core.interfaces import Hasher
from keepone.core.models import FileRef

logger = logging.getLogger(__name__)


class FileGrouperImpl:
    """
    Buckets files by exact byte size, then by digest within a bucket.
    Uses an injected Hasher instance for flexibility and testability.
    """

    def __init__(self, hasher: Hasher = None):
        self.hasher = hasher or HasherImpl()

    def group_by_size(self, files: List[FileRef]) -> Dict[int, List[FileRef]]:
        """Groups files by their size."""
        return self._group_by(files, lambda f: f.size)

    def group_by_digest(self, files: List[FileRef]) -> Dict[str, List[FileRef]]:
        """Groups files by full content digest. Unreadable files are left out."""
        return self._group_by(files, self.hasher.compute_digest)

    @staticmethod
    def _group_by(files: List[FileRef], key_func: Callable[[FileRef], Any]) -> Dict[Any, List[FileRef]]:
        """
        Helper method to group files by any computed key.
        Args:
            files: List of files to group
            key_func: Function that computes a hashable key from a FileRef (None = skip)
        Returns:
            Dict[key, List[FileRef]] holding only groups with 2+ files
        """
        groups = defaultdict(list)
        for file in files:
            key = key_func(file)
            if key is not None:
                groups[key].append(file)

        return {key: group for key, group in groups.items() if len(group) >= 2}
