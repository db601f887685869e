"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/local_backend.py
Filesystem implementation of the hashing backend contract.

"Hash only on size collision" strategy:
1. Walk the configured directories and bucket files by exact byte size
2. Compute a content digest only for files whose size bucket has 2+ members
3. Group by digest inside each bucket and keep groups with 2+ files

Blocking IO and hashing run in a worker thread (asyncio.to_thread). Progress
produced on that thread is throttled and handed to the event loop with
call_soon_threadsafe, so listeners always run on the loop that awaits the scan.
"""
import asyncio
import logging
import os
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

from keepone.core.grouper import FileGrouperImpl
from keepone.core.hasher import HasherImpl
from keepone.core.interfaces import FileScanner, ProgressListener
from keepone.core.models import (
    DeleteResult, DuplicateGroup, FileRef, ScanParams, ScanPhase, ScanProgress, ScanResult, compute_stats
)
from keepone.core.scanner import FileScannerImpl
from keepone.services.file_service import FileService

logger = logging.getLogger(__name__)


class ProgressThrottle:
    """Lets through at most one event per interval. `complete` is always let through."""

    def __init__(self, interval_ms: int, clock: Callable[[], float] = time.monotonic):
        self.interval = interval_ms / 1000
        self.clock = clock
        self._last: Optional[float] = None

    def should_emit(self, progress: ScanProgress) -> bool:
        if progress.phase == ScanPhase.COMPLETE:
            return True
        now = self.clock()
        if self._last is None or now - self._last >= self.interval:
            self._last = now
            return True
        return False


class LocalHashingBackend:
    def __init__(
        self,
        params: ScanParams,
        scanner: Optional[FileScanner] = None,
        grouper: Optional[FileGrouperImpl] = None
    ):
        self.params = params
        self.scanner = scanner or FileScannerImpl(
            root_dirs=params.root_dirs,
            min_size=params.min_size_bytes,
            max_size=params.max_size_bytes,
            extensions=params.extensions,
            excluded_dirs=params.excluded_dirs,
        )
        self.grouper = grouper or FileGrouperImpl(HasherImpl(partial=params.partial_hash))
        self._cancelled = threading.Event()
        self._listeners: List[ProgressListener] = []
        self._index: Dict[str, FileRef] = {}
        self._index_lock = threading.Lock()

    # --- Progress channel ---

    def subscribe_progress(self, listener: ProgressListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _dispatch(self, progress: ScanProgress) -> None:
        for listener in list(self._listeners):
            try:
                listener(progress)
            except Exception:
                logger.exception("Error in progress listener")

    # --- Scan ---

    def cancel_duplicate_search(self) -> None:
        self._cancelled.set()
        logger.info("Duplicate search cancelled")

    async def find_duplicates(self, generation: Optional[int] = None) -> ScanResult:
        # Fresh stop flag per scan: starting a new scan never revives a cancelled worker
        cancelled = threading.Event()
        self._cancelled = cancelled
        loop = asyncio.get_running_loop()
        throttle = ProgressThrottle(self.params.progress_interval_ms)

        def emit(progress: ScanProgress) -> None:
            progress.generation = generation
            if throttle.should_emit(progress):
                loop.call_soon_threadsafe(self._dispatch, progress)

        return await asyncio.to_thread(self._find_duplicates_sync, emit, cancelled)

    def _find_duplicates_sync(
        self, emit: Callable[[ScanProgress], None], cancelled: threading.Event
    ) -> ScanResult:
        stopped = cancelled.is_set

        logger.info("Phase 1: Finding size duplicates...")
        emit(ScanProgress(phase=ScanPhase.ANALYZING, current=0, total=0))
        files = self.scanner.scan(stopped_flag=stopped, progress_callback=emit)

        with self._index_lock:
            # A cancelled scan must not overwrite the index of the scan that replaced it
            if not stopped():
                self._index = {f.id: f for f in files}

        size_groups = self.grouper.group_by_size(files)
        total_files_to_hash = sum(len(bucket) for bucket in size_groups.values())
        logger.info(f"Found {len(size_groups)} size groups, {total_files_to_hash} files to hash")

        logger.info("Phase 2: Calculating hashes...")
        groups: List[DuplicateGroup] = []
        processed_files = 0

        for size in sorted(size_groups, reverse=True):
            if stopped():
                logger.info("Duplicate search cancelled by user")
                break

            hashed: List[FileRef] = []
            for file in size_groups[size]:
                if stopped():
                    break
                processed_files += 1
                emit(ScanProgress(
                    phase=ScanPhase.HASHING,
                    current=processed_files,
                    total=total_files_to_hash,
                    current_file=file.name
                ))
                if self.grouper.hasher.compute_digest(file) is not None:
                    hashed.append(file)

            # A bucket interrupted mid-way is incomplete, so it yields no groups
            if stopped():
                logger.info("Duplicate search cancelled by user")
                break

            for digest, members in self.grouper.group_by_digest(hashed).items():
                groups.append(DuplicateGroup(hash=digest, size=size, files=members))

        groups.sort(key=lambda g: g.size, reverse=True)

        logger.info(f"Found {len(groups)} duplicate groups")
        emit(ScanProgress(phase=ScanPhase.COMPLETE, current=processed_files, total=total_files_to_hash))
        return ScanResult(groups=groups, stats=compute_stats(groups))

    # --- Deletion ---

    async def delete_duplicate_files(self, ids: Sequence[str]) -> List[DeleteResult]:
        return await asyncio.to_thread(self._delete_sync, list(ids))

    def _delete_sync(self, ids: List[str]) -> List[DeleteResult]:
        results = []
        for file_id in ids:
            with self._index_lock:
                file = self._index.get(file_id)
            if file is None:
                results.append(DeleteResult(id=file_id, success=False, error="File not found in index"))
                continue

            try:
                if os.path.exists(file.path):
                    FileService.remove(file.path, use_trash=self.params.use_trash)
                with self._index_lock:
                    self._index.pop(file_id, None)
                results.append(DeleteResult(id=file_id, success=True))
            except Exception as e:
                logger.warning(f"Failed to delete {file.path}: {e}")
                results.append(DeleteResult(id=file_id, success=False, error=str(e)))
        return results
