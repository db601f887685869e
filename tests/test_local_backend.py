"""
Tests for the filesystem hashing backend.
Runs real scans over temporary directories and checks grouping, progress
delivery, cancellation and batched deletion.
"""
import asyncio
import os
import threading
from collections import Counter

import pytest

from keepone.core.grouper import FileGrouperImpl
from keepone.core.hasher import HasherImpl
from keepone.core.models import ScanParams, ScanPhase, ScanProgress
from keepone.core.scanner import FileScannerImpl, file_id_for_path
from keepone.services.local_backend import LocalHashingBackend, ProgressThrottle


def backend_for(root, **kwargs) -> LocalHashingBackend:
    kwargs.setdefault("progress_interval_ms", 0)
    kwargs.setdefault("use_trash", False)
    return LocalHashingBackend(ScanParams(root_dirs=[str(root)], **kwargs))


def names(group):
    return sorted(os.path.basename(f.path) for f in group.files)


# =============================================================================
# 1. SCANNING
# =============================================================================
class TestFindDuplicates:

    @pytest.mark.asyncio
    async def test_groups_identical_content(self, temp_dir, test_files):
        result = await backend_for(temp_dir).find_duplicates()

        # Largest files first; same-size files with different content are not grouped
        assert [g.size for g in result.groups] == [2048, 1024]
        assert names(result.groups[0]) == ["dup2_a.mp4", "dup2_b.mp4"]
        assert names(result.groups[1]) == ["dup1_a.jpg", "dup1_b.jpg", "dup_in_subdir.jpg", "ignore.tmp"]
        assert result.stats.total_groups == 2
        assert result.stats.total_files == 4
        assert result.stats.wasted_space == 2048 + 3 * 1024

    @pytest.mark.asyncio
    async def test_extension_filter_applies(self, temp_dir, test_files):
        result = await backend_for(temp_dir, extensions=["jpg"]).find_duplicates()
        assert len(result.groups) == 1
        assert names(result.groups[0]) == ["dup1_a.jpg", "dup1_b.jpg", "dup_in_subdir.jpg"]

    @pytest.mark.asyncio
    async def test_result_passes_schema_validation(self, temp_dir, test_files):
        result = await backend_for(temp_dir).find_duplicates()
        assert result.validate() is result

    @pytest.mark.asyncio
    async def test_no_duplicates(self, temp_dir):
        (temp_dir / "a.bin").write_bytes(b"a" * 10)
        (temp_dir / "b.bin").write_bytes(b"b" * 20)
        result = await backend_for(temp_dir).find_duplicates()
        assert result.groups == []
        assert result.stats.total_groups == 0

    @pytest.mark.asyncio
    async def test_missing_root_raises(self, temp_dir):
        with pytest.raises(RuntimeError):
            await backend_for(temp_dir / "missing").find_duplicates()


# =============================================================================
# 2. PROGRESS
# =============================================================================
class TestProgress:

    @pytest.mark.asyncio
    async def test_events_are_stamped_and_end_with_complete(self, temp_dir, test_files):
        backend = backend_for(temp_dir)
        events = []
        backend.subscribe_progress(events.append)

        await backend.find_duplicates(generation=7)

        assert events
        assert all(e.generation == 7 for e in events)
        assert events[0].phase == ScanPhase.ANALYZING
        assert events[-1].phase == ScanPhase.COMPLETE
        hashing = [e for e in events if e.phase == ScanPhase.HASHING]
        # Only size collisions are hashed: 2 + 4 + 2 files in the 2048, 1024 and 1500 buckets
        assert [e.current for e in hashing] == list(range(1, 9))
        assert all(e.total == 8 for e in hashing)

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery(self, temp_dir, test_files):
        backend = backend_for(temp_dir)
        events = []
        unsubscribe = backend.subscribe_progress(events.append)
        unsubscribe()

        await backend.find_duplicates()
        assert events == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_scan(self, temp_dir, test_files, caplog):
        backend = backend_for(temp_dir)

        def broken(progress):
            raise ValueError("boom")

        backend.subscribe_progress(broken)
        result = await backend.find_duplicates()

        assert len(result.groups) == 2
        assert "Error in progress listener" in caplog.text


class TestProgressThrottle:

    def test_limits_rate(self):
        now = [0.0]
        throttle = ProgressThrottle(100, clock=lambda: now[0])
        event = ScanProgress(ScanPhase.HASHING, 1, 10)

        assert throttle.should_emit(event)
        now[0] = 0.05
        assert not throttle.should_emit(event)
        now[0] = 0.1
        assert throttle.should_emit(event)

    def test_complete_always_passes(self):
        throttle = ProgressThrottle(100, clock=lambda: 0.0)
        assert throttle.should_emit(ScanProgress(ScanPhase.HASHING))
        assert throttle.should_emit(ScanProgress(ScanPhase.COMPLETE))
        assert throttle.should_emit(ScanProgress(ScanPhase.COMPLETE))

    def test_zero_interval_passes_everything(self):
        throttle = ProgressThrottle(0, clock=lambda: 0.0)
        assert all(throttle.should_emit(ScanProgress(ScanPhase.ANALYZING)) for _ in range(5))


# =============================================================================
# 3. CANCELLATION
# =============================================================================
class CancellingScanner:
    """Wraps a real scanner and requests cancellation as soon as the walk finishes."""

    def __init__(self, inner: FileScannerImpl):
        self.inner = inner
        self.backend = None

    def scan(self, stopped_flag=None, progress_callback=None):
        files = self.inner.scan(stopped_flag, progress_callback)
        self.backend.cancel_duplicate_search()
        return files


class GatedHasher:
    """Real hasher whose first call blocks until released, recording calls per worker thread."""

    def __init__(self):
        self.inner = HasherImpl()
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = Counter()
        self.gate_thread = None
        self._lock = threading.Lock()

    def compute_digest(self, file):
        thread = threading.get_ident()
        with self._lock:
            self.calls[thread] += 1
            first = self.gate_thread is None
            if first:
                self.gate_thread = thread
        if first:
            self.entered.set()
            self.release.wait(10)
        return self.inner.compute_digest(file)


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_stops_hashing(self, temp_dir, test_files):
        params = ScanParams(root_dirs=[str(temp_dir)], progress_interval_ms=0)
        scanner = CancellingScanner(FileScannerImpl([str(temp_dir)]))
        backend = LocalHashingBackend(params, scanner=scanner)
        scanner.backend = backend
        events = []
        backend.subscribe_progress(events.append)

        result = await backend.find_duplicates()

        assert result.groups == []
        assert not any(e.phase == ScanPhase.HASHING for e in events)
        assert events[-1].phase == ScanPhase.COMPLETE

    @pytest.mark.asyncio
    async def test_next_search_clears_cancel_request(self, temp_dir, test_files):
        backend = backend_for(temp_dir)
        backend.cancel_duplicate_search()
        result = await backend.find_duplicates()
        assert len(result.groups) == 2

    @pytest.mark.asyncio
    async def test_new_search_does_not_revive_cancelled_scan(self, temp_dir, test_files):
        hasher = GatedHasher()
        params = ScanParams(root_dirs=[str(temp_dir)], progress_interval_ms=0, use_trash=False)
        backend = LocalHashingBackend(params, grouper=FileGrouperImpl(hasher))

        first = asyncio.create_task(backend.find_duplicates(generation=1))
        assert await asyncio.to_thread(hasher.entered.wait, 10)

        backend.cancel_duplicate_search()
        second = asyncio.create_task(backend.find_duplicates(generation=2))
        await asyncio.sleep(0)
        hasher.release.set()
        first_result, second_result = await asyncio.gather(first, second)

        # The cancelled worker stops right after the file it was blocked on
        assert hasher.calls[hasher.gate_thread] == 1
        assert first_result.groups == []
        assert len(second_result.groups) == 2

    @pytest.mark.asyncio
    async def test_cancelled_scan_does_not_replace_index(self, temp_dir, test_files):
        params = ScanParams(root_dirs=[str(temp_dir)], progress_interval_ms=0, use_trash=False)
        scanner = CancellingScanner(FileScannerImpl([str(temp_dir)]))
        backend = LocalHashingBackend(params, scanner=scanner)
        scanner.backend = backend
        target = file_id_for_path(str(test_files["dup1_a"]))
        complete = await backend_for(temp_dir).find_duplicates()
        assert target in {f.id for g in complete.groups for f in g.files}

        await backend.find_duplicates()
        results = await backend.delete_duplicate_files([target])

        assert results[0].error == "File not found in index"
        assert test_files["dup1_a"].exists()


# =============================================================================
# 4. DELETION
# =============================================================================
class TestDeleteDuplicateFiles:

    @pytest.mark.asyncio
    async def test_permanent_delete_removes_files(self, temp_dir, test_files):
        backend = backend_for(temp_dir, use_trash=False)
        result = await backend.find_duplicates()
        victims = result.groups[0].files[1:]

        results = await backend.delete_duplicate_files([f.id for f in victims])

        assert all(r.success for r in results)
        assert sorted(r.id for r in results) == sorted(f.id for f in victims)
        for file in victims:
            assert not os.path.exists(file.path)
        assert os.path.exists(result.groups[0].files[0].path)

    @pytest.mark.asyncio
    async def test_unknown_id_fails(self, temp_dir, test_files):
        backend = backend_for(temp_dir)
        await backend.find_duplicates()

        results = await backend.delete_duplicate_files(["no-such-id"])

        assert results[0].success is False
        assert results[0].error == "File not found in index"

    @pytest.mark.asyncio
    async def test_deleted_id_leaves_index(self, temp_dir, test_files):
        backend = backend_for(temp_dir)
        result = await backend.find_duplicates()
        file_id = result.groups[0].files[0].id

        first = await backend.delete_duplicate_files([file_id])
        second = await backend.delete_duplicate_files([file_id])

        assert first[0].success
        assert not second[0].success

    @pytest.mark.asyncio
    async def test_per_file_failure_does_not_stop_batch(self, temp_dir, test_files):
        backend = backend_for(temp_dir)
        result = await backend.find_duplicates()
        blocked, other = result.groups[1].files[:2]

        # A directory where the file used to be cannot be unlinked
        os.remove(blocked.path)
        os.mkdir(blocked.path)

        results = {r.id: r for r in await backend.delete_duplicate_files([blocked.id, other.id])}

        assert results[blocked.id].success is False
        assert results[blocked.id].error
        assert results[other.id].success is True
        assert not os.path.exists(other.path)

    @pytest.mark.asyncio
    async def test_trash_mode_uses_file_service(self, temp_dir, test_files, monkeypatch):
        trashed = []
        monkeypatch.setattr("keepone.services.file_service.send2trash", trashed.append)
        backend = backend_for(temp_dir, use_trash=True)
        result = await backend.find_duplicates()
        victim = result.groups[0].files[1]

        results = await backend.delete_duplicate_files([victim.id])

        assert results[0].success
        assert trashed == [str(os.path.realpath(victim.path))]
