"""
Shared fixtures for duplicate engine tests.
Creates isolated temporary directories with controlled test files and a
hashing backend double whose scan calls resolve only when a test says so.
"""
import asyncio
import os
import tempfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from keepone.core.models import DeleteResult, DuplicateGroup, FileRef, ScanResult, compute_stats


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_files(temp_dir) -> Dict[str, Path]:
    """
    Creates controlled test files for duplicate scenarios:
    - 3 identical 1KB files (one in a subdirectory)
    - 2 identical 2KB files
    - 2 same-size files with different content (size collision, not duplicates)
    - 1 unique file
    - 1 empty file (never a candidate)
    - 1 file with .tmp extension (for extension filters)
    """
    files = {}

    content_a = b"A" * 1024
    files["dup1_a"] = temp_dir / "dup1_a.jpg"
    files["dup1_b"] = temp_dir / "dup1_b.jpg"
    files["dup1_a"].write_bytes(content_a)
    files["dup1_b"].write_bytes(content_a)

    content_b = b"B" * 2048
    files["dup2_a"] = temp_dir / "dup2_a.mp4"
    files["dup2_b"] = temp_dir / "dup2_b.mp4"
    files["dup2_a"].write_bytes(content_b)
    files["dup2_b"].write_bytes(content_b)

    files["collide_a"] = temp_dir / "collide_a.jpg"
    files["collide_b"] = temp_dir / "collide_b.jpg"
    files["collide_a"].write_bytes(b"C" * 1500)
    files["collide_b"].write_bytes(b"D" * 1500)

    files["unique"] = temp_dir / "unique.jpg"
    files["unique"].write_bytes(b"E" * 2500)

    files["empty"] = temp_dir / "empty.jpg"
    files["empty"].write_bytes(b"")

    files["filtered"] = temp_dir / "ignore.tmp"
    files["filtered"].write_bytes(content_a)

    subdir = temp_dir / "subdir"
    subdir.mkdir()
    files["sub_dup"] = subdir / "dup_in_subdir.jpg"
    files["sub_dup"].write_bytes(content_a)

    return files


def make_file(file_id: str, size: int = 1000, path: Optional[str] = None,
              mtime_ms: Optional[float] = None, created_at: Optional[float] = None) -> FileRef:
    return FileRef(
        id=file_id,
        path=path if path is not None else f"/media/{file_id}.jpg",
        size=size,
        mtime_ms=mtime_ms,
        created_at=created_at,
    )


def make_group(group_hash: str, file_ids: List[str], size: int = 1000) -> DuplicateGroup:
    return DuplicateGroup(hash=group_hash, size=size, files=[make_file(fid, size=size) for fid in file_ids])


def make_result(*groups: DuplicateGroup) -> ScanResult:
    return ScanResult(groups=list(groups), stats=compute_stats(groups))


class FakeBackend:
    """
    Hashing backend double.
    Each find_duplicates() call parks on a future recorded in `scan_calls` as
    (generation, future) until the test resolves it.
    """

    def __init__(self):
        self.listeners: List[Callable] = []
        self.scan_calls: List = []
        self.cancel_calls = 0
        self.delete_calls: List[List[str]] = []
        self.delete_results: Optional[Callable[[List[str]], list]] = None
        self.delete_error: Optional[Exception] = None

    def subscribe_progress(self, listener):
        self.listeners.append(listener)

        def unsubscribe():
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    def emit(self, progress) -> None:
        for listener in list(self.listeners):
            listener(progress)

    async def find_duplicates(self, generation=None):
        future = asyncio.get_running_loop().create_future()
        self.scan_calls.append((generation, future))
        return await future

    def cancel_duplicate_search(self) -> None:
        self.cancel_calls += 1

    async def delete_duplicate_files(self, ids):
        self.delete_calls.append(list(ids))
        if self.delete_error is not None:
            raise self.delete_error
        if self.delete_results is None:
            return [DeleteResult(id=i, success=True) for i in ids]
        return self.delete_results(list(ids))

    async def wait_for_scan(self, count: int = 1):
        """Yields to the loop until `count` scan calls are parked."""
        for _ in range(100):
            if len(self.scan_calls) >= count:
                return self.scan_calls[count - 1]
            await asyncio.sleep(0)
        raise AssertionError(f"expected {count} scan call(s), got {len(self.scan_calls)}")


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def scenario_group() -> DuplicateGroup:
    """Two copies differing only in timestamps and path length (10 vs 11 characters)."""
    return DuplicateGroup(hash="h1", size=1000, files=[
        make_file("f1", path="C:\\a\\x.jpg", mtime_ms=100, created_at=50),
        make_file("f2", path="C:\\ab\\y.jpg", mtime_ms=200, created_at=50),
    ])


def set_mtime(path: Path, seconds: float) -> None:
    os.utime(path, (seconds, seconds))
