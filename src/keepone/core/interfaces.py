"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the duplicate engine.
These protocols enforce structural typing using Python's `typing.Protocol` so the
engine can run against the bundled filesystem backend or any other implementation
(an IPC bridge, a database-backed index, a test double).

Key Components:
---------------
- HashAlgorithm: Standardized interface for hash functions.
- Hasher: Interface for computing a content digest of a file.
- FileScanner: Interface for scanning directories and returning file references.
- HashingBackend: The one-shot scan / cancel / batched delete / progress contract
  consumed by the scan orchestrator and the deletion coordinator.
"""

from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence, Union

from keepone.core.models import DeleteResult, FileRef, ScanProgress, ScanResult

ProgressListener = Callable[[ScanProgress], None]
ProgressCallback = Callable[[ScanProgress], None]
StoppedFlag = Callable[[], bool]


class HashAlgorithm(Protocol):
    """
    Interface for generic hash algorithms.

    Allows plugging in different hashing functions without affecting the grouping logic.
    """

    def new(self) -> Any:
        """Returns a fresh incremental hash object exposing update() and hexdigest()."""
        ...


class Hasher(Protocol):
    """Interface for computing the content digest of a file."""

    def compute_digest(self, file: FileRef) -> Optional[str]:
        """Returns the hex digest, or None if the file could not be read."""
        ...


class FileScanner(Protocol):
    def scan(
        self,
        stopped_flag: Optional[StoppedFlag] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> List[FileRef]:
        """
        Scan files from the configured directories.

        Args:
            stopped_flag: Function that returns True if operation should be canceled.
            progress_callback: Optional callback receiving `analyzing` progress.

        Returns:
            List of file references matching filters.
        """
        ...


class HashingBackend(Protocol):
    """
    Performs size bucketing and digest computation on behalf of the engine.

    Results may be returned either as typed models or as loosely typed mappings;
    the engine validates them before use.
    """

    async def find_duplicates(
        self, generation: Optional[int] = None
    ) -> Union[ScanResult, Mapping[str, Any]]:
        """One-shot scan. Progress events emitted during the call carry `generation`."""
        ...

    def cancel_duplicate_search(self) -> None:
        """Fire-and-forget, best-effort abort request."""
        ...

    async def delete_duplicate_files(
        self, ids: Sequence[str]
    ) -> Sequence[Union[DeleteResult, Mapping[str, Any]]]:
        """Best-effort batched delete. Result order is not guaranteed to match `ids`."""
        ...

    def subscribe_progress(self, listener: ProgressListener) -> Callable[[], None]:
        """Registers a progress listener and returns a callable that unsubscribes it."""
        ...
