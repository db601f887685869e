"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

engine/orchestrator.py
Owns the duplicate search state machine and is the only writer of scan results
into the group store.

STATES
------
IDLE → ANALYZING → HASHING → COMPLETE
                  ↘ CANCELLED (cancel_search)
                  ↘ ERROR     (backend rejected or returned malformed data)

SCAN GENERATIONS
----------------
Every start_search() takes a new generation number and hands it to the backend,
which stamps its progress events with it. cancel_search() and reset() also move
the generation forward. Results and progress belonging to an older generation
are dropped, so a late answer from a cancelled or superseded scan never touches
the store, and the `is_searching` flag is cleared exactly once per invocation.
"""
import logging
from typing import Any, Mapping, Optional, Union

from keepone.core.interfaces import HashingBackend
from keepone.core.models import ScanPhase, ScanProgress, ScanResult, SearchState
from keepone.engine.selection import SelectionEngine
from keepone.engine.store import GroupStore

logger = logging.getLogger(__name__)

_PHASE_STATES = {
    ScanPhase.ANALYZING: SearchState.ANALYZING,
    ScanPhase.HASHING: SearchState.HASHING,
}


class ScanOrchestrator:
    def __init__(self, backend: HashingBackend, store: GroupStore, selection: SelectionEngine):
        self.backend = backend
        self.store = store
        self.selection = selection

        self.is_searching: bool = False
        self.has_searched: bool = False
        self.progress: Optional[ScanProgress] = None
        self.state: SearchState = SearchState.IDLE
        self._generation: int = 0

        # Progress channel is registered once for the orchestrator's lifetime
        self._unsubscribe = backend.subscribe_progress(self._on_progress)

    @property
    def generation(self) -> int:
        return self._generation

    async def start_search(self) -> None:
        """
        Clears groups, stats, progress and selection, then runs one backend scan.
        Backend failures are logged and leave the cleared view in place; nothing is raised.
        """
        self._generation += 1
        generation = self._generation

        self.store.clear()
        self.progress = None
        self.selection.clear_selection()
        self.is_searching = True
        self.state = SearchState.ANALYZING
        logger.info(f"Duplicate search started (generation {generation})")

        try:
            raw_result = await self.backend.find_duplicates(generation=generation)
            if generation != self._generation:
                logger.debug(f"Discarding result of superseded search (generation {generation})")
                return

            result = ScanResult.coerce(raw_result)
            self.store.replace(result.groups, result.stats)
            self.progress = ScanProgress(phase=ScanPhase.COMPLETE, current=0, total=0, generation=generation)
            self.has_searched = True
            self.state = SearchState.COMPLETE
            logger.info(
                f"Duplicate search complete: {result.stats.total_groups} groups, "
                f"{result.stats.total_files} redundant files"
            )
        except Exception:
            if generation == self._generation:
                logger.exception("Duplicate search failed")
                self.state = SearchState.ERROR
            else:
                logger.debug(f"Ignoring failure of superseded search (generation {generation})")
        finally:
            if generation == self._generation:
                self.is_searching = False

    def cancel_search(self) -> None:
        """Sends a best-effort cancel and clears local searching state without waiting for the backend."""
        try:
            self.backend.cancel_duplicate_search()
        except Exception:
            logger.exception("Failed to send cancel request to backend")

        if self.is_searching:
            self.state = SearchState.CANCELLED
            logger.info(f"Duplicate search cancelled (generation {self._generation})")
        self._generation += 1
        self.is_searching = False
        self.progress = None

    def set_progress(self, progress: Union[ScanProgress, Mapping[str, Any]]) -> None:
        """Replaces the progress snapshot wholesale. No coalescing or monotonicity checks."""
        self.progress = ScanProgress.coerce(progress)
        if self.is_searching and self.progress.phase in _PHASE_STATES:
            self.state = _PHASE_STATES[self.progress.phase]

    def reset(self) -> None:
        self._generation += 1
        self.store.clear()
        self.selection.clear_selection()
        self.is_searching = False
        self.has_searched = False
        self.progress = None
        self.state = SearchState.IDLE

    def close(self) -> None:
        """Detaches from the backend progress channel."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_progress(self, event: Union[ScanProgress, Mapping[str, Any]]) -> None:
        try:
            progress = ScanProgress.coerce(event)
        except ValueError as e:
            logger.warning(f"Dropping malformed progress event: {e}")
            return

        if progress.generation is not None and progress.generation != self._generation:
            logger.debug(f"Dropping progress of stale generation {progress.generation}")
            return
        self.set_progress(progress)
