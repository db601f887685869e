"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

engine/deletion.py
Executes a batched delete of the selected files and reconciles the group store.

Partial failure is normal: files whose deletion failed stay in their group and
are not retried. Only a failure of the whole batch call is logged as an error,
and even then nothing is raised to the caller.
"""
import logging
from typing import List, Set

from keepone.core.interfaces import HashingBackend
from keepone.core.models import DeleteResult
from keepone.engine.selection import SelectionEngine
from keepone.engine.store import GroupStore
from keepone.services.duplicate_service import DuplicateService

logger = logging.getLogger(__name__)


class DeletionCoordinator:
    def __init__(self, backend: HashingBackend, store: GroupStore, selection: SelectionEngine):
        self.backend = backend
        self.store = store
        self.selection = selection
        self.is_deleting: bool = False

    async def delete_selected(self) -> List[DeleteResult]:
        """
        Deletes every selected file in one batch and returns the per-file results.
        Returns an empty list without calling the backend when nothing is selected.
        """
        selected_ids = sorted(self.selection.selected_file_ids)
        if not selected_ids:
            return []

        self.is_deleting = True
        try:
            raw_results = await self.backend.delete_duplicate_files(selected_ids)
            results = self._coerce_results(raw_results)

            # Results arrive in arbitrary order: index by id, never by position
            succeeded: Set[str] = {r.id for r in results if r.success}
            failed = [r for r in results if not r.success]

            if self.store.stats is None:
                # Store was reset or a new search started while the batch ran
                logger.debug("No search results to reconcile after delete")
            else:
                groups, stats = DuplicateService.reconcile(self.store.groups, succeeded)
                self.store.replace(groups, stats)
            self.selection.clear_selection()

            logger.info(f"Deleted {len(succeeded)} of {len(selected_ids)} selected file(s)")
            for result in failed:
                logger.warning(f"Failed to delete {result.id}: {result.error or 'unknown error'}")
            return results
        except Exception:
            logger.exception("Delete failed")
            return []
        finally:
            self.is_deleting = False

    @staticmethod
    def _coerce_results(raw_results) -> List[DeleteResult]:
        results = []
        for raw in raw_results or []:
            try:
                results.append(DeleteResult.coerce(raw))
            except ValueError as e:
                logger.warning(f"Ignoring malformed delete result {raw!r}: {e}")
        return results
