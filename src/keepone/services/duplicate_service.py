"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/duplicate_service.py
Pure helpers for reshaping duplicate groups after files disappear.
"""
from typing import Collection, List, Tuple

from keepone.core.models import DuplicateGroup, DuplicateStats, compute_stats


class DuplicateService:
    @staticmethod
    def remove_files_from_groups(groups: List[DuplicateGroup], file_ids: Collection[str]) -> List[DuplicateGroup]:
        """
        Removes files with the specified ids from all duplicate groups.

        Files that match any of the provided ids are removed from each group and
        `count` is recomputed. Groups left with fewer than 2 files are discarded.
        Group order and file order inside groups are preserved.

        Args:
            groups (list[DuplicateGroup]): List of duplicate groups to update.
            file_ids (Collection[str]): Ids of files to remove.

        Returns:
            list[DuplicateGroup]: Updated list of duplicate groups.
        """
        removed = set(file_ids)
        updated_groups = []
        for group in groups:
            filtered_files = [f for f in group.files if f.id not in removed]
            if len(filtered_files) >= 2:
                updated_groups.append(DuplicateGroup(
                    hash=group.hash,
                    size=group.size,
                    files=filtered_files,
                    count=len(filtered_files),
                ))
        return updated_groups

    @staticmethod
    def reconcile(groups: List[DuplicateGroup], deleted_ids: Collection[str]) -> Tuple[List[DuplicateGroup], DuplicateStats]:
        """Drops deleted files and recomputes statistics from the surviving groups only."""
        updated_groups = DuplicateService.remove_files_from_groups(groups, deleted_ids)
        return updated_groups, compute_stats(updated_groups)
