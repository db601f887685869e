"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/strategies.py
Pure keeper selection for duplicate groups, with no dependencies outside core.

Each strategy folds over the group's files left to right and returns the single
file to keep. The fold order matters on exact ties: the earlier file stays the
keeper unless a later one wins strictly.

Missing timestamps are asymmetric:
- NEWEST treats a missing (or zero) mtime/created time as 0
- OLDEST treats it as +infinity, so a file without a timestamp never wins as "oldest"
"""
from functools import reduce
from typing import Callable, Dict, List

from keepone.core.models import FileRef, SelectionStrategy

INFINITY = float("inf")


def _time_priority(file: FileRef) -> float:
    """mtime first, created time as fallback."""
    return file.mtime_ms or file.created_at or 0


def _prefer_newest(best: FileRef, file: FileRef) -> FileRef:
    file_mtime = file.mtime_ms or 0
    best_mtime = best.mtime_ms or 0
    if file_mtime != best_mtime:
        return file if file_mtime > best_mtime else best

    file_created = file.created_at or 0
    best_created = best.created_at or 0
    if file_created != best_created:
        return file if file_created > best_created else best

    return file if len(file.path) < len(best.path) else best


def _prefer_oldest(best: FileRef, file: FileRef) -> FileRef:
    file_mtime = file.mtime_ms or INFINITY
    best_mtime = best.mtime_ms or INFINITY
    if file_mtime != best_mtime:
        return file if file_mtime < best_mtime else best

    file_created = file.created_at or INFINITY
    best_created = best.created_at or INFINITY
    if file_created != best_created:
        return file if file_created < best_created else best

    return file if len(file.path) < len(best.path) else best


def _prefer_shortest_path(best: FileRef, file: FileRef) -> FileRef:
    if len(file.path) != len(best.path):
        return file if len(file.path) < len(best.path) else best
    # Same length: the more recent file wins
    return file if _time_priority(file) > _time_priority(best) else best


_REDUCERS: Dict[SelectionStrategy, Callable[[FileRef, FileRef], FileRef]] = {
    SelectionStrategy.NEWEST: _prefer_newest,
    SelectionStrategy.OLDEST: _prefer_oldest,
    SelectionStrategy.SHORTEST_PATH: _prefer_shortest_path,
}


def pick_keeper(files: List[FileRef], strategy: SelectionStrategy) -> FileRef:
    """Returns the file to keep. Raises ValueError for an empty list or unknown strategy."""
    if not files:
        raise ValueError("Cannot pick a keeper from an empty group")
    reducer = _REDUCERS[SelectionStrategy(strategy)]
    return reduce(reducer, files)


def files_to_delete(files: List[FileRef], strategy: SelectionStrategy) -> List[str]:
    """Ids of every file except the keeper, in group order."""
    keeper = pick_keeper(files, strategy)
    return [f.id for f in files if f.id != keeper.id]
