"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models for duplicate detection and resolution.

Objects coming from a hashing backend are loosely typed (plain mappings over an
IPC-like boundary), so every model offers `from_dict()` / `coerce()` which
validate the wire shape before the engine trusts `size`, `hash` or `mtime_ms`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Union
import os


class BackendSchemaError(ValueError):
    """Raised when data received from a hashing backend does not match the expected schema."""


# =============================
# Enums
# =============================

class ScanPhase(str, Enum):
    ANALYZING = "analyzing"
    HASHING = "hashing"
    COMPLETE = "complete"


class SearchState(Enum):
    """
    State of the scan orchestrator.
    IDLE → ANALYZING → HASHING → COMPLETE, with CANCELLED and ERROR as side exits.
    """
    IDLE = "idle"
    ANALYZING = "analyzing"
    HASHING = "hashing"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    ERROR = "error"


class SelectionStrategy(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    SHORTEST_PATH = "shortest_path"

    @property
    def display_name(self) -> str:
        """Human-readable name for UI display."""
        mapping = {
            SelectionStrategy.NEWEST: "Keep newest",
            SelectionStrategy.OLDEST: "Keep oldest",
            SelectionStrategy.SHORTEST_PATH: "Keep shortest path",
        }
        return mapping.get(self, self.value)


# =============================
# Validation helpers
# =============================

def _pick(data: Mapping[str, Any], *keys: str, default: Any = ...) -> Any:
    """Returns the first present key (wire data mixes camelCase and snake_case)."""
    for key in keys:
        if key in data:
            return data[key]
    if default is ...:
        raise BackendSchemaError(f"Missing field '{keys[0]}'")
    return default


def _as_int(value: Any, name: str) -> int:
    # bool is an int subclass but never a valid size or counter
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise BackendSchemaError(f"Field '{name}' must be a number, got {type(value).__name__}")
    if isinstance(value, float) and not value.is_integer():
        raise BackendSchemaError(f"Field '{name}' must be an integer, got {value}")
    return int(value)


def _as_timestamp(value: Any, name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise BackendSchemaError(f"Field '{name}' must be a number or null, got {type(value).__name__}")
    return float(value)


def _as_str(value: Any, name: str) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise BackendSchemaError(f"Field '{name}' must be a string, got {type(value).__name__}")
    return str(value)


def _as_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise BackendSchemaError(f"'{name}' must be an object, got {type(value).__name__}")
    return value


# ======================
#  Core Data Models
# ======================

@dataclass
class FileRef:
    """
    A single file known to the backend.
    Timestamps are milliseconds since the epoch and may be missing.
    """
    id: str
    path: str
    size: int  # in bytes
    mtime_ms: Optional[float] = None
    created_at: Optional[float] = None

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FileRef":
        data = _as_mapping(data, "file")
        size = _as_int(_pick(data, "size"), "size")
        if size < 0:
            raise BackendSchemaError(f"Field 'size' cannot be negative: {size}")
        return cls(
            id=_as_str(_pick(data, "id"), "id"),
            path=_as_str(_pick(data, "path"), "path"),
            size=size,
            mtime_ms=_as_timestamp(_pick(data, "mtime_ms", "mtimeMs", default=None), "mtime_ms"),
            created_at=_as_timestamp(_pick(data, "created_at", "createdAt", default=None), "created_at"),
        )

    def __repr__(self):
        return f"<FileRef id={self.id} path={self.path}, size={self.size}>"


@dataclass
class DuplicateGroup:
    """
    Files sharing identical byte size and identical content digest.
    A materialized group always has at least two members.
    """
    hash: str
    size: int
    files: List[FileRef]
    count: int = -1

    def __post_init__(self):
        if self.count < 0:
            self.count = len(self.files)

    @property
    def file_ids(self) -> List[str]:
        return [f.id for f in self.files]

    @property
    def redundant_count(self) -> int:
        """Copies beyond the one file that is always kept."""
        return self.count - 1

    @property
    def wasted_space(self) -> int:
        return self.size * self.redundant_count

    def validate(self) -> "DuplicateGroup":
        if self.count != len(self.files):
            raise BackendSchemaError(
                f"Group {self.hash}: count {self.count} does not match {len(self.files)} files"
            )
        if self.count < 2:
            raise BackendSchemaError(f"Group {self.hash}: a duplicate group needs at least 2 files")
        for file in self.files:
            if file.size != self.size:
                raise BackendSchemaError(
                    f"Group {self.hash}: file {file.id} has size {file.size}, expected {self.size}"
                )
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DuplicateGroup":
        data = _as_mapping(data, "group")
        raw_files = _pick(data, "files")
        if not isinstance(raw_files, list):
            raise BackendSchemaError("Field 'files' must be a list")
        files = [FileRef.from_dict(f) for f in raw_files]
        count = _pick(data, "count", default=None)
        return cls(
            hash=_as_str(_pick(data, "hash"), "hash"),
            size=_as_int(_pick(data, "size"), "size"),
            files=files,
            count=len(files) if count is None else _as_int(count, "count"),
        ).validate()

    def __repr__(self):
        return f"<DuplicateGroup hash={self.hash} size={self.size}, count={self.count}>"


@dataclass
class DuplicateStats:
    """
    Aggregate statistics over duplicate groups.
    `total_files` counts redundant copies only: one file per group is the implicit keeper.
    """
    total_groups: int = 0
    total_files: int = 0
    wasted_space: int = 0  # bytes

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DuplicateStats":
        data = _as_mapping(data, "stats")
        return cls(
            total_groups=_as_int(_pick(data, "total_groups", "totalGroups"), "total_groups"),
            total_files=_as_int(_pick(data, "total_files", "totalFiles"), "total_files"),
            wasted_space=_as_int(_pick(data, "wasted_space", "wastedSpace"), "wasted_space"),
        )


def compute_stats(groups: Iterable[DuplicateGroup]) -> DuplicateStats:
    """Derives statistics from groups: Σ(count − 1) files and Σ(size · (count − 1)) bytes."""
    stats = DuplicateStats()
    for group in groups:
        duplicate_count = group.count - 1
        stats.total_groups += 1
        stats.total_files += duplicate_count
        stats.wasted_space += group.size * duplicate_count
    return stats


@dataclass
class ScanProgress:
    """
    Progress snapshot pushed by the backend while a scan runs.
    `generation` identifies the search invocation the event belongs to (None if the backend does not stamp it).
    """
    phase: ScanPhase
    current: int = 0
    total: int = 0
    current_file: Optional[str] = None
    generation: Optional[int] = None

    def __post_init__(self):
        self.phase = ScanPhase(self.phase)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanProgress":
        data = _as_mapping(data, "progress")
        try:
            phase = ScanPhase(_pick(data, "phase"))
        except ValueError as e:
            raise BackendSchemaError(str(e)) from e
        current_file = _pick(data, "current_file", "currentFile", default=None)
        generation = _pick(data, "generation", default=None)
        return cls(
            phase=phase,
            current=_as_int(_pick(data, "current", default=0), "current"),
            total=_as_int(_pick(data, "total", default=0), "total"),
            current_file=None if current_file is None else _as_str(current_file, "current_file"),
            generation=None if generation is None else _as_int(generation, "generation"),
        )

    @classmethod
    def coerce(cls, value: Union["ScanProgress", Mapping[str, Any]]) -> "ScanProgress":
        return value if isinstance(value, ScanProgress) else cls.from_dict(value)


@dataclass
class ScanResult:
    """Outcome of one backend scan: groups plus the statistics derived from them."""
    groups: List[DuplicateGroup] = field(default_factory=list)
    stats: DuplicateStats = field(default_factory=DuplicateStats)

    def validate(self) -> "ScanResult":
        seen = set()
        for group in self.groups:
            group.validate()
            if group.hash in seen:
                raise BackendSchemaError(f"Duplicate group hash in scan result: {group.hash}")
            seen.add(group.hash)
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanResult":
        data = _as_mapping(data, "scan result")
        raw_groups = _pick(data, "groups")
        if not isinstance(raw_groups, list):
            raise BackendSchemaError("Field 'groups' must be a list")
        groups = [DuplicateGroup.from_dict(g) for g in raw_groups]
        raw_stats = _pick(data, "stats", default=None)
        stats = compute_stats(groups) if raw_stats is None else DuplicateStats.from_dict(raw_stats)
        return cls(groups=groups, stats=stats).validate()

    @classmethod
    def coerce(cls, value: Union["ScanResult", Mapping[str, Any]]) -> "ScanResult":
        if isinstance(value, ScanResult):
            return value.validate()
        return cls.from_dict(value)


@dataclass
class DeleteResult:
    """Per-file outcome of a batched delete."""
    id: str
    success: bool
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeleteResult":
        data = _as_mapping(data, "delete result")
        success = _pick(data, "success")
        if not isinstance(success, bool):
            raise BackendSchemaError("Field 'success' must be a boolean")
        error = _pick(data, "error", default=None)
        return cls(
            id=_as_str(_pick(data, "id"), "id"),
            success=success,
            error=None if error is None else str(error),
        )

    @classmethod
    def coerce(cls, value: Union["DeleteResult", Mapping[str, Any]]) -> "DeleteResult":
        return value if isinstance(value, DeleteResult) else cls.from_dict(value)


# ======================
#  Configuration
# ======================

@dataclass
class ScanParams:
    """Parameters for a filesystem scan with validation."""
    root_dirs: List[str]
    extensions: List[str] = field(default_factory=list)
    min_size_bytes: int = 1
    max_size_bytes: Optional[int] = None
    excluded_dirs: List[str] = field(default_factory=list)
    partial_hash: bool = False
    progress_interval_ms: int = 100
    use_trash: bool = True

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if isinstance(self.root_dirs, str):
            self.root_dirs = [self.root_dirs]
        if not self.root_dirs or not all(self.root_dirs):
            raise ValueError("Root directory cannot be empty")
        self.root_dirs = [os.path.expanduser(d) for d in self.root_dirs]
        self.excluded_dirs = [os.path.expanduser(d) for d in self.excluded_dirs]

        if self.min_size_bytes < 0:
            raise ValueError("Minimum size cannot be negative")
        # Zero-byte files are never duplicate candidates
        self.min_size_bytes = max(self.min_size_bytes, 1)

        if self.max_size_bytes is not None and self.max_size_bytes < self.min_size_bytes:
            raise ValueError("Maximum size cannot be less than minimum size")

        if self.progress_interval_ms < 0:
            raise ValueError("Progress interval cannot be negative")

        # Normalize extensions: ensure they start with dot and are lowercase
        normalized = []
        for ext in self.extensions:
            ext = ext.strip().lower()
            if ext and not ext.startswith('.'):
                ext = f".{ext}"
            if ext:
                normalized.append(ext)
        self.extensions = normalized
