"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Walks the filesystem and produces FileRef objects for duplicate analysis.
Features:
- Recursively scans one or more root directories (overlapping roots are de-duplicated)
- Applies size and extension filters, skips symlinks, zero-byte files and the system trash
- Assigns every file a stable id derived from its absolute path
"""

import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional, Set

import xxhash

from keepone.core.interfaces import ProgressCallback, StoppedFlag
from keepone.core.models import FileRef, ScanPhase, ScanProgress

logger = logging.getLogger(__name__)


def file_id_for_path(path: str) -> str:
    """Stable identifier of a file: xxh64 of its absolute path."""
    return xxhash.xxh64_hexdigest(os.path.abspath(path).encode("utf-8", "surrogateescape"))


class FileScannerImpl:
    """
    Scans directories recursively and filters files based on size and extensions.

    Attributes:
        root_dirs: Root directories to scan
        min_size: Minimum file size in bytes (optional)
        max_size: Maximum file size in bytes (optional)
        extensions: List of allowed file extensions (e.g., [".jpg", ".mp4"])
        excluded_dirs: Directories that are never entered
    """

    # Emit an `analyzing` event every N files
    PROGRESS_INTERVAL = 500

    def __init__(
        self,
        root_dirs: List[str],
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        extensions: Optional[List[str]] = None,
        excluded_dirs: Optional[List[str]] = None
    ):
        self.root_dirs = list(root_dirs)
        self.min_size = min_size
        self.max_size = max_size
        self.extensions = [ext.lower() for ext in extensions] if extensions else []
        self.excluded_dirs = [str(Path(d).resolve()) for d in excluded_dirs] if excluded_dirs else []

    def scan(self,
             stopped_flag: Optional[StoppedFlag] = None,
             progress_callback: Optional[ProgressCallback] = None) -> List[FileRef]:
        """
        Single-pass scanner with progress updates and debug logging.
        Returns a filtered list of files found in the directory trees.
        """
        logger.debug(f"Root directories: {self.root_dirs}")
        logger.debug(f"Filters: min_size={self.min_size}, max_size={self.max_size}, extensions={self.extensions}")

        for root_dir in self.root_dirs:
            root_path = Path(root_dir)
            if not root_path.exists():
                error_msg = f"Directory does not exist: {root_dir}"
                logger.error(error_msg)
                raise RuntimeError(error_msg)
            if not root_path.is_dir():
                error_msg = f"Not a directory: {root_dir}"
                logger.error(error_msg)
                raise RuntimeError(error_msg)

        found_files: List[FileRef] = []
        seen_paths: Set[str] = set()
        processed_files = 0
        start_time = time.time()

        for root_dir in self.root_dirs:
            for root, dirs, files in os.walk(str(Path(root_dir).resolve())):
                if stopped_flag and stopped_flag():
                    logger.debug("Scan interrupted by user")
                    return found_files

                # Pre-filter subdirectories BEFORE os.walk enters them
                dirs[:] = [d for d in dirs if self._prefilter_dirs(Path(root) / d)]

                for filename in files:
                    path = Path(root) / filename
                    path_str = str(path)
                    if path_str in seen_paths:
                        continue
                    seen_paths.add(path_str)

                    file_ref = self._process_file(path)
                    if file_ref:
                        found_files.append(file_ref)
                    processed_files += 1

                    if progress_callback and processed_files % self.PROGRESS_INTERVAL == 0:
                        progress_callback(ScanProgress(
                            phase=ScanPhase.ANALYZING,
                            current=processed_files,
                            total=0,
                            current_file=filename
                        ))

        if progress_callback:
            progress_callback(ScanProgress(phase=ScanPhase.ANALYZING, current=processed_files, total=0))

        logger.debug(f"Total scan time: {time.time() - start_time:.2f} seconds")
        logger.debug(f"Scan completed. Found {len(found_files)} matching files.")
        return found_files

    @staticmethod
    def _is_system_trash(path: Path) -> bool:
        """
        Check if path belongs to OS trash/recycle bin (cross-platform).
        Returns False on any error (better to scan than skip valid data).
        """
        try:
            path_str = str(path.resolve(strict=False))

            if sys.platform == "win32":
                if "$Recycle.Bin" in path_str or "\\Recycler\\" in path_str:
                    return True
            elif sys.platform == "darwin":
                if "/.Trash/" in path_str or path_str.endswith("/.Trash"):
                    return True
            else:
                if ".local/share/Trash" in path_str or "/.trash/" in path_str:
                    return True

            return False
        except (OSError, ValueError):
            return False

    @staticmethod
    def _is_excluded_directory(path: Path, excluded_dirs: List[str]) -> bool:
        """Check if path is within an excluded directory."""
        try:
            path_str = str(path.resolve(strict=False))
            for excluded_dir in excluded_dirs:
                normalized_excluded = os.path.normpath(excluded_dir)
                if path_str.startswith(normalized_excluded + os.sep) or \
                        path_str == normalized_excluded:
                    return True
            return False
        except (OSError, ValueError):
            return False

    def _prefilter_dirs(self, path: Path) -> bool:
        """Pre-filter directories: skip system trash, excluded and inaccessible locations."""
        if FileScannerImpl._is_system_trash(path):
            logger.debug(f"Skipping system trash directory: {path}")
            return False

        if self.excluded_dirs and self._is_excluded_directory(path, self.excluded_dirs):
            logger.debug(f"Skipping excluded directory: {path}")
            return False

        try:
            return path.is_dir() and not path.is_symlink() and os.access(path, os.R_OK | os.X_OK)
        except OSError:
            logger.debug(f"Skipping inaccessible directory: {path}")
            return False

    def _process_file(self, path: Path) -> Optional[FileRef]:
        """Return a FileRef if the path passes all filters, else None."""
        try:
            if path.is_symlink():
                logger.debug(f"Skipping symbolic link: {path}")
                return None
            stat_result = path.stat()
        except OSError as e:
            logger.debug(f"Could not stat {path}: {e}")
            return None

        size = stat_result.st_size
        if size == 0:
            logger.debug(f"Skipping zero-byte file: {path}")
            return None

        if not self._size_passes(size):
            logger.debug(f"Skipping {path} (size {size} bytes outside range)")
            return None

        if not self._extension_passes(path):
            logger.debug(f"Skipping {path} (extension not allowed)")
            return None

        # st_birthtime exists on macOS/BSD (and Windows on 3.12+); st_ctime is the fallback
        created = getattr(stat_result, "st_birthtime", None) or stat_result.st_ctime

        return FileRef(
            id=file_id_for_path(str(path)),
            path=str(path),
            size=size,
            mtime_ms=stat_result.st_mtime * 1000,
            created_at=created * 1000,
        )

    def _size_passes(self, size: int) -> bool:
        if self.min_size is not None and size < self.min_size:
            return False
        if self.max_size is not None and size > self.max_size:
            return False
        return True

    def _extension_passes(self, path: Path) -> bool:
        if not self.extensions:
            return True
        return path.suffix.lower() in self.extensions
