from .duplicate_service import DuplicateService
from .file_service import FileService
from .local_backend import LocalHashingBackend, ProgressThrottle

__all__ = ["DuplicateService", "FileService", "LocalHashingBackend", "ProgressThrottle"]
