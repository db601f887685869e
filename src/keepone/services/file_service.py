"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/file_service.py
File removal for the local backend: system trash by default, permanent unlink on request.
"""
import os
from pathlib import Path

from send2trash import send2trash


class FileService:

    @staticmethod
    def move_to_trash(file_path: str):
        """Moves a file to the system trash."""
        path = Path(file_path).resolve()

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            send2trash(str(path))
        except Exception as e:
            raise RuntimeError(f"Failed to move to trash: {e}") from e

    @staticmethod
    def delete_permanently(file_path: str):
        """Unlinks a file. There is no way back."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            os.unlink(path)
        except OSError as e:
            raise RuntimeError(f"Failed to delete: {e}") from e

    @classmethod
    def remove(cls, file_path: str, use_trash: bool = True):
        if use_trash:
            cls.move_to_trash(file_path)
        else:
            cls.delete_permanently(file_path)
