"""
Tests for FileService: trash and permanent removal.
The system trash is never touched; send2trash is replaced with a recorder.
"""
import pytest

from keepone.services.file_service import FileService


class TestMoveToTrash:

    def test_sends_resolved_path(self, temp_dir, monkeypatch):
        trashed = []
        monkeypatch.setattr("keepone.services.file_service.send2trash", trashed.append)
        path = temp_dir / "a.jpg"
        path.write_bytes(b"x")

        FileService.move_to_trash(str(path))

        assert trashed == [str(path.resolve())]

    def test_missing_file_raises(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            FileService.move_to_trash(str(temp_dir / "missing.jpg"))

    def test_trash_failure_is_wrapped(self, temp_dir, monkeypatch):
        def refuse(path):
            raise OSError("trash unavailable")

        monkeypatch.setattr("keepone.services.file_service.send2trash", refuse)
        path = temp_dir / "a.jpg"
        path.write_bytes(b"x")

        with pytest.raises(RuntimeError, match="Failed to move to trash"):
            FileService.move_to_trash(str(path))


class TestDeletePermanently:

    def test_unlinks_file(self, temp_dir):
        path = temp_dir / "a.jpg"
        path.write_bytes(b"x")
        FileService.delete_permanently(str(path))
        assert not path.exists()

    def test_missing_file_raises(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            FileService.delete_permanently(str(temp_dir / "missing.jpg"))


class TestRemove:

    def test_dispatches_on_use_trash(self, temp_dir, monkeypatch):
        trashed = []
        monkeypatch.setattr("keepone.services.file_service.send2trash", trashed.append)
        kept = temp_dir / "trash_me.jpg"
        gone = temp_dir / "unlink_me.jpg"
        kept.write_bytes(b"x")
        gone.write_bytes(b"y")

        FileService.remove(str(kept), use_trash=True)
        FileService.remove(str(gone), use_trash=False)

        assert trashed == [str(kept.resolve())]
        assert kept.exists()
        assert not gone.exists()
