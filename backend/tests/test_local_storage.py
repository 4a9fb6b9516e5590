"""
Test the local artifact storage.
"""

import pytest

from testops.errors import StoragePathError


class TestLocalStorage:
    async def test_save_upload(self, storage):
        path = await storage.save_upload(
            "uploads/schedule/postman", "../../etc/collection.json", b"{}"
        )

        assert path.startswith("uploads/schedule/postman/")
        assert path.endswith("_collection.json")
        assert await storage.exists(path)
        assert await storage.read_bytes(path) == b"{}"

    async def test_write_and_read_json(self, storage):
        path = await storage.write_text("results/1/summary.json", '{"passes": 3}')

        assert path == "results/1/summary.json"
        assert await storage.read_json(path) == {"passes": 3}

    async def test_delete(self, storage):
        path = await storage.write_text("reports/r.html", "<html></html>")

        assert await storage.delete(path) is True
        assert await storage.delete(path) is False
        assert not await storage.exists(path)

    async def test_paths_cannot_escape_root(self, storage):
        with pytest.raises(StoragePathError):
            await storage.write_text("../outside.txt", "nope")
        with pytest.raises(StoragePathError):
            await storage.read_bytes("reports/../../outside.txt")

        assert await storage.exists("../outside.txt") is False

    async def test_directories_are_not_files(self, storage):
        await storage.write_text("reports/r.html", "")

        assert await storage.exists("reports") is False
