"""
Local artifact storage for uploaded test assets, run results and reports.

All paths handed in and out of this module are relative to the storage root,
using forward slashes, e.g. ``uploads/schedule/postman/1700000000000_api.json``.
"""

import json
import time
from pathlib import Path
from typing import Any

import aiofiles
from aiofiles import os as aioos

from .errors import StoragePathError


def _safe_filename(filename: str) -> str:
    name = Path(filename.replace("\\", "/")).name
    return name or "unnamed_file"


class LocalStorage:
    """Filesystem-backed artifact store rooted at a single directory."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def resolve(self, path: str) -> Path:
        """Map a relative storage path to an absolute filesystem path."""
        target = (self.root / path.lstrip("/")).resolve()
        if not target.is_relative_to(self.root):
            raise StoragePathError(f"Path '{path}' escapes the storage root")
        return target

    def _relative(self, target: Path) -> str:
        return target.relative_to(self.root).as_posix()

    async def exists(self, path: str) -> bool:
        try:
            target = self.resolve(path)
        except StoragePathError:
            return False
        return await aioos.path.isfile(target)

    async def save_upload(self, subdir: str, filename: str, content: bytes) -> str:
        """
        Store an uploaded file under ``subdir`` with a millisecond timestamp prefix.

        Returns:
            Relative storage path of the stored file
        """
        target_dir = self.resolve(subdir)
        await aioos.makedirs(target_dir, exist_ok=True)

        stored_name = f"{int(time.time() * 1000)}_{_safe_filename(filename)}"
        target = target_dir / stored_name
        async with aiofiles.open(target, "wb") as f:
            await f.write(content)

        return self._relative(target)

    async def write_bytes(self, path: str, content: bytes) -> str:
        target = self.resolve(path)
        await aioos.makedirs(target.parent, exist_ok=True)
        async with aiofiles.open(target, "wb") as f:
            await f.write(content)
        return self._relative(target)

    async def write_text(self, path: str, content: str) -> str:
        return await self.write_bytes(path, content.encode("utf-8"))

    async def read_bytes(self, path: str) -> bytes:
        target = self.resolve(path)
        async with aiofiles.open(target, "rb") as f:
            return await f.read()

    async def read_json(self, path: str) -> Any:
        content = await self.read_bytes(path)
        return json.loads(content)

    async def delete(self, path: str) -> bool:
        """Delete a stored file. Returns False if it did not exist."""
        target = self.resolve(path)
        try:
            await aioos.remove(target)
        except FileNotFoundError:
            return False
        return True
