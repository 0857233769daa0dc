"""Filesystem adapter used by every content component."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class DirEntry:
    name: str
    is_dir: bool
    is_file: bool


class FileSystemStorage:
    """Read/write/stat/list/remove primitives over the local filesystem.

    Nothing else in the package opens, lists or deletes files directly, so a
    different backend only needs to provide these methods.
    """

    def __init__(self, encoding: str = "utf-8", errors: str = "replace") -> None:
        self.encoding = encoding
        self.errors = errors

    def read_text(self, path: Path) -> str:
        """Read ``path`` as text; undecodable bytes become U+FFFD by default."""
        return Path(path).read_text(encoding=self.encoding, errors=self.errors)

    def write_text(self, path: Path, content: str) -> None:
        Path(path).write_text(content, encoding=self.encoding)

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def is_dir(self, path: Path) -> bool:
        return Path(path).is_dir()

    def is_file(self, path: Path) -> bool:
        return Path(path).is_file()

    def stat(self, path: Path) -> os.stat_result:
        return Path(path).stat()

    def list_dir(self, path: Path) -> list[DirEntry]:
        """Return directory entries in the order the OS reports them."""
        with os.scandir(path) as entries:
            return [
                DirEntry(
                    name=entry.name,
                    is_dir=entry.is_dir(),
                    is_file=entry.is_file(),
                )
                for entry in entries
            ]

    def mkdir(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def remove_file(self, path: Path) -> None:
        Path(path).unlink()

    def remove_tree(self, path: Path) -> None:
        shutil.rmtree(path)

    def rename(self, source: Path, target: Path) -> None:
        Path(source).rename(target)

    def copy_file(self, source: Path, target: Path) -> None:
        shutil.copy2(source, target)

    def copy_tree(self, source: Path, target: Path) -> None:
        shutil.copytree(source, target)
