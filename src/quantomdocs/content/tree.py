"""Ordered category/file tree built from a product directory."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator

from quantomdocs.content import slugs
from quantomdocs.content.storage import FileSystemStorage
from quantomdocs.models import ContentNode, FileEntry

LOGGER = logging.getLogger(__name__)

CONTENT_EXTENSIONS = (".md", ".mdx")
INDEX_FILES = ("index.md", "index.mdx")


def _sort_key(node: ContentNode) -> tuple[int, str]:
    return node.order, node.name


def _listing_key(entry: FileEntry) -> tuple[bool, str, str]:
    return entry.kind != "folder", entry.name.casefold(), entry.name


class ContentTreeBuilder:
    """Walk a directory into sorted ``category`` and ``file`` nodes."""

    def __init__(self, storage: FileSystemStorage, *, max_depth: int = 32) -> None:
        self.storage = storage
        self.max_depth = max_depth

    def build(self, dir_path: Path, relative_path: str = "") -> list[ContentNode]:
        """Return the ordered children of ``dir_path``.

        Directories are visited from an explicit worklist rather than by
        recursion. A directory that cannot be read, or that lies deeper than
        ``max_depth``, contributes an empty child list and the walk goes on.
        """
        root_items: list[ContentNode] = []
        levels: list[list[ContentNode]] = [root_items]
        categories: list[ContentNode] = []
        pending: list[tuple[Path, str, int, list[ContentNode]]] = [
            (Path(dir_path), relative_path, 0, root_items)
        ]

        while pending:
            current, current_rel, depth, items = pending.pop()
            if depth > self.max_depth:
                LOGGER.warning("Skipping %s: deeper than %d levels", current, self.max_depth)
                continue
            try:
                entries = self.storage.list_dir(current)
            except OSError as exc:
                LOGGER.error("Error building tree for %s: %s", current, exc)
                continue

            for entry in entries:
                if entry.name.startswith("."):
                    continue
                item_path = current / entry.name
                item_rel = f"{current_rel}/{entry.name}" if current_rel else entry.name

                if entry.is_dir:
                    node = self._category_node(item_path, entry.name, item_rel)
                    items.append(node)
                    categories.append(node)
                    levels.append(node.children)
                    pending.append((item_path, item_rel, depth + 1, node.children))
                elif entry.is_file and entry.name.endswith(CONTENT_EXTENSIONS):
                    if entry.name in INDEX_FILES:
                        continue
                    items.append(self._file_node(entry.name, item_rel))

        for level in levels:
            level.sort(key=_sort_key)
        for category in categories:
            category.has_files = any(not child.is_category for child in category.children)
            category.has_subcategories = any(child.is_category for child in category.children)
        return root_items

    def build_listing(self, dir_path: Path, relative_path: str = "") -> list[FileEntry]:
        """Return every non-hidden entry below ``dir_path`` for the editor.

        Unlike :meth:`build`, non-markdown files are included with their size
        and modification time. Folders sort before files, then by name.
        """
        root_items: list[FileEntry] = []
        levels: list[list[FileEntry]] = [root_items]
        pending: list[tuple[Path, str, int, list[FileEntry]]] = [
            (Path(dir_path), relative_path, 0, root_items)
        ]

        while pending:
            current, current_rel, depth, items = pending.pop()
            if depth > self.max_depth:
                LOGGER.warning("Skipping %s: deeper than %d levels", current, self.max_depth)
                continue
            try:
                entries = self.storage.list_dir(current)
            except OSError as exc:
                LOGGER.error("Error listing files in %s: %s", current, exc)
                continue

            for entry in entries:
                if entry.name.startswith("."):
                    continue
                item_path = current / entry.name
                item_rel = f"{current_rel}/{entry.name}" if current_rel else entry.name
                if entry.is_dir:
                    folder = FileEntry(kind="folder", name=entry.name, path=item_rel)
                    items.append(folder)
                    levels.append(folder.children)
                    pending.append((item_path, item_rel, depth + 1, folder.children))
                    continue
                if not entry.is_file:
                    continue
                try:
                    stats = self.storage.stat(item_path)
                except OSError as exc:
                    LOGGER.error("Error listing files in %s: %s", current, exc)
                    continue
                items.append(
                    FileEntry(
                        kind="file",
                        name=entry.name,
                        path=item_rel,
                        extension=os.path.splitext(entry.name)[1],
                        size=stats.st_size,
                        modified=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
                    )
                )

        for level in levels:
            level.sort(key=_listing_key)
        return root_items

    def _category_node(self, item_path: Path, dir_name: str, item_rel: str) -> ContentNode:
        order, clean_name = slugs.split_ordinal(dir_name)
        has_index = any(self.storage.exists(item_path / index) for index in INDEX_FILES)
        return ContentNode(
            kind="category",
            id=dir_name,
            name=clean_name,
            url_slug=slugs.encode(dir_name),
            order=order,
            path=item_rel,
            has_index=has_index,
        )

    def _file_node(self, file_name: str, item_rel: str) -> ContentNode:
        stem = slugs.strip_extension(file_name)
        order, clean_name = slugs.split_ordinal(stem)
        return ContentNode(
            kind="file",
            id=stem,
            name=clean_name,
            url_slug=slugs.encode(file_name),
            order=order,
            path=item_rel,
            file_name=file_name,
            file_type="mdx" if file_name.endswith(".mdx") else "md",
        )


def iter_files(nodes: Iterable[ContentNode]) -> Iterator[ContentNode]:
    """Yield the file nodes of a tree, depth first, in display order."""
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        if node.is_category:
            stack.extend(reversed(node.children))
        else:
            yield node
