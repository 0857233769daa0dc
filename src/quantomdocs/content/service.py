"""Content operations exposed to the web layer and the CLI."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Literal

from quantomdocs.content import slugs
from quantomdocs.content.cache import RenderCache
from quantomdocs.content.sandbox import PathSandbox
from quantomdocs.content.storage import FileSystemStorage
from quantomdocs.content.tree import CONTENT_EXTENSIONS, ContentTreeBuilder, iter_files
from quantomdocs.errors import ResourceNotFoundError, StorageError, ValidationError
from quantomdocs.index.indexer import SearchIndexer
from quantomdocs.models import ContentNode, FileEntry

LOGGER = logging.getLogger(__name__)

EntryKind = Literal["file", "folder"]


@dataclass(slots=True)
class ProductTree:
    product: str
    tree: list[ContentNode]
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "product": self.product,
            "tree": [node.to_dict() for node in self.tree],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(slots=True)
class RenderedContent:
    html: str
    raw_content: str
    file_type: str
    path: str
    size: int
    last_modified: datetime
    degraded: bool = False


@dataclass(slots=True)
class RawContent:
    content: str
    file_type: str
    path: str
    size: int
    modified: datetime


@dataclass(slots=True)
class MutationResult:
    success: bool
    path: str


def _validate_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Name is required")
    if "/" in cleaned or "\\" in cleaned:
        raise ValidationError("Name must not contain path separators")
    if cleaned.startswith("."):
        raise ValidationError("Name must not start with a dot")
    return cleaned


def _require_content_file(name: str) -> None:
    if not name.endswith(CONTENT_EXTENSIONS):
        raise ValidationError("Only .md and .mdx files are supported")


def _join(*parts: str) -> str:
    return "/".join(part.strip("/") for part in parts if part and part.strip("/"))


@contextmanager
def _storage_failure(action: str, relative: str) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        LOGGER.error("Failed to %s %s: %s", action, relative, exc)
        raise StorageError(f"Could not {action} {relative}") from exc


class ContentService:
    """Tree listing, slug resolution, rendering and editor writes.

    Every caller-supplied path goes through the sandbox before it touches the
    filesystem. Writes invalidate the render cache and patch the search index
    only after the filesystem change succeeded.
    """

    def __init__(
        self,
        sandbox: PathSandbox,
        storage: FileSystemStorage,
        tree_builder: ContentTreeBuilder,
        cache: RenderCache,
        indexer: SearchIndexer,
    ) -> None:
        self.sandbox = sandbox
        self.storage = storage
        self.tree_builder = tree_builder
        self.cache = cache
        self.indexer = indexer

    def list_products(self) -> list[str]:
        return self.indexer.list_products()

    def get_tree(self, product_id: str) -> ProductTree:
        product_path = self._product_path(product_id)
        return ProductTree(
            product=product_id,
            tree=self.tree_builder.build(product_path),
            timestamp=datetime.now(timezone.utc),
        )

    def get_content_by_path(self, product_id: str, url_path: str) -> RenderedContent:
        """Resolve ``url_path`` slug by slug and return the rendered file."""
        segments = [segment for segment in url_path.split("/") if segment]
        if not segments:
            raise ResourceNotFoundError("File not found")
        if not product_id or not product_id.strip():
            raise ValidationError("Product is required")
        # Screen the request as a whole first so traversal attempts are
        # reported as such rather than as unresolvable slugs.
        self.sandbox.resolve(f"{product_id}/{'/'.join(segments)}")
        product_path = self._product_path(product_id)

        current = product_path
        resolved: list[str] = []
        for segment in segments:
            actual = slugs.decode(self.storage, current, segment)
            if actual is None:
                raise ResourceNotFoundError(f"Could not resolve: {segment}")
            resolved.append(actual)
            current = current / actual

        relative = "/".join([product_id, *resolved])
        safe_path = self.sandbox.resolve(relative)
        if not self.storage.exists(safe_path):
            raise ResourceNotFoundError("File not found")
        if self.storage.is_dir(safe_path):
            raise ValidationError("Path is a directory, not a file")
        _require_content_file(safe_path.name)

        entry = self.cache.get(safe_path)
        return RenderedContent(
            html=entry.rendered_content,
            raw_content=entry.raw_content,
            file_type=entry.file_type,
            path=relative,
            size=entry.size,
            last_modified=entry.last_modified,
            degraded=entry.degraded,
        )

    def get_raw_content(self, path: str) -> RawContent:
        safe_path = self._require_path(path)
        if not self.storage.is_file(safe_path):
            raise ValidationError("Path is a directory, not a file")
        try:
            stats = self.storage.stat(safe_path)
            content = self.storage.read_text(safe_path)
        except FileNotFoundError as exc:
            raise ResourceNotFoundError("File not found") from exc
        return RawContent(
            content=content,
            file_type="mdx" if safe_path.suffix == ".mdx" else "md",
            path=self.sandbox.relative(safe_path),
            size=stats.st_size,
            modified=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
        )

    def get_file_tree(self, product: str | None = None) -> list[FileEntry]:
        """Editor listing of every file, optionally limited to one product."""
        if product:
            return self.tree_builder.build_listing(self._product_path(product), product)
        if not self.storage.is_dir(self.sandbox.root):
            raise ResourceNotFoundError("Content directory not found")
        return self.tree_builder.build_listing(self.sandbox.root)

    def save_content(self, path: str, content: str) -> MutationResult:
        """Write ``content`` to ``path`` then refresh cache and index."""
        if not path or not path.strip():
            raise ValidationError("File path is required")
        if content is None:
            raise ValidationError("Content is required")
        safe_path = self.sandbox.resolve(path.strip())
        _require_content_file(safe_path.name)
        if self.storage.is_dir(safe_path):
            raise ValidationError("Path is a directory, not a file")
        if not self.storage.exists(safe_path):
            self._check_collision(safe_path.parent, safe_path.name)

        relative = self.sandbox.relative(safe_path)
        with _storage_failure("save", relative):
            self.storage.mkdir(safe_path.parent)
            self.storage.write_text(safe_path, content)

        self.cache.invalidate(safe_path)
        self.indexer.update_one(relative)
        LOGGER.info("Saved %s", relative)
        return MutationResult(success=True, path=relative)

    def create_entry(
        self,
        kind: EntryKind,
        name: str,
        *,
        folder_path: str = "",
        product: str | None = None,
        content: str = "",
    ) -> MutationResult:
        """Create a new file or folder, refusing names whose slug is taken."""
        if kind not in ("file", "folder"):
            raise ValidationError("Invalid type")
        name = _validate_name(name)
        if kind == "file":
            _require_content_file(name)

        parts = [part for part in (product, folder_path, name) if part]
        target = self.sandbox.resolve("/".join(parts))
        if self.storage.exists(target):
            raise ValidationError("File or folder already exists")
        self._check_collision(target.parent, name)

        relative = self.sandbox.relative(target)
        with _storage_failure("create", relative):
            if kind == "folder":
                self.storage.mkdir(target)
            else:
                self.storage.mkdir(target.parent)
                self.storage.write_text(target, content or "")
        if kind == "file":
            self.indexer.update_one(relative)
        LOGGER.info("Created %s %s", kind, relative)
        return MutationResult(success=True, path=relative)

    def delete_entry(self, path: str) -> MutationResult:
        safe_path = self._require_path(path)
        if safe_path == self.sandbox.root:
            raise ValidationError("Refusing to delete the content root")

        relative = self.sandbox.relative(safe_path)
        is_dir = self.storage.is_dir(safe_path)
        with _storage_failure("delete", relative):
            if is_dir:
                self.storage.remove_tree(safe_path)
            else:
                self.storage.remove_file(safe_path)
        if is_dir:
            self.cache.invalidate_all()
        else:
            self.cache.invalidate(safe_path)
        self.indexer.remove(relative)
        LOGGER.info("Deleted %s", relative)
        return MutationResult(success=True, path=relative)

    def rename_entry(self, path: str, new_name: str) -> MutationResult:
        """Rename a file or folder in place, keeping slugs unique."""
        source = self._require_path(path)
        if source == self.sandbox.root:
            raise ValidationError("Refusing to rename the content root")
        new_name = _validate_name(new_name)
        if not self.storage.is_dir(source):
            _require_content_file(new_name)

        target = self.sandbox.resolve(f"{self.sandbox.relative(source.parent)}/{new_name}".lstrip("/"))
        if self.storage.exists(target):
            raise ValidationError("A file or folder with that name already exists")
        self._check_collision(source.parent, new_name, ignore=(source.name,))

        new_relative = self._relocate(source, target, "rename")
        return MutationResult(success=True, path=new_relative)

    def move_entry(self, source_path: str, target_folder: str, *, product: str | None = None) -> MutationResult:
        """Move a file or folder into ``target_folder``, keeping its name.

        With ``product`` both paths are relative to that product's directory,
        otherwise to the content root. An empty ``target_folder`` means the
        base directory itself.
        """
        base = self._product_path(product) if product else self.sandbox.root
        base_relative = self.sandbox.relative(base)
        source = self._require_path(_join(base_relative, source_path or ""))
        if source == base or source == self.sandbox.root:
            raise ValidationError("Refusing to move the content root")

        folder = self.sandbox.resolve(_join(base_relative, (target_folder or "").strip("/")))
        if not self.storage.is_dir(folder):
            raise ResourceNotFoundError("Target folder not found")
        if folder == source or str(folder).startswith(f"{source}{os.sep}"):
            raise ValidationError("Cannot move a folder into itself")

        target = folder / source.name
        if target == source:
            raise ValidationError("Source and target are the same")
        if self.storage.exists(target):
            raise ValidationError("A file or folder with that name already exists in target")
        self._check_collision(folder, source.name)

        new_relative = self._relocate(source, target, "move")
        return MutationResult(success=True, path=new_relative)

    def duplicate_entry(self, path: str) -> MutationResult:
        """Copy a file or folder next to itself as '<name> - Copy'."""
        source = self._require_path(path)
        if source == self.sandbox.root:
            raise ValidationError("Refusing to duplicate the content root")
        is_dir = self.storage.is_dir(source)

        stem, extension = (source.name, "") if is_dir else os.path.splitext(source.name)
        name = f"{stem} - Copy{extension}"
        counter = 1
        while (
            self.storage.exists(source.parent / name)
            or slugs.find_collision(self.storage, source.parent, name) is not None
        ):
            counter += 1
            name = f"{stem} - Copy ({counter}){extension}"

        target = source.parent / name
        relative = self.sandbox.relative(target)
        with _storage_failure("duplicate", self.sandbox.relative(source)):
            if is_dir:
                self.storage.copy_tree(source, target)
            else:
                self.storage.copy_file(source, target)

        if is_dir:
            tree = self.tree_builder.build(target, relative)
            self.indexer.update_many([node.path for node in iter_files(tree)])
        else:
            self.indexer.update_one(relative)
        LOGGER.info("Duplicated %s to %s", self.sandbox.relative(source), relative)
        return MutationResult(success=True, path=relative)

    def _relocate(self, source: Path, target: Path, action: str) -> str:
        """Rename ``source`` to ``target`` then refresh cache and index."""
        old_relative = self.sandbox.relative(source)
        new_relative = self.sandbox.relative(target)
        is_dir = self.storage.is_dir(source)
        with _storage_failure(action, old_relative):
            self.storage.rename(source, target)

        self.indexer.remove(old_relative)
        if is_dir:
            self.cache.invalidate_all()
            tree = self.tree_builder.build(target, new_relative)
            self.indexer.update_many([node.path for node in iter_files(tree)])
        else:
            self.cache.invalidate(source)
            self.indexer.update_one(new_relative)
        LOGGER.info("%s %s to %s", "Renamed" if action == "rename" else "Moved", old_relative, new_relative)
        return new_relative

    def _product_path(self, product_id: str) -> Path:
        if not product_id or not product_id.strip():
            raise ValidationError("Product is required")
        product_path = self.sandbox.resolve(product_id)
        if not self.storage.is_dir(product_path):
            raise ResourceNotFoundError("Product not found")
        return product_path

    def _require_path(self, path: str) -> Path:
        if not path or not path.strip():
            raise ValidationError("File path is required")
        safe_path = self.sandbox.resolve(path.strip())
        if not self.storage.exists(safe_path):
            raise ResourceNotFoundError("File or folder not found")
        return safe_path

    def _check_collision(self, parent: Path, name: str, *, ignore: tuple[str, ...] = ()) -> None:
        existing = slugs.find_collision(self.storage, parent, name, ignore=ignore)
        if existing is not None:
            raise ValidationError(
                f"'{name}' would share the URL slug '{slugs.encode(name)}' with '{existing}'"
            )
