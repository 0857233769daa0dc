"""Core QuantomDocs data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

NodeKind = Literal["category", "file"]
FileType = Literal["md", "mdx"]


@dataclass(slots=True)
class ContentNode:
    """One entry of a product tree.

    ``id`` and ``path`` keep the raw on-disk names (ordinal prefixes included);
    ``name`` and ``url_slug`` are the display and public forms.
    """

    kind: NodeKind
    id: str
    name: str
    url_slug: str
    order: int
    path: str
    children: list[ContentNode] = field(default_factory=list)
    file_name: str | None = None
    file_type: FileType | None = None
    has_index: bool = False
    has_files: bool = False
    has_subcategories: bool = False

    @property
    def is_category(self) -> bool:
        return self.kind == "category"

    @property
    def display_name(self) -> str:
        return self.name.replace("-", " ").replace("_", " ")

    def to_dict(self) -> dict:
        data: dict = {
            "type": self.kind,
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "urlSlug": self.url_slug,
            "order": self.order,
            "path": self.path,
        }
        if self.is_category:
            data["children"] = [child.to_dict() for child in self.children]
            data["hasFiles"] = self.has_files
            data["hasSubcategories"] = self.has_subcategories
            data["hasIndex"] = self.has_index
        else:
            data["fileName"] = self.file_name
            data["fileType"] = self.file_type
        return data


@dataclass(slots=True)
class CacheEntry:
    """Rendered output and metadata for one resolved file."""

    rendered_content: str
    raw_content: str
    file_type: FileType
    file_name: str
    last_modified: datetime
    size: int
    degraded: bool = False


@dataclass(slots=True)
class SearchDocument:
    """Denormalized, search-optimized record derived from one content file."""

    title: str
    content: str
    path: str
    url_slug: str
    file_name: str
    file_type: FileType
    category: str
    product_id: str


@dataclass(slots=True)
class FileEntry:
    """One entry of the editor's file listing, markdown or not."""

    kind: Literal["folder", "file"]
    name: str
    path: str
    children: list[FileEntry] = field(default_factory=list)
    extension: str = ""
    size: int = 0
    modified: datetime | None = None

    def to_dict(self) -> dict:
        data: dict = {"name": self.name, "type": self.kind, "path": self.path}
        if self.kind == "folder":
            data["children"] = [child.to_dict() for child in self.children]
        else:
            data["extension"] = self.extension
            data["size"] = self.size
            data["modified"] = self.modified.isoformat() if self.modified else None
        return data
