"""In-memory search index over every product's content files."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

from quantomdocs.content import slugs
from quantomdocs.content.sandbox import PathSandbox
from quantomdocs.content.storage import FileSystemStorage
from quantomdocs.content.tree import CONTENT_EXTENSIONS, INDEX_FILES, ContentTreeBuilder, iter_files
from quantomdocs.errors import ContentError, IndexBuildError
from quantomdocs.index.fuzzy import FuzzyMatcher, WeightedFuzzyMatcher
from quantomdocs.models import SearchDocument
from quantomdocs.utils.text import extract_plain_text, extract_title, truncate

LOGGER = logging.getLogger(__name__)

DEFAULT_SNIPPET_CHARS = 500


@dataclass(slots=True)
class IndexStats:
    total_documents: int = 0
    indexed: bool = False
    products: list[str] = field(default_factory=list)
    built_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalDocuments": self.total_documents,
            "indexed": self.indexed,
            "products": self.products,
            "builtAt": self.built_at.isoformat() if self.built_at else None,
        }


def is_indexable(path: str) -> bool:
    """Content files inside a product, excluding category index pages."""
    pure = PurePosixPath(path)
    name = pure.name
    if len(pure.parts) < 2:
        return False
    return name.endswith(CONTENT_EXTENSIONS) and name not in INDEX_FILES and not name.startswith(".")


class SearchIndexer:
    """Builds and patches one fuzzy index covering all products.

    Documents are keyed by their content-root relative path, so a path can
    never appear twice. Every change swaps in a freshly built matcher index.
    """

    def __init__(
        self,
        storage: FileSystemStorage,
        sandbox: PathSandbox,
        tree_builder: ContentTreeBuilder,
        matcher: FuzzyMatcher | None = None,
        *,
        snippet_chars: int = DEFAULT_SNIPPET_CHARS,
    ) -> None:
        self.storage = storage
        self.sandbox = sandbox
        self.tree_builder = tree_builder
        self.matcher = matcher or WeightedFuzzyMatcher()
        self.snippet_chars = snippet_chars
        self.index: Any = None
        self.built_at: datetime | None = None
        self._documents: dict[str, SearchDocument] = {}
        self._lock = threading.Lock()

    @property
    def documents(self) -> list[SearchDocument]:
        with self._lock:
            return list(self._documents.values())

    @property
    def is_ready(self) -> bool:
        return self.index is not None

    def list_products(self) -> list[str]:
        """Return the product directories under the content root."""
        try:
            entries = self.storage.list_dir(self.sandbox.root)
        except OSError as exc:
            raise IndexBuildError(f"Cannot list products in {self.sandbox.root}: {exc}") from exc
        return sorted(entry.name for entry in entries if entry.is_dir and not entry.name.startswith("."))

    def build_full(self) -> int:
        """Re-index every product and return the number of documents."""
        LOGGER.info("Starting full index build...")
        products = self.list_products()
        LOGGER.info("Found %d product(s) to index", len(products))

        documents: dict[str, SearchDocument] = {}
        for product_id in products:
            try:
                product_documents = self.build_product(product_id)
            except ContentError as exc:
                LOGGER.error("Error building index for %s: %s", product_id, exc)
                continue
            for document in product_documents:
                documents[document.path] = document

        with self._lock:
            self._documents = documents
            self._rebuild()
        if documents:
            LOGGER.info("Index build complete: %d document(s) indexed", len(documents))
        else:
            LOGGER.warning("Index build complete: no documents indexed (empty content directory)")
        return len(documents)

    def build_product(self, product_id: str) -> list[SearchDocument]:
        """Extract a document for every content file of one product.

        Files that vanish or cannot be read are skipped and reported once as a
        count for the whole product.
        """
        LOGGER.info("Building index for product: %s", product_id)
        product_path = self.sandbox.resolve(product_id)
        tree = self.tree_builder.build(product_path)

        documents: list[SearchDocument] = []
        skipped = 0
        for node in iter_files(tree):
            try:
                documents.append(self._load_document(f"{product_id}/{node.path}"))
            except (OSError, UnicodeDecodeError, ContentError):
                skipped += 1

        if skipped:
            LOGGER.warning("Skipped %d unreadable file(s) in product: %s", skipped, product_id)
        return documents

    def update_one(self, path: str) -> None:
        """Replace the document for ``path`` with one read from disk now.

        A file that no longer exists simply stays out of the index.
        """
        self.update_many([path])

    def update_many(self, paths: list[str]) -> None:
        keys = [self._key(path) for path in paths]
        loaded: dict[str, SearchDocument | None] = {}
        for key in keys:
            loaded[key] = None
            if not is_indexable(key):
                continue
            try:
                loaded[key] = self._load_document(key)
                LOGGER.info("Updated file in index: %s", key)
            except (OSError, UnicodeDecodeError, ContentError):
                LOGGER.info("File no longer exists or is inaccessible: %s", key)

        with self._lock:
            for key, document in loaded.items():
                self._documents.pop(key, None)
                if document is not None:
                    self._documents[key] = document
            self._rebuild()

    def remove(self, path: str) -> int:
        """Drop the document at ``path`` and any below it (for directories)."""
        key = self._key(path)
        prefix = f"{key}/"
        with self._lock:
            doomed = [doc_path for doc_path in self._documents if doc_path == key or doc_path.startswith(prefix)]
            for doc_path in doomed:
                del self._documents[doc_path]
            self._rebuild()
        return len(doomed)

    def stats(self) -> IndexStats:
        documents = self.documents
        return IndexStats(
            total_documents=len(documents),
            indexed=self.is_ready,
            products=sorted({doc.product_id for doc in documents}),
            built_at=self.built_at,
        )

    def _key(self, path: str) -> str:
        return self.sandbox.relative(self.sandbox.resolve(path))

    def _rebuild(self) -> None:
        self.index = self.matcher.index(list(self._documents.values()))
        self.built_at = datetime.now(timezone.utc)

    def _load_document(self, path: str) -> SearchDocument:
        absolute = self.sandbox.resolve(path)
        raw_content = self.storage.read_text(absolute)

        parts = path.split("/")
        product_id = parts[0]
        file_name = parts[-1]
        category = parts[-2] if len(parts) > 1 else product_id
        _, clean_name = slugs.split_ordinal(slugs.strip_extension(file_name))

        return SearchDocument(
            title=extract_title(raw_content, clean_name),
            content=truncate(extract_plain_text(raw_content), self.snippet_chars),
            path=path,
            url_slug=slugs.encode(file_name),
            file_name=file_name,
            file_type="mdx" if file_name.endswith(".mdx") else "md",
            category=category,
            product_id=product_id,
        )
