"""Fuzzy search interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List

from quantomdocs.index.indexer import SearchIndexer

LOGGER = logging.getLogger(__name__)

DEFAULT_LIMIT = 20


@dataclass(slots=True)
class SearchResult:
    score: float
    title: str
    content: str
    path: str
    url_slug: str
    file_name: str
    file_type: str
    category: str
    product_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "title": self.title,
            "content": self.content,
            "path": self.path,
            "urlSlug": self.url_slug,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "category": self.category,
            "productId": self.product_id,
        }


class Searcher:
    """High-level API to query the index held by a :class:`SearchIndexer`."""

    def __init__(self, indexer: SearchIndexer) -> None:
        self.indexer = indexer

    def search(self, query: str, *, product: str | None = None, limit: int = DEFAULT_LIMIT) -> List[SearchResult]:
        if not query or not query.strip():
            return []
        if not self.indexer.is_ready:
            LOGGER.warning("Search index not initialized")
            return []

        matches = self.indexer.matcher.query(self.indexer.index, query)
        if product:
            matches = [match for match in matches if match.document.product_id == product]

        results: List[SearchResult] = []
        for match in matches[: max(limit, 0)]:
            doc = match.document
            results.append(
                SearchResult(
                    score=match.score,
                    title=doc.title,
                    content=doc.content,
                    path=doc.path,
                    url_slug=doc.url_slug,
                    file_name=doc.file_name,
                    file_type=doc.file_type,
                    category=doc.category,
                    product_id=doc.product_id,
                )
            )
        return results
