"""Construction and teardown of the process-wide content components."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from quantomdocs.config import AppConfig
from quantomdocs.content.cache import RenderCache
from quantomdocs.content.render import MarkdownRenderer
from quantomdocs.content.sandbox import PathSandbox
from quantomdocs.content.service import ContentService
from quantomdocs.content.storage import FileSystemStorage
from quantomdocs.content.tree import ContentTreeBuilder
from quantomdocs.errors import IndexBuildError
from quantomdocs.index.fuzzy import WeightedFuzzyMatcher
from quantomdocs.index.indexer import SearchIndexer
from quantomdocs.index.search import Searcher

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class DocsRuntime:
    """The render cache and search index of one process.

    Built once at start-up and closed on shutdown. Nothing here is shared
    between processes: each replica owns an independently stale copy.
    """

    config: AppConfig
    sandbox: PathSandbox
    cache: RenderCache
    indexer: SearchIndexer
    searcher: Searcher
    content: ContentService

    def build_index(self) -> int | None:
        """Build the search index, logging instead of raising on failure."""
        try:
            return self.indexer.build_full()
        except IndexBuildError as exc:
            LOGGER.error("Initial index build failed: %s", exc)
            return None

    def close(self) -> None:
        self.cache.invalidate_all()


def build_runtime(config: AppConfig | None = None, base_dir: Path | None = None) -> DocsRuntime:
    config = config or AppConfig()
    root = config.resolve_content_root(base_dir or Path.cwd())

    storage = FileSystemStorage()
    sandbox = PathSandbox(root)
    tree_builder = ContentTreeBuilder(storage, max_depth=config.max_tree_depth)
    cache = RenderCache(
        storage,
        MarkdownRenderer(),
        ttl_seconds=config.cache_ttl,
        check_period=config.cache_check_period,
    )
    indexer = SearchIndexer(
        storage,
        sandbox,
        tree_builder,
        WeightedFuzzyMatcher(threshold=config.search_threshold),
        snippet_chars=config.snippet_chars,
    )
    return DocsRuntime(
        config=config,
        sandbox=sandbox,
        cache=cache,
        indexer=indexer,
        searcher=Searcher(indexer),
        content=ContentService(sandbox, storage, tree_builder, cache, indexer),
    )
