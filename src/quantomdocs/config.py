"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

CONTENT_DIR_ENV = "QUANTOM_CONTENT_DIR"
EDITOR_TOKEN_ENV = "QUANTOM_EDITOR_TOKEN"


def _get_default_content_root() -> Path:
    """Get the default content directory, honouring the environment override."""
    override = os.environ.get(CONTENT_DIR_ENV)
    if override:
        return Path(override)
    return Path("content")


@dataclass(slots=True)
class AppConfig:
    content_root: Path | None = None
    cache_ttl: float = 600.0
    cache_check_period: float = 120.0
    snippet_chars: int = 500
    search_limit: int = 20
    search_threshold: float = 0.3
    max_tree_depth: int = 32
    editor_token: str | None = None

    def __post_init__(self) -> None:
        if self.content_root is None:
            self.content_root = _get_default_content_root()
        if self.editor_token is None:
            self.editor_token = os.environ.get(EDITOR_TOKEN_ENV) or None

    def resolve_content_root(self, base_dir: Path | None = None) -> Path:
        if self.content_root is None:
            self.content_root = _get_default_content_root()
        root = Path(self.content_root)
        if not root.is_absolute() and base_dir is not None:
            root = base_dir / root
        return Path(os.path.realpath(root))
