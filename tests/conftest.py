"""Shared fixtures: a small on-disk documentation tree."""

from __future__ import annotations

from pathlib import Path

import pytest

from quantomdocs.config import AppConfig
from quantomdocs.runtime import DocsRuntime, build_runtime

QUICK_START = "# Quick Start\n\nInstall the **Quantom** server and run `quantom init`.\n"
CONFIGURATION = "# Configuration\n\nEdit the [settings file](settings.md) to tune caching.\n"
PLUGINS = "# Plugins\n\n<Callout>Plugins extend the server.</Callout>\n"
FAQ = "Frequently asked questions about licensing.\n"
OTHER_INTRO = "# Other Intro\n\nA second product with its own pages.\n"


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """Two products: ``quantom`` with nested categories and ``other``."""
    root = tmp_path / "content"
    quantom = root / "quantom"
    write(quantom / "01-Getting-Started" / "Quick-Start.md", QUICK_START)
    write(quantom / "01-Getting-Started" / "index.md", "# Getting Started\n")
    write(quantom / "02-Guides" / "Configuration.md", CONFIGURATION)
    write(quantom / "02-Guides" / "Advanced" / "Plugins.mdx", PLUGINS)
    write(quantom / "FAQ.md", FAQ)
    write(quantom / ".draft.md", "# Hidden draft\n")
    write(quantom / "logo.png", "not markdown")
    write(root / "other" / "Intro.md", OTHER_INTRO)
    return root.resolve()


@pytest.fixture
def runtime(content_root: Path) -> DocsRuntime:
    return build_runtime(AppConfig(content_root=content_root, editor_token="secret"))


@pytest.fixture
def indexed_runtime(runtime: DocsRuntime) -> DocsRuntime:
    runtime.indexer.build_full()
    return runtime
