"""Command line interface for QuantomDocs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from quantomdocs.config import AppConfig
from quantomdocs.errors import ContentError, IndexBuildError
from quantomdocs.models import ContentNode
from quantomdocs.runtime import build_runtime


console = Console()
app = typer.Typer(help="QuantomDocs - markdown documentation server with fuzzy search")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _config(content: Optional[Path]) -> AppConfig:
    return AppConfig(content_root=content)


def _add_nodes(branch: Tree, nodes: list[ContentNode]) -> None:
    for node in nodes:
        if node.is_category:
            marker = " [dim](index)[/dim]" if node.has_index else ""
            child = branch.add(f"[bold]{node.display_name}[/bold] [cyan]{node.url_slug}[/cyan]{marker}")
            _add_nodes(child, node.children)
        else:
            branch.add(f"{node.display_name} [cyan]{node.url_slug}[/cyan] [dim]{node.file_type}[/dim]")


@app.command()
def index(
    content: Path = typer.Option(None, "--content", help="Content root directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Build the search index for every product and report the totals."""
    _setup_logging(verbose)
    runtime = build_runtime(_config(content))

    console.print(f"Indexing [bold]{runtime.sandbox.root}[/bold]...")
    try:
        count = runtime.indexer.build_full()
    except IndexBuildError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    stats = runtime.indexer.stats()
    if not count:
        console.print("[yellow]No documents found.[/yellow]")
        return
    console.print(f"Indexed: {count} document(s) across {len(stats.products)} product(s)")


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    content: Path = typer.Option(None, "--content", help="Content root directory"),
    product: Optional[str] = typer.Option(None, help="Only show results from this product"),
    limit: int = typer.Option(AppConfig().search_limit, help="Number of results to display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Run a fuzzy search over freshly indexed content."""
    _setup_logging(verbose)
    runtime = build_runtime(_config(content))
    try:
        runtime.indexer.build_full()
    except IndexBuildError as exc:
        raise typer.BadParameter(str(exc)) from exc

    results = runtime.searcher.search(query, product=product, limit=limit)
    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Title")
    table.add_column("Path")
    table.add_column("Snippet")

    for result in results:
        table.add_row(f"{result.score:.4f}", result.title, result.path, result.content[:120])

    console.print(table)


@app.command()
def tree(
    product: str = typer.Argument(..., help="Product to display"),
    content: Path = typer.Option(None, "--content", help="Content root directory"),
) -> None:
    """Print the navigation tree of one product."""
    runtime = build_runtime(_config(content))
    try:
        product_tree = runtime.content.get_tree(product)
    except ContentError as exc:
        console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=1) from exc

    root = Tree(f"[bold magenta]{product_tree.product}[/bold magenta]")
    _add_nodes(root, product_tree.tree)
    console.print(root)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(5005, help="Server port"),
    content: Path = typer.Option(None, "--content", help="Content root directory"),
    editor_token: Optional[str] = typer.Option(None, "--editor-token", help="Bearer token for editor routes"),
) -> None:
    """Start the web server."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from quantomdocs.web.app import create_app

    config = AppConfig(content_root=content, editor_token=editor_token)
    resolved_root = config.resolve_content_root(Path.cwd())
    if not resolved_root.exists():
        console.print("[yellow]Warning: content directory not found, products will be empty.[/yellow]")

    console.print(f"Starting web server on http://{host}:{port} (content: {resolved_root})")
    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
