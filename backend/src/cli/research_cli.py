"""
Research Search CLI - command-line interface for the paper repository.

Commands:
- init-db: Create the database schema
- import-documents: Load papers from a JSON file
- search: Advanced search with field qualifiers and filters
- similar: Papers similar to a given paper
- recommend: Recommendations for a user
- view / bookmark: Record user interactions
- stats: Repository statistics
- serve: Run the HTTP API
"""

# Load environment variables before any other imports
# This ensures production paths are available to config modules
from pathlib import Path
from dotenv import load_dotenv

env_path = Path(__file__).parent.parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

# Standard library imports
import json
import sys
import logging

# Third-party imports
import click
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from config.search_config import DATABASE_PATH, API_CONFIG, SEARCH_CONFIG, LOG_LEVEL
from src.search.search_engine import SearchEngine, SearchParams, DocumentNotFoundError
from src.storage.database import init_database

console = Console()

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def open_engine(db_path: str) -> SearchEngine:
    engine = SearchEngine(db_path=db_path)
    engine.connect_db()
    return engine


def print_documents(documents, title: str):
    """Render papers as a rich table."""
    if not documents:
        console.print("[yellow]No papers found.[/yellow]\n")
        return

    table = Table(title=title)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Title", style="cyan", max_width=50)
    table.add_column("Authors", style="green", max_width=30)
    table.add_column("Category", style="yellow")
    table.add_column("Year", justify="right")
    table.add_column("Views", justify="right", style="blue")

    for doc in documents:
        table.add_row(
            str(doc.id),
            doc.title[:47] + "..." if len(doc.title) > 50 else doc.title,
            ", ".join(doc.authors) or "Unknown",
            doc.category,
            str(doc.year_completed or ""),
            str(doc.view_count)
        )

    console.print(table)
    console.print()


@click.group()
def cli():
    """Research Search CLI - Manage, search and recommend research papers."""
    pass


# ============================================================================
# Database Commands
# ============================================================================

@cli.command()
@click.option('--db-path', '-d', default=DATABASE_PATH, help='Database path')
def init_db(db_path):
    """Initialize the database schema."""
    console.print("\n[bold cyan]Initializing Database[/bold cyan]\n")

    try:
        db = init_database(db_path)
        db.close()
        console.print(f"[green]✓[/green] Database initialized at: {db_path}")
        console.print("[green]✓[/green] Schema created successfully\n")
    except Exception as e:
        console.print(f"[red]Error initializing database: {e}[/red]\n")
        sys.exit(1)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--db-path', '-d', default=DATABASE_PATH, help='Database path')
def import_documents(file, db_path):
    """
    Import papers from a JSON file.

    The file holds a list of objects with title, abstract, authors,
    keywords, subject_area, category, year_completed and optionally
    view_count, status and created_at.
    """
    console.print(f"\n[bold cyan]Importing papers from[/bold cyan] {file}\n")

    try:
        with open(file, 'r', encoding='utf-8') as f:
            documents = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read {file}: {e}[/red]\n")
        sys.exit(1)

    if not isinstance(documents, list):
        console.print("[red]Expected a JSON list of papers[/red]\n")
        sys.exit(1)

    engine = open_engine(db_path)
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console
        ) as progress:
            task = progress.add_task(f"Saving {len(documents)} papers...", total=None)
            stats = engine.store.save_documents_batch(documents)
            progress.remove_task(task)
    finally:
        engine.close()

    table = Table(title="Import Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Saved", str(stats['saved']))
    table.add_row("Failed", str(stats['failed']))
    console.print(table)
    console.print()


# ============================================================================
# Search Commands
# ============================================================================

@cli.command()
@click.argument('query')
@click.option('--category', '-c', type=click.Choice(['Completed', 'Published']), help='Filter by category')
@click.option('--year', '-y', type=int, help='Filter by year completed')
@click.option('--subject', '-s', help='Filter by subject area')
@click.option('--author', '-a', help='Filter by author')
@click.option('--semantic', is_flag=True, help='Re-rank results by TF-IDF relevance')
@click.option('--limit', '-l', default=SEARCH_CONFIG['default_limit'], type=int, help='Maximum results to return')
@click.option('--db-path', default=DATABASE_PATH, help='Database path')
def search(query, category, year, subject, author, semantic, limit, db_path):
    """
    Search approved papers.

    Example usage:
        research-search search "nursing"
        research-search search 'author:Smith AND pain' --semantic
        research-search search 'title:"heart failure"' --category Published
        research-search search "diabetes NOT insulin" --year 2021
    """
    console.print(f"\n[bold cyan]Searching for:[/bold cyan] '{query}'\n")

    params = SearchParams(
        query=query,
        category=category,
        year_completed=year,
        subject_area=subject,
        author=author,
        semantic=semantic,
        limit=limit
    )

    try:
        engine = open_engine(db_path)
        try:
            documents = engine.search(params)
        finally:
            engine.close()

        console.print(f"[bold green]Found {len(documents)} papers[/bold green]\n")
        print_documents(documents, "Search Results")

    except Exception as e:
        console.print(f"[red]Search error: {e}[/red]\n")
        if LOG_LEVEL == "DEBUG":
            import traceback
            console.print(traceback.format_exc())
        sys.exit(1)


@cli.command()
@click.argument('document_id', type=int)
@click.option('--limit', '-l', default=SEARCH_CONFIG['similar_default_limit'], type=int, help='Maximum results')
@click.option('--db-path', default=DATABASE_PATH, help='Database path')
def similar(document_id, limit, db_path):
    """Find papers similar to DOCUMENT_ID."""
    engine = open_engine(db_path)
    try:
        documents = engine.find_similar(document_id, limit)
    except DocumentNotFoundError:
        console.print(f"[red]Paper {document_id} not found[/red]\n")
        sys.exit(1)
    finally:
        engine.close()

    print_documents(documents, f"Similar to paper {document_id}")


@cli.command()
@click.argument('user_id')
@click.option('--limit', '-l', default=SEARCH_CONFIG['recommendation_default_limit'], type=int, help='Maximum results')
@click.option('--db-path', default=DATABASE_PATH, help='Database path')
def recommend(user_id, limit, db_path):
    """Recommend papers for USER_ID."""
    engine = open_engine(db_path)
    try:
        documents = engine.recommend(user_id, limit)
    finally:
        engine.close()

    print_documents(documents, f"Recommendations for {user_id}")


# ============================================================================
# Interaction Commands
# ============================================================================

@cli.command()
@click.argument('user_id')
@click.argument('document_id', type=int)
@click.option('--db-path', default=DATABASE_PATH, help='Database path')
def view(user_id, document_id, db_path):
    """Record that USER_ID viewed DOCUMENT_ID."""
    engine = open_engine(db_path)
    try:
        recorded = engine.store.record_view(user_id, document_id)
    finally:
        engine.close()

    if not recorded:
        console.print(f"[red]Paper {document_id} not found[/red]\n")
        sys.exit(1)
    console.print(f"[green]✓[/green] View recorded for {user_id}\n")


@cli.command()
@click.argument('user_id')
@click.argument('document_id', type=int)
@click.option('--db-path', default=DATABASE_PATH, help='Database path')
def bookmark(user_id, document_id, db_path):
    """Bookmark DOCUMENT_ID for USER_ID."""
    engine = open_engine(db_path)
    try:
        if engine.store.get_document(document_id) is None:
            console.print(f"[red]Paper {document_id} not found[/red]\n")
            sys.exit(1)
        created = engine.store.add_bookmark(user_id, document_id)
    finally:
        engine.close()

    if created:
        console.print(f"[green]✓[/green] Bookmark added for {user_id}\n")
    else:
        console.print("[yellow]Already bookmarked[/yellow]\n")


@cli.command()
@click.option('--db-path', '-d', default=DATABASE_PATH, help='Database path')
def stats(db_path):
    """Display repository statistics."""
    console.print("\n[bold cyan]Research Repository Statistics[/bold cyan]\n")

    engine = open_engine(db_path)
    try:
        statistics = engine.get_stats()
    finally:
        engine.close()

    table = Table(title="Repository Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Total Papers", str(statistics['total_documents']))
    table.add_row("Approved Papers", str(statistics['approved_documents']))
    table.add_row("Total Views", str(statistics['total_views']))
    table.add_row("Total Bookmarks", str(statistics['total_bookmarks']))
    console.print(table)

    if statistics['approved_by_category']:
        category_table = Table(title="Approved by Category")
        category_table.add_column("Category", style="cyan")
        category_table.add_column("Papers", justify="right", style="green")
        for category, count in sorted(statistics['approved_by_category'].items()):
            category_table.add_row(category, str(count))
        console.print(category_table)

    console.print()


# ============================================================================
# Server
# ============================================================================

@cli.command()
@click.option('--host', default=API_CONFIG['host'], help='Bind address')
@click.option('--port', default=API_CONFIG['port'], type=int, help='Port')
@click.option('--reload', is_flag=True, default=API_CONFIG['reload'], help='Auto-reload on code changes')
def serve(host, port, reload):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=API_CONFIG['log_level']
    )


if __name__ == '__main__':
    cli()
