import asyncio
import logging
from pathlib import Path
from typing import List, Optional
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress
from rich.prompt import Confirm
from rich.traceback import install
from rich.table import Table

from .config import BookcatConfig, load_config, get_config_path
from .decorators import handle_catalog_errors
from .exceptions import NotFoundError
from .library import Bookshelf
from .models import Book, BookFormData, Catalog, FilterOptions, ImportResult, parse_year
from .services.filter_service import filter_books, pick_random

# Initialize Rich Traceback for better error messages
install(show_locals=False)

# Initialize Rich Console
console = Console()

# Configure logging to use Rich's RichHandler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

# Main app
app = typer.Typer(help="Personal book catalogs with CSV/HTML import and export")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", envvar="BOOKCAT_CONFIG",
        help="Config file (defaults to ~/.config/bookcat/config.json)"
    ),
    user: Optional[str] = typer.Option(
        None, "--user", "-u", envvar="BOOKCAT_USER",
        help="Act as this user (database backend); omit for guest mode"
    ),
):
    """
    bookcat - organize books into catalogs, import and export them.

    Without --user everything is kept in the local guest store; with --user
    (and a configured database) catalogs live in the database.
    """
    config = load_config(config_file)
    if verbose or config.cli.verbose:
        logging.getLogger("bookcat").setLevel(logging.DEBUG)
        if verbose:
            console.print("[bold green]Verbose mode enabled.[/bold green]")
    else:
        logging.getLogger("bookcat").setLevel(logging.WARNING)

    ctx.obj = {"config": config, "config_file": config_file, "user": user}


def _config(ctx: typer.Context) -> BookcatConfig:
    return ctx.obj["config"]


def _user(ctx: typer.Context) -> Optional[str]:
    return ctx.obj["user"]


async def _resolve_catalog(shelf: Bookshelf, user_id: Optional[str],
                           ref: Optional[str]) -> Catalog:
    """Find a catalog by id or (case-insensitive) name, or pick the default one."""
    catalogs = await shelf.catalogs.get_catalogs(user_id)

    if ref:
        for catalog in catalogs:
            if catalog.id == ref or catalog.name.lower() == ref.lower():
                return catalog
        raise NotFoundError("catalog", ref)

    if not user_id:
        active_id = shelf.catalogs.get_active_catalog_id()
        for catalog in catalogs:
            if catalog.id == active_id:
                return catalog
    return catalogs[0]


def _filter_options(favorites: bool, read: bool, unread: bool, genre: Optional[str],
                    holiday: Optional[str], tags: Optional[List[str]],
                    search: Optional[str]) -> FilterOptions:
    return FilterOptions(
        favorites=favorites or None,
        read=read or None,
        unread=unread or None,
        genre=genre,
        holiday_category=holiday,
        tags=tags or None,
        search=search,
    )


def _books_table(books: List[Book], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="green")
    table.add_column("Author", style="blue")
    table.add_column("Genre", style="magenta")
    table.add_column("Year", justify="right")
    table.add_column("Tags", style="cyan")
    table.add_column("", justify="center")

    for book in books:
        marks = ("★" if book.is_favorite else "") + ("✓" if book.is_read else "")
        table.add_row(
            book.id[:8],
            book.title[:50],
            book.author[:30],
            book.genre or "",
            str(book.publication_year or ""),
            ", ".join(book.tags),
            marks,
        )
    return table


def _preview_table(result: ImportResult, limit: int = 20) -> Table:
    table = Table(title=f"Import Preview ({result.valid_records} of {result.total_records} records)")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="green")
    table.add_column("Author", style="blue")
    table.add_column("Year", justify="right")
    table.add_column("Tags", style="cyan")

    for index, record in enumerate(result.books[:limit], start=1):
        table.add_row(
            str(index),
            record.title[:50],
            record.author[:30],
            str(record.publication_year or ""),
            ", ".join(record.tags),
        )
    return table


# ============================================================================
# Catalog Commands
# ============================================================================

@app.command()
@handle_catalog_errors
def catalogs(ctx: typer.Context):
    """List catalogs (a default catalog is created when there are none)."""
    shelf = Bookshelf.open(_config(ctx))
    try:
        results = asyncio.run(shelf.catalogs.get_catalogs(_user(ctx)))
        active_id = None if _user(ctx) else shelf.catalogs.get_active_catalog_id()

        table = Table(title="Catalogs")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="green")
        table.add_column("Icon", style="magenta")
        table.add_column("Color", style="cyan")
        table.add_column("Description")

        for catalog in results:
            name = catalog.name
            if catalog.id == active_id:
                name = f"{name} [bold](active)[/bold]"
            table.add_row(
                catalog.id,
                name,
                catalog.icon or "",
                catalog.color or "",
                catalog.description or "",
            )
        console.print(table)
    finally:
        shelf.close()


@app.command("create-catalog")
@handle_catalog_errors
def create_catalog(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Catalog name"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
    icon: Optional[str] = typer.Option(None, "--icon", help="Icon name (e.g. Library, Heart, Star)"),
    color: Optional[str] = typer.Option(None, "--color", help="Palette name or #RRGGBB"),
    activate: bool = typer.Option(False, "--activate", help="Make this the active guest catalog"),
):
    """Create a new catalog."""
    shelf = Bookshelf.open(_config(ctx))
    try:
        catalog = asyncio.run(shelf.catalogs.create_catalog(
            _user(ctx), name, description=description, icon=icon, color=color,
        ))
        if activate and not _user(ctx):
            shelf.catalogs.set_active_catalog_id(catalog.id)
        console.print(f"[green]✓ Created catalog '{catalog.name}' ({catalog.id})[/green]")
    finally:
        shelf.close()


@app.command("delete-catalog")
@handle_catalog_errors
def delete_catalog(
    ctx: typer.Context,
    catalog: str = typer.Argument(..., help="Catalog id or name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a catalog and all of its books."""
    shelf = Bookshelf.open(_config(ctx))
    try:
        user_id = _user(ctx)
        target = asyncio.run(_resolve_catalog(shelf, user_id, catalog))
        all_catalogs = asyncio.run(shelf.catalogs.get_catalogs(user_id))
        if len(all_catalogs) <= 1:
            console.print("[red]Error: Cannot delete your only catalog[/red]")
            raise typer.Exit(code=1)

        book_count = len(asyncio.run(shelf.books.get_books(user_id, target.id)))
        if not yes:
            console.print(f"[yellow]'{target.name}' contains {book_count} books.[/yellow]")
            if not Confirm.ask("Are you sure?"):
                console.print("[yellow]Cancelled[/yellow]")
                raise typer.Exit(code=0)

        asyncio.run(shelf.catalogs.delete_catalog(user_id, target.id))
        console.print(f"[green]✓ Deleted catalog '{target.name}' and {book_count} books[/green]")
    finally:
        shelf.close()


# ============================================================================
# Book Commands
# ============================================================================

@app.command("list")
@handle_catalog_errors
def list_books(
    ctx: typer.Context,
    catalog: Optional[str] = typer.Option(None, "--catalog", "-c", help="Catalog id or name"),
    favorites: bool = typer.Option(False, "--favorites", help="Only favorites"),
    read: bool = typer.Option(False, "--read", help="Only books marked read"),
    unread: bool = typer.Option(False, "--unread", help="Only unread books"),
    genre: Optional[str] = typer.Option(None, "--genre", help="Exact genre"),
    holiday: Optional[str] = typer.Option(None, "--holiday", help="Exact holiday category"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Any of these tags (repeatable)"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Search title, author and description"),
):
    """List the books of a catalog, newest first."""
    shelf = Bookshelf.open(_config(ctx))
    try:
        user_id = _user(ctx)
        target = asyncio.run(_resolve_catalog(shelf, user_id, catalog))
        books = asyncio.run(shelf.books.get_books(user_id, target.id))
        filtered = filter_books(books, _filter_options(favorites, read, unread, genre,
                                                       holiday, tags, search))

        if not filtered:
            console.print(f"[yellow]No books found in '{target.name}'[/yellow]")
            return

        console.print(_books_table(filtered, target.name))
        console.print(f"\n[dim]Showing {len(filtered)} of {len(books)} books[/dim]")
    finally:
        shelf.close()


@app.command()
@handle_catalog_errors
def add(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Book title"),
    author: str = typer.Argument(..., help="Book author"),
    catalog: Optional[str] = typer.Option(None, "--catalog", "-c", help="Catalog id or name"),
    genre: Optional[str] = typer.Option(None, "--genre", help="Genre"),
    holiday: Optional[str] = typer.Option(None, "--holiday", help="Holiday category"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="ISBN"),
    year: Optional[str] = typer.Option(None, "--year", help="Publication year"),
    cover: Optional[str] = typer.Option(None, "--cover", help="Cover image URL"),
    description: Optional[str] = typer.Option(None, "--description", help="Description"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
    enrich: bool = typer.Option(True, "--enrich/--no-enrich", help="Look up missing metadata online"),
):
    """Add a book to a catalog."""
    publication_year = None
    if year:
        publication_year = parse_year(year)
        if publication_year is None:
            raise ValueError(f"Invalid publication year: {year}")

    data = BookFormData(
        title=title,
        author=author,
        genre=genre,
        holiday_category=holiday,
        cover_image_url=cover,
        isbn=isbn,
        publication_year=publication_year,
        description=description,
        tags=list(tags or []),
    )

    shelf = Bookshelf.open(_config(ctx))
    try:
        user_id = _user(ctx)
        target = asyncio.run(_resolve_catalog(shelf, user_id, catalog))
        book = asyncio.run(shelf.books.add_book(user_id, target.id, data, auto_enrich=enrich))
        console.print(f"[green]✓ Added '{book.title}' by {book.author} to '{target.name}'[/green]")
        if book.genre or book.publication_year:
            console.print(f"[dim]  {book.genre or '?'}, {book.publication_year or '?'}[/dim]")
    finally:
        shelf.close()


@app.command()
@handle_catalog_errors
def random(
    ctx: typer.Context,
    catalog: Optional[str] = typer.Option(None, "--catalog", "-c", help="Catalog id or name"),
    favorites: bool = typer.Option(False, "--favorites", help="Only favorites"),
    read: bool = typer.Option(False, "--read", help="Only books marked read"),
    unread: bool = typer.Option(False, "--unread", help="Only unread books"),
    genre: Optional[str] = typer.Option(None, "--genre", help="Exact genre"),
    holiday: Optional[str] = typer.Option(None, "--holiday", help="Exact holiday category"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Any of these tags"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Search text"),
):
    """Pick a random book to read next."""
    shelf = Bookshelf.open(_config(ctx))
    try:
        user_id = _user(ctx)
        target = asyncio.run(_resolve_catalog(shelf, user_id, catalog))
        books = asyncio.run(shelf.books.get_books(user_id, target.id))
        filtered = filter_books(books, _filter_options(favorites, read, unread, genre,
                                                       holiday, tags, search))
        book = pick_random(filtered)
        if book is None:
            console.print("[yellow]No books match the current filters[/yellow]")
            raise typer.Exit(code=1)

        console.print(f"[bold green]{book.title}[/bold green] by [blue]{book.author}[/blue]")
        if book.description:
            console.print(f"[dim]{book.description[:300]}[/dim]")
    finally:
        shelf.close()


@app.command()
@handle_catalog_errors
def mark(
    ctx: typer.Context,
    book_id: str = typer.Argument(..., help="Book id"),
    favorite: bool = typer.Option(False, "--favorite", help="Toggle favorite"),
    read: bool = typer.Option(False, "--read", help="Toggle read"),
):
    """Toggle the favorite and/or read flag of a book."""
    if not (favorite or read):
        raise ValueError("Pass --favorite and/or --read")

    shelf = Bookshelf.open(_config(ctx))
    try:
        user_id = _user(ctx)
        book = None
        if favorite:
            book = asyncio.run(shelf.books.toggle_favorite(user_id, book_id))
        if read:
            book = asyncio.run(shelf.books.toggle_read(user_id, book_id))
        console.print(
            f"[green]✓ '{book.title}': favorite={book.is_favorite}, read={book.is_read}[/green]"
        )
    finally:
        shelf.close()


# ============================================================================
# Import / Export Commands
# ============================================================================

@app.command("import")
@handle_catalog_errors
def import_file(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="CSV or HTML file exported by bookcat"),
    catalog: Optional[str] = typer.Option(None, "--catalog", "-c", help="Catalog id or name"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the preview without importing"),
    enrich: bool = typer.Option(True, "--enrich/--no-enrich", help="Look up missing metadata online"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Import without confirmation"),
):
    """Import books from a CSV or HTML file."""
    if not file.exists():
        raise FileNotFoundError(str(file))

    shelf = Bookshelf.open(_config(ctx))
    try:
        result = asyncio.run(shelf.importer.import_from_file(file))

        for warning in result.warnings:
            console.print(f"[yellow]⚠ {warning}[/yellow]")
        if not result.success:
            for error in result.errors:
                console.print(f"[red]✗ {error}[/red]")
            raise typer.Exit(code=1)

        console.print(_preview_table(result))
        if dry_run:
            console.print("[dim]Dry run: nothing imported[/dim]")
            return

        user_id = _user(ctx)
        target = asyncio.run(_resolve_catalog(shelf, user_id, catalog))
        if not yes and not Confirm.ask(f"Import {result.valid_records} books into '{target.name}'?"):
            console.print("[yellow]Cancelled[/yellow]")
            return

        with Progress() as progress:
            task = progress.add_task("[cyan]Importing books...", total=len(result.books))

            def advance(imported: int, total: int):
                progress.update(task, completed=imported)

            summary = asyncio.run(shelf.importer.commit_import(
                shelf.books, user_id, target.id, result,
                auto_enrich=enrich, progress=advance,
            ))

        console.print(f"[green]✓ Imported {summary.imported} of {summary.attempted} books[/green]")
        if summary.failed:
            console.print(f"[yellow]⚠ {summary.failed} records failed[/yellow]")
            for error in summary.errors:
                console.print(f"[dim]  {error}[/dim]")
    finally:
        shelf.close()


@app.command()
@handle_catalog_errors
def export(
    ctx: typer.Context,
    format: str = typer.Option("csv", "--format", "-f", help="csv, xlsx (spreadsheet HTML) or pdf (print view)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file or directory"),
    catalog: Optional[str] = typer.Option(None, "--catalog", "-c", help="Catalog id or name"),
    favorites: bool = typer.Option(False, "--favorites", help="Only favorites"),
    read: bool = typer.Option(False, "--read", help="Only books marked read"),
    unread: bool = typer.Option(False, "--unread", help="Only unread books"),
    genre: Optional[str] = typer.Option(None, "--genre", help="Exact genre"),
    holiday: Optional[str] = typer.Option(None, "--holiday", help="Exact holiday category"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Any of these tags"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Search text"),
):
    """Export the (filtered) books of a catalog."""
    shelf = Bookshelf.open(_config(ctx))
    try:
        user_id = _user(ctx)
        target = asyncio.run(_resolve_catalog(shelf, user_id, catalog))
        books = asyncio.run(shelf.books.get_books(user_id, target.id))
        filtered = filter_books(books, _filter_options(favorites, read, unread, genre,
                                                       holiday, tags, search))

        artifact = shelf.exporter.export_books(filtered, format.lower(),
                                               filename=target.name, title=target.name)

        if output is None:
            destination = Path.cwd() / artifact.filename
        elif output.is_dir():
            destination = output / artifact.filename
        else:
            destination = output
        destination.write_text(artifact.content, encoding="utf-8")

        console.print(f"[green]✓ Exported {len(filtered)} books to {destination}[/green]")
        if artifact.inline:
            console.print("[dim]Open the file in a browser to print or save it as PDF[/dim]")
    finally:
        shelf.close()


# ============================================================================
# Server and Configuration
# ============================================================================

@app.command()
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind to (defaults from config)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind to (defaults from config)"),
):
    """
    Start the JSON API server.

    Examples:
        # Start server with configured defaults
        bookcat serve

        # Override config for one-time use
        bookcat serve --port 8080
    """
    import uvicorn
    from .server import create_app

    config = _config(ctx)
    server_host = host if host is not None else config.server.host
    server_port = port if port is not None else config.server.port

    try:
        app_instance = create_app(config)

        console.print("[blue]Starting bookcat server...[/blue]")
        console.print(f"[green]Server running at http://{server_host}:{server_port}[/green]")
        console.print("[dim]Press Ctrl+C to stop[/dim]")

        uvicorn.run(app_instance, host=server_host, port=server_port, log_level="info")
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")
    except Exception as e:
        console.print(f"[red]Error starting server: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    # Storage settings
    set_database_url: Optional[str] = typer.Option(None, "--database-url", help="Set database URL for signed-in users"),
    set_local_path: Optional[str] = typer.Option(None, "--local-path", help="Set guest store directory"),
    # Enrichment settings
    set_enrichment: Optional[bool] = typer.Option(None, "--enrichment/--no-enrichment", help="Enable metadata lookups"),
    set_api_key: Optional[str] = typer.Option(None, "--google-api-key", help="Set Google Books API key"),
    set_timeout: Optional[float] = typer.Option(None, "--enrichment-timeout", help="Set lookup timeout in seconds"),
    # Server settings
    set_server_host: Optional[str] = typer.Option(None, "--server-host", help="Set web server host"),
    set_server_port: Optional[int] = typer.Option(None, "--server-port", help="Set web server port"),
    # CLI settings
    set_verbose: Optional[bool] = typer.Option(None, "--cli-verbose/--no-cli-verbose", help="Enable verbose output by default"),
    set_color: Optional[bool] = typer.Option(None, "--cli-color/--no-cli-color", help="Enable colored output by default"),
):
    """
    View or edit bookcat configuration.

    Configuration is stored at ~/.config/bookcat/config.json (or ~/.bookcat/config.json).

    Examples:
        # Show current configuration
        bookcat config --show

        # Use a database for signed-in users
        bookcat config --database-url sqlite:///$HOME/bookcat.db

        # Turn off online metadata lookups
        bookcat config --no-enrichment
    """
    from .config import update_config

    config_path = ctx.obj["config_file"] or get_config_path()

    has_settings = any([
        set_database_url, set_local_path, set_enrichment is not None, set_api_key,
        set_timeout is not None, set_server_host, set_server_port,
        set_verbose is not None, set_color is not None,
    ])

    if show or not has_settings:
        current = _config(ctx)

        console.print("\n[bold]bookcat Configuration[/bold]")
        console.print(f"[dim]Location: {config_path}[/dim]\n")

        console.print("[bold cyan]Storage:[/bold cyan]")
        console.print(f"  Database URL: {current.storage.database_url or '[dim]not set (guest mode only)[/dim]'}")
        console.print(f"  Local store:  {current.storage.resolved_local_path()}")

        console.print("\n[bold cyan]Enrichment:[/bold cyan]")
        console.print(f"  Enabled:  {current.enrichment.enabled}")
        console.print(f"  API key:  {'set' if current.enrichment.api_key else '[dim]not set[/dim]'}")
        console.print(f"  Timeout:  {current.enrichment.timeout}s")

        console.print("\n[bold cyan]Server:[/bold cyan]")
        console.print(f"  Host: {current.server.host}")
        console.print(f"  Port: {current.server.port}")

        console.print("\n[bold cyan]CLI:[/bold cyan]")
        console.print(f"  Verbose: {current.cli.verbose}")
        console.print(f"  Color:   {current.cli.color}")
        return

    update_config(
        path=config_path,
        database_url=set_database_url,
        local_path=set_local_path,
        enrichment_enabled=set_enrichment,
        enrichment_api_key=set_api_key,
        enrichment_timeout=set_timeout,
        server_host=set_server_host,
        server_port=set_server_port,
        cli_verbose=set_verbose,
        cli_color=set_color,
    )
    console.print(f"[green]✓ Configuration updated ({config_path})[/green]")


if __name__ == "__main__":
    app()
