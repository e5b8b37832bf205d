"""Decorators for bookcat CLI commands."""

import functools
import logging
from typing import Callable, Any
import typer
from rich.console import Console

from .exceptions import NotFoundError

logger = logging.getLogger(__name__)
console = Console()


def handle_catalog_errors(func: Callable) -> Callable:
    """
    Decorator to handle common catalog operation errors.

    Centralizes error handling for:
    - NotFoundError: Catalog or book doesn't exist
    - FileNotFoundError: Import file or config missing
    - PermissionError: No access to files
    - ValueError: Invalid data or arguments
    - General exceptions: Unexpected errors
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except NotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1)
        except FileNotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] File not found: {e}")
            raise typer.Exit(code=1)
        except PermissionError as e:
            console.print(f"[bold red]Error:[/bold red] Permission denied: {e}")
            console.print("[yellow]Tip: Check the permissions of the local store directory[/yellow]")
            raise typer.Exit(code=1)
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid input: {e}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(code=130)
        except typer.Exit:
            raise
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            console.print(f"[bold red]Unexpected error:[/bold red] {e}")
            raise typer.Exit(code=1)

    return wrapper
