"""PackDiff CLI - Main entry point."""
import typer
from rich.console import Console

from .main import app

console = Console()


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(1)


__all__ = ["app", "main"]
