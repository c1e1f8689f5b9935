#!/usr/bin/env python3
"""
ExpenseTerminal CLI - Main Entry Point

Usage:
    expenseterminal billing plans
    expenseterminal billing plan <user-id>
    expenseterminal billing usage <user-id>
    expenseterminal config
"""
import typer
from rich.console import Console

from . import __version__
from .commands import billing

# Create main Typer app
app = typer.Typer(
    name="expenseterminal",
    help="ExpenseTerminal CLI - plan and usage inspection",
    add_completion=False
)

app.add_typer(billing.app, name="billing", help="Plans and usage")

console = Console()


@app.command()
def version():
    """Show CLI version."""
    console.print(f"[bold blue]ExpenseTerminal CLI[/bold blue] v{__version__}")


@app.command("config")
def check_config():
    """Check CLI configuration."""
    from .config import get_config

    config = get_config()
    missing = config.validate()

    if missing:
        console.print("[bold red]❌ Missing Configuration:[/bold red]")
        for item in missing:
            console.print(f"   • {item}")
        console.print("\n[dim]Set these as environment variables or in ~/.expenseterminal/.env[/dim]")
        raise typer.Exit(1)

    console.print("[bold green]✅ Configuration Valid[/bold green]")
    console.print(f"   Supabase: {config.supabase.url[:40]}...")
    for name in config.missing_products():
        console.print(f"   [yellow]⚠️  {name} not set; checkout for that plan will fail[/yellow]")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
