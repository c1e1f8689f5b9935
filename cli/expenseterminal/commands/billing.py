"""
Billing Command Module

Inspect plans, effective plans and CSV-AI usage for users.
"""
import asyncio
import typer
from rich.console import Console
from rich.table import Table

from expense_api.core.plans import PLANS, cap_to_limit
from expense_api.repositories import (
    SupabaseSubscriptionRepository,
    SupabaseTransactionRepository,
)
from expense_api.services.plan_resolver import PlanResolver
from expense_api.services.usage_service import UsageService

app = typer.Typer(help="Plans and usage")
console = Console()


def _format_cap(value) -> str:
    limit = cap_to_limit(value)
    return "unlimited" if limit is None else str(limit)


@app.command("plans")
def list_plans():
    """List the plan catalog."""
    table = Table(title="Plans")
    table.add_column("ID", style="bold cyan")
    table.add_column("Name")
    table.add_column("Price", justify="right")
    table.add_column("CSV-AI cap", justify="right")
    table.add_column("Req/min", justify="right")
    table.add_column("Bank sync", justify="center")

    for plan in PLANS.values():
        if plan.bank_sync_included:
            bank_sync = "✅"
        elif plan.bank_sync_coming_soon:
            bank_sync = "soon"
        else:
            bank_sync = "❌"
        table.add_row(
            plan.id.value,
            plan.name,
            f"{plan.price_human}/{plan.price_interval}",
            _format_cap(plan.max_csv_ai_eligible),
            str(plan.rate_limit_per_minute),
            bank_sync,
        )

    console.print(table)


@app.command("plan")
def show_plan(
    user_id: str = typer.Argument(..., help="Supabase user ID")
):
    """Show a user's effective plan and latest subscription row."""
    from ..config import get_supabase_client

    try:
        subscriptions = SupabaseSubscriptionRepository(get_supabase_client())
        record = asyncio.run(subscriptions.get_latest_for_user(user_id))
        plan = asyncio.run(PlanResolver(subscriptions).resolve_effective_plan(user_id))
    except Exception as e:
        console.print(f"[bold red]❌ Error: {e}[/bold red]")
        raise typer.Exit(1)

    console.print(f"\n[bold blue]User: {user_id}[/bold blue]")
    console.print(f"   Effective plan: [bold]{plan.value}[/bold]")

    if not record:
        console.print("   [dim]No subscription row[/dim]")
        return

    console.print(f"   Stored plan: {record.plan or 'N/A'}")
    console.print(f"   Status: {record.status or 'N/A'}")
    console.print(f"   Current period end: {record.current_period_end or 'N/A'}")
    console.print(f"   Cancel at period end: {'yes' if record.cancel_at_period_end else 'no'}")
    console.print(f"   Stripe customer: {record.stripe_customer_id or 'N/A'}")
    console.print(f"   Stripe subscription: {record.stripe_subscription_id or 'N/A'}")


@app.command("usage")
def show_usage(
    user_id: str = typer.Argument(..., help="Supabase user ID")
):
    """Show a user's CSV-AI usage against their plan cap."""
    from ..config import get_supabase_client

    try:
        client = get_supabase_client()
        service = UsageService(
            subscriptions=SupabaseSubscriptionRepository(client),
            transactions=SupabaseTransactionRepository(client),
        )
        snapshot = asyncio.run(service.get_usage_snapshot(user_id))
    except Exception as e:
        console.print(f"[bold red]❌ Error: {e}[/bold red]")
        raise typer.Exit(1)

    table = Table(title=f"Usage for {user_id[:8]}")
    table.add_column("Field", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Plan", snapshot.plan.value)
    table.add_row("CSV-AI cap", _format_cap(snapshot.cap))
    table.add_row("CSV rows uploaded", str(snapshot.total_ingested))
    table.add_row("Eligible for AI", str(snapshot.eligible_for_ai))
    table.add_row("Over limit by", str(snapshot.over_limit_count))
    table.add_row("Subscription status", snapshot.status or "N/A")
    console.print(table)

    if snapshot.over_limit:
        console.print("[bold yellow]⚠️  Over the CSV-AI cap[/bold yellow]")
