"""Bidding War CLI."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .exceptions import BidError, ConfigurationError

app = typer.Typer(name="bidwar", help="Bidding War - bid on the auction contract from managed accounts")
console = Console()


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


def _load_settings():
    from .config import load_settings

    try:
        return load_settings()
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/] {e}")
        raise typer.Exit(code=2)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Listen port"),
):
    """Run the HTTP API."""
    import uvicorn

    settings = _load_settings()
    console.print(f"[bold blue]Bidding war listening on port {port or settings.port}[/]")
    uvicorn.run(
        "bidwar.api:app",
        host=host or settings.host,
        port=port or settings.port,
    )


@app.command()
def accounts():
    """List configured accounts."""
    from .accounts import AccountResolver

    settings = _load_settings()
    try:
        resolver = AccountResolver.from_keys(settings.account_keys)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/] {e}")
        raise typer.Exit(code=2)

    table = Table(title="Bidding Accounts")
    table.add_column("User", style="cyan")
    table.add_column("Address", style="green")

    for identifier, address in resolver.addresses().items():
        table.add_row(identifier, address)

    console.print(table)
    console.print(f"Contract: [bold]{settings.contract_address}[/]")


@app.command()
def bid(
    user: str = typer.Option(..., help="Account identifier (userNumber)"),
    amount: str = typer.Option(..., help="Bid amount in wei"),
):
    """Place a single bid and wait for confirmation."""
    from .service import BidService

    settings = _load_settings()

    async def _bid():
        try:
            service = BidService.from_settings(settings)
        except ConfigurationError as e:
            console.print(f"[bold red]Configuration error:[/] {e}")
            raise typer.Exit(code=2)

        try:
            with console.status(f"Submitting bid for user {user}..."):
                return await service.place_bid(user, amount)
        finally:
            await service.close()

    try:
        result = run_async(_bid())
    except BidError as e:
        console.print(
            Panel(str(e), title=f"[red]Bid failed: {e.code}[/]")
        )
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"""[bold]Tx hash:[/] {result.transaction_id}
[bold]Account:[/] {result.account_address}
[bold]Block:[/] {result.block_number}
[bold]Gas used:[/] {result.gas_used}""",
            title="[green]Bid Confirmed[/]",
        )
    )


if __name__ == "__main__":
    app()
