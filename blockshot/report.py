"""Rich console rendering of broadcast rounds."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table


if TYPE_CHECKING:
    from blockshot.models import BroadcastRound


def build_round_table(title: str, broadcast: BroadcastRound) -> Table:
    """Table with one row per endpoint, primary result marked."""
    table = Table(title=title, show_lines=False)
    table.add_column("Endpoint", style="cyan", overflow="fold")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Tx hash / error", overflow="fold")

    for result in broadcast.results:
        if result.success:
            marker = " ★" if result is broadcast.primary else ""
            status = f"[green]ok{marker}[/green]"
            detail = result.tx_hash or ""
        else:
            status = "[red]failed[/red]"
            detail = result.error or ""
        table.add_row(result.endpoint, status, f"{result.latency_ms}ms", detail)

    return table


def print_round(
    title: str, broadcast: BroadcastRound, console: Console | None = None
) -> None:
    """Print a broadcast round summary."""
    console = console or Console()
    console.print(build_round_table(title, broadcast))
    succeeded = len(broadcast.successful)
    total = len(broadcast.results)
    if broadcast.primary is not None:
        console.print(
            f"[bold green]✓ {succeeded}/{total} endpoints accepted[/bold green] "
            f"fastest: {broadcast.primary.tx_hash} "
            f"({broadcast.primary.latency_ms}ms)"
        )
    else:
        console.print(f"[bold red]✗ all {total} endpoints failed[/bold red]")


__all__ = [
    "build_round_table",
    "print_round",
]
