"""Interactive CLI — click entry point + interactive edit loop.

Session startup:
  1. Fill the form from command-line options (any subset of the four fields).
  2. Evaluate once and show the result.
  3. Unless --once is given, enter the interactive edit loop.

Edit loop:
  - Type a new value into price / down / period / installment.  The edited
    field keeps focus, so it is never overwritten by the recomputation.
  - Clear a field or the whole form, change the profit rate, or exit.
"""
from __future__ import annotations

import sys
from decimal import Decimal
from typing import Optional

import click
from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .calculator import format_amount, round_money
from .config import (
    ALL_FIELDS,
    DEFAULT_CURRENCY,
    DEFAULT_MONTHLY_PROFIT_RATE,
    FIELD_LABELS,
)
from .resolver import InputState, Resolution
from .session import CalculatorSession, parse_number

console = Console()
err_console = Console(stderr=True, style="bold red")

# ──────────────────────────────────────────────────────────────────────────────
# Formatting helpers
# ──────────────────────────────────────────────────────────────────────────────

def _fmt_money(value: Optional[Decimal], currency: str) -> str:
    if value is None:
        return "—"
    return f"{format_amount(value)} {currency}"


def _fmt_months(value: Optional[Decimal]) -> str:
    if value is None:
        return "—"
    return f"{value.normalize():f} months"


def _fmt_pct(value: Decimal) -> str:
    return f"{float(value) * 100:.2f}%"


def _label(field: str, state: InputState) -> str:
    label = FIELD_LABELS[field]
    if state.calculated_field == field:
        return f"{label} [green](auto)[/green]"
    return label


# ──────────────────────────────────────────────────────────────────────────────
# Result display
# ──────────────────────────────────────────────────────────────────────────────

def display_resolution(
    state: InputState,
    resolution: Resolution,
    currency: str,
    rate: Decimal,
) -> None:
    console.print()

    if resolution.error_kind == "missing_price":
        console.print(f"[dim]{resolution.message}[/dim]")
        return

    if resolution.pending_field is not None:
        console.print(
            f"[dim]Waiting for {FIELD_LABELS[resolution.pending_field].lower()}…[/dim]"
        )
        return

    if resolution.error_kind in ("insufficient_inputs", "invalid_input"):
        console.print(Panel(f"[yellow]{resolution.message}[/yellow]", expand=False))
        return

    if resolution.error_kind is not None:
        console.print(Panel(f"[bold red]{resolution.message}[/bold red]", expand=False))
        if not resolution.has_results:
            return
    else:
        console.print(Panel("[bold green]✅ Calculation is correct[/bold green]", expand=False))

    t = Table(title="Installment Summary", box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="cyan")
    t.add_column("Value", justify="right")

    t.add_row(_label("price", state), _fmt_money(state.price, currency))
    t.add_row(_label("down", state), _fmt_money(state.down_payment, currency))
    t.add_row(_label("period", state), _fmt_months(state.period))
    t.add_row(_label("installment", state), _fmt_money(state.installment, currency))
    t.add_row("Monthly profit rate", _fmt_pct(rate))
    t.add_row("Total with profit", _fmt_money(resolution.total_with_profit, currency))
    t.add_row("Total paid", _fmt_money(resolution.total_paid, currency))
    if resolution.error_kind == "shortfall":
        t.add_row("[red]Missing amount[/red]", _fmt_money(resolution.shortfall, currency))
    console.print(t)


# ──────────────────────────────────────────────────────────────────────────────
# Input helpers
# ──────────────────────────────────────────────────────────────────────────────

def _prompt_field() -> Optional[str]:
    raw = console.input(
        f"[bold]Field ({', '.join(ALL_FIELDS)}; empty for all): [/bold]"
    ).strip().lower()
    return raw or None


def _edit_field(session: CalculatorSession, field: str) -> None:
    current = session.state.get(field)  # type: ignore[arg-type]
    shown = f" (current: {current.normalize():f})" if current is not None else ""
    raw = console.input(f"[bold]{FIELD_LABELS[field]}{shown}, empty to clear: [/bold]")
    try:
        session.edit(field, raw)
    except ValueError as exc:
        err_console.print(f"  {exc}")


def _change_rate(session: CalculatorSession) -> None:
    raw = console.input("[bold]Monthly profit rate (e.g. 0.035 for 3.5%): [/bold]")
    try:
        rate = parse_number(raw)
        if rate is None:
            raise ValueError("A rate is required.")
        session.set_rate(rate)
    except ValueError as exc:
        err_console.print(f"  {exc}")
        return
    console.print(f"  [green]Monthly profit rate set to {_fmt_pct(rate)}[/green]")


# ──────────────────────────────────────────────────────────────────────────────
# Interactive edit loop
# ──────────────────────────────────────────────────────────────────────────────

def interactive_loop(session: CalculatorSession, currency: str) -> None:
    def _show(state: InputState, resolution: Resolution) -> None:
        display_resolution(state, resolution, currency, session.rate)

    session.subscribe(_show)

    while True:
        console.print()
        console.print(
            "[bold]Actions:[/bold] "
            "[cyan]price[/cyan] · [cyan]down[/cyan] · [cyan]period[/cyan] · "
            "[cyan]installment[/cyan] · [cyan]clear[/cyan] · [cyan]rate[/cyan] · "
            "[cyan]show[/cyan] · [cyan]exit[/cyan]"
        )
        action = console.input("[bold]> [/bold]").strip().lower()

        if action in ("exit", "quit", "q"):
            console.print("Goodbye.")
            break

        elif action in ALL_FIELDS:
            _edit_field(session, action)

        elif action == "clear":
            field = _prompt_field()
            try:
                session.clear(field)
            except ValueError as exc:
                err_console.print(f"  {exc}")

        elif action == "rate":
            _change_rate(session)

        elif action == "show":
            _show(session.state, session.last_resolution)

        else:
            err_console.print(f"  Unknown action '{action}'.")


# ──────────────────────────────────────────────────────────────────────────────
# Click entry point
# ──────────────────────────────────────────────────────────────────────────────

def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@click.command()
@click.option("--price", type=str, default=None, help="Cash price")
@click.option("--down", type=str, default=None, help="Down payment")
@click.option("--period", type=str, default=None, help="Repayment period in months")
@click.option("--installment", type=str, default=None, help="Monthly installment")
@click.option(
    "--rate", type=str, default=str(DEFAULT_MONTHLY_PROFIT_RATE), show_default=True,
    help="Monthly profit rate as a fraction",
)
@click.option("--currency", type=str, default=DEFAULT_CURRENCY, show_default=True, help="Currency label")
@click.option("--once", is_flag=True, default=False, help="Evaluate the given values and exit.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging to stderr.")
def main(
    price: Optional[str],
    down: Optional[str],
    period: Optional[str],
    installment: Optional[str],
    rate: str,
    currency: str,
    once: bool,
    verbose: bool,
) -> None:
    """Installment calculator: derive the missing down payment, period or installment."""
    _configure_logging(verbose)
    console.print(Panel("[bold blue]Installment Calculator[/bold blue]", expand=False))

    def _parse_opt(s: Optional[str], name: str) -> Optional[Decimal]:
        try:
            return parse_number(s)
        except ValueError:
            err_console.print(f"Invalid value for --{name}: '{s}'")
            sys.exit(1)

    monthly_rate = _parse_opt(rate, "rate")
    if monthly_rate is None:
        err_console.print("--rate cannot be empty.")
        sys.exit(1)

    # Command-line values arrive together, with no field focused.
    state = InputState(
        price=_parse_opt(price, "price"),
        down_payment=_parse_opt(down, "down"),
        period=_parse_opt(period, "period"),
        installment=_parse_opt(installment, "installment"),
    )
    session = CalculatorSession(rate=monthly_rate, state=state)
    resolution = session.evaluate()
    display_resolution(session.state, resolution, currency, session.rate)

    if once:
        if resolution.derived_value is not None:
            console.print(
                f"{FIELD_LABELS[resolution.derived_field]} computed: "
                f"{round_money(resolution.derived_value):f}"
            )
        return

    try:
        interactive_loop(session, currency)
    except (KeyboardInterrupt, EOFError):
        console.print("\nSession ended.")
