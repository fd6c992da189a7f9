"""Rich renderer for payroll calculation results.

Transforms SDK JSON output (the to_dict() form, Decimals as strings) into
formatted Rich tables.
"""

from decimal import Decimal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from payroll_engine.sdk import format_percentage

DEDUCTION_LABELS = [
    ("personal_allowance", "Personal Allowance"),
    ("spouse_allowance", "Spouse Allowance"),
    ("child_allowance", "Child Allowance"),
    ("parent_allowance", "Parent Allowance"),
    ("personal_expenses", "Personal Expenses"),
    ("provident_fund", "Provident Fund"),
    ("additional_deductions", "Additional Deductions"),
]


def render_calculation(console: Console, data: dict) -> None:
    """Render one payroll result as Rich tables.

    Args:
        console: Rich Console instance
        data: PayrollCalculationResult.to_dict()
    """
    _render_pay_table(console, data)
    _render_deductions_table(console, data.get("deductions", {}))
    render_brackets(console, data.get("tax_year", "?"), data.get("tax_breakdown", []))
    _render_ratios(console, data.get("ratios", {}))


def _render_pay_table(console: Console, data: dict) -> None:
    """Render the monthly pay summary."""
    ss = data.get("social_security", {})
    summary = data.get("calculation_summary", {})

    table = Table(
        title=f"Payroll: {data.get('pay_period_date', '?')} (tax year {data.get('tax_year', '?')})",
        box=box.ROUNDED,
    )
    table.add_column("", style="bold", min_width=28)
    table.add_column("Monthly", justify="right", min_width=14)

    table.add_row("[bold]INCOME[/bold]", "")
    table.add_row("  Gross Salary", _fmt(data.get("gross_salary")))
    table.add_row("  Total Income", _fmt(data.get("total_income")))
    table.add_row("", "")

    table.add_row("[bold]WITHHOLDING[/bold]", "")
    table.add_row("  Income Tax", _fmt(data.get("income_tax")))
    table.add_row(f"  Social Security ({_pct_of_rate(ss.get('rate'))})", _fmt(ss.get("employee_contribution")))
    table.add_row("  [dim]SS Base[/dim]", f"[dim]{_fmt(ss.get('base'))}[/dim]")
    table.add_row("", "")

    table.add_row("Taxable Income (annual)", _fmt(data.get("taxable_income")), style="dim")
    table.add_row("Employer SS Contribution", _fmt(ss.get("employer_contribution")), style="dim")
    table.add_row("Total Cost to Employer", _fmt(summary.get("total_cost_to_employer")), style="dim")
    table.add_row("", "")

    table.add_row(
        "[bold green]NET SALARY[/bold green]",
        f"[bold green]{_fmt(data.get('net_salary'))}[/bold green]",
    )

    console.print(table)


def _render_deductions_table(console: Console, deductions: dict) -> None:
    """Render annual deductions by kind; kinds with no amount are skipped."""
    table = Table(title="Deductions (annual)", box=box.ROUNDED)
    table.add_column("Kind", min_width=28)
    table.add_column("Amount", justify="right", min_width=14)

    for key, label in DEDUCTION_LABELS:
        amount = deductions.get(key)
        if amount is not None and Decimal(amount) != 0:
            table.add_row(label, _fmt(amount))
    table.add_row("[bold]Total[/bold]", f"[bold]{_fmt(deductions.get('total_deductions'))}[/bold]")

    console.print(table)


def render_brackets(console: Console, tax_year, brackets: list[dict]) -> None:
    """Render a bracket table, with per-bracket tax when present.

    Args:
        console: Rich Console instance
        tax_year: Year shown in the title
        brackets: BracketResult or TaxBracket dicts
    """
    with_tax = any("tax_amount" in b for b in brackets)

    table = Table(title=f"Tax Brackets {tax_year}", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("From", justify="right", min_width=14)
    table.add_column("To", justify="right", min_width=14)
    table.add_column("Rate", justify="right")
    if with_tax:
        table.add_column("Taxable", justify="right", min_width=14)
        table.add_column("Tax", justify="right", min_width=12)

    for bracket in brackets:
        upper = bracket.get("upper_bound")
        row = [
            str(bracket.get("order", "")),
            _fmt(bracket.get("lower_bound")),
            _fmt(upper) if upper is not None else "and above",
            _pct_of_rate(bracket.get("rate")),
        ]
        if with_tax:
            taxable = Decimal(bracket.get("taxable_amount", "0"))
            style = "" if taxable > 0 else "dim"
            row += [_fmt(taxable), _fmt(bracket.get("tax_amount"))]
            table.add_row(*row, style=style)
        else:
            table.add_row(*row)

    console.print(table)


def _render_ratios(console: Console, ratios: dict) -> None:
    """Render ratio panel."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("key", style="dim")
    table.add_column("value", justify="right")

    for key in ["tax_rate", "deduction_rate", "net_rate", "ss_rate"]:
        if key in ratios:
            table.add_row(key.replace("_", " ").title(), format_percentage(Decimal(ratios[key])))

    console.print(Panel(table, title="Ratios", border_style="dim"))


def render_batch(console: Console, data: dict) -> None:
    """Render a batch run as one line per employee.

    Args:
        console: Rich Console instance
        data: PayrollBatchResult.to_dict()
    """
    table = Table(title="Batch Results", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("Employee")
    table.add_column("Gross", justify="right")
    table.add_column("Tax", justify="right")
    table.add_column("Net", justify="right")
    table.add_column("Status")

    for item in data.get("items", []):
        employee = item.get("employee_id") or "-"
        result = item.get("result")
        if result is not None:
            table.add_row(
                str(item["index"]),
                employee,
                _fmt(result.get("gross_salary")),
                _fmt(result.get("income_tax")),
                _fmt(result.get("net_salary")),
                "[green]ok[/green]",
            )
        else:
            error = item.get("error") or {}
            table.add_row(
                str(item["index"]),
                employee,
                "-",
                "-",
                "-",
                f"[red]{error.get('type', 'error')}: {error.get('message', '')}[/red]",
            )

    console.print(table)


def render_reconciliation(console: Console, data: dict) -> None:
    """Render a year-end reconciliation."""
    table = Table(title=f"Annual Reconciliation {data.get('tax_year', '?')}", box=box.ROUNDED)
    table.add_column("", style="bold", min_width=24)
    table.add_column("Amount", justify="right", min_width=14)

    table.add_row("Pay Periods", str(data.get("periods", 0)))
    table.add_row("Total Income", _fmt(data.get("total_income")))
    table.add_row("Total Deductions", _fmt(data.get("total_deductions")))
    table.add_row("Taxable Income", _fmt(data.get("taxable_income")))
    table.add_row("Tax Liability", _fmt(data.get("tax_liability")))
    table.add_row("Tax Withheld", _fmt(data.get("tax_paid")))
    table.add_row("", "")

    refund = Decimal(data.get("refund_due", "0"))
    due = Decimal(data.get("additional_tax_due", "0"))
    if refund > 0:
        table.add_row("[bold green]REFUND DUE[/bold green]", f"[bold green]{_fmt(refund)}[/bold green]")
    elif due > 0:
        table.add_row("[bold red]TAX DUE[/bold red]", f"[bold red]{_fmt(due)}[/bold red]")
    else:
        table.add_row("[bold]SETTLED[/bold]", _fmt(0))

    console.print(table)


def _pct_of_rate(rate) -> str:
    """0.05 -> '5%'; 0.075 -> '7.5%'."""
    if rate is None:
        return "-"
    value = (Decimal(rate) * 100).normalize()
    return f"{value:f}%"


def _fmt(amount) -> str:
    """Format money amount."""
    if amount is None:
        return "-"
    return f"{Decimal(amount):,.2f}"
