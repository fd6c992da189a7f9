"""Payroll Engine CLI - Command-line interface for monthly payroll and income tax."""

import json
from datetime import date
from pathlib import Path

import click
import yaml
from rich.console import Console

from payroll_engine import __version__
from payroll_engine.sdk import (
    CalculationError,
    PayrollCalculator,
    TaxBracketTable,
    YamlRulesProvider,
    available_years,
    check_compliance,
    configure_logging,
    load_tax_rules,
    parse_calculation_input,
)

from .renderers import render_batch, render_brackets, render_calculation, render_reconciliation


@click.group()
@click.version_option(version=__version__, prog_name="payroll-engine")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--rules-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Directory of YYYY.yaml rule files (overrides PAYROLL_ENGINE_RULES_PATH).")
@click.pass_context
def cli(ctx, verbose, rules_dir):
    """Payroll Engine - Monthly payroll and progressive income tax.

    Tax rules are loaded from (in order):

    \b
    1. --rules-dir option
    2. PAYROLL_ENGINE_RULES_PATH environment variable
    3. tax_rules/ bundled with the package

    Log level comes from LOG_LEVEL (default WARNING); --verbose forces DEBUG.
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["rules_dir"] = rules_dir


def _provider(ctx) -> YamlRulesProvider:
    return YamlRulesProvider(ctx.obj.get("rules_dir"))


def _parse_ad_hoc(values: tuple[str, ...]) -> list[dict]:
    """Parse DESCRIPTION=AMOUNT option values."""
    items = []
    for value in values:
        description, sep, amount = value.rpartition("=")
        if not sep:
            raise click.BadParameter(f"Expected DESCRIPTION=AMOUNT, got '{value}'", param_hint="--ad-hoc")
        items.append({"description": description, "amount": amount})
    return items


def _load_inputs(path: Path) -> list:
    """Load a list of calculation inputs from a YAML or JSON file.

    Accepts a top-level list or a mapping with an 'employees' list.
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Cannot parse {path}: {e}")

    if isinstance(data, dict):
        data = data.get("employees")
    if not isinstance(data, list):
        raise click.ClickException(f"{path} must contain a list of inputs (or an 'employees' list)")
    for index, row in enumerate(data):
        if not isinstance(row, dict):
            raise click.ClickException(f"{path}: entry {index} is not a mapping")
    return data


@cli.command("calculate")
@click.option("--gross", "gross_salary", required=True, help="Monthly gross salary.")
@click.option("--additional-income", default="0", show_default=True, help="Monthly additional income.")
@click.option("--spouse/--no-spouse", "has_spouse", default=False, help="Claim the spouse allowance.")
@click.option("--children", "child_count", type=int, default=0, show_default=True, help="Number of children.")
@click.option("--parents", "eligible_parent_count", type=int, default=0, show_default=True,
              help="Number of eligible parents.")
@click.option("--provident-fund", "provident_fund_contribution", default="0", show_default=True,
              help="Annual provident fund contribution.")
@click.option("--ad-hoc", "ad_hoc", multiple=True, metavar="DESCRIPTION=AMOUNT",
              help="Additional annual deduction (repeatable).")
@click.option("--year", "tax_year", type=int, help="Tax year (default: year of --pay-date).")
@click.option("--pay-date", type=click.DateTime(formats=["%Y-%m-%d"]), help="Pay period date (default: today).")
@click.option("--employee-id", help="Reference written to the audit log.")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table",
              help="Output format (default: table)")
@click.pass_context
def calculate(ctx, gross_salary, additional_income, has_spouse, child_count, eligible_parent_count,
              provident_fund_contribution, ad_hoc, tax_year, pay_date, employee_id, output_format):
    """Calculate one month of payroll.

    Examples:

    \b
      payroll-engine calculate --gross 50000 --additional-income 5000 --spouse --children 2
      payroll-engine calculate --gross 30000 --year 2025 --format json
    """
    pay_period_date = pay_date.date() if pay_date else date.today()
    raw = {
        "gross_salary": gross_salary,
        "additional_income": additional_income,
        "has_spouse": has_spouse,
        "child_count": child_count,
        "eligible_parent_count": eligible_parent_count,
        "provident_fund_contribution": provident_fund_contribution,
        "ad_hoc_deductions": _parse_ad_hoc(ad_hoc),
        "tax_year": tax_year or pay_period_date.year,
        "pay_period_date": pay_period_date,
        "employee_id": employee_id,
    }

    try:
        result = PayrollCalculator(_provider(ctx)).calculate(parse_calculation_input(raw))
    except CalculationError as e:
        raise click.ClickException(str(e))

    if output_format == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        render_calculation(Console(width=120), result.to_dict())


@cli.command("batch")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--workers", type=int, help="Worker threads (default: executor default).")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="json",
              help="Output format (default: json)")
@click.pass_context
def batch(ctx, input_file, workers, output_format):
    """Calculate payroll for every employee listed in INPUT_FILE.

    INPUT_FILE is YAML or JSON: a list of calculation inputs. Failed
    employees are reported alongside the successful ones.
    """
    inputs = _load_inputs(input_file)
    result = PayrollCalculator(_provider(ctx)).calculate_batch(inputs, max_workers=workers)

    if output_format == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        render_batch(Console(width=140), result.to_dict())

    if result.failed:
        click.echo(f"{len(result.failed)} of {len(result.items)} calculation(s) failed", err=True)


@cli.command("reconcile")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table",
              help="Output format (default: table)")
@click.pass_context
def reconcile(ctx, input_file, output_format):
    """Reconcile a year of monthly inputs for one employee.

    INPUT_FILE lists the employee's monthly calculation inputs for a single
    tax year. Prints the annual liability against the tax withheld.
    """
    calculator = PayrollCalculator(_provider(ctx))
    batch_result = calculator.calculate_batch(_load_inputs(input_file))
    if batch_result.failed:
        first = batch_result.failed[0]
        raise click.ClickException(f"Input {first.index}: {first.error.message}")

    try:
        summary = calculator.reconcile_year([item.result for item in batch_result.items])
    except CalculationError as e:
        raise click.ClickException(str(e))

    if output_format == "json":
        click.echo(json.dumps(summary.to_dict(), indent=2))
    else:
        render_reconciliation(Console(), summary.to_dict())


@cli.command("brackets")
@click.argument("year", type=int)
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table",
              help="Output format (default: table)")
@click.pass_context
def brackets(ctx, year, output_format):
    """Show the validated tax bracket table for YEAR."""
    try:
        table = TaxBracketTable(_provider(ctx)).brackets_for(year)
    except CalculationError as e:
        raise click.ClickException(str(e))

    data = [bracket.model_dump(mode="json") for bracket in table]
    if output_format == "json":
        click.echo(json.dumps(data, indent=2))
    else:
        render_brackets(Console(), year, data)


@cli.group("rules")
def rules_group():
    """Inspect and validate published tax rules."""
    pass


@rules_group.command("years")
@click.pass_context
def rules_years(ctx):
    """List tax years with published rules."""
    years = _provider(ctx).available_years()
    if not years:
        raise click.ClickException(f"No tax rules found in {_provider(ctx).rules_dir}")
    for year in years:
        click.echo(year)


@rules_group.command("validate")
@click.argument("year", type=int, required=False)
@click.pass_context
def rules_validate(ctx, year):
    """Validate the rules for YEAR, or every published year.

    Checks the schema, the bracket table and any declared statutory limits.
    """
    rules_dir = _provider(ctx).rules_dir
    years = [year] if year else available_years(rules_dir)
    if not years:
        raise click.ClickException(f"No tax rules found in {rules_dir}")

    failures = 0
    for tax_year in years:
        try:
            rules = load_tax_rules(tax_year, rules_dir)
        except CalculationError as e:
            failures += 1
            click.echo(f"  FAIL {tax_year}: {e}")
            continue

        report = check_compliance(rules)
        for warning in report.warnings:
            click.echo(f"  WARN {tax_year}: {warning}")
        if not report.is_compliant:
            failures += 1
            for error in report.errors:
                click.echo(f"  FAIL {tax_year}: {error}")
            continue

        kinds = ", ".join(kind.value for kind in rules.deductions)
        click.echo(f"  OK   {tax_year}: {len(rules.brackets)} brackets, deductions: {kinds}")

    if failures:
        raise click.ClickException(f"{failures} rules file(s) invalid")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
