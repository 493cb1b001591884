"""CLI helpers for date range resolution."""

from datetime import date, timedelta

import click

from farmledger.utils.date_parser import get_date_range, parse_date


def period_options(func):
    """Add the --this-month ... --last-fy flags to a command."""
    for flag, help_text in reversed(
        [
            ("--this-month", "Current month up to today"),
            ("--last-month", "Previous calendar month"),
            ("--this-year", "Current calendar year up to today"),
            ("--last-year", "Previous calendar year"),
            ("--this-fy", "Current April-March fiscal year up to today"),
            ("--last-fy", "Previous April-March fiscal year"),
        ]
    ):
        func = click.option(flag, is_flag=True, help=help_text)(func)
    return func


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
    default_period: str = "this-fy",
) -> tuple[date, date]:
    """Resolve a half-open [start, end) range from period flags or explicit dates.

    --end-date is inclusive on the command line and converted to the day after.
    """
    period_count = sum(1 for is_set in period_flags.values() if is_set)

    if period_count > 1:
        click.echo("Error: Only one period option can be specified at a time.", err=True)
        ctx.exit(1)

    if period_count > 0 and (start_date or end_date):
        click.echo(
            "Error: Period options (--this-month, --this-fy, etc.) cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if period_count == 1:
        period = next(p for p, is_set in period_flags.items() if is_set)
        return get_date_range(period)

    default_start, default_end = get_date_range(default_period)
    start, end = default_start, default_end

    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    if end_date:
        try:
            end = parse_date(end_date) + timedelta(days=1)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    return start, end
