"""Ledger report command."""

import json

import click
from farmledger.domain.errors import DomainError
from farmledger.domain.ledger import LedgerService, running_balances
from farmledger.domain.master import MasterDataService
from farmledger.cli.account_resolution import resolve_account_or_exit
from farmledger.cli.date_filters import period_options, resolve_cli_date_range
from farmledger.cli.error_handling import handle_domain_error


def _money(value) -> str:
    return f"{value:,.2f}"


@click.command("ledger")
@click.argument("account", metavar="ACCOUNT")
@click.option("--start-date", help="First day of the report (default: start of the fiscal year)")
@click.option("--end-date", help="Last day of the report, inclusive (default: today)")
@period_options
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_context
def ledger(
    ctx,
    account: str,
    start_date: str | None,
    end_date: str | None,
    this_month: bool,
    last_month: bool,
    this_year: bool,
    last_year: bool,
    this_fy: bool,
    last_fy: bool,
    as_json: bool,
):
    """Show the ledger of an account across all voucher types.

    Only approved vouchers are included.

    Examples:
        farmledger ledger "farmer:Ramesh Patil" --this-fy
        farmledger ledger bank:1 --start-date 2024-04-01 --end-date 2024-06-30
    """
    db = ctx.obj["db"]
    ref = resolve_account_or_exit(ctx, MasterDataService(db), account)
    from_date, to_date = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags={
            "this-month": this_month,
            "last-month": last_month,
            "this-year": this_year,
            "last-year": last_year,
            "this-fy": this_fy,
            "last-fy": last_fy,
        },
    )

    try:
        report = LedgerService(db, ctx.obj["settings"]).build_report(ref, from_date, to_date)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    balances = running_balances(report)
    if as_json:
        payload = {
            "account": str(report.account),
            "account_label": report.account_label,
            "from_date": report.from_date.isoformat(),
            "to_date": report.to_date.isoformat(),
            "opening_balance": str(report.opening_balance),
            "closing_balance": str(report.closing_balance),
            "total_debit": str(report.total_debit),
            "total_credit": str(report.total_credit),
            "lines": [
                {
                    "date": line.entry_date.isoformat(),
                    "voucher_no": line.voucher_no,
                    "source": line.source_kind.value,
                    "particulars": line.opposite_label,
                    "debit": str(line.debit),
                    "credit": str(line.credit),
                    "balance": str(balance),
                    "narration": line.narration,
                }
                for line, balance in zip(report.lines, balances)
            ],
        }
        click.echo(json.dumps(payload, indent=2))
        return

    click.echo(f"\nLedger: {report.account_label} ({report.account})")
    click.echo(f"Period: {report.from_date} to {report.to_date} (exclusive)")
    click.echo(f"Opening balance: {_money(report.opening_balance)}")
    click.echo("-" * 100)
    click.echo(f"{'Date':10s} | {'Voucher':10s} | {'Source':10s} | {'Particulars':25s} | {'Debit':>12s} | {'Credit':>12s} | {'Balance':>12s}")
    click.echo("-" * 100)
    for line, balance in zip(report.lines, balances):
        debit = _money(line.debit) if line.debit else ""
        credit = _money(line.credit) if line.credit else ""
        click.echo(
            f"{line.entry_date.isoformat():10s} | {line.voucher_no:10s} | {line.source_kind.value:10s} | "
            f"{line.opposite_label[:25]:25s} | {debit:>12s} | {credit:>12s} | {_money(balance):>12s}"
        )
    click.echo("-" * 100)
    click.echo(f"Total debit: {_money(report.total_debit)}  Total credit: {_money(report.total_credit)}")
    click.echo(f"Closing balance: {_money(report.closing_balance)}")


def register_commands(cli):
    """Register ledger command with main CLI."""
    cli.add_command(ledger)
