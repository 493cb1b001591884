"""Voucher read and status commands."""

from datetime import date, timedelta

import click
from farmledger.config import LedgerSettings
from farmledger.domain.entities import ApprovalStatus, Side, SourceKind
from farmledger.domain.errors import DomainError
from farmledger.domain.voucher import VoucherService
from farmledger.cli.error_handling import handle_domain_error
from farmledger.utils.date_parser import parse_date

KIND_NAMES = {
    "journal": SourceKind.JOURNAL,
    "receipt": SourceKind.RECEIPT,
    "settlement": SourceKind.SETTLEMENT,
    "debit-note": SourceKind.DEBIT_NOTE,
    "credit-note": SourceKind.CREDIT_NOTE,
}

kind_option = click.option(
    "--kind",
    type=click.Choice(list(KIND_NAMES), case_sensitive=False),
    help="Voucher table (default: guessed from the voucher number prefix)",
)


def resolve_kind_or_exit(ctx, settings: LedgerSettings, voucher_no: str, kind: str | None) -> SourceKind:
    if kind is not None:
        return KIND_NAMES[kind.lower()]
    guessed = settings.kind_for_voucher(voucher_no)
    if guessed is None:
        click.echo(f"Error: Cannot tell the voucher type of '{voucher_no}'; use --kind", err=True)
        ctx.exit(1)
    return guessed


def _service(ctx) -> VoucherService:
    return VoucherService(ctx.obj["db"], actor=ctx.obj["actor"])


@click.group()
def voucher_group():
    """Read vouchers back and change their status. Only approved vouchers appear in ledgers."""
    pass


@voucher_group.command("approve")
@click.argument("voucher_no", metavar="VOUCHER_NO")
@kind_option
@click.option("--remarks", help="Remarks recorded in the voucher history")
@click.pass_context
def approve(ctx, voucher_no: str, kind: str | None, remarks: str | None):
    """Approve a voucher.

    Examples:
        farmledger voucher approve JV00001
        farmledger voucher approve 17 --kind receipt
    """
    source_kind = resolve_kind_or_exit(ctx, ctx.obj["settings"], voucher_no, kind)
    try:
        _service(ctx).approve(source_kind, voucher_no, remarks)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Approved {voucher_no}")


@voucher_group.command("unapprove")
@click.argument("voucher_no", metavar="VOUCHER_NO")
@kind_option
@click.option("--remarks", help="Remarks recorded in the voucher history")
@click.pass_context
def unapprove(ctx, voucher_no: str, kind: str | None, remarks: str | None):
    """Return an approved voucher to unapproved."""
    source_kind = resolve_kind_or_exit(ctx, ctx.obj["settings"], voucher_no, kind)
    try:
        _service(ctx).unapprove(source_kind, voucher_no, remarks)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Unapproved {voucher_no}")


@voucher_group.command("delete")
@click.argument("voucher_no", metavar="VOUCHER_NO")
@kind_option
@click.option("--remarks", help="Remarks recorded in the voucher history")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx, voucher_no: str, kind: str | None, remarks: str | None, yes: bool):
    """Delete a voucher. Its rows are kept but no longer count anywhere."""
    source_kind = resolve_kind_or_exit(ctx, ctx.obj["settings"], voucher_no, kind)
    if not yes and not click.confirm(f"Are you sure you want to delete voucher {voucher_no}?"):
        click.echo("Deletion cancelled.")
        return
    try:
        _service(ctx).delete(source_kind, voucher_no, remarks)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted {voucher_no}")


STATUS_NAMES = {
    "approved": ApprovalStatus.APPROVED,
    "unapproved": ApprovalStatus.UNAPPROVED,
}


def _money(value) -> str:
    return f"{value:,.2f}"


def _parse_date_or_exit(ctx, label: str, value: str | None) -> date | None:
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


@voucher_group.command("show")
@click.argument("voucher_no", metavar="VOUCHER_NO")
@kind_option
@click.pass_context
def show(ctx, voucher_no: str, kind: str | None):
    """Show the entries of a voucher, approved or not.

    Examples:
        farmledger voucher show JV00001
        farmledger voucher show 17 --kind receipt
    """
    source_kind = resolve_kind_or_exit(ctx, ctx.obj["settings"], voucher_no, kind)
    try:
        view = _service(ctx).show(source_kind, voucher_no)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    state = view.status.value if view.is_active else f"{view.status.value}, deleted"
    click.echo(f"\nVoucher: {view.voucher_no} ({view.kind.value}, {state})")
    click.echo(f"Date: {view.entry_date}")
    click.echo("-" * 80)
    click.echo(f"{'Account':30s} | {'Particulars':20s} | {'Debit':>12s} | {'Credit':>12s}")
    click.echo("-" * 80)
    for entry in view.entries:
        amount = _money(entry.amount)
        debit = amount if entry.side is Side.DEBIT else ""
        credit = amount if entry.side is Side.CREDIT else ""
        particulars = entry.detail or entry.narration or ""
        click.echo(f"{entry.account_label[:30]:30s} | {particulars[:20]:20s} | {debit:>12s} | {credit:>12s}")
    click.echo("-" * 80)
    click.echo(f"Total debit: {_money(view.total(Side.DEBIT))}  Total credit: {_money(view.total(Side.CREDIT))}")


@voucher_group.command("list")
@click.argument("kind", type=click.Choice(list(KIND_NAMES), case_sensitive=False))
@click.option("--status", type=click.Choice(list(STATUS_NAMES), case_sensitive=False), help="Only vouchers in this status")
@click.option("--start-date", help="First voucher date to include")
@click.option("--end-date", help="Last voucher date to include")
@click.option("--all", "include_deleted", is_flag=True, help="Include deleted vouchers")
@click.pass_context
def list_cmd(
    ctx,
    kind: str,
    status: str | None,
    start_date: str | None,
    end_date: str | None,
    include_deleted: bool,
):
    """List vouchers of one type.

    Examples:
        farmledger voucher list journal --status unapproved
        farmledger voucher list receipt --start-date 2024-04-01 --end-date 2024-04-30
    """
    start = _parse_date_or_exit(ctx, "start date", start_date)
    last = _parse_date_or_exit(ctx, "end date", end_date)
    end = last + timedelta(days=1) if last else None

    summaries = _service(ctx).list_vouchers(
        KIND_NAMES[kind.lower()],
        status=STATUS_NAMES[status.lower()] if status else None,
        from_date=start,
        to_date=end,
        include_deleted=include_deleted,
    )
    if not summaries:
        click.echo("No vouchers found.")
        return

    click.echo(f"{'Date':10s} | {'Voucher':10s} | {'Status':10s} | {'Rows':>4s} | {'Amount':>12s}")
    click.echo("-" * 58)
    for summary in summaries:
        status_text = summary.status.value if summary.is_active else "Deleted"
        click.echo(
            f"{summary.entry_date.isoformat():10s} | {summary.voucher_no:10s} | {status_text:10s} | "
            f"{summary.row_count:>4d} | {_money(summary.amount):>12s}"
        )


@voucher_group.command("history")
@click.argument("voucher_no", metavar="VOUCHER_NO")
@click.pass_context
def history(ctx, voucher_no: str):
    """Show the history of a voucher, newest first."""
    records = _service(ctx).history(voucher_no)
    if not records:
        click.echo(f"No history for {voucher_no}.")
        return

    for record in records:
        line = f"{record.action_at:%Y-%m-%d %H:%M:%S} | {record.action.value:10s} | {record.actor}"
        if record.remarks:
            line += f" | {record.remarks}"
        click.echo(line)


def register_commands(cli):
    """Register voucher commands with main CLI."""
    cli.add_command(voucher_group, name="voucher")
