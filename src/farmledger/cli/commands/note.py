"""Debit and credit note commands."""

import click
from farmledger.domain.entities import AccountRef, AccountType, NoteDetail
from farmledger.domain.errors import DomainError
from farmledger.domain.master import MasterDataService
from farmledger.domain.posting import PostingService
from farmledger.cli.account_resolution import resolve_account_or_exit
from farmledger.cli.error_handling import handle_domain_error
from farmledger.utils.amount_parser import parse_positive_amount
from farmledger.utils.date_parser import parse_date


def note_options(func):
    options = [
        click.option("--date", "note_date", default="today", show_default=True, help="Note date"),
        click.option("--item", "items", multiple=True, metavar="LABEL=AMOUNT", help="Detail line (repeatable)"),
        click.option("--amount", help="Note amount (required without --item)"),
        click.option("--narration", help="Narration"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _account_of_type(ctx, master: MasterDataService, account: str, account_type: AccountType) -> AccountRef:
    """Resolve a bare ID or name as the given type, or a full TYPE:ID reference."""
    text = account if ":" in account else f"{account_type.value}:{account}"
    ref = resolve_account_or_exit(ctx, master, text)
    if ref.type is not account_type:
        click.echo(f"Error: Expected a {account_type.value} account, got {ref}", err=True)
        ctx.exit(1)
    return ref


def _parse_note(ctx, note_date: str, items, amount: str | None):
    try:
        parsed_date = parse_date(note_date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    details = []
    for item in items:
        label, sep, amount_text = item.rpartition("=")
        if not sep or not label.strip():
            click.echo(f"Error: Expected LABEL=AMOUNT, got '{item}'", err=True)
            ctx.exit(1)
        try:
            details.append(NoteDetail(id=None, label=label.strip(), amount=parse_positive_amount(amount_text)))
        except ValueError as e:
            click.echo(f"Error: Invalid amount format: {e}", err=True)
            ctx.exit(1)

    parsed_amount = None
    if amount is not None:
        try:
            parsed_amount = parse_positive_amount(amount)
        except ValueError as e:
            click.echo(f"Error: Invalid amount format: {e}", err=True)
            ctx.exit(1)
    return parsed_date, details, parsed_amount


@click.group()
def note_group():
    """Raise debit notes against bank accounts and credit notes for farmers."""
    pass


@note_group.command("debit")
@click.argument("bank_account", metavar="BANK_ACCOUNT")
@note_options
@click.pass_context
def debit_note(ctx, bank_account: str, note_date: str, items, amount: str | None, narration: str | None):
    """Raise a debit note against a bank account.

    Examples:
        farmledger note debit 1 --item "Crates=1200" --item "Transport=300"
        farmledger note debit "SBI Current" --amount 450 --narration "Bank charges"
    """
    db = ctx.obj["db"]
    ref = _account_of_type(ctx, MasterDataService(db), bank_account, AccountType.BANK_ACCOUNT)
    parsed_date, details, parsed_amount = _parse_note(ctx, note_date, items, amount)
    service = PostingService(db, ctx.obj["settings"], actor=ctx.obj["actor"])
    try:
        voucher_no = service.create_debit_note(parsed_date, ref.id, details, parsed_amount, narration)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Raised debit note {voucher_no}")


@note_group.command("credit")
@click.argument("farmer", metavar="FARMER")
@note_options
@click.pass_context
def credit_note(ctx, farmer: str, note_date: str, items, amount: str | None, narration: str | None):
    """Raise a credit note for a farmer.

    Examples:
        farmledger note credit "Ramesh Patil" --item "Rate difference=750"
    """
    db = ctx.obj["db"]
    ref = _account_of_type(ctx, MasterDataService(db), farmer, AccountType.FARMER)
    parsed_date, details, parsed_amount = _parse_note(ctx, note_date, items, amount)
    service = PostingService(db, ctx.obj["settings"], actor=ctx.obj["actor"])
    try:
        voucher_no = service.create_credit_note(parsed_date, ref.id, details, parsed_amount, narration)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Raised credit note {voucher_no}")


@note_group.command("map-account")
@click.argument("voucher_no", metavar="VOUCHER_NO")
@click.argument("bank_account", metavar="BANK_ACCOUNT")
@click.pass_context
def map_account(ctx, voucher_no: str, bank_account: str):
    """Move a debit note to another bank account's ledger.

    Examples:
        farmledger note map-account DN00004 2
    """
    master = MasterDataService(ctx.obj["db"])
    ref = _account_of_type(ctx, master, bank_account, AccountType.BANK_ACCOUNT)
    try:
        master.map_debit_note_account(voucher_no, ref.id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Debit note {voucher_no} now belongs to {ref}")


def register_commands(cli):
    """Register note commands with main CLI."""
    cli.add_command(note_group, name="note")
