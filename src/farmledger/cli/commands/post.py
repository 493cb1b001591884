"""Voucher posting commands."""

import click
from farmledger.domain.entities import BatchLine, PaymentMeta, Side, VoucherBatch
from farmledger.domain.errors import DomainError
from farmledger.domain.master import MasterDataService
from farmledger.domain.posting import PostingService
from farmledger.cli.account_resolution import resolve_account_or_exit
from farmledger.cli.error_handling import handle_domain_error
from farmledger.utils.amount_parser import parse_positive_amount
from farmledger.utils.date_parser import parse_date


def batch_options(func):
    """Options shared by every voucher posting command."""
    options = [
        click.option("--date", "entry_date", default="today", show_default=True, help="Voucher date"),
        click.option("--debit", "debits", multiple=True, metavar="ACCOUNT=AMOUNT", help="Debit line (repeatable)"),
        click.option("--credit", "credits", multiple=True, metavar="ACCOUNT=AMOUNT", help="Credit line (repeatable)"),
        click.option("--payment-type", help="Payment method, e.g. Cash, Cheque, NEFT"),
        click.option("--ref", "reference_no", help="Cheque, UTR or other reference number"),
        click.option("--narration", help="Narration recorded on every line"),
        click.option("--profile", "profile_id", type=int, help="Entry profile ID"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _parse_lines(ctx, master: MasterDataService, specs, side: Side, **line_fields) -> list[BatchLine]:
    lines = []
    for spec in specs:
        account_text, sep, amount_text = spec.rpartition("=")
        if not sep or not account_text:
            click.echo(f"Error: Expected ACCOUNT=AMOUNT, got '{spec}'", err=True)
            ctx.exit(1)
        ref = resolve_account_or_exit(ctx, master, account_text)
        try:
            amount = parse_positive_amount(amount_text)
        except ValueError as e:
            click.echo(f"Error: Invalid amount format: {e}", err=True)
            ctx.exit(1)
        lines.append(BatchLine(account=ref, side=side, amount=amount, **line_fields))
    return lines


def _build_batch(ctx, entry_date, debits, credits, payment_type, reference_no, narration, profile_id) -> VoucherBatch:
    master = MasterDataService(ctx.obj["db"])
    try:
        voucher_date = parse_date(entry_date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    line_fields = {
        "payment": PaymentMeta(payment_type=payment_type, reference_no=reference_no),
        "narration": narration,
        "entry_profile_id": profile_id,
    }
    lines = _parse_lines(ctx, master, debits, Side.DEBIT, **line_fields)
    lines += _parse_lines(ctx, master, credits, Side.CREDIT, **line_fields)
    return VoucherBatch(entry_date=voucher_date, lines=tuple(lines))


def _post(ctx, writer_name: str, label: str, **options) -> None:
    batch = _build_batch(ctx, **options)
    service = PostingService(ctx.obj["db"], ctx.obj["settings"], actor=ctx.obj["actor"])
    try:
        voucher_no = getattr(service, writer_name)(batch)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Posted {label} {voucher_no} ({len(batch.lines)} line(s), {batch.total(Side.DEBIT):.2f})")


@click.group()
def post_group():
    """Post vouchers. New vouchers start unapproved."""
    pass


@post_group.command("journal")
@batch_options
@click.pass_context
def post_journal(ctx, **options):
    """Post a journal voucher.

    One debit and one credit line become a single row. Larger vouchers are
    posted line by line against the mediator account.

    Examples:
        farmledger post journal --debit "farmer:Ramesh Patil=1500" --credit bank:1=1500
        farmledger post journal --debit bank:1=300 --credit farmer:1=100 --credit farmer:2=200
    """
    _post(ctx, "post_batch", "journal voucher", **options)


@post_group.command("receipt")
@batch_options
@click.pass_context
def post_receipt(ctx, **options):
    """Post a receipt voucher.

    Examples:
        farmledger post receipt --debit bank:1=300 --credit farmer:1=100 --credit farmer:2=200 --payment-type NEFT --ref UTR991
    """
    _post(ctx, "post_receipt", "receipt", **options)


@post_group.command("settlement")
@batch_options
@click.pass_context
def post_settlement(ctx, **options):
    """Post a payment settlement.

    Examples:
        farmledger post settlement --debit farmer:1=500 --credit bank:1=500 --payment-type Cheque --ref 004512
    """
    _post(ctx, "post_settlement", "settlement", **options)


def register_commands(cli):
    """Register posting commands with main CLI."""
    cli.add_command(post_group, name="post")
