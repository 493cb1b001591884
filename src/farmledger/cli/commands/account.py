"""Account management commands."""

import click
from farmledger.domain.entities import AccountType, Side
from farmledger.domain.errors import DomainError
from farmledger.domain.master import MasterDataService
from farmledger.domain.rules import AccountRuleService
from farmledger.cli.error_handling import handle_domain_error
from farmledger.utils.account_resolver import parse_account_type

# Account types that need a parent, and what the parent is
PARENT_TYPES = {
    AccountType.CHART_SUB_GROUP: AccountType.CHART_GROUP,
    AccountType.LEDGER: AccountType.CHART_GROUP,
    AccountType.BANK_ACCOUNT: AccountType.LEDGER,
    AccountType.FARMER: AccountType.GROWER_GROUP,
}


def _account_type_or_exit(ctx, text: str) -> AccountType:
    try:
        return parse_account_type(text)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@click.group()
def account_group():
    """Manage chart groups, ledgers, bank accounts, grower groups and farmers."""
    pass


@account_group.command("create")
@click.argument("account_type", metavar="TYPE")
@click.argument("name", metavar="NAME")
@click.option("--parent", type=int, help="Parent ID (chart group, ledger or grower group)")
@click.option("--sub-group", type=int, help="Chart sub group ID (ledgers only)")
@click.option("--code", help="Farmer code (farmers only)")
@click.option("--number", "account_number", help="Bank account number (bank accounts only)")
@click.pass_context
def create_account(
    ctx,
    account_type: str,
    name: str,
    parent: int | None,
    sub_group: int | None,
    code: str | None,
    account_number: str | None,
):
    """Create an account.

    Sub groups and ledgers need a chart group as --parent, bank accounts a
    ledger and farmers a grower group.

    Examples:
        farmledger account create group "Sundry Creditors"
        farmledger account create ledger "Bank Accounts" --parent 1
        farmledger account create bank "SBI Current" --parent 1 --number 0012345
        farmledger account create grower "Nashik Growers"
        farmledger account create farmer "Ramesh Patil" --parent 1 --code F-001
    """
    service = MasterDataService(ctx.obj["db"])
    kind = _account_type_or_exit(ctx, account_type)

    parent_type = PARENT_TYPES.get(kind)
    if parent_type is not None and parent is None:
        click.echo(f"Error: {kind.value} needs --parent (a {parent_type.value} ID)", err=True)
        ctx.exit(1)

    try:
        if kind is AccountType.CHART_GROUP:
            account_id = service.create_chart_group(name)
        elif kind is AccountType.CHART_SUB_GROUP:
            account_id = service.create_chart_sub_group(name, parent)
        elif kind is AccountType.LEDGER:
            account_id = service.create_ledger(name, parent, sub_group)
        elif kind is AccountType.BANK_ACCOUNT:
            account_id = service.create_bank_account(name, parent, account_number)
        elif kind is AccountType.GROWER_GROUP:
            account_id = service.create_grower_group(name)
        else:
            account_id = service.create_farmer(name, parent, code)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Created {kind.value} '{name.strip()}' (ID: {account_id})")


@account_group.command("list")
@click.argument("account_type", metavar="TYPE")
@click.option("--search", help="Only names containing this text")
@click.option("--all", "include_inactive", is_flag=True, help="Include inactive accounts")
@click.pass_context
def list_accounts(ctx, account_type: str, search: str | None, include_inactive: bool):
    """List accounts of one type."""
    service = MasterDataService(ctx.obj["db"])
    kind = _account_type_or_exit(ctx, account_type)

    accounts = service.list_accounts(kind, search=search, include_inactive=include_inactive)
    if not accounts:
        click.echo(f"No {kind.value} accounts found.")
        return

    click.echo(f"\n{kind.value} accounts:")
    click.echo("-" * 60)
    for acc in accounts:
        line = f"ID: {acc.ref.id:3d} | {acc.name:30s}"
        if acc.code:
            line += f" | {acc.code}"
        if acc.group is not None:
            line += f" | {acc.group}"
        click.echo(line)


@account_group.command("candidates")
@click.option("--search", help="Only names containing this text")
@click.option("--profile", "profile_id", type=int, help="Entry profile ID (only explicitly allowed accounts)")
@click.option("--side", type=click.Choice(["debit", "credit"], case_sensitive=False), help="Side to check")
@click.pass_context
def list_candidates(ctx, search: str | None, profile_id: int | None, side: str | None):
    """List bank accounts, ledgers and farmers that may be used on a voucher.

    Examples:
        farmledger account candidates --search patil
        farmledger account candidates --profile 3 --side debit
    """
    service = AccountRuleService(ctx.obj["db"])
    candidates = service.candidate_accounts(
        search=search, profile_id=profile_id, side=Side.parse(side) if side else None
    )
    if not candidates:
        click.echo("No matching accounts.")
        return

    for candidate in candidates:
        click.echo(f"{str(candidate.ref):20s} | {candidate.name}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
