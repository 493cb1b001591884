"""Account rule commands."""

import click
from farmledger.domain.entities import AllowedNature, Side
from farmledger.domain.errors import DomainError
from farmledger.domain.master import MasterDataService
from farmledger.domain.rules import AccountRuleService
from farmledger.cli.account_resolution import resolve_account_or_exit
from farmledger.cli.error_handling import handle_domain_error


@click.group()
def rule_group():
    """Manage allowed-nature rules (which side an account may be used on)."""
    pass


@rule_group.command("set")
@click.argument("account", metavar="ACCOUNT")
@click.argument(
    "value", metavar="VALUE", type=click.Choice([n.value for n in AllowedNature], case_sensitive=False)
)
@click.option("--profile", "profile_id", type=int, help="Entry profile ID (default: applies to all profiles)")
@click.pass_context
def set_rule(ctx, account: str, value: str, profile_id: int | None):
    """Set the rule of an account, replacing any existing one.

    VALUE is Both, Debit, Credit or Cancel.

    Examples:
        farmledger rule set bank:1 Debit --profile 3
        farmledger rule set ledger:2 Both
    """
    db = ctx.obj["db"]
    ref = resolve_account_or_exit(ctx, MasterDataService(db), account)
    try:
        rule_id = AccountRuleService(db).set_rule(ref, value, profile_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    scope = f"profile {profile_id}" if profile_id is not None else "all profiles"
    click.echo(f"Rule {rule_id}: {ref} is {value} for {scope}")


@rule_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--profile", "profile_id", type=int, help="Entry profile ID of the rule")
@click.pass_context
def delete_rule(ctx, account: str, profile_id: int | None):
    """Delete the rule of an account."""
    db = ctx.obj["db"]
    ref = resolve_account_or_exit(ctx, MasterDataService(db), account)
    try:
        AccountRuleService(db).delete_rule(ref, profile_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted rule for {ref}")


@rule_group.command("list")
@click.argument("account", metavar="ACCOUNT", required=False)
@click.pass_context
def list_rules(ctx, account: str | None):
    """List rules, optionally for one account."""
    db = ctx.obj["db"]
    ref = resolve_account_or_exit(ctx, MasterDataService(db), account) if account else None
    rules = AccountRuleService(db).list_rules(ref)
    if not rules:
        click.echo("No rules found.")
        return

    click.echo("\nAccount rules:")
    click.echo("-" * 60)
    for r in rules:
        profile = str(r.entry_profile_id) if r.entry_profile_id is not None else "-"
        click.echo(f"ID: {r.id:3d} | {r.account_type}:{r.account_id:<6d} | profile: {profile:4s} | {r.value}")


@rule_group.command("check")
@click.argument("account", metavar="ACCOUNT")
@click.option("--profile", "profile_id", type=int, help="Entry profile ID")
@click.option("--side", type=click.Choice(["debit", "credit"], case_sensitive=False), help="Side to check")
@click.option("--strict", is_flag=True, help="Deny accounts that have no rule at all")
@click.pass_context
def check_rule(ctx, account: str, profile_id: int | None, side: str | None, strict: bool):
    """Show whether an account may be used on a side.

    Examples:
        farmledger rule check bank:1 --profile 3 --side credit
    """
    db = ctx.obj["db"]
    ref = resolve_account_or_exit(ctx, MasterDataService(db), account)
    try:
        decision = AccountRuleService(db).resolve(
            ref, profile_id=profile_id, side=Side.parse(side) if side else None, strict=strict
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"{ref}: {decision.value}")


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
