"""Entry profile commands."""

import click
from farmledger.domain.errors import DomainError
from farmledger.domain.master import DEFAULT_TRANSACTION_TYPE, MasterDataService
from farmledger.cli.error_handling import handle_domain_error


@click.group()
def profile_group():
    """Manage entry profiles (transaction contexts that scope account rules)."""
    pass


@profile_group.command("create")
@click.argument("name", metavar="NAME")
@click.option(
    "--type",
    "transaction_type",
    default=DEFAULT_TRANSACTION_TYPE,
    show_default=True,
    help="Transaction type the profile belongs to",
)
@click.pass_context
def create_profile(ctx, name: str, transaction_type: str):
    """Create an entry profile.

    Examples:
        farmledger profile create "Grower Payment" --type Payment
    """
    service = MasterDataService(ctx.obj["db"])
    try:
        profile_id = service.create_entry_profile(name, transaction_type)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created entry profile '{name.strip()}' (ID: {profile_id})")


@profile_group.command("list")
@click.option("--type", "transaction_type", help="Only profiles of this transaction type")
@click.pass_context
def list_profiles(ctx, transaction_type: str | None):
    """List entry profiles."""
    service = MasterDataService(ctx.obj["db"])
    profiles = service.list_entry_profiles(transaction_type)
    if not profiles:
        click.echo("No entry profiles found.")
        return

    click.echo("\nEntry profiles:")
    click.echo("-" * 60)
    for profile in profiles:
        click.echo(f"ID: {profile.id:3d} | {profile.name:30s} | {profile.transaction_type}")


def register_commands(cli):
    """Register profile commands with main CLI."""
    cli.add_command(profile_group, name="profile")
