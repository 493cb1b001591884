"""Main CLI entry point."""

import click
from farmledger.config import load_settings
from farmledger.database.factories import create_sqlite_database
from farmledger.logging_config import configure_logging

# Import and register all commands at module level
from farmledger.cli.commands import (
    account,
    ledger,
    note,
    post,
    profile,
    rule,
    voucher,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides FARMLEDGER_DB_PATH environment variable)",
    envvar="FARMLEDGER_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="FARMLEDGER_LOG_LEVEL",
    help="Log level for messages written to stderr",
)
@click.option("--log-json", is_flag=True, envvar="FARMLEDGER_LOG_JSON", help="Write log records as JSON lines")
@click.option(
    "--actor",
    default="system",
    show_default=True,
    envvar="FARMLEDGER_ACTOR",
    help="Name recorded on posted and approved vouchers",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str, log_json: bool, actor: str):
    """Farmledger - Farm produce accounting.

    Post journal, receipt and settlement vouchers, raise debit and credit
    notes, and build account ledgers across all of them.

    Accounts are written as TYPE:ID or TYPE:NAME, where TYPE is one of
    bank, farmer, grower, group, subgroup or ledger.
    """
    ctx.ensure_object(dict)
    configure_logging(log_level, json_output=log_json)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings()
        except ValueError as e:
            click.echo(f"Error: Invalid configuration: {e}", err=True)
            ctx.exit(1)
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        ctx.obj["actor"] = actor


# Register all commands
account.register_commands(cli)
profile.register_commands(cli)
rule.register_commands(cli)
post.register_commands(cli)
note.register_commands(cli)
voucher.register_commands(cli)
ledger.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
