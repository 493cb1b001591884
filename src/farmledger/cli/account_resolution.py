"""CLI helpers for account resolution."""

from __future__ import annotations

import click
from farmledger.domain.entities import AccountRef
from farmledger.domain.master import MasterDataService
from farmledger.utils.account_resolver import resolve_account


def resolve_account_or_exit(ctx: click.Context, master: MasterDataService, account: str) -> AccountRef:
    """Resolve 'Type:id' or 'Type:Name', or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_account(master, account)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
