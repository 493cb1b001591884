"""Utility for resolving account references typed on the command line."""

from farmledger.domain.entities import AccountRef, AccountType
from farmledger.domain.master import MasterDataService

# Short type names accepted in addition to the full type tags
TYPE_ALIASES = {
    "bank": AccountType.BANK_ACCOUNT,
    "farmer": AccountType.FARMER,
    "grower": AccountType.GROWER_GROUP,
    "group": AccountType.CHART_GROUP,
    "subgroup": AccountType.CHART_SUB_GROUP,
    "ledger": AccountType.LEDGER,
}


def parse_account_type(text: str) -> AccountType:
    """Parse a full type tag or one of its short aliases."""
    alias = TYPE_ALIASES.get(text.strip().lower())
    if alias is not None:
        return alias
    return AccountType.parse(text)


def resolve_account(master: MasterDataService, account: str) -> AccountRef:
    """Resolve 'Type:id' or 'Type:Name' to an existing account.

    Args:
        master: MasterDataService instance
        account: Reference such as "BankAccount:3", "bank:3" or "farmer:Ramesh Patil"

    Returns:
        AccountRef of an existing account

    Raises:
        ValueError: If the reference is malformed, unknown or ambiguous
    """
    type_part, sep, key = account.partition(":")
    if not sep or not key.strip():
        raise ValueError(f"Expected 'Type:id' or 'Type:Name', got '{account}'")
    account_type = parse_account_type(type_part)
    key = key.strip()

    if key.isdigit():
        ref = AccountRef(account_type, int(key))
        if master.get_account(ref) is None:
            raise ValueError(f"Account {ref} not found")
        return ref

    matches = [
        c for c in master.list_accounts(account_type, search=key, include_inactive=True) if c.name.lower() == key.lower()
    ]
    if not matches:
        raise ValueError(f"{account_type.value} '{key}' not found")
    if len(matches) > 1:
        ids = ", ".join(str(c.ref.id) for c in matches)
        raise ValueError(f"{account_type.value} name '{key}' is ambiguous (ids: {ids}); use the id instead")
    return matches[0].ref
