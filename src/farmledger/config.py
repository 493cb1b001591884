"""Runtime settings for farmledger.

Settings come from environment variables so that the CLI and a hosting
application share one source of configuration.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from farmledger.domain.entities import AccountRef, AccountType, BalanceConvention, SourceKind

MEDIATOR_ENV = "FARMLEDGER_MEDIATOR_ACCOUNT"
DEBIT_POSITIVE_ENV = "FARMLEDGER_DEBIT_POSITIVE_TYPES"

DEFAULT_VOUCHER_PREFIXES: dict[SourceKind, str] = {
    SourceKind.JOURNAL: "JV",
    SourceKind.RECEIPT: "RCPT",
    SourceKind.SETTLEMENT: "PA",
    SourceKind.DEBIT_NOTE: "DN",
    SourceKind.CREDIT_NOTE: "CN",
}


@dataclass(frozen=True)
class LedgerSettings:
    """Ledger and posting settings.

    Attributes:
        mediator_account: Clearing account used for batches with more than two
            legs. None means the first chart group by id.
        conventions: Balance sign convention per account type. Types not listed
            use CREDIT_POSITIVE (payable/receivable style).
        voucher_prefixes: Voucher number prefix per source kind.
        voucher_digits: Zero padding of the voucher sequence number.
    """

    mediator_account: Optional[AccountRef] = None
    conventions: Mapping[AccountType, BalanceConvention] = field(default_factory=dict)
    voucher_prefixes: Mapping[SourceKind, str] = field(
        default_factory=lambda: dict(DEFAULT_VOUCHER_PREFIXES)
    )
    voucher_digits: int = 5

    def convention_for(self, account_type: AccountType) -> BalanceConvention:
        return self.conventions.get(account_type, BalanceConvention.CREDIT_POSITIVE)

    def format_voucher_no(self, kind: SourceKind, number: int) -> str:
        return f"{self.voucher_prefixes[kind]}{number:0{self.voucher_digits}d}"

    def kind_for_voucher(self, voucher_no: str) -> Optional[SourceKind]:
        """Guess the source table of a voucher number from its prefix."""
        text = voucher_no.strip().upper()
        # Longest prefix first so that one prefix may extend another
        for kind, prefix in sorted(self.voucher_prefixes.items(), key=lambda item: -len(item[1])):
            rest = text[len(prefix):]
            if text.startswith(prefix.upper()) and rest.isdigit():
                return kind
        return None


def parse_account_ref(text: str) -> AccountRef:
    """Parse a 'Type:id' string into an AccountRef.

    Raises:
        ValueError: If the text is not of the form 'Type:id'
    """
    type_part, sep, id_part = text.partition(":")
    if not sep:
        raise ValueError(f"Expected 'Type:id', got '{text}'")
    try:
        account_id = int(id_part)
    except ValueError:
        raise ValueError(f"Invalid account id in '{text}'")
    return AccountRef(AccountType.parse(type_part), account_id)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> LedgerSettings:
    """Build settings from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        LedgerSettings instance

    Raises:
        ValueError: If a variable is set to an unparseable value
    """
    if environ is None:
        environ = os.environ

    mediator = None
    mediator_text = environ.get(MEDIATOR_ENV, "").strip()
    if mediator_text:
        mediator = parse_account_ref(mediator_text)

    conventions: dict[AccountType, BalanceConvention] = {}
    for tag in environ.get(DEBIT_POSITIVE_ENV, "").split(","):
        if tag.strip():
            conventions[AccountType.parse(tag)] = BalanceConvention.DEBIT_POSITIVE

    return LedgerSettings(mediator_account=mediator, conventions=conventions)
