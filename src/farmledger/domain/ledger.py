"""Ledger aggregation domain service."""

from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional

from farmledger.config import LedgerSettings
from farmledger.database.base import Database
from farmledger.domain.entities import (
    AccountRef,
    BalanceConvention,
    DateRange,
    LedgerLine,
    LedgerReport,
)
from farmledger.domain.errors import NotFoundError, ValidationError, account_not_found
from farmledger.domain.labels import AccountLabelResolver
from farmledger.domain.sources import SourceAdapter, default_sources
from farmledger.logging_config import get_logger

logger = get_logger("ledger")

SourceFactory = Callable[[Database, AccountLabelResolver], list[SourceAdapter]]


def signed_total(lines: Iterable[LedgerLine], convention: BalanceConvention) -> Decimal:
    """Net movement of lines under a balance convention."""
    total = Decimal("0")
    for line in lines:
        total += line.credit - line.debit
    if convention is BalanceConvention.DEBIT_POSITIVE:
        return -total
    return total


def running_balances(report: LedgerReport) -> list[Decimal]:
    """Balance after each line of a report, starting from its opening balance."""
    balances = []
    balance = report.opening_balance
    for line in report.lines:
        balance += signed_total((line,), report.convention)
        balances.append(balance)
    return balances


class LedgerService:
    """Service for building account ledger reports."""

    def __init__(
        self,
        db: Database,
        settings: Optional[LedgerSettings] = None,
        source_factory: SourceFactory = default_sources,
    ):
        """Initialize ledger service.

        Args:
            db: Database instance
            settings: Ledger settings (balance conventions)
            source_factory: Builds the transaction source adapters for a request
        """
        self.db = db
        self.settings = settings or LedgerSettings()
        self.source_factory = source_factory

    def build_report(self, account: AccountRef, from_date: date, to_date: date) -> LedgerReport:
        """Build the ledger of an account for [from_date, to_date).

        The opening balance is the net of every line before from_date, so the
        closing balance of one window equals the opening balance of the next.

        Args:
            account: Account to report on
            from_date: First day of the window
            to_date: First day after the window

        Returns:
            LedgerReport with lines ordered by date and line key

        Raises:
            ValidationError: If from_date is not before to_date
            NotFoundError: If the account does not exist
        """
        if from_date >= to_date:
            raise ValidationError(f"Start date {from_date} must be before end date {to_date}")

        target = self.db.get_account(account)
        if target is None:
            raise NotFoundError(account_not_found(account))

        labels = AccountLabelResolver(self.db)
        sources = self.source_factory(self.db, labels)
        convention = self.settings.convention_for(account.type)

        opening_lines = self._collect(sources, account, DateRange(None, from_date))
        opening_balance = signed_total(opening_lines, convention)

        lines = sorted(self._collect(sources, account, DateRange(from_date, to_date)), key=lambda l: l.sort_key)
        closing_balance = opening_balance + signed_total(lines, convention)

        logger.info(
            "Ledger report built",
            extra={
                "account": str(account),
                "from_date": from_date.isoformat(),
                "to_date": to_date.isoformat(),
                "line_count": len(lines),
                "opening_balance": opening_balance,
                "closing_balance": closing_balance,
            },
        )
        return LedgerReport(
            account=account,
            account_label=target.name,
            from_date=from_date,
            to_date=to_date,
            opening_balance=opening_balance,
            lines=tuple(lines),
            closing_balance=closing_balance,
            convention=convention,
        )

    @staticmethod
    def _collect(sources: list[SourceAdapter], account: AccountRef, date_range: DateRange) -> list[LedgerLine]:
        lines: list[LedgerLine] = []
        for source in sources:
            lines.extend(source.fetch(account, date_range))
        return lines
