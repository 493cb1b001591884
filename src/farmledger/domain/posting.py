"""Voucher posting domain service."""

import json
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

from farmledger.config import LedgerSettings
from farmledger.database.base import Database
from farmledger.domain.entities import (
    AccountRef,
    AccountType,
    BatchLine,
    CandidateAccount,
    JournalPosting,
    LegPosting,
    NoteDetail,
    Side,
    SourceKind,
    VoucherAction,
    VoucherBatch,
)
from farmledger.domain.errors import (
    ConcurrencyError,
    NotFoundError,
    PaymentMismatchError,
    UnbalancedBatchError,
    ValidationError,
    account_not_found,
    payment_mismatch,
    profile_not_found,
)
from farmledger.logging_config import get_logger

logger = get_logger("posting")

Clock = Callable[[], datetime]

# Scale of the amount columns
AMOUNT_PLACES = 2
CENT = Decimal(1).scaleb(-AMOUNT_PLACES)


def utc_now() -> datetime:
    return datetime.now(UTC)


def _fits_amount_column(amount: Decimal) -> bool:
    return amount.is_finite() and amount == amount.quantize(CENT)


def _payload(batch: VoucherBatch) -> str:
    return json.dumps(
        {
            "entry_date": batch.entry_date.isoformat(),
            "lines": [
                {"account": str(line.account), "side": line.side.value, "amount": str(line.amount)}
                for line in batch.lines
            ],
        }
    )


class PostingService:
    """Service for posting vouchers.

    Every writer validates its input first and then persists inside one unit
    of work: the voucher number, its rows and the history record are committed
    together or not at all.
    """

    def __init__(
        self,
        db: Database,
        settings: Optional[LedgerSettings] = None,
        actor: str = "system",
        clock: Clock = utc_now,
    ):
        """Initialize posting service.

        Args:
            db: Database instance
            settings: Ledger settings (mediator account, voucher prefixes)
            actor: Name recorded as creator of posted rows
            clock: Returns the timestamp recorded on posted rows
        """
        self.db = db
        self.settings = settings or LedgerSettings()
        self.actor = actor
        self.clock = clock

    def post_batch(self, batch: VoucherBatch) -> str:
        """Post a journal voucher.

        A batch of exactly one debit and one credit line becomes a single row
        with both accounts. Any other batch becomes one row per line, each
        paired with the mediator account on the opposite side.

        Args:
            batch: Lines to post

        Returns:
            The voucher number

        Raises:
            ValidationError: If the batch is malformed or unbalanced, or the
                payment details of a simple transaction differ
            NotFoundError: If an account or profile does not exist
            ConcurrencyError: If no unique voucher number could be allocated
        """
        self._validate(batch)
        debits = [line for line in batch.lines if line.side is Side.DEBIT]
        credits = [line for line in batch.lines if line.side is Side.CREDIT]
        simple = len(debits) == 1 and len(credits) == 1
        mediator = None if simple else self._mediator()

        if simple:
            debit, credit = debits[0], credits[0]
            if not debit.payment.matches(credit.payment):
                raise PaymentMismatchError(payment_mismatch())
            if debit.account == credit.account:
                raise ValidationError("Debit and credit account must be different")

        with self.db.unit_of_work():
            voucher_no = self._allocate(SourceKind.JOURNAL)
            if simple:
                postings = [
                    JournalPosting(
                        voucher_no=voucher_no,
                        entry_date=batch.entry_date,
                        debit=debit.account,
                        credit=credit.account,
                        amount=debit.amount,
                        payment=debit.payment,
                        narration=debit.narration or credit.narration,
                        entry_profile_id=debit.entry_profile_id or credit.entry_profile_id,
                    )
                ]
            else:
                postings = [self._mediated(voucher_no, batch.entry_date, line, mediator) for line in batch.lines]
            self.db.add_journal_entries(postings, self.actor, self.clock())
            self._record_insert(voucher_no, SourceKind.JOURNAL, len(postings), _payload(batch))

        self._log_posted(voucher_no, SourceKind.JOURNAL, len(postings), batch.total(Side.DEBIT))
        return voucher_no

    def post_receipt(self, batch: VoucherBatch) -> str:
        """Post a receipt voucher, one row per line.

        Raises:
            ValidationError: If the batch is malformed or unbalanced, or the
                lines do not share payment type and reference
            NotFoundError: If an account or profile does not exist
            ConcurrencyError: If no unique voucher number could be allocated
        """
        self._validate(batch)
        first = batch.lines[0].payment
        if len(batch.lines) > 1 and not all(line.payment.matches(first) for line in batch.lines):
            raise PaymentMismatchError(payment_mismatch(all_entries=True))
        return self._post_legs(SourceKind.RECEIPT, batch, snapshot_names=False)

    def post_settlement(self, batch: VoucherBatch) -> str:
        """Post a payment settlement, one row per line with the account name captured.

        Raises:
            ValidationError: If the batch is malformed or unbalanced
            NotFoundError: If an account or profile does not exist
            ConcurrencyError: If no unique voucher number could be allocated
        """
        self._validate(batch)
        return self._post_legs(SourceKind.SETTLEMENT, batch, snapshot_names=True)

    def create_debit_note(
        self,
        note_date: date,
        bank_account_id: int,
        details: Sequence[NoteDetail] = (),
        amount: Optional[Decimal] = None,
        narration: Optional[str] = None,
    ) -> str:
        """Raise a debit note against a bank account. Returns the voucher number."""
        return self._create_note(
            SourceKind.DEBIT_NOTE,
            AccountRef(AccountType.BANK_ACCOUNT, bank_account_id),
            note_date,
            details,
            amount,
            narration,
        )

    def create_credit_note(
        self,
        note_date: date,
        farmer_id: int,
        details: Sequence[NoteDetail] = (),
        amount: Optional[Decimal] = None,
        narration: Optional[str] = None,
    ) -> str:
        """Raise a credit note for a farmer. Returns the voucher number."""
        return self._create_note(
            SourceKind.CREDIT_NOTE,
            AccountRef(AccountType.FARMER, farmer_id),
            note_date,
            details,
            amount,
            narration,
        )

    def _post_legs(self, kind: SourceKind, batch: VoucherBatch, snapshot_names: bool) -> str:
        accounts = self._accounts(batch)
        with self.db.unit_of_work():
            voucher_no = self._allocate(kind)
            postings = [
                LegPosting(
                    voucher_no=voucher_no,
                    entry_date=batch.entry_date,
                    side=line.side,
                    account=line.account,
                    amount=line.amount,
                    payment=line.payment,
                    narration=line.narration,
                    account_name=accounts[line.account].name if snapshot_names else None,
                    entry_profile_id=line.entry_profile_id,
                )
                for line in batch.lines
            ]
            self.db.add_legs(kind, postings, self.actor, self.clock())
            self._record_insert(voucher_no, kind, len(postings), _payload(batch))

        self._log_posted(voucher_no, kind, len(postings), batch.total(Side.DEBIT))
        return voucher_no

    def _create_note(
        self,
        kind: SourceKind,
        account: AccountRef,
        note_date: date,
        details: Sequence[NoteDetail],
        amount: Optional[Decimal],
        narration: Optional[str],
    ) -> str:
        for detail in details:
            if not detail.label or not detail.label.strip():
                raise ValidationError("Note detail label is required")
            if not _fits_amount_column(detail.amount):
                raise ValidationError(
                    f"Note detail '{detail.label}' amount {detail.amount} has more than {AMOUNT_PLACES} decimal places"
                )
            if detail.amount <= 0:
                raise ValidationError(f"Note detail '{detail.label}' amount must be positive")

        if details:
            total = sum((d.amount for d in details), Decimal("0"))
            if amount is not None and amount != total:
                raise ValidationError(f"Note amount {amount} does not match detail total {total}")
            amount = total
        elif amount is None:
            raise ValidationError("Either note details or an amount is required")
        elif not _fits_amount_column(amount):
            raise ValidationError(f"Note amount {amount} has more than {AMOUNT_PLACES} decimal places")
        elif amount <= 0:
            raise ValidationError("Note amount must be positive")

        if self.db.get_account(account) is None:
            raise NotFoundError(account_not_found(account))

        with self.db.unit_of_work():
            voucher_no = self._allocate(kind)
            at = self.clock()
            if kind is SourceKind.DEBIT_NOTE:
                self.db.add_debit_note(voucher_no, note_date, account.id, amount, details, self.actor, at, narration)
            else:
                self.db.add_credit_note(voucher_no, note_date, account.id, amount, details, self.actor, at, narration)
            payload = json.dumps(
                {
                    "note_date": note_date.isoformat(),
                    "account": str(account),
                    "amount": str(amount),
                    "details": [{"label": d.label, "amount": str(d.amount)} for d in details],
                }
            )
            self._record_insert(voucher_no, kind, max(len(details), 1), payload)

        self._log_posted(voucher_no, kind, max(len(details), 1), amount)
        return voucher_no

    def _validate(self, batch: VoucherBatch) -> None:
        """Check lines and balance of a batch, then that every reference exists."""
        if not batch.lines:
            raise ValidationError("Voucher has no entries")
        for number, line in enumerate(batch.lines, start=1):
            if line.account is None:
                raise ValidationError(f"Entry {number}: account is required")
            if not _fits_amount_column(line.amount):
                raise ValidationError(
                    f"Entry {number}: amount {line.amount} has more than {AMOUNT_PLACES} decimal places"
                )
            if line.amount <= 0:
                raise ValidationError(f"Entry {number}: amount must be positive")

        total_debit = batch.total(Side.DEBIT)
        total_credit = batch.total(Side.CREDIT)
        if total_debit != total_credit:
            raise UnbalancedBatchError(total_debit, total_credit)

        self._accounts(batch)
        for profile_id in {line.entry_profile_id for line in batch.lines if line.entry_profile_id is not None}:
            if self.db.get_entry_profile(profile_id) is None:
                raise NotFoundError(profile_not_found(profile_id))

    def _accounts(self, batch: VoucherBatch) -> dict[AccountRef, CandidateAccount]:
        accounts: dict[AccountRef, CandidateAccount] = {}
        for line in batch.lines:
            if line.account in accounts:
                continue
            account = self.db.get_account(line.account)
            if account is None:
                raise NotFoundError(account_not_found(line.account))
            accounts[line.account] = account
        return accounts

    def _mediator(self) -> AccountRef:
        """Get the clearing account used for batches that are not simple pairs."""
        mediator = self.settings.mediator_account
        if mediator is None:
            group_id = self.db.first_chart_group_id()
            if group_id is None:
                raise ValidationError("No mediator account is configured and no chart group exists")
            return AccountRef(AccountType.CHART_GROUP, group_id)
        if self.db.get_account(mediator) is None:
            raise NotFoundError(account_not_found(mediator))
        return mediator

    @staticmethod
    def _mediated(voucher_no: str, entry_date: date, line: BatchLine, mediator: AccountRef) -> JournalPosting:
        if line.side is Side.DEBIT:
            debit, credit = line.account, mediator
        else:
            debit, credit = mediator, line.account
        return JournalPosting(
            voucher_no=voucher_no,
            entry_date=entry_date,
            debit=debit,
            credit=credit,
            amount=line.amount,
            payment=line.payment,
            narration=line.narration,
            entry_profile_id=line.entry_profile_id,
        )

    def _allocate(self, kind: SourceKind) -> str:
        """Take the next voucher number, retrying once if it is already in use."""
        for _ in range(2):
            number = self.db.next_voucher_number(kind.value)
            voucher_no = self.settings.format_voucher_no(kind, number)
            if not self.db.voucher_exists(kind, voucher_no):
                return voucher_no
            logger.warning("Voucher number already in use", extra={"voucher_no": voucher_no, "kind": kind.value})
        raise ConcurrencyError(f"Could not allocate a unique {kind.value} voucher number")

    def _record_insert(self, voucher_no: str, kind: SourceKind, rows: int, payload: str) -> None:
        self.db.add_history(
            voucher_no,
            kind,
            VoucherAction.INSERT,
            self.actor,
            self.clock(),
            remarks=f"Posted {rows} row(s)",
            payload=payload,
        )

    def _log_posted(self, voucher_no: str, kind: SourceKind, rows: int, amount: Decimal) -> None:
        logger.info(
            "Voucher posted",
            extra={"voucher_no": voucher_no, "kind": kind.value, "rows": rows, "amount": amount, "actor": self.actor},
        )
