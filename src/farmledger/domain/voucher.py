"""Voucher read and status domain service."""

from datetime import date
from typing import Optional

from farmledger.database.base import Database
from farmledger.domain.entities import (
    STATUS_TRANSITIONS,
    ApprovalStatus,
    DateRange,
    HistoryRecord,
    JournalRow,
    LegRow,
    Note,
    Side,
    SourceKind,
    VoucherAction,
    VoucherEntry,
    VoucherSummary,
    VoucherView,
)
from farmledger.domain.errors import ConflictError, NotFoundError, invalid_transition, voucher_not_found
from farmledger.domain.labels import AccountLabelResolver
from farmledger.domain.posting import Clock, utc_now
from farmledger.domain.sources import CreditNoteSource, DebitNoteSource
from farmledger.logging_config import get_logger

logger = get_logger("voucher")

_NOTE_SOURCES = {
    SourceKind.DEBIT_NOTE: DebitNoteSource,
    SourceKind.CREDIT_NOTE: CreditNoteSource,
}


class VoucherService:
    """Service for reading vouchers back and for approving, unapproving and deleting them."""

    def __init__(self, db: Database, actor: str = "system", clock: Clock = utc_now):
        """Initialize voucher service.

        Args:
            db: Database instance
            actor: Name recorded on changed rows and in history
            clock: Returns the timestamp recorded on changed rows
        """
        self.db = db
        self.actor = actor
        self.clock = clock

    def approve(self, kind: SourceKind, voucher_no: str, remarks: Optional[str] = None) -> None:
        """Approve every row of an unapproved voucher.

        Raises:
            NotFoundError: If the voucher does not exist or is deleted
            ConflictError: If the voucher is already approved
        """
        self._apply(kind, voucher_no, VoucherAction.APPROVE, remarks)

    def unapprove(self, kind: SourceKind, voucher_no: str, remarks: Optional[str] = None) -> None:
        """Return every row of an approved voucher to unapproved.

        Raises:
            NotFoundError: If the voucher does not exist or is deleted
            ConflictError: If the voucher is not approved
        """
        self._apply(kind, voucher_no, VoucherAction.UNAPPROVE, remarks)

    def delete(self, kind: SourceKind, voucher_no: str, remarks: Optional[str] = None) -> None:
        """Soft-delete every row of a voucher.

        Raises:
            NotFoundError: If the voucher does not exist or is already deleted
        """
        self._apply(kind, voucher_no, VoucherAction.DELETE, remarks)

    def show(self, kind: SourceKind, voucher_no: str) -> VoucherView:
        """Read a voucher back as posted, whatever its status.

        Journal rows give one debit and one credit entry each; receipt and
        settlement legs give one entry each; notes give one entry per detail,
        or a single entry for the header amount. A deleted voucher is shown
        with its deleted rows.

        Raises:
            NotFoundError: If no row has the voucher number
        """
        rows = self.db.get_voucher_rows(kind, voucher_no)
        if not rows:
            raise NotFoundError(voucher_not_found(kind, voucher_no))

        active = [row for row in rows if row.is_active]
        shown = active or rows
        labels = AccountLabelResolver(self.db)
        entries: list[VoucherEntry] = []
        for row in shown:
            if isinstance(row, JournalRow):
                entries.extend(_journal_entries(row, labels))
            elif isinstance(row, LegRow):
                entries.append(_leg_entry(row, labels))
            else:
                entries.extend(_note_entries(row, labels))

        first = shown[0]
        return VoucherView(
            kind=kind,
            voucher_no=voucher_no,
            entry_date=first.note_date if isinstance(first, Note) else first.entry_date,
            status=first.status,
            is_active=bool(active),
            entries=tuple(entries),
        )

    def list_vouchers(
        self,
        kind: SourceKind,
        status: Optional[ApprovalStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        include_deleted: bool = False,
    ) -> list[VoucherSummary]:
        """List vouchers of one kind dated within [from_date, to_date)."""
        return self.db.list_vouchers(
            kind, status=status, date_range=DateRange(from_date, to_date), include_deleted=include_deleted
        )

    def history(self, voucher_no: str) -> list[HistoryRecord]:
        """List history records for a voucher number, newest first."""
        return self.db.list_history(voucher_no)

    def _apply(self, kind: SourceKind, voucher_no: str, action: VoucherAction, remarks: Optional[str]) -> None:
        with self.db.unit_of_work():
            state = self.db.get_voucher_state(kind, voucher_no)
            if state is None or not state[1]:
                raise NotFoundError(voucher_not_found(kind, voucher_no))

            current = state[0]
            at = self.clock()
            if action is VoucherAction.DELETE:
                rows = self.db.deactivate_voucher(kind, voucher_no, self.actor, at)
            else:
                required, target = STATUS_TRANSITIONS[action]
                if current is not required:
                    raise ConflictError(invalid_transition(voucher_no, current, action))
                rows = self.db.set_voucher_status(kind, voucher_no, target, self.actor, at)
            self.db.add_history(voucher_no, kind, action, self.actor, at, remarks=remarks)

        logger.info(
            "Voucher status changed",
            extra={
                "voucher_no": voucher_no,
                "kind": kind.value,
                "action": action.value,
                "rows": rows,
                "actor": self.actor,
            },
        )


def _journal_entries(row: JournalRow, labels: AccountLabelResolver) -> list[VoucherEntry]:
    common = dict(
        row_id=row.id,
        amount=row.amount,
        narration=row.narration,
        payment_type=row.payment_type,
        reference_no=row.reference_no,
    )
    return [
        VoucherEntry(
            side=Side.DEBIT,
            account_type=row.debit_account_type,
            account_id=row.debit_account_id,
            account_label=labels.label(row.debit_account_type, row.debit_account_id),
            **common,
        ),
        VoucherEntry(
            side=Side.CREDIT,
            account_type=row.credit_account_type,
            account_id=row.credit_account_id,
            account_label=labels.label(row.credit_account_type, row.credit_account_id),
            **common,
        ),
    ]


def _leg_entry(leg: LegRow, labels: AccountLabelResolver) -> VoucherEntry:
    return VoucherEntry(
        row_id=leg.id,
        side=leg.side,
        account_type=leg.account_type,
        account_id=leg.account_id,
        account_label=leg.account_name or labels.label(leg.account_type, leg.account_id),
        amount=leg.amount,
        narration=leg.narration,
        payment_type=leg.payment_type,
        reference_no=leg.reference_no,
    )


def _note_entries(note: Note, labels: AccountLabelResolver) -> list[VoucherEntry]:
    source = _NOTE_SOURCES[note.kind]
    account_type = source.account_type.value
    label = labels.label(account_type, note.account_id)

    def entry(amount, detail):
        return VoucherEntry(
            row_id=note.id,
            side=source.our_side,
            account_type=account_type,
            account_id=note.account_id,
            account_label=label,
            amount=amount,
            narration=note.narration,
            detail=detail,
        )

    if not note.details:
        return [entry(note.amount, None)]
    return [entry(detail.amount, detail.label) for detail in note.details]
