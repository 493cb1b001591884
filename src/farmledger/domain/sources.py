"""Transaction source adapters.

Each adapter turns the rows of one transaction table into ledger lines seen
from a single account. Adapters only read approved, active rows and never
swallow storage errors.
"""

from abc import ABC, abstractmethod
from itertools import groupby
from typing import Optional

from farmledger.database.base import Database
from farmledger.domain.entities import (
    AccountRef,
    AccountType,
    DateRange,
    JournalRow,
    LedgerLine,
    LegRow,
    Note,
    Side,
    SourceKind,
)
from farmledger.domain.labels import AccountLabelResolver

NO_OPPOSITE_LABEL = "N/A"
NOTE_HEADER_LABEL = "Items"


def _is_account(account_type: str, account_id: int, ref: AccountRef) -> bool:
    return account_id == ref.id and account_type.lower() == ref.type.value.lower()


class SourceAdapter(ABC):
    """Reads one transaction table as ledger lines."""

    kind: SourceKind

    def __init__(self, db: Database, labels: AccountLabelResolver):
        self.db = db
        self.labels = labels

    @abstractmethod
    def fetch(self, account: AccountRef, date_range: DateRange) -> list[LedgerLine]:
        """Get the lines this table contributes to an account's ledger."""
        pass

    def _line(self, row_id: int, sub_id: int, **fields) -> LedgerLine:
        return LedgerLine(line_key=(self.kind.rank, row_id, sub_id), source_kind=self.kind, **fields)


class JournalSource(SourceAdapter):
    """Journal rows: one line per side of a row that matches the account."""

    kind = SourceKind.JOURNAL

    def fetch(self, account: AccountRef, date_range: DateRange) -> list[LedgerLine]:
        lines = []
        for row in self.db.query_journal_rows(account, date_range):
            if _is_account(row.debit_account_type, row.debit_account_id, account):
                opposite = self.labels.label(row.credit_account_type, row.credit_account_id)
                lines.append(self._journal_line(row, 1, Side.DEBIT, opposite))
            if _is_account(row.credit_account_type, row.credit_account_id, account):
                opposite = self.labels.label(row.debit_account_type, row.debit_account_id)
                lines.append(self._journal_line(row, 2, Side.CREDIT, opposite))
        return lines

    def _journal_line(self, row: JournalRow, sub_id: int, side: Side, opposite: str) -> LedgerLine:
        return self._line(
            row.id,
            sub_id,
            voucher_no=row.voucher_no,
            entry_date=row.entry_date,
            amount=row.amount,
            our_side=side,
            opposite_label=opposite,
            narration=row.narration,
            status=row.status,
            payment_type=row.payment_type,
        )


class LegSource(SourceAdapter):
    """Vouchers stored leg by leg (receipts and settlements).

    When the account has exactly one leg on its side of a voucher and the
    other side has several legs, the leg is split into one line per opposite
    leg carrying that leg's amount. Otherwise every leg of the account becomes
    one line with its own amount.
    """

    def fetch(self, account: AccountRef, date_range: DateRange) -> list[LedgerLine]:
        our_rows = self.db.query_legs(self.kind, account, date_range)
        if not our_rows:
            return []

        voucher_nos = sorted({row.voucher_no for row in our_rows})
        legs_by_voucher: dict[str, list[LegRow]] = {}
        for leg in self.db.query_voucher_legs(self.kind, voucher_nos):
            legs_by_voucher.setdefault(leg.voucher_no, []).append(leg)

        lines = []
        ordered = sorted(our_rows, key=lambda r: (r.voucher_no, r.id))
        for voucher_no, group in groupby(ordered, key=lambda r: r.voucher_no):
            ours = list(group)
            legs = legs_by_voucher.get(voucher_no, [])
            for row in ours:
                opposite = [leg for leg in legs if leg.side is not row.side]
                same_side_count = sum(1 for r in ours if r.side is row.side)
                if same_side_count == 1 and len(opposite) > 1:
                    for leg in opposite:
                        lines.append(self._leg_line(row, leg.id, leg.amount, self._label(leg)))
                else:
                    lines.append(self._leg_line(row, 0, row.amount, self._joined_label(opposite)))
        return lines

    def _label(self, leg: LegRow) -> str:
        return self.labels.label(leg.account_type, leg.account_id)

    def _joined_label(self, opposite: list[LegRow]) -> str:
        if not opposite:
            return NO_OPPOSITE_LABEL
        return self._label(opposite[0])

    def _leg_line(self, row: LegRow, sub_id: int, amount, opposite: str) -> LedgerLine:
        return self._line(
            row.id,
            sub_id,
            voucher_no=row.voucher_no,
            entry_date=row.entry_date,
            amount=amount,
            our_side=row.side,
            opposite_label=opposite,
            narration=row.narration,
            status=row.status,
            payment_type=row.payment_type,
        )


class ReceiptSource(LegSource):
    """Receipt vouchers. Unsplit lines are paired with the first opposite leg."""

    kind = SourceKind.RECEIPT


class SettlementSource(LegSource):
    """Payment settlements.

    Labels prefer the account name captured when the settlement was posted,
    and unsplit lines list every distinct opposite account.
    """

    kind = SourceKind.SETTLEMENT

    def _label(self, leg: LegRow) -> str:
        if leg.account_name:
            return leg.account_name
        return super()._label(leg)

    def _joined_label(self, opposite: list[LegRow]) -> str:
        if not opposite:
            return NO_OPPOSITE_LABEL
        return ", ".join(dict.fromkeys(self._label(leg) for leg in opposite))


class NoteSource(SourceAdapter):
    """Debit or credit notes: one line per detail, or the header when there are none."""

    account_type: AccountType
    our_side: Side

    def fetch(self, account: AccountRef, date_range: DateRange) -> list[LedgerLine]:
        if account.type is not self.account_type:
            return []
        lines = []
        for note in self._query(account.id, date_range):
            if note.details:
                for detail in note.details:
                    lines.append(self._note_line(note, detail.id or 0, detail.amount, detail.label))
            else:
                lines.append(self._note_line(note, 0, note.amount, NOTE_HEADER_LABEL))
        return lines

    @abstractmethod
    def _query(self, account_id: int, date_range: DateRange) -> list[Note]:
        pass

    def _note_line(self, note: Note, sub_id: int, amount, label: Optional[str]) -> LedgerLine:
        return self._line(
            note.id,
            sub_id,
            voucher_no=note.voucher_no,
            entry_date=note.note_date,
            amount=amount,
            our_side=self.our_side,
            opposite_label=label or NOTE_HEADER_LABEL,
            narration=note.narration,
            status=note.status,
        )


class DebitNoteSource(NoteSource):
    kind = SourceKind.DEBIT_NOTE
    account_type = AccountType.BANK_ACCOUNT
    our_side = Side.DEBIT

    def _query(self, account_id: int, date_range: DateRange) -> list[Note]:
        return self.db.query_debit_notes(account_id, date_range)


class CreditNoteSource(NoteSource):
    kind = SourceKind.CREDIT_NOTE
    account_type = AccountType.FARMER
    our_side = Side.CREDIT

    def _query(self, account_id: int, date_range: DateRange) -> list[Note]:
        return self.db.query_credit_notes(account_id, date_range)


def default_sources(db: Database, labels: AccountLabelResolver) -> list[SourceAdapter]:
    """Create one adapter per transaction table."""
    return [
        JournalSource(db, labels),
        ReceiptSource(db, labels),
        SettlementSource(db, labels),
        DebitNoteSource(db, labels),
        CreditNoteSource(db, labels),
    ]
