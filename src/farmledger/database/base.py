"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Sequence, Union
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from farmledger.domain.entities import (
    AccountRef,
    AccountRule,
    AccountType,
    ApprovalStatus,
    CandidateAccount,
    DateRange,
    EntryProfile,
    HistoryRecord,
    JournalPosting,
    JournalRow,
    LegPosting,
    LegRow,
    Note,
    NoteDetail,
    SourceKind,
    VoucherAction,
    VoucherSummary,
)


class Database(ABC):
    """Abstract database interface for farmledger.

    Master data and rule methods commit immediately. Posting, status and
    history methods only flush: callers wrap them in ``unit_of_work()`` so a
    voucher is persisted completely or not at all.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """Context manager that commits on success and rolls back on error."""
        pass

    # Master data operations
    @abstractmethod
    def create_chart_group(self, name: str) -> int:
        """Create a chart group. Returns its ID."""
        pass

    @abstractmethod
    def create_chart_sub_group(self, name: str, chart_group_id: int) -> int:
        """Create a chart sub group. Returns its ID."""
        pass

    @abstractmethod
    def create_ledger(self, name: str, chart_group_id: int, chart_sub_group_id: Optional[int] = None) -> int:
        """Create a ledger. Returns its ID."""
        pass

    @abstractmethod
    def create_bank_account(self, name: str, ledger_id: int, account_number: Optional[str] = None) -> int:
        """Create a bank/cash account under a ledger. Returns its ID."""
        pass

    @abstractmethod
    def create_grower_group(self, name: str) -> int:
        """Create a grower group. Returns its ID."""
        pass

    @abstractmethod
    def create_farmer(self, name: str, grower_group_id: int, code: Optional[str] = None) -> int:
        """Create a farmer in a grower group. Returns its ID."""
        pass

    @abstractmethod
    def get_account(self, ref: AccountRef) -> Optional[CandidateAccount]:
        """Get an account of any type, or None if it does not exist."""
        pass

    @abstractmethod
    def get_account_name(self, account_type: str, account_id: int) -> Optional[str]:
        """Get the display name of an account.

        Returns None when the type tag is unknown or the row does not exist.
        """
        pass

    @abstractmethod
    def list_accounts(
        self,
        account_type: AccountType,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        active_only: bool = True,
    ) -> list[CandidateAccount]:
        """List accounts of one type ordered by name, optionally filtered by name."""
        pass

    @abstractmethod
    def first_chart_group_id(self) -> Optional[int]:
        """Get the lowest chart group ID, or None when there are none."""
        pass

    # Entry profile operations
    @abstractmethod
    def create_entry_profile(self, name: str, transaction_type: str) -> int:
        """Create an entry profile. Returns its ID."""
        pass

    @abstractmethod
    def get_entry_profile(self, profile_id: int) -> Optional[EntryProfile]:
        """Get entry profile by ID."""
        pass

    @abstractmethod
    def list_entry_profiles(self, transaction_type: Optional[str] = None) -> list[EntryProfile]:
        """List entry profiles, optionally for one transaction type."""
        pass

    # Account rule operations
    @abstractmethod
    def upsert_account_rule(
        self, account_type: str, account_id: int, entry_profile_id: Optional[int], value: str
    ) -> int:
        """Create or replace the rule for (type, id, profile). Returns rule ID."""
        pass

    @abstractmethod
    def delete_account_rule(self, account_type: str, account_id: int, entry_profile_id: Optional[int]) -> bool:
        """Delete the rule for (type, id, profile). Returns True if one existed."""
        pass

    @abstractmethod
    def list_account_rules(self) -> list[AccountRule]:
        """List all allowed-nature rules ordered by ID."""
        pass

    @abstractmethod
    def rules_revision(self) -> tuple[int, int, Optional[datetime]]:
        """Return (count, max id, latest update) of the rule table."""
        pass

    # Ledger source queries. Only approved, active rows are returned.
    @abstractmethod
    def query_journal_rows(self, ref: AccountRef, date_range: DateRange) -> list[JournalRow]:
        """Get journal rows with the account on either side."""
        pass

    @abstractmethod
    def query_legs(self, kind: SourceKind, ref: AccountRef, date_range: DateRange) -> list[LegRow]:
        """Get receipt or settlement legs posted to the account."""
        pass

    @abstractmethod
    def query_voucher_legs(self, kind: SourceKind, voucher_nos: Sequence[str]) -> list[LegRow]:
        """Get every leg of the given receipt or settlement vouchers."""
        pass

    @abstractmethod
    def query_debit_notes(self, bank_account_id: int, date_range: DateRange) -> list[Note]:
        """Get debit notes whose effective bank account is the given one."""
        pass

    @abstractmethod
    def query_credit_notes(self, farmer_id: int, date_range: DateRange) -> list[Note]:
        """Get credit notes raised for the farmer."""
        pass

    # Posting operations (unit of work participants)
    @abstractmethod
    def next_voucher_number(self, voucher_type: str) -> int:
        """Increment and return the sequence for a voucher type."""
        pass

    @abstractmethod
    def voucher_exists(self, kind: SourceKind, voucher_no: str) -> bool:
        """Check whether any row of the source table uses the voucher number."""
        pass

    @abstractmethod
    def add_journal_entries(
        self, postings: Sequence[JournalPosting], actor: str, at: datetime
    ) -> list[int]:
        """Add journal rows. Returns their IDs."""
        pass

    @abstractmethod
    def add_legs(
        self, kind: SourceKind, postings: Sequence[LegPosting], actor: str, at: datetime
    ) -> list[int]:
        """Add receipt or settlement legs. Returns their IDs."""
        pass

    @abstractmethod
    def add_debit_note(
        self,
        voucher_no: str,
        note_date: date,
        bank_account_id: int,
        amount: Decimal,
        details: Sequence[NoteDetail],
        actor: str,
        at: datetime,
        narration: Optional[str] = None,
    ) -> int:
        """Add a debit note with its details. Returns note ID."""
        pass

    @abstractmethod
    def add_credit_note(
        self,
        voucher_no: str,
        note_date: date,
        farmer_id: int,
        amount: Decimal,
        details: Sequence[NoteDetail],
        actor: str,
        at: datetime,
        narration: Optional[str] = None,
    ) -> int:
        """Add a credit note with its details. Returns note ID."""
        pass

    @abstractmethod
    def set_debit_note_override(self, voucher_no: str, bank_account_id: int) -> Optional[int]:
        """Record the bank account a debit note belongs to, replacing any previous one.

        Returns the note ID, or None if no debit note has the voucher number.
        """
        pass

    # Voucher read operations
    @abstractmethod
    def get_voucher_rows(self, kind: SourceKind, voucher_no: str) -> list[Union[JournalRow, LegRow, Note]]:
        """Get every row of a voucher, deleted ones included, in posting order."""
        pass

    @abstractmethod
    def list_vouchers(
        self,
        kind: SourceKind,
        status: Optional[ApprovalStatus] = None,
        date_range: DateRange = DateRange(),
        include_deleted: bool = False,
    ) -> list[VoucherSummary]:
        """List vouchers of one kind by date and voucher number."""
        pass

    # Voucher status operations (unit of work participants)
    @abstractmethod
    def get_voucher_state(self, kind: SourceKind, voucher_no: str) -> Optional[tuple[ApprovalStatus, bool]]:
        """Get (status, is_active) of a voucher, or None if it has no rows."""
        pass

    @abstractmethod
    def set_voucher_status(
        self, kind: SourceKind, voucher_no: str, status: ApprovalStatus, actor: str, at: datetime
    ) -> int:
        """Set status on every active row of a voucher. Returns rows updated."""
        pass

    @abstractmethod
    def deactivate_voucher(self, kind: SourceKind, voucher_no: str, actor: str, at: datetime) -> int:
        """Soft-delete every row of a voucher. Returns rows updated."""
        pass

    # History operations
    @abstractmethod
    def add_history(
        self,
        voucher_no: str,
        kind: SourceKind,
        action: VoucherAction,
        actor: str,
        at: datetime,
        remarks: Optional[str] = None,
        payload: Optional[str] = None,
    ) -> int:
        """Append a history record. Returns its ID."""
        pass

    @abstractmethod
    def list_history(self, voucher_no: str) -> list[HistoryRecord]:
        """List history for a voucher number, newest first."""
        pass
