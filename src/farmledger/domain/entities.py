"""Domain model entities for farmledger.

These are pure data classes representing business concepts, independent of
the database schema. Account references are a tagged (type, id) value rather
than a shared base entity, because the referenced tables have nothing in
common beyond a display name.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class AccountType(str, Enum):
    """Tables an account reference can point into."""

    BANK_ACCOUNT = "BankAccount"
    FARMER = "Farmer"
    GROWER_GROUP = "GrowerGroup"
    CHART_GROUP = "ChartGroup"
    CHART_SUB_GROUP = "ChartSubGroup"
    LEDGER = "Ledger"

    @classmethod
    def parse(cls, value: str) -> "AccountType":
        """Parse a type tag case-insensitively.

        Raises:
            ValueError: If the tag is not a known account type
        """
        text = value.strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Unknown account type '{value}'")


class Side(str, Enum):
    DEBIT = "Debit"
    CREDIT = "Credit"

    @property
    def opposite(self) -> "Side":
        return Side.CREDIT if self is Side.DEBIT else Side.DEBIT

    @classmethod
    def parse(cls, value: str) -> "Side":
        """Parse a side, accepting the Payment/Receipt aliases used on vouchers."""
        text = value.strip().lower()
        if text in ("debit", "dr", "payment"):
            return cls.DEBIT
        if text in ("credit", "cr", "receipt"):
            return cls.CREDIT
        raise ValueError(f"Unknown side '{value}'")


class AllowedNature(str, Enum):
    """Values an account rule can take."""

    BOTH = "Both"
    DEBIT = "Debit"
    CREDIT = "Credit"
    CANCEL = "Cancel"


class Decision(str, Enum):
    ALLOWED = "Allowed"
    DENIED = "Denied"


class SourceKind(str, Enum):
    """Transaction tables that contribute to a ledger."""

    JOURNAL = "Journal"
    RECEIPT = "Receipt"
    SETTLEMENT = "Settlement"
    DEBIT_NOTE = "DebitNote"
    CREDIT_NOTE = "CreditNote"

    @property
    def rank(self) -> int:
        """Position used when ordering lines that share a date."""
        return list(SourceKind).index(self)


class ApprovalStatus(str, Enum):
    UNAPPROVED = "Unapproved"
    APPROVED = "Approved"


class VoucherAction(str, Enum):
    """Actions recorded in transaction history."""

    INSERT = "Insert"
    APPROVE = "Approve"
    UNAPPROVE = "Unapprove"
    DELETE = "Delete"


# Approval transitions: action -> (required current status, resulting status)
STATUS_TRANSITIONS: dict[VoucherAction, tuple[ApprovalStatus, ApprovalStatus]] = {
    VoucherAction.APPROVE: (ApprovalStatus.UNAPPROVED, ApprovalStatus.APPROVED),
    VoucherAction.UNAPPROVE: (ApprovalStatus.APPROVED, ApprovalStatus.UNAPPROVED),
}


class BalanceConvention(str, Enum):
    """Which side increases a running balance."""

    CREDIT_POSITIVE = "credit_positive"
    DEBIT_POSITIVE = "debit_positive"


@dataclass(frozen=True, order=True)
class AccountRef:
    """Polymorphic reference to an account row."""

    type: AccountType
    id: int

    def __str__(self) -> str:
        return f"{self.type.value}:{self.id}"


@dataclass(frozen=True)
class DateRange:
    """Half-open date range [start, end). None means unbounded."""

    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, value: date) -> bool:
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value >= self.end:
            return False
        return True


@dataclass(frozen=True)
class PaymentMeta:
    """Payment method and cheque/UTR reference of a voucher leg."""

    payment_type: Optional[str] = None
    reference_no: Optional[str] = None

    def matches(self, other: "PaymentMeta") -> bool:
        return (self.payment_type or "") == (other.payment_type or "") and (
            self.reference_no or ""
        ) == (other.reference_no or "")


# Master data


@dataclass(frozen=True)
class EntryProfile:
    id: int
    name: str
    transaction_type: str


@dataclass(frozen=True)
class CandidateAccount:
    """An account offered for selection, with its natural rule fallback."""

    ref: AccountRef
    name: str
    group: Optional[AccountRef] = None
    code: Optional[str] = None


@dataclass(frozen=True)
class AccountRule:
    """Allowed-nature rule for an account, optionally scoped to a profile.

    `value` is kept as stored so that blank or unexpected values can be
    judged by the resolver instead of failing at load time.
    """

    id: int
    account_type: str
    account_id: int
    entry_profile_id: Optional[int]
    value: str
    updated_at: Optional[datetime] = None


# Transaction rows


@dataclass(frozen=True)
class JournalRow:
    """One balanced debit/credit pair from the journal table."""

    id: int
    voucher_no: str
    entry_date: date
    debit_account_type: str
    debit_account_id: int
    credit_account_type: str
    credit_account_id: int
    amount: Decimal
    payment_type: Optional[str]
    reference_no: Optional[str]
    narration: Optional[str]
    status: ApprovalStatus
    is_active: bool


@dataclass(frozen=True)
class LegRow:
    """One side of a receipt or settlement voucher."""

    id: int
    kind: SourceKind
    voucher_no: str
    entry_date: date
    side: Side
    account_type: str
    account_id: int
    amount: Decimal
    payment_type: Optional[str]
    reference_no: Optional[str]
    narration: Optional[str]
    status: ApprovalStatus
    is_active: bool
    account_name: Optional[str] = None


@dataclass(frozen=True)
class NoteDetail:
    id: Optional[int]
    label: str
    amount: Decimal


@dataclass(frozen=True)
class Note:
    """Debit or credit note header with its detail lines.

    `account_id` is the effective target account: for debit notes it already
    reflects any account override recorded for the note.
    """

    id: int
    kind: SourceKind
    voucher_no: str
    note_date: date
    account_id: int
    amount: Decimal
    narration: Optional[str]
    status: ApprovalStatus
    is_active: bool
    details: tuple[NoteDetail, ...] = ()


# Posting input


@dataclass(frozen=True)
class BatchLine:
    """One leg of a voucher batch submitted for posting."""

    account: Optional[AccountRef]
    side: Side
    amount: Decimal
    payment: PaymentMeta = field(default_factory=PaymentMeta)
    narration: Optional[str] = None
    entry_profile_id: Optional[int] = None


@dataclass(frozen=True)
class VoucherBatch:
    entry_date: date
    lines: tuple[BatchLine, ...]

    def total(self, side: Side) -> Decimal:
        return sum((line.amount for line in self.lines if line.side is side), Decimal("0"))


@dataclass(frozen=True)
class JournalPosting:
    """A journal row ready to be persisted."""

    voucher_no: str
    entry_date: date
    debit: AccountRef
    credit: AccountRef
    amount: Decimal
    payment: PaymentMeta
    narration: Optional[str] = None
    entry_profile_id: Optional[int] = None


@dataclass(frozen=True)
class LegPosting:
    """A receipt or settlement leg ready to be persisted."""

    voucher_no: str
    entry_date: date
    side: Side
    account: AccountRef
    amount: Decimal
    payment: PaymentMeta
    narration: Optional[str] = None
    account_name: Optional[str] = None
    entry_profile_id: Optional[int] = None


@dataclass(frozen=True)
class HistoryRecord:
    id: int
    voucher_no: str
    source_kind: SourceKind
    action: VoucherAction
    actor: str
    action_at: datetime
    remarks: Optional[str] = None
    payload: Optional[str] = None


# Reports


@dataclass(frozen=True)
class LedgerLine:
    """One row of a ledger report, seen from the queried account."""

    line_key: tuple[int, int, int]
    voucher_no: str
    entry_date: date
    amount: Decimal
    source_kind: SourceKind
    our_side: Side
    opposite_label: str
    narration: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.APPROVED
    payment_type: Optional[str] = None

    @property
    def sort_key(self) -> tuple[date, tuple[int, int, int]]:
        return (self.entry_date, self.line_key)

    @property
    def debit(self) -> Decimal:
        return self.amount if self.our_side is Side.DEBIT else Decimal("0")

    @property
    def credit(self) -> Decimal:
        return self.amount if self.our_side is Side.CREDIT else Decimal("0")


@dataclass(frozen=True)
class LedgerReport:
    account: AccountRef
    account_label: str
    from_date: date
    to_date: date
    opening_balance: Decimal
    lines: tuple[LedgerLine, ...]
    closing_balance: Decimal
    convention: BalanceConvention = BalanceConvention.CREDIT_POSITIVE

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))


@dataclass(frozen=True)
class VoucherSummary:
    """One voucher in a listing. `amount` is the voucher's debit total."""

    kind: SourceKind
    voucher_no: str
    entry_date: date
    status: ApprovalStatus
    is_active: bool
    amount: Decimal
    row_count: int


@dataclass(frozen=True)
class VoucherEntry:
    """One debit or credit of a voucher as it was posted."""

    row_id: int
    side: Side
    account_type: str
    account_id: int
    account_label: str
    amount: Decimal
    narration: Optional[str] = None
    detail: Optional[str] = None
    payment_type: Optional[str] = None
    reference_no: Optional[str] = None


@dataclass(frozen=True)
class VoucherView:
    kind: SourceKind
    voucher_no: str
    entry_date: date
    status: ApprovalStatus
    is_active: bool
    entries: tuple[VoucherEntry, ...]

    def total(self, side: Side) -> Decimal:
        return sum((e.amount for e in self.entries if e.side is side), Decimal("0"))
