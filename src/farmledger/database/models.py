"""SQLAlchemy models for farmledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

AMOUNT = Numeric(18, 2)


def _utcnow() -> datetime:
    return datetime.now(UTC)


# Master data


class ChartGroup(Base):
    """Top level chart-of-accounts group."""

    __tablename__ = "chart_groups"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class ChartSubGroup(Base):
    """Chart-of-accounts sub group."""

    __tablename__ = "chart_sub_groups"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    chart_group_id = Column(Integer, ForeignKey("chart_groups.id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    chart_group = relationship("ChartGroup")


class Ledger(Base):
    """Posting ledger below a chart group (and optionally a sub group)."""

    __tablename__ = "ledgers"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    chart_group_id = Column(Integer, ForeignKey("chart_groups.id"), nullable=False)
    chart_sub_group_id = Column(Integer, ForeignKey("chart_sub_groups.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    bank_accounts = relationship("BankAccount", back_populates="ledger")


class BankAccount(Base):
    """Bank, cash or party account. Rules fall back to its ledger."""

    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    account_number = Column(String, nullable=True)
    ledger_id = Column(Integer, ForeignKey("ledgers.id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    ledger = relationship("Ledger", back_populates="bank_accounts")


class GrowerGroup(Base):
    """Group of farmers. Rules for farmers fall back to their group."""

    __tablename__ = "grower_groups"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    farmers = relationship("Farmer", back_populates="grower_group")


class Farmer(Base):
    """Grower account."""

    __tablename__ = "farmers"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)
    grower_group_id = Column(Integer, ForeignKey("grower_groups.id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    grower_group = relationship("GrowerGroup", back_populates="farmers")


class EntryProfile(Base):
    """Named transaction context that scopes account rules."""

    __tablename__ = "entry_profiles"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    transaction_type = Column(String, nullable=False, default="Global")


class AccountRule(Base):
    """Allowed-nature rule for a (type, id) account, optionally per profile."""

    __tablename__ = "account_rules"

    id = Column(Integer, primary_key=True)
    rule_type = Column(String, nullable=False, default="AllowedNature")
    account_type = Column(String, nullable=False)
    account_id = Column(Integer, nullable=False)
    entry_profile_id = Column(Integer, ForeignKey("entry_profiles.id"), nullable=True)
    value = Column(String, nullable=False, default="")
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "rule_type", "account_type", "account_id", "entry_profile_id", name="uq_account_rule_scope"
        ),
    )


# Transaction tables. Every table shares voucher_no, status, is_active and the
# audit columns so that status transitions can treat them uniformly.


class _AuditColumns:
    status = Column(String, nullable=False, default="Unapproved")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False)
    created_by = Column(String, nullable=True)
    updated_at = Column(DateTime, nullable=True)
    updated_by = Column(String, nullable=True)


class JournalEntry(_AuditColumns, Base):
    """Journal row: one balanced debit/credit pair."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    voucher_no = Column(String, nullable=False, index=True)
    entry_date = Column(Date, nullable=False)
    debit_account_type = Column(String, nullable=False)
    debit_account_id = Column(Integer, nullable=False)
    credit_account_type = Column(String, nullable=False)
    credit_account_id = Column(Integer, nullable=False)
    amount = Column(AMOUNT, nullable=False)
    payment_type = Column(String, nullable=True)
    reference_no = Column(String, nullable=True)
    narration = Column(String, nullable=True)
    entry_profile_id = Column(Integer, ForeignKey("entry_profiles.id"), nullable=True)


class ReceiptEntry(_AuditColumns, Base):
    """One leg of a receipt voucher."""

    __tablename__ = "receipt_entries"

    id = Column(Integer, primary_key=True)
    voucher_no = Column(String, nullable=False, index=True)
    entry_date = Column(Date, nullable=False)
    side = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    account_id = Column(Integer, nullable=False)
    amount = Column(AMOUNT, nullable=False)
    payment_type = Column(String, nullable=True)
    reference_no = Column(String, nullable=True)
    narration = Column(String, nullable=True)
    entry_profile_id = Column(Integer, ForeignKey("entry_profiles.id"), nullable=True)


class PaymentSettlement(_AuditColumns, Base):
    """One leg of a payment settlement batch."""

    __tablename__ = "payment_settlements"

    id = Column(Integer, primary_key=True)
    voucher_no = Column(String, nullable=False, index=True)
    entry_date = Column(Date, nullable=False)
    side = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    account_id = Column(Integer, nullable=False)
    account_name = Column(String, nullable=True)
    amount = Column(AMOUNT, nullable=False)
    payment_type = Column(String, nullable=True)
    reference_no = Column(String, nullable=True)
    narration = Column(String, nullable=True)
    entry_profile_id = Column(Integer, ForeignKey("entry_profiles.id"), nullable=True)


class DebitNote(_AuditColumns, Base):
    """Debit note raised against a bank/party account."""

    __tablename__ = "debit_notes"

    id = Column(Integer, primary_key=True)
    voucher_no = Column(String, nullable=False, unique=True)
    note_date = Column(Date, nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=True)
    amount = Column(AMOUNT, nullable=True)
    narration = Column(String, nullable=True)

    details = relationship(
        "DebitNoteDetail", back_populates="note", cascade="all, delete-orphan", order_by="DebitNoteDetail.id"
    )
    override = relationship("DebitNoteAccountOverride", uselist=False, cascade="all, delete-orphan")


class DebitNoteDetail(Base):
    __tablename__ = "debit_note_details"

    id = Column(Integer, primary_key=True)
    debit_note_id = Column(Integer, ForeignKey("debit_notes.id"), nullable=False)
    label = Column(String, nullable=False)
    amount = Column(AMOUNT, nullable=False)

    note = relationship("DebitNote", back_populates="details")


class DebitNoteAccountOverride(Base):
    """Bank account linkage recorded outside the debit note row.

    When present it takes precedence over debit_notes.bank_account_id.
    """

    __tablename__ = "debit_note_account_overrides"

    debit_note_id = Column(Integer, ForeignKey("debit_notes.id"), primary_key=True)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)


class CreditNote(_AuditColumns, Base):
    """Credit note raised in favour of a farmer."""

    __tablename__ = "credit_notes"

    id = Column(Integer, primary_key=True)
    voucher_no = Column(String, nullable=False, unique=True)
    note_date = Column(Date, nullable=False)
    farmer_id = Column(Integer, ForeignKey("farmers.id"), nullable=True)
    amount = Column(AMOUNT, nullable=True)
    narration = Column(String, nullable=True)

    details = relationship(
        "CreditNoteDetail", back_populates="note", cascade="all, delete-orphan", order_by="CreditNoteDetail.id"
    )


class CreditNoteDetail(Base):
    __tablename__ = "credit_note_details"

    id = Column(Integer, primary_key=True)
    credit_note_id = Column(Integer, ForeignKey("credit_notes.id"), nullable=False)
    label = Column(String, nullable=False)
    amount = Column(AMOUNT, nullable=False)

    note = relationship("CreditNote", back_populates="details")


class VoucherSequence(Base):
    """Last issued number per voucher type."""

    __tablename__ = "voucher_sequences"

    voucher_type = Column(String, primary_key=True)
    last_number = Column(Integer, nullable=False, default=0)


class TransactionHistory(Base):
    """Append-only audit trail of voucher actions."""

    __tablename__ = "transaction_history"

    id = Column(Integer, primary_key=True)
    voucher_no = Column(String, nullable=False, index=True)
    source_kind = Column(String, nullable=False)
    action = Column(String, nullable=False)
    actor = Column(String, nullable=False)
    action_at = Column(DateTime, nullable=False)
    remarks = Column(String, nullable=True)
    payload = Column(Text, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
