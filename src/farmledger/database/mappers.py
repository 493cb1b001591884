"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so string columns (status, side)
become domain enums in exactly one place.
"""

from decimal import Decimal
from typing import Optional

from farmledger.domain import entities as domain
from farmledger.database.models import (
    AccountRule as ORMAccountRule,
    CreditNote as ORMCreditNote,
    DebitNote as ORMDebitNote,
    EntryProfile as ORMEntryProfile,
    JournalEntry as ORMJournalEntry,
    TransactionHistory as ORMTransactionHistory,
)


def status_to_domain(value: Optional[str]) -> domain.ApprovalStatus:
    # Older rows spell it "UnApproved"
    if value is not None and value.lower() == domain.ApprovalStatus.APPROVED.value.lower():
        return domain.ApprovalStatus.APPROVED
    return domain.ApprovalStatus.UNAPPROVED


def _amount(value) -> Decimal:
    return Decimal("0") if value is None else Decimal(value)


def account_to_candidate(orm_account, account_type: domain.AccountType) -> domain.CandidateAccount:
    """Convert any master data row to a CandidateAccount.

    Bank accounts carry their ledger and farmers their grower group as the
    group that rules fall back to.
    """
    group = None
    code = None
    if account_type is domain.AccountType.BANK_ACCOUNT:
        group = domain.AccountRef(domain.AccountType.LEDGER, orm_account.ledger_id)
        code = orm_account.account_number
    elif account_type is domain.AccountType.FARMER:
        group = domain.AccountRef(domain.AccountType.GROWER_GROUP, orm_account.grower_group_id)
        code = orm_account.code
    return domain.CandidateAccount(
        ref=domain.AccountRef(account_type, orm_account.id), name=orm_account.name, group=group, code=code
    )


def entry_profile_to_domain(orm_profile: ORMEntryProfile) -> domain.EntryProfile:
    return domain.EntryProfile(
        id=orm_profile.id, name=orm_profile.name, transaction_type=orm_profile.transaction_type
    )


def account_rule_to_domain(orm_rule: ORMAccountRule) -> domain.AccountRule:
    return domain.AccountRule(
        id=orm_rule.id,
        account_type=orm_rule.account_type,
        account_id=orm_rule.account_id,
        entry_profile_id=orm_rule.entry_profile_id,
        value=orm_rule.value or "",
        updated_at=orm_rule.updated_at,
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalRow:
    """Convert SQLAlchemy JournalEntry model to domain JournalRow entity."""
    return domain.JournalRow(
        id=orm_entry.id,
        voucher_no=orm_entry.voucher_no,
        entry_date=orm_entry.entry_date,
        debit_account_type=orm_entry.debit_account_type,
        debit_account_id=orm_entry.debit_account_id,
        credit_account_type=orm_entry.credit_account_type,
        credit_account_id=orm_entry.credit_account_id,
        amount=_amount(orm_entry.amount),
        payment_type=orm_entry.payment_type,
        reference_no=orm_entry.reference_no,
        narration=orm_entry.narration,
        status=status_to_domain(orm_entry.status),
        is_active=orm_entry.is_active,
    )


def leg_to_domain(orm_leg, kind: domain.SourceKind) -> domain.LegRow:
    """Convert a ReceiptEntry or PaymentSettlement model to a domain LegRow."""
    return domain.LegRow(
        id=orm_leg.id,
        kind=kind,
        voucher_no=orm_leg.voucher_no,
        entry_date=orm_leg.entry_date,
        side=domain.Side.parse(orm_leg.side),
        account_type=orm_leg.account_type,
        account_id=orm_leg.account_id,
        amount=_amount(orm_leg.amount),
        payment_type=orm_leg.payment_type,
        reference_no=orm_leg.reference_no,
        narration=orm_leg.narration,
        status=status_to_domain(orm_leg.status),
        is_active=orm_leg.is_active,
        account_name=getattr(orm_leg, "account_name", None),
    )


def debit_note_to_domain(orm_note: ORMDebitNote) -> domain.Note:
    """Convert a DebitNote model, applying its account override if present."""
    account_id = orm_note.bank_account_id or 0
    if orm_note.override is not None:
        account_id = orm_note.override.bank_account_id
    return domain.Note(
        id=orm_note.id,
        kind=domain.SourceKind.DEBIT_NOTE,
        voucher_no=orm_note.voucher_no,
        note_date=orm_note.note_date,
        account_id=account_id,
        amount=_amount(orm_note.amount),
        narration=orm_note.narration,
        status=status_to_domain(orm_note.status),
        is_active=orm_note.is_active,
        details=tuple(
            domain.NoteDetail(id=d.id, label=d.label, amount=_amount(d.amount)) for d in orm_note.details
        ),
    )


def credit_note_to_domain(orm_note: ORMCreditNote) -> domain.Note:
    return domain.Note(
        id=orm_note.id,
        kind=domain.SourceKind.CREDIT_NOTE,
        voucher_no=orm_note.voucher_no,
        note_date=orm_note.note_date,
        account_id=orm_note.farmer_id or 0,
        amount=_amount(orm_note.amount),
        narration=orm_note.narration,
        status=status_to_domain(orm_note.status),
        is_active=orm_note.is_active,
        details=tuple(
            domain.NoteDetail(id=d.id, label=d.label, amount=_amount(d.amount)) for d in orm_note.details
        ),
    )


def history_to_domain(orm_history: ORMTransactionHistory) -> domain.HistoryRecord:
    return domain.HistoryRecord(
        id=orm_history.id,
        voucher_no=orm_history.voucher_no,
        source_kind=domain.SourceKind(orm_history.source_kind),
        action=domain.VoucherAction(orm_history.action),
        actor=orm_history.actor,
        action_at=orm_history.action_at,
        remarks=orm_history.remarks,
        payload=orm_history.payload,
    )


def voucher_row_to_domain(orm_row, kind: domain.SourceKind):
    """Convert a row of any voucher table to its domain entity."""
    if kind is domain.SourceKind.JOURNAL:
        return journal_entry_to_domain(orm_row)
    if kind is domain.SourceKind.DEBIT_NOTE:
        return debit_note_to_domain(orm_row)
    if kind is domain.SourceKind.CREDIT_NOTE:
        return credit_note_to_domain(orm_row)
    return leg_to_domain(orm_row, kind)
