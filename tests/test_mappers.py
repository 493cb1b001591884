"""Tests for ORM to domain mappers."""

from datetime import date
from decimal import Decimal

from farmledger.database.mappers import (
    account_to_candidate,
    debit_note_to_domain,
    leg_to_domain,
    status_to_domain,
)
from farmledger.database.models import (
    BankAccount,
    DebitNote,
    DebitNoteAccountOverride,
    DebitNoteDetail,
    Farmer,
    Ledger,
    ReceiptEntry,
)
from farmledger.domain.entities import AccountRef, AccountType, ApprovalStatus, Side, SourceKind


def test_status_is_case_insensitive():
    assert status_to_domain("Approved") is ApprovalStatus.APPROVED
    assert status_to_domain("APPROVED") is ApprovalStatus.APPROVED
    assert status_to_domain("UnApproved") is ApprovalStatus.UNAPPROVED
    assert status_to_domain(None) is ApprovalStatus.UNAPPROVED


def test_bank_account_candidate_falls_back_to_ledger():
    candidate = account_to_candidate(
        BankAccount(id=3, name="SBI Current", ledger_id=2, account_number="0012345"), AccountType.BANK_ACCOUNT
    )
    assert candidate.ref == AccountRef(AccountType.BANK_ACCOUNT, 3)
    assert candidate.group == AccountRef(AccountType.LEDGER, 2)
    assert candidate.code == "0012345"


def test_farmer_candidate_falls_back_to_grower_group():
    candidate = account_to_candidate(Farmer(id=9, name="Ramesh Patil", grower_group_id=4, code="F-9"), AccountType.FARMER)
    assert candidate.group == AccountRef(AccountType.GROWER_GROUP, 4)
    assert candidate.code == "F-9"


def test_ledger_candidate_has_no_group():
    candidate = account_to_candidate(Ledger(id=1, name="Bank Accounts", chart_group_id=1), AccountType.LEDGER)
    assert candidate.group is None


def test_leg_side_aliases():
    row = ReceiptEntry(
        id=5,
        voucher_no="RCPT00001",
        entry_date=date(2024, 4, 2),
        side="Receipt",
        account_type="Farmer",
        account_id=1,
        amount=Decimal("100.00"),
        status="Approved",
        is_active=True,
    )
    leg = leg_to_domain(row, SourceKind.RECEIPT)
    assert leg.side is Side.CREDIT
    assert leg.account_name is None
    assert leg.status is ApprovalStatus.APPROVED


def test_debit_note_override_wins():
    note = DebitNote(
        id=1,
        voucher_no="DN00001",
        note_date=date(2024, 4, 3),
        bank_account_id=1,
        amount=Decimal("300.00"),
        status="Approved",
        is_active=True,
        details=[DebitNoteDetail(id=11, label="Crates", amount=Decimal("300.00"))],
    )
    assert debit_note_to_domain(note).account_id == 1

    note.override = DebitNoteAccountOverride(debit_note_id=1, bank_account_id=2)
    mapped = debit_note_to_domain(note)
    assert mapped.account_id == 2
    assert [(d.id, d.label, d.amount) for d in mapped.details] == [(11, "Crates", Decimal("300.00"))]
