"""Tests for voucher posting."""

import json
import pytest
from datetime import date, datetime
from decimal import Decimal

from farmledger.config import LedgerSettings
from farmledger.database.models import CreditNote, DebitNote, JournalEntry, PaymentSettlement, ReceiptEntry
from farmledger.domain.entities import (
    AccountRef,
    AccountType,
    BatchLine,
    NoteDetail,
    PaymentMeta,
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
)
from farmledger.domain.posting import PostingService

FIXED_NOW = datetime(2024, 5, 1, 10, 30)
DAY = date(2024, 4, 10)


def _rows(temp_db, model):
    return temp_db._get_session().query(model).order_by(model.id).all()


class TestPostBatch:
    def test_unbalanced_batch_is_rejected(self, posting, temp_db, chart, make_batch):
        batch = make_batch(DAY, (chart["sbi"], Side.DEBIT, "500.00"), (chart["ramesh"], Side.CREDIT, "499.99"))

        with pytest.raises(UnbalancedBatchError) as excinfo:
            posting.post_batch(batch)

        assert excinfo.value.discrepancy == Decimal("0.01")
        assert "Difference: 0.01" in str(excinfo.value)
        assert _rows(temp_db, JournalEntry) == []

    def test_sub_cent_amounts_are_rejected_before_storage(self, posting, temp_db, chart, make_batch):
        batch = make_batch(
            DAY,
            (chart["sbi"], Side.DEBIT, "0.010"),
            (chart["ramesh"], Side.CREDIT, "0.005"),
            (chart["suresh"], Side.CREDIT, "0.005"),
        )

        with pytest.raises(ValidationError, match="Entry 2: amount 0.005 has more than 2 decimal places"):
            posting.post_batch(batch)

        assert _rows(temp_db, JournalEntry) == []
        assert temp_db.list_history("JV00001") == []

    def test_trailing_zero_scale_is_accepted(self, posting, temp_db, chart, make_batch):
        posting.post_batch(make_batch(DAY, (chart["sbi"], Side.DEBIT, "12.500"), (chart["ramesh"], Side.CREDIT, "12.5")))

        [row] = _rows(temp_db, JournalEntry)
        assert row.amount == Decimal("12.50")

    def test_unbalanced_message_keeps_full_precision(self):
        error = UnbalancedBatchError(Decimal("500.004"), Decimal("500.000"))

        assert error.discrepancy == Decimal("0.004")
        assert "Difference: 0.004" in str(error)

    def test_two_line_batch_posts_one_row(self, posting, temp_db, chart, make_batch):
        voucher_no = posting.post_batch(
            make_batch(DAY, (chart["sbi"], Side.DEBIT, "1000"), (chart["ramesh"], Side.CREDIT, "1000"))
        )

        [row] = _rows(temp_db, JournalEntry)
        assert voucher_no == "JV00001"
        assert (row.debit_account_type, row.debit_account_id) == ("BankAccount", chart["sbi"].id)
        assert (row.credit_account_type, row.credit_account_id) == ("Farmer", chart["ramesh"].id)
        assert row.amount == Decimal("1000.00")
        assert row.status == "Unapproved"
        assert row.created_by == "tester"
        assert row.created_at == FIXED_NOW

    def test_larger_batch_is_paired_with_mediator(self, posting, temp_db, chart, make_batch):
        posting.post_batch(
            make_batch(
                DAY,
                (chart["sbi"], Side.DEBIT, "300"),
                (chart["ramesh"], Side.CREDIT, "100"),
                (chart["suresh"], Side.CREDIT, "200"),
            )
        )

        rows = _rows(temp_db, JournalEntry)
        assert len(rows) == 3
        assert {row.voucher_no for row in rows} == {"JV00001"}

        mediator = chart["group"]
        net = Decimal("0")
        for row in rows:
            if (row.debit_account_type, row.debit_account_id) == (mediator.type.value, mediator.id):
                net -= row.amount
            if (row.credit_account_type, row.credit_account_id) == (mediator.type.value, mediator.id):
                net += row.amount
        assert net == Decimal("0")

    def test_configured_mediator(self, temp_db, chart, make_batch):
        settings = LedgerSettings(mediator_account=chart["ledger"])
        posting = PostingService(temp_db, settings)
        posting.post_batch(
            make_batch(
                DAY,
                (chart["sbi"], Side.DEBIT, "300"),
                (chart["ramesh"], Side.CREDIT, "100"),
                (chart["suresh"], Side.CREDIT, "200"),
            )
        )
        bank_row = _rows(temp_db, JournalEntry)[0]
        assert (bank_row.credit_account_type, bank_row.credit_account_id) == ("Ledger", chart["ledger"].id)

    def test_missing_mediator(self, temp_db, chart, make_batch):
        settings = LedgerSettings(mediator_account=AccountRef(AccountType.LEDGER, 99))
        batch = make_batch(
            DAY,
            (chart["sbi"], Side.DEBIT, "300"),
            (chart["ramesh"], Side.CREDIT, "100"),
            (chart["suresh"], Side.CREDIT, "200"),
        )
        with pytest.raises(NotFoundError):
            PostingService(temp_db, settings).post_batch(batch)

    def test_payment_mismatch_in_simple_batch(self, posting, temp_db, chart):
        batch = VoucherBatch(
            DAY,
            (
                BatchLine(chart["sbi"], Side.DEBIT, Decimal("10"), PaymentMeta("NEFT", "UTR1")),
                BatchLine(chart["ramesh"], Side.CREDIT, Decimal("10"), PaymentMeta("NEFT", "UTR2")),
            ),
        )
        with pytest.raises(PaymentMismatchError):
            posting.post_batch(batch)
        assert _rows(temp_db, JournalEntry) == []

    def test_same_account_on_both_sides(self, posting, chart, make_batch):
        with pytest.raises(ValidationError, match="must be different"):
            posting.post_batch(make_batch(DAY, (chart["sbi"], Side.DEBIT, "10"), (chart["sbi"], Side.CREDIT, "10")))

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount(self, posting, chart, make_batch, amount):
        with pytest.raises(ValidationError, match="amount must be positive"):
            posting.post_batch(make_batch(DAY, (chart["sbi"], Side.DEBIT, amount), (chart["ramesh"], Side.CREDIT, amount)))

    def test_empty_batch(self, posting, chart):
        with pytest.raises(ValidationError, match="no entries"):
            posting.post_batch(VoucherBatch(DAY, ()))

    def test_missing_account_reference(self, posting, chart):
        batch = VoucherBatch(
            DAY,
            (BatchLine(None, Side.DEBIT, Decimal("10")), BatchLine(chart["sbi"], Side.CREDIT, Decimal("10"))),
        )
        with pytest.raises(ValidationError, match="Entry 1: account is required"):
            posting.post_batch(batch)

    def test_unknown_account(self, posting, chart, make_batch):
        ghost = AccountRef(AccountType.FARMER, 404)
        with pytest.raises(NotFoundError, match="Farmer:404"):
            posting.post_batch(make_batch(DAY, (ghost, Side.DEBIT, "10"), (chart["sbi"], Side.CREDIT, "10")))

    def test_unknown_entry_profile(self, posting, chart):
        batch = VoucherBatch(
            DAY,
            (
                BatchLine(chart["sbi"], Side.DEBIT, Decimal("10"), entry_profile_id=77),
                BatchLine(chart["ramesh"], Side.CREDIT, Decimal("10"), entry_profile_id=77),
            ),
        )
        with pytest.raises(NotFoundError, match="Entry profile 77"):
            posting.post_batch(batch)

    def test_voucher_numbers_are_sequential(self, posting, chart, make_batch):
        numbers = [
            posting.post_batch(make_batch(DAY, (chart["sbi"], Side.DEBIT, "1"), (chart["ramesh"], Side.CREDIT, "1")))
            for _ in range(3)
        ]
        assert numbers == ["JV00001", "JV00002", "JV00003"]


class TestAllocation:
    def test_collision_is_retried(self, posting, temp_db, chart, make_batch, monkeypatch):
        seen = []

        def voucher_exists(kind, voucher_no):
            seen.append(voucher_no)
            return voucher_no == "JV00001"

        monkeypatch.setattr(temp_db, "voucher_exists", voucher_exists)
        voucher_no = posting.post_batch(
            make_batch(DAY, (chart["sbi"], Side.DEBIT, "1"), (chart["ramesh"], Side.CREDIT, "1"))
        )
        assert voucher_no == "JV00002"
        assert seen == ["JV00001", "JV00002"]

    def test_second_collision_gives_up(self, posting, temp_db, chart, make_batch, monkeypatch):
        monkeypatch.setattr(temp_db, "voucher_exists", lambda kind, voucher_no: True)

        with pytest.raises(ConcurrencyError):
            posting.post_batch(make_batch(DAY, (chart["sbi"], Side.DEBIT, "1"), (chart["ramesh"], Side.CREDIT, "1")))
        assert _rows(temp_db, JournalEntry) == []

    def test_failure_rolls_back_everything(self, posting, temp_db, chart, make_batch, monkeypatch):
        def broken_history(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(temp_db, "add_history", broken_history)
        with pytest.raises(RuntimeError):
            posting.post_batch(make_batch(DAY, (chart["sbi"], Side.DEBIT, "1"), (chart["ramesh"], Side.CREDIT, "1")))

        monkeypatch.undo()
        assert _rows(temp_db, JournalEntry) == []
        assert temp_db.list_history("JV00001") == []


class TestHistory:
    def test_posting_records_insert(self, posting, temp_db, chart, make_batch):
        voucher_no = posting.post_batch(
            make_batch(DAY, (chart["sbi"], Side.DEBIT, "300"), (chart["ramesh"], Side.CREDIT, "300"))
        )

        [record] = temp_db.list_history(voucher_no)
        assert record.action is VoucherAction.INSERT
        assert record.source_kind is SourceKind.JOURNAL
        assert record.actor == "tester"
        assert record.remarks == "Posted 1 row(s)"
        payload = json.loads(record.payload)
        assert payload["entry_date"] == "2024-04-10"
        assert [line["amount"] for line in payload["lines"]] == ["300", "300"]


class TestReceiptsAndSettlements:
    def test_receipt_posts_one_row_per_line(self, posting, temp_db, chart, make_batch):
        voucher_no = posting.post_receipt(
            make_batch(
                DAY,
                (chart["sbi"], Side.DEBIT, "300"),
                (chart["ramesh"], Side.CREDIT, "100"),
                (chart["suresh"], Side.CREDIT, "200"),
            )
        )
        rows = _rows(temp_db, ReceiptEntry)
        assert voucher_no == "RCPT00001"
        assert [(row.side, row.amount) for row in rows] == [
            ("Debit", Decimal("300.00")),
            ("Credit", Decimal("100.00")),
            ("Credit", Decimal("200.00")),
        ]

    def test_receipt_lines_must_share_payment(self, posting, temp_db, chart):
        batch = VoucherBatch(
            DAY,
            (
                BatchLine(chart["sbi"], Side.DEBIT, Decimal("300"), PaymentMeta("NEFT", "UTR1")),
                BatchLine(chart["ramesh"], Side.CREDIT, Decimal("100"), PaymentMeta("NEFT", "UTR1")),
                BatchLine(chart["suresh"], Side.CREDIT, Decimal("200"), PaymentMeta("Cheque", "004512")),
            ),
        )
        with pytest.raises(PaymentMismatchError, match="all entries"):
            posting.post_receipt(batch)
        assert _rows(temp_db, ReceiptEntry) == []

    def test_settlement_captures_account_names(self, posting, temp_db, chart, make_batch):
        voucher_no = posting.post_settlement(
            make_batch(DAY, (chart["ramesh"], Side.DEBIT, "500"), (chart["sbi"], Side.CREDIT, "500"))
        )
        rows = _rows(temp_db, PaymentSettlement)
        assert voucher_no == "PA00001"
        assert [row.account_name for row in rows] == ["Ramesh Patil", "SBI Current"]

    def test_sequences_are_per_voucher_type(self, posting, chart, make_batch):
        batch = make_batch(DAY, (chart["sbi"], Side.DEBIT, "5"), (chart["ramesh"], Side.CREDIT, "5"))
        assert posting.post_batch(batch) == "JV00001"
        assert posting.post_receipt(batch) == "RCPT00001"
        assert posting.post_settlement(batch) == "PA00001"
        assert posting.post_receipt(batch) == "RCPT00002"


class TestNotes:
    def test_debit_note_total_comes_from_details(self, posting, temp_db, chart):
        details = [NoteDetail(None, "Crates", Decimal("1200")), NoteDetail(None, "Transport", Decimal("300"))]
        voucher_no = posting.create_debit_note(DAY, chart["sbi"].id, details, narration="April crates")

        [note] = _rows(temp_db, DebitNote)
        assert voucher_no == "DN00001"
        assert note.amount == Decimal("1500.00")
        assert [d.label for d in note.details] == ["Crates", "Transport"]
        assert temp_db.list_history(voucher_no)[0].remarks == "Posted 2 row(s)"

    def test_credit_note_with_header_amount(self, posting, temp_db, chart):
        voucher_no = posting.create_credit_note(DAY, chart["ramesh"].id, amount=Decimal("750"))

        [note] = _rows(temp_db, CreditNote)
        assert voucher_no == "CN00001"
        assert note.details == []
        assert note.amount == Decimal("750.00")

    def test_amount_must_match_details(self, posting, chart):
        with pytest.raises(ValidationError, match="does not match"):
            posting.create_debit_note(
                DAY, chart["sbi"].id, [NoteDetail(None, "Crates", Decimal("100"))], amount=Decimal("90")
            )

    def test_details_or_amount_required(self, posting, chart):
        with pytest.raises(ValidationError, match="Either note details or an amount"):
            posting.create_credit_note(DAY, chart["ramesh"].id)

    def test_blank_detail_label(self, posting, chart):
        with pytest.raises(ValidationError, match="label is required"):
            posting.create_credit_note(DAY, chart["ramesh"].id, [NoteDetail(None, " ", Decimal("1"))])

    def test_note_for_unknown_account(self, posting, chart):
        with pytest.raises(NotFoundError):
            posting.create_debit_note(DAY, 999, amount=Decimal("10"))

    def test_note_amounts_limited_to_cents(self, posting, temp_db, chart):
        with pytest.raises(ValidationError, match="more than 2 decimal places"):
            posting.create_debit_note(DAY, chart["sbi"].id, [NoteDetail(None, "Crates", Decimal("10.125"))])
        with pytest.raises(ValidationError, match="more than 2 decimal places"):
            posting.create_credit_note(DAY, chart["ramesh"].id, amount=Decimal("0.001"))

        assert _rows(temp_db, DebitNote) == []
        assert _rows(temp_db, CreditNote) == []
