"""Shared pytest fixtures for farmledger tests."""

import logging
import tempfile
import os
from datetime import datetime
from decimal import Decimal
import pytest

from farmledger.config import LedgerSettings
from farmledger.database.factories import create_sqlite_database
from farmledger.domain.entities import AccountRef, AccountType, BatchLine, PaymentMeta, SourceKind, VoucherBatch
from farmledger.domain.ledger import LedgerService
from farmledger.domain.master import MasterDataService
from farmledger.domain.posting import PostingService
from farmledger.domain.rules import AccountRuleService
from farmledger.domain.voucher import VoucherService

FIXED_NOW = datetime(2024, 5, 1, 10, 30)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings():
    return LedgerSettings()


@pytest.fixture
def master(temp_db):
    """Create a MasterDataService with a temporary database."""
    return MasterDataService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    """Create an AccountRuleService with a temporary database."""
    return AccountRuleService(temp_db)


@pytest.fixture
def posting(temp_db, settings):
    """Create a PostingService with a fixed clock."""
    return PostingService(temp_db, settings, actor="tester", clock=lambda: FIXED_NOW)


@pytest.fixture
def vouchers(temp_db):
    """Create a VoucherService with a fixed clock."""
    return VoucherService(temp_db, actor="approver", clock=lambda: FIXED_NOW)


@pytest.fixture
def ledger_service(temp_db, settings):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db, settings)


@pytest.fixture
def chart(master):
    """Seed a small chart of accounts and return references by short name.

    The first chart group doubles as the default mediator account.
    """
    group_id = master.create_chart_group("Current Assets")
    sub_group_id = master.create_chart_sub_group("Cash and Bank", group_id)
    ledger_id = master.create_ledger("Bank Accounts", group_id, sub_group_id)
    sbi_id = master.create_bank_account("SBI Current", ledger_id, "0012345")
    hdfc_id = master.create_bank_account("HDFC Savings", ledger_id)
    grower_group_id = master.create_grower_group("Nashik Growers")
    ramesh_id = master.create_farmer("Ramesh Patil", grower_group_id, "F-001")
    suresh_id = master.create_farmer("Suresh Jadhav", grower_group_id, "F-002")
    ganesh_id = master.create_farmer("Ganesh More", grower_group_id, "F-003")

    return {
        "group": AccountRef(AccountType.CHART_GROUP, group_id),
        "sub_group": AccountRef(AccountType.CHART_SUB_GROUP, sub_group_id),
        "ledger": AccountRef(AccountType.LEDGER, ledger_id),
        "sbi": AccountRef(AccountType.BANK_ACCOUNT, sbi_id),
        "hdfc": AccountRef(AccountType.BANK_ACCOUNT, hdfc_id),
        "growers": AccountRef(AccountType.GROWER_GROUP, grower_group_id),
        "ramesh": AccountRef(AccountType.FARMER, ramesh_id),
        "suresh": AccountRef(AccountType.FARMER, suresh_id),
        "ganesh": AccountRef(AccountType.FARMER, ganesh_id),
    }


@pytest.fixture
def make_batch():
    """Build a VoucherBatch from (account, side, amount) tuples."""

    def _make(entry_date, *lines, payment_type="NEFT", reference_no="UTR1", narration=None):
        return VoucherBatch(
            entry_date=entry_date,
            lines=tuple(
                BatchLine(
                    account=account,
                    side=side,
                    amount=Decimal(str(amount)),
                    payment=PaymentMeta(payment_type, reference_no),
                    narration=narration,
                )
                for account, side, amount in lines
            ),
        )

    return _make


@pytest.fixture
def post_approved(posting, vouchers):
    """Post a voucher with the named writer and approve it. Returns the voucher number."""
    kinds = {
        "post_batch": SourceKind.JOURNAL,
        "post_receipt": SourceKind.RECEIPT,
        "post_settlement": SourceKind.SETTLEMENT,
        "create_debit_note": SourceKind.DEBIT_NOTE,
        "create_credit_note": SourceKind.CREDIT_NOTE,
    }

    def _post(writer, *args, **kwargs):
        voucher_no = getattr(posting, writer)(*args, **kwargs)
        vouchers.approve(kinds[writer], voucher_no)
        return voucher_no

    return _post


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging calls made by CLI invocations."""
    yield
    root = logging.getLogger("farmledger")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
    root.propagate = True
