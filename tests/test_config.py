"""Tests for runtime settings."""

import pytest

from farmledger.config import (
    DEBIT_POSITIVE_ENV,
    MEDIATOR_ENV,
    LedgerSettings,
    load_settings,
    parse_account_ref,
)
from farmledger.domain.entities import AccountRef, AccountType, BalanceConvention, SourceKind


def test_defaults():
    settings = load_settings({})
    assert settings.mediator_account is None
    assert settings.convention_for(AccountType.FARMER) is BalanceConvention.CREDIT_POSITIVE


def test_mediator_and_conventions_from_environment():
    settings = load_settings({MEDIATOR_ENV: "Ledger:4", DEBIT_POSITIVE_ENV: "BankAccount, ledger"})
    assert settings.mediator_account == AccountRef(AccountType.LEDGER, 4)
    assert settings.convention_for(AccountType.BANK_ACCOUNT) is BalanceConvention.DEBIT_POSITIVE
    assert settings.convention_for(AccountType.LEDGER) is BalanceConvention.DEBIT_POSITIVE
    assert settings.convention_for(AccountType.FARMER) is BalanceConvention.CREDIT_POSITIVE


@pytest.mark.parametrize("text", ["Ledger", "Ledger:x", "Vendor:1"])
def test_parse_account_ref_rejects_bad_input(text):
    with pytest.raises(ValueError):
        parse_account_ref(text)


def test_invalid_environment_value_raises():
    with pytest.raises(ValueError):
        load_settings({DEBIT_POSITIVE_ENV: "Customer"})


def test_voucher_numbers():
    settings = LedgerSettings()
    assert settings.format_voucher_no(SourceKind.JOURNAL, 1) == "JV00001"
    assert settings.format_voucher_no(SourceKind.RECEIPT, 42) == "RCPT00042"
    assert settings.format_voucher_no(SourceKind.SETTLEMENT, 123456) == "PA123456"


def test_kind_for_voucher():
    settings = LedgerSettings()
    assert settings.kind_for_voucher("JV00001") is SourceKind.JOURNAL
    assert settings.kind_for_voucher("rcpt00002") is SourceKind.RECEIPT
    assert settings.kind_for_voucher("PA00003") is SourceKind.SETTLEMENT
    assert settings.kind_for_voucher("DN00004") is SourceKind.DEBIT_NOTE
    assert settings.kind_for_voucher("CN00005") is SourceKind.CREDIT_NOTE
    assert settings.kind_for_voucher("XY00001") is None
    assert settings.kind_for_voucher("JV") is None
