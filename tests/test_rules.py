"""Tests for account rule resolution."""

import pytest
from datetime import datetime

from farmledger.domain.entities import (
    AccountRef,
    AccountRule,
    AccountType,
    CandidateAccount,
    Decision,
    Side,
)
from farmledger.domain.errors import NotFoundError, ValidationError
from farmledger.domain.rules import RuleSnapshot, decide

BANK_7 = AccountRef(AccountType.BANK_ACCOUNT, 7)
LEDGER_2 = AccountRef(AccountType.LEDGER, 2)


def _rule(rule_id, account, value, profile_id=None):
    return AccountRule(
        id=rule_id,
        account_type=account.type.value,
        account_id=account.id,
        entry_profile_id=profile_id,
        value=value,
    )


class TestDecide:
    def test_both_allows_either_side(self):
        assert decide("Both", Side.DEBIT) is Decision.ALLOWED
        assert decide("Both", Side.CREDIT) is Decision.ALLOWED
        assert decide("Both", None) is Decision.ALLOWED

    def test_single_side(self):
        assert decide("Debit", Side.DEBIT) is Decision.ALLOWED
        assert decide("Debit", Side.CREDIT) is Decision.DENIED
        assert decide("credit", Side.CREDIT) is Decision.ALLOWED

    def test_no_side_allows_single_side_rules(self):
        assert decide("Debit", None) is Decision.ALLOWED
        assert decide("Credit", None) is Decision.ALLOWED

    @pytest.mark.parametrize("value", ["Cancel", "", None, "  ", "Sometimes"])
    def test_cancel_blank_and_unknown_deny(self, value):
        assert decide(value, Side.DEBIT) is Decision.DENIED
        assert decide(value, None) is Decision.DENIED


class TestRuleSnapshot:
    def test_profile_rule_overrides_fallback(self):
        snapshot = RuleSnapshot.from_rules([_rule(1, BANK_7, "Both"), _rule(2, BANK_7, "Debit", profile_id=3)])

        assert snapshot.lookup(BANK_7, 3) == "Debit"
        assert snapshot.resolve(BANK_7, 3, Side.CREDIT) is Decision.DENIED
        assert snapshot.resolve(BANK_7, 3, Side.DEBIT) is Decision.ALLOWED

    def test_other_profile_uses_fallback(self):
        snapshot = RuleSnapshot.from_rules([_rule(1, BANK_7, "Both"), _rule(2, BANK_7, "Debit", profile_id=3)])

        assert snapshot.lookup(BANK_7, 5) == "Both"
        assert snapshot.resolve(BANK_7, 5, Side.CREDIT) is Decision.ALLOWED

    def test_no_rule_depends_on_strict(self):
        snapshot = RuleSnapshot.from_rules([])
        assert snapshot.resolve(BANK_7, None, Side.DEBIT) is Decision.ALLOWED
        assert snapshot.resolve(BANK_7, None, Side.DEBIT, strict=True) is Decision.DENIED

    def test_strict_does_not_change_explicit_rules(self):
        snapshot = RuleSnapshot.from_rules([_rule(1, BANK_7, "Cancel")])
        assert snapshot.resolve(BANK_7, None, Side.DEBIT) is Decision.DENIED
        assert snapshot.resolve(BANK_7, None, Side.DEBIT, strict=True) is Decision.DENIED

    def test_account_type_tags_are_case_insensitive(self):
        rule = AccountRule(id=1, account_type="bankaccount", account_id=7, entry_profile_id=None, value="Credit")
        snapshot = RuleSnapshot.from_rules([rule])
        assert snapshot.lookup(BANK_7, None) == "Credit"

    def test_group_rule_is_used_when_account_has_none(self):
        snapshot = RuleSnapshot.from_rules([_rule(1, LEDGER_2, "Credit", profile_id=3)])

        assert snapshot.resolve(BANK_7, 3, Side.DEBIT, group=LEDGER_2) is Decision.DENIED
        assert snapshot.resolve(BANK_7, 3, Side.CREDIT, strict=True, group=LEDGER_2) is Decision.ALLOWED
        # The account's own fallback rule beats any group rule
        own = RuleSnapshot.from_rules([_rule(1, LEDGER_2, "Credit"), _rule(2, BANK_7, "Both")])
        assert own.resolve(BANK_7, 3, Side.DEBIT, group=LEDGER_2) is Decision.ALLOWED

    def test_filter_candidates_preserves_order(self):
        snapshot = RuleSnapshot.from_rules([_rule(1, BANK_7, "Cancel")])
        candidates = [
            CandidateAccount(AccountRef(AccountType.FARMER, 2), "Suresh"),
            CandidateAccount(BANK_7, "SBI"),
            CandidateAccount(AccountRef(AccountType.FARMER, 1), "Ramesh"),
        ]
        allowed = snapshot.filter_candidates(candidates, side=Side.DEBIT)
        assert [c.name for c in allowed] == ["Suresh", "Ramesh"]

    def test_first_scoped_profile_is_oldest_rule(self):
        snapshot = RuleSnapshot.from_rules(
            [_rule(5, BANK_7, "Debit", profile_id=9), _rule(2, BANK_7, "Both", profile_id=4), _rule(1, BANK_7, "Both")]
        )
        assert snapshot.first_scoped_profile(BANK_7) == 4
        assert snapshot.first_scoped_profile(LEDGER_2) is None

    def test_is_stale(self):
        snapshot = RuleSnapshot.from_rules([], revision=(1, 1, datetime(2024, 4, 1)))
        assert not snapshot.is_stale((1, 1, datetime(2024, 4, 1)))
        assert snapshot.is_stale((2, 2, datetime(2024, 4, 2)))


class TestAccountRuleService:
    def test_set_rule_canonicalizes_value(self, rule_service, chart):
        rule_service.set_rule(chart["sbi"], "debit")
        rules = rule_service.list_rules(chart["sbi"])
        assert [(r.value, r.entry_profile_id) for r in rules] == [("Debit", None)]

    def test_set_rule_replaces_existing(self, rule_service, chart, master):
        profile_id = master.create_entry_profile("Grower Payment", "Payment")
        first = rule_service.set_rule(chart["sbi"], "Both", profile_id)
        second = rule_service.set_rule(chart["sbi"], "Credit", profile_id)

        assert first == second
        assert [r.value for r in rule_service.list_rules(chart["sbi"])] == ["Credit"]

    def test_set_rule_rejects_unknown_value(self, rule_service, chart):
        with pytest.raises(ValidationError, match="Invalid rule value"):
            rule_service.set_rule(chart["sbi"], "Sometimes")

    def test_set_rule_unknown_account(self, rule_service, chart):
        with pytest.raises(NotFoundError):
            rule_service.set_rule(AccountRef(AccountType.FARMER, 999), "Both")

    def test_set_rule_unknown_profile(self, rule_service, chart):
        with pytest.raises(NotFoundError, match="Entry profile 42"):
            rule_service.set_rule(chart["sbi"], "Both", profile_id=42)

    def test_delete_rule(self, rule_service, chart):
        rule_service.set_rule(chart["sbi"], "Both")
        rule_service.delete_rule(chart["sbi"])
        assert rule_service.list_rules(chart["sbi"]) == []

        with pytest.raises(NotFoundError, match="No rule"):
            rule_service.delete_rule(chart["sbi"])

    def test_resolve_uses_natural_group(self, rule_service, chart):
        rule_service.set_rule(chart["growers"], "Credit")

        assert rule_service.resolve(chart["ramesh"], side=Side.CREDIT) is Decision.ALLOWED
        assert rule_service.resolve(chart["ramesh"], side=Side.DEBIT) is Decision.DENIED

    def test_resolve_unknown_account(self, rule_service, chart):
        with pytest.raises(NotFoundError):
            rule_service.resolve(AccountRef(AccountType.BANK_ACCOUNT, 99))

    def test_snapshot_goes_stale_after_change(self, rule_service, chart):
        snapshot = rule_service.snapshot()
        assert not rule_service.is_stale(snapshot)

        rule_service.set_rule(chart["sbi"], "Both")
        assert rule_service.is_stale(snapshot)

    def test_candidates_without_profile_allow_unruled_accounts(self, rule_service, chart):
        rule_service.set_rule(chart["hdfc"], "Cancel")

        names = [c.name for c in rule_service.candidate_accounts()]
        assert names == sorted(names, key=str.lower)
        assert "HDFC Savings" not in names
        assert {"SBI Current", "Bank Accounts", "Ramesh Patil"} <= set(names)

    def test_candidates_with_profile_need_explicit_rule(self, rule_service, master, chart):
        profile_id = master.create_entry_profile("Grower Receipt", "Receipt")
        rule_service.set_rule(chart["sbi"], "Debit", profile_id)
        rule_service.set_rule(chart["growers"], "Credit", profile_id)

        debit_side = rule_service.candidate_accounts(profile_id=profile_id, side=Side.DEBIT)
        assert [c.name for c in debit_side] == ["SBI Current"]

        credit_side = rule_service.candidate_accounts(profile_id=profile_id, side=Side.CREDIT)
        assert [c.name for c in credit_side] == ["Ganesh More", "Ramesh Patil", "Suresh Jadhav"]

    def test_candidates_search(self, rule_service, chart):
        found = rule_service.candidate_accounts(search="pat")
        assert [c.ref for c in found] == [chart["ramesh"]]

    def test_profile_for_pair_prefers_credit_account(self, rule_service, master, chart):
        receipt = master.create_entry_profile("Grower Receipt", "Receipt")
        payment = master.create_entry_profile("Grower Payment", "Payment")
        rule_service.set_rule(chart["sbi"], "Debit", payment)

        assert rule_service.profile_for_pair(chart["ramesh"], chart["sbi"]) == payment

        rule_service.set_rule(chart["ramesh"], "Credit", receipt)
        assert rule_service.profile_for_pair(chart["ramesh"], chart["sbi"]) == receipt
        assert rule_service.profile_for_pair(chart["ganesh"], chart["suresh"]) is None
