"""Account rule resolution.

An account rule says on which side (Debit, Credit, Both, or neither via
Cancel) an account may be used. Rules may be scoped to an entry profile; the
rule without a profile is the fallback layer. Bank accounts fall back to the
rules of their ledger, and farmers to the rules of their grower group.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Optional

from farmledger.database.base import Database
from farmledger.domain.entities import (
    AccountRef,
    AccountRule,
    AccountType,
    AllowedNature,
    CandidateAccount,
    Decision,
    Side,
)
from farmledger.domain.errors import NotFoundError, ValidationError, account_not_found, profile_not_found
from farmledger.logging_config import get_logger

logger = get_logger("rules")

RuleKey = tuple[str, int, Optional[int]]
Revision = tuple[int, int, Optional[datetime]]

# Types offered by candidate_accounts, and its limits
CANDIDATE_TYPES = (AccountType.BANK_ACCOUNT, AccountType.LEDGER, AccountType.FARMER)
CANDIDATES_PER_TYPE = 50
CANDIDATES_TOTAL = 100


def _key(account_type: str, account_id: int, profile_id: Optional[int]) -> RuleKey:
    return (account_type.strip().lower(), account_id, profile_id)


def decide(value: Optional[str], side: Optional[Side]) -> Decision:
    """Decide a single rule value against the requested side.

    A side of None means either side, so Debit and Credit rules both allow
    it. Blank or unrecognised values deny.
    """
    text = (value or "").strip().lower()
    if text == AllowedNature.BOTH.value.lower():
        return Decision.ALLOWED
    if text in (AllowedNature.DEBIT.value.lower(), AllowedNature.CREDIT.value.lower()):
        if side is None or text == side.value.lower():
            return Decision.ALLOWED
    return Decision.DENIED


@dataclass(frozen=True)
class RuleSnapshot:
    """Immutable view of the rule table, loaded once per request."""

    values: Mapping[RuleKey, str] = field(default_factory=dict)
    scoped_profiles: Mapping[tuple[str, int], tuple[int, ...]] = field(default_factory=dict)
    revision: Revision = (0, 0, None)

    @classmethod
    def from_rules(cls, rules: Iterable[AccountRule], revision: Revision = (0, 0, None)) -> "RuleSnapshot":
        values: dict[RuleKey, str] = {}
        scoped: dict[tuple[str, int], list[int]] = {}
        for rule in sorted(rules, key=lambda r: r.id):
            key = _key(rule.account_type, rule.account_id, rule.entry_profile_id)
            values[key] = rule.value
            if rule.entry_profile_id is not None:
                scoped.setdefault(key[:2], []).append(rule.entry_profile_id)
        return cls(
            values=values,
            scoped_profiles={k: tuple(v) for k, v in scoped.items()},
            revision=revision,
        )

    def lookup(self, account: AccountRef, profile_id: Optional[int]) -> Optional[str]:
        """Get the profile rule for an account, else its fallback rule."""
        if profile_id is not None:
            value = self.values.get(_key(account.type.value, account.id, profile_id))
            if value is not None:
                return value
        return self.values.get(_key(account.type.value, account.id, None))

    def resolve(
        self,
        account: AccountRef,
        profile_id: Optional[int] = None,
        side: Optional[Side] = None,
        strict: bool = False,
        group: Optional[AccountRef] = None,
    ) -> Decision:
        """Decide whether an account may be used on a side.

        Args:
            account: Account being checked
            profile_id: Entry profile of the transaction, if any
            side: Requested side, or None for either
            strict: If True, accounts without any rule are denied
            group: Natural fallback account (ledger or grower group)

        Returns:
            Decision.ALLOWED or Decision.DENIED
        """
        value = self.lookup(account, profile_id)
        if value is None and group is not None:
            value = self.lookup(group, profile_id)
        if value is None:
            return Decision.DENIED if strict else Decision.ALLOWED
        return decide(value, side)

    def filter_candidates(
        self,
        candidates: Iterable[CandidateAccount],
        profile_id: Optional[int] = None,
        side: Optional[Side] = None,
        strict: bool = False,
    ) -> list[CandidateAccount]:
        """Keep the allowed candidates, preserving order."""
        return [
            c
            for c in candidates
            if self.resolve(c.ref, profile_id, side, strict, group=c.group) is Decision.ALLOWED
        ]

    def first_scoped_profile(self, account: AccountRef) -> Optional[int]:
        profiles = self.scoped_profiles.get((account.type.value.lower(), account.id), ())
        return profiles[0] if profiles else None

    def is_stale(self, current: Revision) -> bool:
        return self.revision != current


class AccountRuleService:
    """Service for managing and evaluating account rules."""

    def __init__(self, db: Database):
        """Initialize account rule service.

        Args:
            db: Database instance
        """
        self.db = db

    def snapshot(self) -> RuleSnapshot:
        """Load every rule into an immutable snapshot."""
        return RuleSnapshot.from_rules(self.db.list_account_rules(), revision=self.db.rules_revision())

    def is_stale(self, snapshot: RuleSnapshot) -> bool:
        """Check whether rules changed since the snapshot was loaded."""
        return snapshot.is_stale(self.db.rules_revision())

    def _require_account(self, ref: AccountRef) -> CandidateAccount:
        account = self.db.get_account(ref)
        if account is None:
            raise NotFoundError(account_not_found(ref))
        return account

    def resolve(
        self,
        ref: AccountRef,
        profile_id: Optional[int] = None,
        side: Optional[Side] = None,
        strict: bool = False,
        snapshot: Optional[RuleSnapshot] = None,
    ) -> Decision:
        """Decide whether an existing account may be used on a side.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self._require_account(ref)
        if snapshot is None:
            snapshot = self.snapshot()
        return snapshot.resolve(ref, profile_id, side, strict, group=account.group)

    def filter_candidates(
        self,
        candidates: Iterable[CandidateAccount],
        profile_id: Optional[int] = None,
        side: Optional[Side] = None,
        strict: bool = False,
        snapshot: Optional[RuleSnapshot] = None,
    ) -> list[CandidateAccount]:
        if snapshot is None:
            snapshot = self.snapshot()
        return snapshot.filter_candidates(candidates, profile_id, side, strict)

    def candidate_accounts(
        self,
        search: Optional[str] = None,
        profile_id: Optional[int] = None,
        side: Optional[Side] = None,
    ) -> list[CandidateAccount]:
        """Find accounts that may be used for a transaction.

        Active bank accounts, ledgers and farmers whose name contains the
        search text are considered. With a profile given, only accounts with
        an explicit allowing rule are returned.

        Args:
            search: Case-insensitive name fragment
            profile_id: Entry profile of the transaction
            side: Requested side, or None for either

        Returns:
            Allowed accounts sorted by name
        """
        candidates: list[CandidateAccount] = []
        for account_type in CANDIDATE_TYPES:
            candidates.extend(self.db.list_accounts(account_type, search=search, limit=CANDIDATES_PER_TYPE))

        allowed = self.filter_candidates(candidates, profile_id, side, strict=profile_id is not None)
        allowed.sort(key=lambda c: (c.name.lower(), c.ref))
        logger.debug(
            "Candidate accounts resolved",
            extra={"search": search, "profile_id": profile_id, "found": len(candidates), "allowed": len(allowed)},
        )
        return allowed[:CANDIDATES_TOTAL]

    def profile_for_pair(
        self, credit_ref: AccountRef, debit_ref: AccountRef, snapshot: Optional[RuleSnapshot] = None
    ) -> Optional[int]:
        """Pick the entry profile for a debit/credit pair.

        The credit account's first profile-scoped rule wins, then the debit
        account's.
        """
        if snapshot is None:
            snapshot = self.snapshot()
        profile_id = snapshot.first_scoped_profile(credit_ref)
        if profile_id is None:
            profile_id = snapshot.first_scoped_profile(debit_ref)
        return profile_id

    def set_rule(self, ref: AccountRef, value: str, profile_id: Optional[int] = None) -> int:
        """Create or replace a rule.

        Args:
            ref: Account the rule applies to
            value: Both, Debit, Credit or Cancel (any case)
            profile_id: Optional entry profile scope

        Returns:
            Rule ID

        Raises:
            ValidationError: If the value is not a known rule value
            NotFoundError: If the account or profile does not exist
        """
        nature = next((n for n in AllowedNature if n.value.lower() == value.strip().lower()), None)
        if nature is None:
            allowed = ", ".join(n.value for n in AllowedNature)
            raise ValidationError(f"Invalid rule value '{value}'. Expected one of: {allowed}")
        self._require_account(ref)
        if profile_id is not None and self.db.get_entry_profile(profile_id) is None:
            raise NotFoundError(profile_not_found(profile_id))

        rule_id = self.db.upsert_account_rule(ref.type.value, ref.id, profile_id, nature.value)
        logger.info(
            "Account rule set",
            extra={"account": str(ref), "profile_id": profile_id, "value": nature.value, "rule_id": rule_id},
        )
        return rule_id

    def delete_rule(self, ref: AccountRef, profile_id: Optional[int] = None) -> None:
        """Delete a rule.

        Raises:
            NotFoundError: If no rule exists for the account and profile
        """
        if not self.db.delete_account_rule(ref.type.value, ref.id, profile_id):
            scope = f"profile {profile_id}" if profile_id is not None else "no profile"
            raise NotFoundError(f"No rule for {ref} with {scope}")
        logger.info("Account rule deleted", extra={"account": str(ref), "profile_id": profile_id})

    def list_rules(self, ref: Optional[AccountRef] = None) -> list[AccountRule]:
        """List rules, optionally for a single account."""
        rules = self.db.list_account_rules()
        if ref is None:
            return rules
        return [
            r
            for r in rules
            if r.account_type.lower() == ref.type.value.lower() and r.account_id == ref.id
        ]
