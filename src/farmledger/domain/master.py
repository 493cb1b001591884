"""Master data domain service."""

from typing import Optional

from farmledger.database.base import Database
from farmledger.domain.entities import AccountRef, AccountType, CandidateAccount, EntryProfile
from farmledger.domain.errors import NotFoundError, ValidationError, account_not_found
from farmledger.logging_config import get_logger

logger = get_logger("master")

DEFAULT_TRANSACTION_TYPE = "Global"


def _require_name(name: str, what: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(f"{what} name is required")
    return cleaned


class MasterDataService:
    """Service for managing the chart of accounts, parties and entry profiles."""

    def __init__(self, db: Database):
        """Initialize master data service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require(self, ref: AccountRef) -> CandidateAccount:
        account = self.db.get_account(ref)
        if account is None:
            raise NotFoundError(account_not_found(ref))
        return account

    def _created(self, account_type: AccountType, account_id: int, name: str) -> int:
        logger.info("Account created", extra={"account": f"{account_type.value}:{account_id}", "account_name": name})
        return account_id

    def create_chart_group(self, name: str) -> int:
        name = _require_name(name, "Chart group")
        return self._created(AccountType.CHART_GROUP, self.db.create_chart_group(name), name)

    def create_chart_sub_group(self, name: str, chart_group_id: int) -> int:
        name = _require_name(name, "Chart sub group")
        self._require(AccountRef(AccountType.CHART_GROUP, chart_group_id))
        return self._created(AccountType.CHART_SUB_GROUP, self.db.create_chart_sub_group(name, chart_group_id), name)

    def create_ledger(self, name: str, chart_group_id: int, chart_sub_group_id: Optional[int] = None) -> int:
        """Create a ledger under a chart group and, optionally, one of its sub groups.

        Raises:
            ValidationError: If the name is blank
            NotFoundError: If the chart group or sub group does not exist
        """
        name = _require_name(name, "Ledger")
        self._require(AccountRef(AccountType.CHART_GROUP, chart_group_id))
        if chart_sub_group_id is not None:
            self._require(AccountRef(AccountType.CHART_SUB_GROUP, chart_sub_group_id))
        ledger_id = self.db.create_ledger(name, chart_group_id, chart_sub_group_id)
        return self._created(AccountType.LEDGER, ledger_id, name)

    def create_bank_account(self, name: str, ledger_id: int, account_number: Optional[str] = None) -> int:
        """Create a bank or cash account. Its rules fall back to the ledger's."""
        name = _require_name(name, "Bank account")
        self._require(AccountRef(AccountType.LEDGER, ledger_id))
        account_id = self.db.create_bank_account(name, ledger_id, account_number)
        return self._created(AccountType.BANK_ACCOUNT, account_id, name)

    def create_grower_group(self, name: str) -> int:
        name = _require_name(name, "Grower group")
        return self._created(AccountType.GROWER_GROUP, self.db.create_grower_group(name), name)

    def create_farmer(self, name: str, grower_group_id: int, code: Optional[str] = None) -> int:
        """Create a farmer. Its rules fall back to the grower group's."""
        name = _require_name(name, "Farmer")
        self._require(AccountRef(AccountType.GROWER_GROUP, grower_group_id))
        return self._created(AccountType.FARMER, self.db.create_farmer(name, grower_group_id, code), name)

    def get_account(self, ref: AccountRef) -> Optional[CandidateAccount]:
        return self.db.get_account(ref)

    def list_accounts(
        self, account_type: AccountType, search: Optional[str] = None, include_inactive: bool = False
    ) -> list[CandidateAccount]:
        return self.db.list_accounts(account_type, search=search, active_only=not include_inactive)

    def create_entry_profile(self, name: str, transaction_type: str = DEFAULT_TRANSACTION_TYPE) -> int:
        name = _require_name(name, "Entry profile")
        profile_id = self.db.create_entry_profile(name, (transaction_type or DEFAULT_TRANSACTION_TYPE).strip())
        logger.info("Entry profile created", extra={"profile_id": profile_id, "profile_name": name})
        return profile_id

    def list_entry_profiles(self, transaction_type: Optional[str] = None) -> list[EntryProfile]:
        return self.db.list_entry_profiles(transaction_type)

    def map_debit_note_account(self, voucher_no: str, bank_account_id: int) -> int:
        """Point a debit note at a different bank account.

        The mapping takes precedence over the bank account stored on the note
        whenever ledgers are built.

        Returns:
            The debit note ID

        Raises:
            NotFoundError: If the bank account or debit note does not exist
        """
        self._require(AccountRef(AccountType.BANK_ACCOUNT, bank_account_id))
        note_id = self.db.set_debit_note_override(voucher_no, bank_account_id)
        if note_id is None:
            raise NotFoundError(f"Debit note '{voucher_no}' not found")
        logger.info(
            "Debit note account mapped", extra={"voucher_no": voucher_no, "bank_account_id": bank_account_id}
        )
        return note_id
