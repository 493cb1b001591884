"""Account reference resolution."""

from farmledger.database.base import Database
from farmledger.domain.entities import AccountRef


def fallback_label(account_type: str, account_id: int) -> str:
    """Label used when a reference cannot be resolved to a name."""
    return f"{account_type} (id: {account_id})"


class AccountLabelResolver:
    """Resolves (type, id) account references to display names.

    Names are cached for the lifetime of the resolver, so one resolver should
    be created per request. Unknown type tags and dangling ids never raise;
    they resolve to ``"type (id: N)"``.
    """

    def __init__(self, db: Database):
        """Initialize label resolver.

        Args:
            db: Database instance
        """
        self.db = db
        self._cache: dict[tuple[str, int], str] = {}

    def label(self, account_type: str, account_id: int) -> str:
        """Get the display name for a raw type tag and id."""
        key = (account_type, account_id)
        if key not in self._cache:
            name = self.db.get_account_name(account_type, account_id)
            self._cache[key] = name if name else fallback_label(account_type, account_id)
        return self._cache[key]

    def label_for(self, ref: AccountRef) -> str:
        return self.label(ref.type.value, ref.id)
