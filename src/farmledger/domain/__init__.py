"""Domain layer for farmledger."""

__all__ = [
    "AccountRuleService",
    "LedgerService",
    "MasterDataService",
    "PostingService",
    "VoucherService",
]

_SERVICES = {
    "AccountRuleService": "farmledger.domain.rules",
    "LedgerService": "farmledger.domain.ledger",
    "MasterDataService": "farmledger.domain.master",
    "PostingService": "farmledger.domain.posting",
    "VoucherService": "farmledger.domain.voucher",
}


# Services are imported lazily: farmledger.config and the database layer import
# domain.entities, and the services import both of them
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
