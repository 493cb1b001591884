"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity or voucher does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as an invalid status transition."""


class ConcurrencyError(DomainError):
    """A voucher number could not be allocated without a collision."""


class UnbalancedBatchError(ValidationError):
    """Debit and credit totals of a batch differ."""

    def __init__(self, total_debit: Decimal, total_credit: Decimal):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.discrepancy = abs(total_debit - total_credit)
        super().__init__(
            f"Entry is not balanced. Total Debit ({total_debit}) must be equal to "
            f"Total Credit ({total_credit}). Difference: {self.discrepancy}"
        )


class PaymentMismatchError(ValidationError):
    """Legs that must share payment type and reference do not."""


def account_not_found(account) -> str:
    """Return message for a missing account reference."""
    return f"Account {account} not found"


def voucher_not_found(kind, voucher_no: str) -> str:
    """Return message for a missing or deleted voucher."""
    return f"{kind.value} voucher '{voucher_no}' not found"


def profile_not_found(profile_id: int) -> str:
    return f"Entry profile {profile_id} not found"


def payment_mismatch(all_entries: bool = False) -> str:
    """Return message when payment type or reference differs between legs."""
    if all_entries:
        return "Payment types or reference numbers do not match for all entries"
    return "Payment types or reference numbers do not match"


def invalid_transition(voucher_no: str, current, action) -> str:
    return f"Cannot {action.value.lower()} voucher '{voucher_no}': it is {current.value.lower()}"
