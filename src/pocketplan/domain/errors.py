"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class InvalidRangeError(ValidationError):
    """A date range whose start lies after its end."""


class NotFoundError(DomainError):
    """Requested wallet, entry or subscription does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as a second wallet for the same user."""


class PredictionError(DomainError):
    """Transient failure of an external prediction backend."""


def wallet_not_found(user_id: str) -> str:
    """Return message for a user without a wallet."""
    return f"Wallet for user '{user_id}' not found"


def expense_not_found(expense_id: int) -> str:
    """Return message for missing expense."""
    return f"Expense {expense_id} not found"


def subscription_not_found(subscription_id: int) -> str:
    """Return message for missing subscription."""
    return f"Subscription {subscription_id} not found"


def limit_not_found(limit_id: int) -> str:
    """Return message for missing wallet limit."""
    return f"Limit {limit_id} not found"


def subexpense_not_found(subexpense_id: int) -> str:
    """Return message for missing sub-expense."""
    return f"Sub-expense {subexpense_id} not found"


def wallet_already_exists(user_id: str) -> str:
    """Return message when a user already owns a wallet."""
    return f"User '{user_id}' already has a wallet"


def invalid_range(start: object, end: object) -> str:
    """Return message for a date range with start after end."""
    return f"Invalid range: start {start} is after end {end}"
