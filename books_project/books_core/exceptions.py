# Field-level input problems use Django's own ValidationError,
# re-exported so callers can import every error kind from one place
from django.core.exceptions import ValidationError  # noqa: F401


class UnbalancedEntryError(Exception):
    """Raised when a journal entry fails the double-entry balance check."""

    def __init__(self, total_debit, total_credit):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Journal not balanced: debits={total_debit}, credits={total_credit}"
        )


class NotFoundError(Exception):
    """Raised when a referenced account or entry does not exist for the company"""
    pass


class AuthorizationError(Exception):
    """Raised when a user has no active membership in the requested company"""
    pass


class ConflictError(Exception):
    """Raised when a concurrent posting already took the generated entry number.
    Retrying the posting allocates a fresh number."""
    pass
