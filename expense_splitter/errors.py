"""Errors raised by the ledger services.

Validation errors are raised before anything is written. The routes turn
them into ``HTTPException`` responses with the message as ``detail``.
"""


class LedgerError(Exception):
    status_code = 400


class InvalidAmount(LedgerError):
    """A monetary value is zero or negative."""


class EmptyMemberSet(LedgerError):
    """An expense has no participants."""


class InvalidMember(LedgerError):
    """A referenced user is not a member of the group."""


class SplitMismatch(LedgerError):
    """Custom split amounts do not add up to the expense total."""


class SelfPayment(LedgerError):
    """Payer and payee of a settlement are the same user."""


class PersistenceError(LedgerError):
    """Writing to the balance store failed."""
    status_code = 500
