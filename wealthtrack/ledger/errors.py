"""
Ledger Errors

Three kinds of failure reach a caller:
- NotFoundError: a referenced entity does not exist (raised by the store)
- InvalidArgumentError: a domain rule rejected the mutation
- ConflictError: a concurrent writer got there first (raised by the store)

Every one of them means "nothing was changed". The engine never retries;
see wealthtrack.orchestrator for the caller-side policy.
"""

from wealthtrack.services.storage.interface import ConflictError, NotFoundError


class LedgerError(Exception):
    """Base exception for ledger engine errors."""

    code = "ledger_error"


class InvalidArgumentError(LedgerError):
    """A mutation violated a domain rule and was rejected before persisting."""

    code = "invalid_argument"


__all__ = [
    "ConflictError",
    "InvalidArgumentError",
    "LedgerError",
    "NotFoundError",
]
