"""Error taxonomy for the behaviour ledger.

Aggregation and ranking never raise for empty or missing data; only identity
resolution, input validation and the redemption balance guard are errors.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base class for all ledger errors."""


class ValidationError(LedgerError):
    """Malformed input. Raised before any store mutation."""


class NotFoundError(LedgerError):
    """A referenced id does not exist in its scope."""

    def __init__(self, entity: str, key: Any, scope: str | None = None) -> None:
        self.entity = entity
        self.key = key
        self.scope = scope
        where = f" in {scope}" if scope else ""
        super().__init__(f"{entity} {key!r} not found{where}")


class InsufficientPoints(LedgerError):
    """Raised when a redemption would leave a negative balance.

    Attributes:
        student_id: The student attempting the redemption
        balance: Balance at the time of the check
        cost: Point cost of the reward
        shortfall: How many more points the student needs
    """

    def __init__(self, student_id: int, balance: int, cost: int) -> None:
        self.student_id = student_id
        self.balance = balance
        self.cost = cost
        self.shortfall = cost - balance
        super().__init__(f"Student needs {self.shortfall} more points (balance={balance}, cost={cost})")


class AlreadyAwarded(LedgerError):
    """Duplicate badge award. Callers treat this as a no-op success."""

    def __init__(self, student_id: int, badge_id: int) -> None:
        self.student_id = student_id
        self.badge_id = badge_id
        super().__init__(f"Student {student_id} already holds badge {badge_id}")
