"""
Errors raised while building and confirming DCA plans.
"""

from typing import List, Optional


class PlanError(Exception):
    """Base exception for plan handling."""


class MalformedToken(PlanError):
    """Raised when a confirmation token cannot be decoded back into a plan."""

    def __init__(self, message: str, token: Optional[str] = None):
        self.token = token
        super().__init__(message)


class WalletRequired(PlanError):
    """Raised when an action needs a connected wallet address."""

    def __init__(self, message: str = "A connected wallet address is required."):
        super().__init__(message)


class PlanValidationError(PlanError):
    """Raised when extracted plan fields are missing or invalid."""

    def __init__(self, errors: List[str], missing_fields: Optional[List[str]] = None):
        self.errors = list(errors)
        self.missing_fields = list(missing_fields or [])
        detail = "; ".join(self.errors + [f"missing {f}" for f in self.missing_fields])
        super().__init__(f"Invalid plan: {detail}")
