"""
Error taxonomy for the energy rental core.

Every recoverable failure is an EnergyRentError carrying a stable machine
code, a short human message and optional details. Components raise these;
the event router turns them into failed OperationResults.

LedgerInvariantError is not part of the taxonomy: it signals a logic bug
(negative or inconsistent balance) and must fail loudly.
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class EnergyRentError(Exception):
    """Base class for recoverable, user-facing core errors."""

    code: str = "energy_rent_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class InvalidAmount(EnergyRentError):
    """Non-positive or non-numeric quantity where a positive amount is required."""

    code = "invalid_amount"

    def __init__(self, value: Any, message: str = "Amount must be a positive number."):
        super().__init__(message, {"value": str(value)})
        self.value = value


class InsufficientFunds(EnergyRentError):
    """A debit exceeds the available balance."""

    code = "insufficient_funds"

    def __init__(self, required: Decimal, available: Decimal):
        self.required = required
        self.available = available
        super().__init__(
            "Insufficient credit.",
            {
                "required": str(required),
                "available": str(available),
                "shortfall": str(self.shortfall),
            },
        )

    @property
    def shortfall(self) -> Decimal:
        return self.required - self.available


class InvalidDestination(EnergyRentError):
    """Destination address fails format validation."""

    code = "invalid_destination"

    def __init__(self, destination: str, expected: str = ""):
        details = {"destination": destination}
        if expected:
            details["expected"] = expected
        super().__init__("Destination address is not valid.", details)
        self.destination = destination


class AccountNotInitialized(EnergyRentError):
    """An operation other than initialize arrived for an unknown identity."""

    code = "account_not_initialized"

    def __init__(self, identity: str):
        super().__init__(
            "Please use /start first to initialize your account.",
            {"identity": identity},
        )
        self.identity = identity


class UpstreamUnavailable(EnergyRentError):
    """The remote platform failed or timed out."""

    code = "upstream_unavailable"

    def __init__(self, operation: str, reason: str = ""):
        details = {"operation": operation}
        if reason:
            details["reason"] = reason
        super().__init__("The energy platform is unavailable, try again later.", details)
        self.operation = operation


class UnrecognizedInput(EnergyRentError):
    """Input that means nothing in the current conversation context."""

    code = "unrecognized_input"

    def __init__(self, text: str, state: str):
        super().__init__(
            "I didn't understand that command. Use /help to see available commands.",
            {"input": text, "state": state},
        )
        self.text = text
        self.state = state


class LedgerInvariantError(AssertionError):
    """A ledger invariant was violated. Always a bug, never a user error."""

    def __init__(self, account_id: str, reason: str):
        super().__init__(f"Ledger invariant violated for account {account_id}: {reason}")
        self.account_id = account_id
        self.reason = reason
