"""Inbound events from chat adapters and the typed results handed back."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator


class EventKind(str, Enum):
    COMMAND = "command"
    TEXT = "text"
    BUTTON = "button"


class Operation(str, Enum):
    INITIALIZE = "initialize"
    GET_BALANCE = "get_balance"
    TOPUP = "topup"
    REQUEST_RENTAL = "request_rental"
    PROVIDE_DESTINATION = "provide_destination"
    PROVIDE_ENERGY_AMOUNT = "provide_energy_amount"
    GET_ACTIVE_RENTALS = "get_active_rentals"
    GET_HISTORY = "get_history"
    GET_PRICING = "get_pricing"
    HELP = "help"
    CANCEL = "cancel"
    UNRECOGNIZED = "unrecognized"


class InboundEvent(BaseModel):
    """A command, free-text message or button tap from one chat identity."""

    identity: str
    kind: EventKind
    payload: str = ""
    display_name: Optional[str] = None

    @field_validator("identity", mode="before")
    @classmethod
    def _identity_to_str(cls, value: Any) -> str:
        # Chat platforms hand out integer ids
        return str(value)


class NormalizedCommand(BaseModel):
    """An inbound event resolved to a core operation and its raw argument."""

    operation: Operation
    argument: Optional[str] = None


class ErrorInfo(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = {}


class OperationResult(BaseModel):
    """Discriminated outcome of one operation: success payload or typed error."""

    operation: Operation
    ok: bool
    data: Dict[str, Any] = {}
    error: Optional[ErrorInfo] = None

    @classmethod
    def success(cls, operation: Operation, **data: Any) -> "OperationResult":
        return cls(operation=operation, ok=True, data=data)

    @classmethod
    def failure(
        cls,
        operation: Operation,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "OperationResult":
        return cls(
            operation=operation,
            ok=False,
            error=ErrorInfo(code=code, message=message, details=details or {}),
        )
