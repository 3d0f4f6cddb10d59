"""Energy rent data models."""

from energy_rent.models.account import (
    Account,
    Rental,
    RentalReceipt,
    RentalStatus,
    Transaction,
    TransactionKind,
)
from energy_rent.models.events import (
    ErrorInfo,
    EventKind,
    InboundEvent,
    NormalizedCommand,
    Operation,
    OperationResult,
)
from energy_rent.models.platform import RentalSubmission, WalletInfo
from energy_rent.models.session import ConversationSession, ConversationState

__all__ = [
    "Account",
    "ConversationSession",
    "ConversationState",
    "ErrorInfo",
    "EventKind",
    "InboundEvent",
    "NormalizedCommand",
    "Operation",
    "OperationResult",
    "Rental",
    "RentalReceipt",
    "RentalStatus",
    "RentalSubmission",
    "Transaction",
    "TransactionKind",
    "WalletInfo",
]
