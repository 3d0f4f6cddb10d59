"""Account ledger — balance, rentals and the append-only transaction log."""

import threading
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RentalStatus(str, Enum):
    ACTIVE = "active"


class TransactionKind(str, Enum):
    TOPUP = "topup"
    RENTAL = "rental"


class Rental(BaseModel):
    """An issued energy allocation. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    rental_id: str
    energy_amount: Decimal = Field(gt=0)        # kWh
    cost: Decimal = Field(ge=0)                 # energy_amount * unit price at issuance
    started_at: datetime
    status: RentalStatus = RentalStatus.ACTIVE
    destination: Optional[str] = None           # Delegation address, if collected


class Transaction(BaseModel):
    """A ledger entry. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    kind: TransactionKind
    amount: Decimal                             # Credited amount (topup) or kWh (rental)
    cost: Optional[Decimal] = None              # Rental only
    timestamp: datetime
    rental_id: Optional[str] = None             # Rental only, lookup back-reference
    description: str = ""


class Account(BaseModel):
    """Ledger state of one external chat identity."""

    account_id: str
    display_name: str = ""
    balance: Decimal = Field(default=Decimal("0"), ge=0)
    active_rentals: List[Rental] = []
    transactions: List[Transaction] = []
    created_at: datetime = Field(default_factory=utcnow)

    _lock: Any = PrivateAttr(default_factory=threading.RLock)

    @property
    def lock(self):
        """Re-entrant lock serializing every operation on this account."""
        return self._lock


class RentalReceipt(BaseModel):
    """Outcome of a rental issued by either the local engine or the platform."""

    rental_id: Optional[str] = None
    energy_amount: Decimal
    cost: Decimal
    balance_after: Decimal
    destination: Optional[str] = None
    remote: bool = False
