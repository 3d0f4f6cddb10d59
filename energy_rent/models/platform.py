"""Payloads exchanged with the remote energy platform."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class WalletInfo(BaseModel):
    """Balance and deposit address held by the platform for one identity."""

    balance: Decimal
    address: str


class RentalSubmission(BaseModel):
    """Successful rental accepted by the platform."""

    cost: Decimal
    new_balance: Decimal
    rental_id: Optional[str] = None
