"""Conversation Session — where a user is in the rental wizard."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from energy_rent.models.account import utcnow


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_WALLET_ADDRESS = "awaiting_wallet_address"
    AWAITING_ENERGY_AMOUNT = "awaiting_energy_amount"


class ConversationSession(BaseModel):
    """Per-account conversational state. Mutated only by the state machine."""

    account_id: str
    state: ConversationState = ConversationState.IDLE
    pending_destination: Optional[str] = None   # Set only while awaiting the energy amount
    pending_amount: Optional[Decimal] = None    # Amount given up front with /rent <kWh>
    updated_at: datetime = Field(default_factory=utcnow)
