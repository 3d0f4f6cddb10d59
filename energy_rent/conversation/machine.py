"""
Conversation State Machine — the two-step rental wizard.

States:
  IDLE → AWAITING_WALLET_ADDRESS → AWAITING_ENERGY_AMOUNT → IDLE
  IDLE → AWAITING_WALLET_ADDRESS → IDLE          (amount given with /rent <kWh>)

Behavioral Contract:
- Invalid replies keep the current state and raise a typed error
- Issuing a rental always returns the session to IDLE and clears the
  pending destination and amount, whatever the issuance outcome
- Unrelated input never changes state or pending values
- Every ConversationState has a text handler; a missing one fails at construction
"""

from decimal import Decimal
from typing import Dict, Optional

from energy_rent.conversation.destination import DestinationValidator
from energy_rent.core.errors import InvalidAmount, UnrecognizedInput
from energy_rent.core.log import get_logger
from energy_rent.ledger.store import to_amount
from energy_rent.models.account import Account, RentalReceipt, utcnow
from energy_rent.models.events import Operation
from energy_rent.models.session import ConversationSession, ConversationState
from energy_rent.rentals.backends import RentalBackend

logger = get_logger(__name__)


def parse_energy_amount(text: str):
    """Accepts '10', ' 12.5 ', '10 kWh'."""
    cleaned = (text or "").strip()
    if cleaned.lower().endswith("kwh"):
        cleaned = cleaned[:-3].strip()
    try:
        return to_amount(cleaned)
    except InvalidAmount:
        raise InvalidAmount(text, "Please provide a valid energy amount in kWh. Example: 10")


class ConversationStateMachine:
    """Drives one session at a time. Callers hold the account lock."""

    def __init__(self, backend: RentalBackend, validator: DestinationValidator):
        self.backend = backend
        self.validator = validator
        self._text_operations: Dict[ConversationState, Operation] = {
            ConversationState.IDLE: Operation.UNRECOGNIZED,
            ConversationState.AWAITING_WALLET_ADDRESS: Operation.PROVIDE_DESTINATION,
            ConversationState.AWAITING_ENERGY_AMOUNT: Operation.PROVIDE_ENERGY_AMOUNT,
        }
        missing = set(ConversationState) - set(self._text_operations)
        if missing:
            raise RuntimeError(
                f"No text handling for states: {sorted(s.value for s in missing)}"
            )

    def operation_for_text(self, session: ConversationSession) -> Operation:
        """Which operation a free-text reply means in the session's current state."""
        return self._text_operations[session.state]

    # --- Transitions ---

    def request_rental(
        self, session: ConversationSession, amount_text: Optional[str] = None
    ) -> ConversationSession:
        """
        Start (or restart) the wizard.

        An amount given up front is validated now and remembered, so the
        rental is issued as soon as the destination arrives. An invalid
        amount leaves the session untouched.
        """
        amount = parse_energy_amount(amount_text) if amount_text else None
        if session.state != ConversationState.IDLE:
            logger.info(
                "Rental wizard restarted",
                extra={"account_id": session.account_id, "from_state": session.state.value},
            )
        self._move(session, ConversationState.AWAITING_WALLET_ADDRESS, pending_amount=amount)
        return session

    def provide_destination(self, session: ConversationSession, text: str) -> str:
        """Store a valid destination and ask for the energy amount."""
        self._require(session, ConversationState.AWAITING_WALLET_ADDRESS, text)
        destination = self.validator.validate(text)
        self._move(
            session,
            ConversationState.AWAITING_ENERGY_AMOUNT,
            pending_destination=destination,
            pending_amount=session.pending_amount,
        )
        return destination

    def provide_energy_amount(
        self, account: Account, session: ConversationSession, text: str
    ) -> RentalReceipt:
        """Issue the rental for the pending destination and finish the flow."""
        self._require(session, ConversationState.AWAITING_ENERGY_AMOUNT, text)
        return self._issue(account, session, parse_energy_amount(text))

    def rent_pending(self, account: Account, session: ConversationSession) -> RentalReceipt:
        """Issue the rental for the amount given with the original request."""
        self._require(session, ConversationState.AWAITING_ENERGY_AMOUNT, "")
        if session.pending_amount is None:
            raise UnrecognizedInput("", session.state.value)
        return self._issue(account, session, session.pending_amount)

    def cancel(self, session: ConversationSession) -> ConversationState:
        """Abort any pending flow. Returns the state that was abandoned."""
        previous = session.state
        self._move(session, ConversationState.IDLE)
        return previous

    def reject(self, session: ConversationSession, text: str) -> None:
        """Unrelated input: no transition."""
        raise UnrecognizedInput(text, session.state.value)

    # --- Internals ---

    def _issue(self, account: Account, session: ConversationSession, amount: Decimal) -> RentalReceipt:
        try:
            return self.backend.rent(account, amount, session.pending_destination)
        finally:
            self._move(session, ConversationState.IDLE)

    def _require(self, session: ConversationSession, state: ConversationState, text: str) -> None:
        if session.state != state:
            raise UnrecognizedInput(text, session.state.value)

    def _move(
        self,
        session: ConversationSession,
        state: ConversationState,
        pending_destination: Optional[str] = None,
        pending_amount: Optional[Decimal] = None,
    ) -> None:
        session.state = state
        session.pending_destination = pending_destination
        session.pending_amount = pending_amount
        session.updated_at = utcnow()
