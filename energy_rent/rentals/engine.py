"""
Rental Engine — price quotes and rental issuance against a balance.

Behavioral Contract:
- quote is exact Decimal arithmetic; rounding is a presentation concern
- issue_rental either debits AND records the rental and its transaction, or
  changes nothing (the account is restored to its pre-call snapshot)
- InsufficientFunds propagates unchanged with the exact shortfall
- Rental ids stay unique under high-frequency issuance
"""

import itertools
import threading
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from energy_rent.core.log import get_logger
from energy_rent.ledger.store import ZERO, LedgerStore, to_amount
from energy_rent.models.account import (
    Account,
    Rental,
    RentalStatus,
    Transaction,
    TransactionKind,
    utcnow,
)

logger = get_logger(__name__)


class RentalIdGenerator:
    """Monotonic counter plus a random suffix: RENT-000001-1a2b3c4d."""

    def __init__(self, prefix: str = "RENT", start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            n = next(self._counter)
        return f"{self.prefix}-{n:06d}-{uuid4().hex[:8]}"


def quote(energy_amount: Any, unit_price: Any) -> Decimal:
    """Cost of energy_amount kWh at unit_price. No rounding."""
    return Decimal(str(energy_amount)) * Decimal(str(unit_price))


class RentalEngine:
    """Issues rentals against the local ledger."""

    def __init__(
        self,
        ledger: LedgerStore,
        id_generator: Optional[Callable[[], str]] = None,
    ):
        self.ledger = ledger
        self.id_generator = id_generator or RentalIdGenerator()

    def quote(self, energy_amount: Any, unit_price: Any) -> Decimal:
        return quote(energy_amount, unit_price)

    def pricing(self, unit_price: Any, plans: Sequence[Any]) -> List[Dict[str, Decimal]]:
        """Preset plans quoted at unit_price."""
        return [
            {"energy_amount": Decimal(str(p)), "cost": self.quote(p, unit_price)}
            for p in plans
        ]

    def issue_rental(
        self,
        account: Account,
        energy_amount: Any,
        unit_price: Any,
        destination: Optional[str] = None,
    ) -> Rental:
        """
        Debit the quoted cost and record an active rental.

        Raises InvalidAmount for a non-positive amount and InsufficientFunds
        when the cost exceeds the balance. Neither leaves any trace.
        """
        amount = to_amount(energy_amount)
        cost = self.quote(amount, unit_price)

        with account.lock:
            snapshot = self.ledger.snapshot(account)
            if cost > ZERO:
                self.ledger.debit(account, cost)
            try:
                rental = Rental(
                    rental_id=self.id_generator(),
                    energy_amount=amount,
                    cost=cost,
                    started_at=utcnow(),
                    status=RentalStatus.ACTIVE,
                    destination=destination,
                )
                self.ledger.add_rental(account, rental)
                self.ledger.record_transaction(
                    account,
                    Transaction(
                        kind=TransactionKind.RENTAL,
                        amount=amount,
                        cost=cost,
                        timestamp=rental.started_at,
                        rental_id=rental.rental_id,
                        description=f"Energy rental: {amount} kWh",
                    ),
                )
            except Exception:
                self.ledger.restore(account, snapshot)
                logger.warning(
                    "Rental rolled back",
                    extra={"account_id": account.account_id, "energy_amount": str(amount)},
                )
                raise
            self.ledger.check_invariants(account)

        logger.info(
            "Rental issued",
            extra={
                "account_id": account.account_id,
                "rental_id": rental.rental_id,
                "energy_amount": str(amount),
                "cost": str(cost),
            },
        )
        return rental
