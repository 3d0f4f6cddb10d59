"""
Rental backends — who performs the debit+record step.

The conversation state machine only knows the RentalBackend interface, so the
same wizard drives the local ledger or the remote platform.
"""

from decimal import Decimal
from typing import Optional, Protocol

from energy_rent.models.account import Account, RentalReceipt
from energy_rent.remote.client import PlatformClient
from energy_rent.rentals.engine import RentalEngine


class RentalBackend(Protocol):
    def rent(
        self, account: Account, energy_amount: Decimal, destination: Optional[str]
    ) -> RentalReceipt:
        ...


class LocalRentalBackend:
    """Issues rentals against the in-process ledger."""

    def __init__(self, engine: RentalEngine, unit_price: Decimal):
        self.engine = engine
        self.unit_price = unit_price

    def rent(
        self, account: Account, energy_amount: Decimal, destination: Optional[str]
    ) -> RentalReceipt:
        rental = self.engine.issue_rental(
            account, energy_amount, self.unit_price, destination=destination
        )
        return RentalReceipt(
            rental_id=rental.rental_id,
            energy_amount=rental.energy_amount,
            cost=rental.cost,
            balance_after=account.balance,
            destination=destination,
        )


class RemoteRentalBackend:
    """
    Submits rentals to the platform. The platform call replaces the local
    debit+record step, so nothing is written locally.
    """

    def __init__(self, client: PlatformClient):
        self.client = client

    def rent(
        self, account: Account, energy_amount: Decimal, destination: Optional[str]
    ) -> RentalReceipt:
        submission = self.client.submit_rental(account.account_id, energy_amount, destination)
        return RentalReceipt(
            rental_id=submission.rental_id,
            energy_amount=energy_amount,
            cost=submission.cost,
            balance_after=submission.new_balance,
            destination=destination,
            remote=True,
        )
