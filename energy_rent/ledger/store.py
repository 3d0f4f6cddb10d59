"""
Ledger Store — per-account balance, transaction log and active-rental log.

Behavioral Contract:
- balance >= 0 at all times; no operation may drive it negative
- The transaction log is append-only; entries are immutable
- sum(topup.amount) - sum(rental.cost) == balance after every compound operation
- Queries return insertion-ordered tuples, never the live lists
- Every mutation runs under the account's lock
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Tuple

from energy_rent.core.errors import InsufficientFunds, InvalidAmount, LedgerInvariantError
from energy_rent.core.log import get_logger
from energy_rent.models.account import (
    Account,
    Rental,
    Transaction,
    TransactionKind,
    utcnow,
)

logger = get_logger(__name__)

ZERO = Decimal("0")

LedgerSnapshot = Tuple[Decimal, int, int]


def to_amount(value: Any) -> Decimal:
    """
    Coerce user or caller input into a positive finite Decimal.

    Raises InvalidAmount for anything else (non-numeric, NaN, infinity, <= 0).
    """
    if isinstance(value, bool):
        raise InvalidAmount(value)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(value)
    if not amount.is_finite() or amount <= ZERO:
        raise InvalidAmount(value)
    return amount


class LedgerStore:
    """Ledger operations over Account objects."""

    def __init__(self, strict_invariants: bool = True):
        self.strict_invariants = strict_invariants

    # --- Mutations ---

    def credit(self, account: Account, amount: Any) -> Transaction:
        """Top up the balance. Balance and log change together or not at all."""
        value = to_amount(amount)
        with account.lock:
            transaction = Transaction(
                kind=TransactionKind.TOPUP,
                amount=value,
                timestamp=utcnow(),
                description="Credit top-up",
            )
            snapshot = self.snapshot(account)
            try:
                self.record_transaction(account, transaction)
                account.balance = account.balance + value
            except Exception:
                self.restore(account, snapshot)
                raise
            self.check_invariants(account)

        logger.info(
            "Credit added",
            extra={"account_id": account.account_id, "amount": str(value)},
        )
        return transaction

    def debit(self, account: Account, amount: Any) -> Decimal:
        """Take amount from the balance. Returns the new balance."""
        value = to_amount(amount)
        with account.lock:
            if value > account.balance:
                raise InsufficientFunds(required=value, available=account.balance)
            account.balance = account.balance - value
            if account.balance < ZERO:
                raise LedgerInvariantError(account.account_id, "negative balance after debit")
            return account.balance

    def record_transaction(self, account: Account, transaction: Transaction) -> None:
        """Append to the transaction log. Prior entries are never touched."""
        with account.lock:
            account.transactions.append(transaction)

    def add_rental(self, account: Account, rental: Rental) -> None:
        with account.lock:
            account.active_rentals.append(rental)

    # --- Atomicity helpers ---

    def snapshot(self, account: Account) -> LedgerSnapshot:
        return (account.balance, len(account.active_rentals), len(account.transactions))

    def restore(self, account: Account, snapshot: LedgerSnapshot) -> None:
        """Roll the account back to a snapshot taken under the same lock."""
        balance, rental_count, transaction_count = snapshot
        with account.lock:
            account.balance = balance
            del account.active_rentals[rental_count:]
            del account.transactions[transaction_count:]

    # --- Queries ---

    def get_balance(self, account: Account) -> Decimal:
        return account.balance

    def list_transactions(self, account: Account) -> Tuple[Transaction, ...]:
        with account.lock:
            return tuple(account.transactions)

    def list_active_rentals(self, account: Account) -> Tuple[Rental, ...]:
        with account.lock:
            return tuple(account.active_rentals)

    # --- Invariants ---

    def expected_balance(self, account: Account) -> Decimal:
        """Balance implied by the transaction log."""
        total = ZERO
        for t in account.transactions:
            if t.kind == TransactionKind.TOPUP:
                total += t.amount
            elif t.kind == TransactionKind.RENTAL:
                total -= t.cost or ZERO
        return total

    def is_consistent(self, account: Account) -> bool:
        with account.lock:
            return account.balance >= ZERO and account.balance == self.expected_balance(account)

    def check_invariants(self, account: Account) -> None:
        """Raise LedgerInvariantError if the ledger no longer adds up."""
        if not self.strict_invariants:
            return
        with account.lock:
            if account.balance < ZERO:
                raise LedgerInvariantError(account.account_id, "negative balance")
            expected = self.expected_balance(account)
            if account.balance != expected:
                raise LedgerInvariantError(
                    account.account_id,
                    f"balance {account.balance} does not match ledger total {expected}",
                )
