"""Tests for core data models."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from energy_rent.models import (
    Account,
    ConversationSession,
    ConversationState,
    EventKind,
    InboundEvent,
    Operation,
    OperationResult,
    Rental,
    RentalStatus,
    Transaction,
    TransactionKind,
)


class TestAccount:
    def test_new_account_is_empty(self):
        account = Account(account_id="42", display_name="alice")
        assert account.balance == Decimal("0")
        assert account.active_rentals == []
        assert account.transactions == []

    def test_negative_opening_balance_rejected(self):
        with pytest.raises(Exception):
            Account(account_id="42", balance=Decimal("-1"))

    def test_accounts_do_not_share_lists(self):
        a = Account(account_id="1")
        b = Account(account_id="2")
        a.transactions.append(
            Transaction(
                kind=TransactionKind.TOPUP,
                amount=Decimal("5"),
                timestamp=datetime.now(timezone.utc),
            )
        )
        assert b.transactions == []

    def test_each_account_has_its_own_lock(self):
        a = Account(account_id="1")
        b = Account(account_id="2")
        assert a.lock is not b.lock
        with a.lock:
            with a.lock:  # re-entrant
                pass


class TestRentalAndTransaction:
    def test_rental_is_immutable(self):
        rental = Rental(
            rental_id="RENT-1",
            energy_amount=Decimal("10"),
            cost=Decimal("5"),
            started_at=datetime.now(timezone.utc),
        )
        assert rental.status == RentalStatus.ACTIVE
        with pytest.raises(Exception):
            rental.cost = Decimal("0")

    def test_rental_requires_positive_energy(self):
        with pytest.raises(Exception):
            Rental(
                rental_id="RENT-1",
                energy_amount=Decimal("0"),
                cost=Decimal("0"),
                started_at=datetime.now(timezone.utc),
            )

    def test_transaction_is_immutable(self):
        t = Transaction(
            kind=TransactionKind.TOPUP,
            amount=Decimal("50"),
            timestamp=datetime.now(timezone.utc),
        )
        with pytest.raises(Exception):
            t.amount = Decimal("500")


class TestSessionAndEvents:
    def test_session_starts_idle(self):
        session = ConversationSession(account_id="42")
        assert session.state == ConversationState.IDLE
        assert session.pending_destination is None

    def test_integer_identity_coerced(self):
        event = InboundEvent(identity=42, kind=EventKind.COMMAND, payload="/start")
        assert event.identity == "42"

    def test_result_constructors(self):
        ok = OperationResult.success(Operation.TOPUP, amount=Decimal("5"))
        assert ok.ok is True
        assert ok.error is None

        failed = OperationResult.failure(Operation.TOPUP, "invalid_amount", "bad")
        assert failed.ok is False
        assert failed.error.code == "invalid_amount"

    def test_result_serializes_decimals(self):
        ok = OperationResult.success(Operation.GET_BALANCE, balance=Decimal("12.50"))
        assert ok.model_dump(mode="json")["data"]["balance"] == "12.50"
