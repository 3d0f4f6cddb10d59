"""Tests for the Event Router."""

from decimal import Decimal

import pytest

from energy_rent.accounts.registry import AccountRegistry
from energy_rent.core.errors import LedgerInvariantError
from energy_rent.core.settings import Settings
from energy_rent.dispatch.router import build_router
from energy_rent.models.events import EventKind, InboundEvent, Operation
from energy_rent.models.session import ConversationState

VALID_ADDRESS = "TJRabPrwbZy45sbavfcjinPJC18kjpRTv8"


def _command(payload: str, identity: str = "42") -> InboundEvent:
    return InboundEvent(identity=identity, kind=EventKind.COMMAND, payload=payload, display_name="alice")


def _text(payload: str, identity: str = "42") -> InboundEvent:
    return InboundEvent(identity=identity, kind=EventKind.TEXT, payload=payload)


@pytest.fixture
def router():
    return build_router(Settings(strict_invariants=True), registry=AccountRegistry())


class TestInitialization:
    def test_start_creates_account(self, router):
        result = router.handle(_command("/start"))
        assert result.ok
        assert result.operation == Operation.INITIALIZE
        assert result.data["account_id"] == "42"
        assert router.registry.get_account("42").display_name == "alice"

    @pytest.mark.parametrize("payload", ["/credit", "/topup 5", "/rent", "/history", "/myrentals"])
    def test_commands_before_start_rejected(self, router, payload):
        result = router.handle(_command(payload))
        assert not result.ok
        assert result.error.code == "account_not_initialized"
        assert router.registry.find_account("42") is None

    def test_text_before_start_rejected(self, router):
        result = router.handle(_text("hello"))
        assert result.error.code == "account_not_initialized"

    def test_start_twice_keeps_balance(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/topup 30"))
        router.handle(_command("/start"))
        assert router.handle(_command("/credit")).data["balance"] == Decimal("30")


class TestLedgerOperations:
    def test_topup_and_balance(self, router):
        router.handle(_command("/start"))
        result = router.handle(_command("/topup 50"))
        assert result.ok
        assert result.data == {"amount": Decimal("50"), "balance": Decimal("50")}

        balance = router.handle(_command("/credit"))
        assert balance.data == {"balance": Decimal("50"), "active_rentals": 0, "transactions": 1}

    @pytest.mark.parametrize("payload", ["/topup", "/topup abc", "/topup -5", "/topup 0"])
    def test_invalid_topup(self, router, payload):
        router.handle(_command("/start"))
        result = router.handle(_command(payload))
        assert result.error.code == "invalid_amount"
        assert result.operation == Operation.TOPUP

    def test_history_and_rentals(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/topup 10"))
        router.handle(_command("/rent"))
        router.handle(_text(VALID_ADDRESS))
        router.handle(_text("4"))

        history = router.handle(_command("/history")).data["transactions"]
        assert [t["kind"].value for t in history] == ["topup", "rental"]

        rentals = router.handle(_command("/myrentals")).data["rentals"]
        assert len(rentals) == 1
        assert rentals[0]["destination"] == VALID_ADDRESS

    def test_pricing(self, router):
        router.handle(_command("/start"))
        data = router.handle(_command("/rentals")).data
        assert data["unit_price"] == Decimal("0.50")
        assert [p["energy_amount"] for p in data["plans"]] == [Decimal("10"), Decimal("25"), Decimal("50")]


class TestRentalConversation:
    def test_wizard_end_to_end(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/topup 5"))

        assert router.handle(_command("/rent")).data["state"] == "awaiting_wallet_address"
        assert router.handle(_text(VALID_ADDRESS)).data["state"] == "awaiting_energy_amount"

        result = router.handle(_text("10"))
        assert result.ok
        assert result.operation == Operation.PROVIDE_ENERGY_AMOUNT
        assert result.data["energy_amount"] == Decimal("10")
        assert result.data["cost"] == Decimal("5.0")
        assert result.data["balance_after"] == Decimal("0.0")
        assert result.data["state"] == "idle"

        session = router.registry.get_session("42")
        assert session.state == ConversationState.IDLE
        assert session.pending_destination is None

    def test_malformed_destination(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/rent"))
        result = router.handle(_text("abc"))
        assert result.error.code == "invalid_destination"
        assert result.operation == Operation.PROVIDE_DESTINATION
        assert router.registry.get_session("42").state == ConversationState.AWAITING_WALLET_ADDRESS

    def test_insufficient_funds_reports_shortfall(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/rent"))
        router.handle(_text(VALID_ADDRESS))
        result = router.handle(_text("10"))
        assert result.error.code == "insufficient_funds"
        assert Decimal(result.error.details["shortfall"]) == Decimal("5")
        assert router.registry.get_session("42").state == ConversationState.IDLE
        assert router.registry.get_account("42").transactions == []

    def test_commands_during_wizard_do_not_cancel(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/rent"))
        router.handle(_text(VALID_ADDRESS))
        assert router.handle(_command("/credit")).ok
        session = router.registry.get_session("42")
        assert session.state == ConversationState.AWAITING_ENERGY_AMOUNT
        assert session.pending_destination == VALID_ADDRESS

    def test_unknown_command_during_wizard(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/rent"))
        result = router.handle(_command("/dance"))
        assert result.error.code == "unrecognized_input"
        assert result.error.details["state"] == "awaiting_wallet_address"

    def test_idle_text_unrecognized(self, router):
        router.handle(_command("/start"))
        result = router.handle(_text("hello"))
        assert result.operation == Operation.UNRECOGNIZED
        assert result.error.code == "unrecognized_input"

    def test_rent_with_amount_issues_once_destination_arrives(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/topup 50"))

        started = router.handle(_command("/rent 10"))
        assert started.data == {"state": "awaiting_wallet_address", "energy_amount": Decimal("10")}

        result = router.handle(_text(VALID_ADDRESS))
        assert result.ok
        assert result.operation == Operation.PROVIDE_DESTINATION
        assert result.data["energy_amount"] == Decimal("10")
        assert result.data["cost"] == Decimal("5.0")
        assert result.data["balance_after"] == Decimal("45")
        assert result.data["destination"] == VALID_ADDRESS
        assert result.data["state"] == "idle"

        session = router.registry.get_session("42")
        assert session.pending_amount is None
        assert session.pending_destination is None
        assert len(router.registry.get_account("42").active_rentals) == 1

    def test_rent_button_with_amount(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/topup 50"))
        button = InboundEvent(identity="42", kind=EventKind.BUTTON, payload='{"action": "rent", "amount": 25}')
        assert router.handle(button).data["energy_amount"] == Decimal("25")
        assert router.handle(_text(VALID_ADDRESS)).data["cost"] == Decimal("12.5")

    def test_rent_with_invalid_amount(self, router):
        router.handle(_command("/start"))
        result = router.handle(_command("/rent lots"))
        assert result.error.code == "invalid_amount"
        assert result.operation == Operation.REQUEST_RENTAL
        assert router.registry.get_session("42").state == ConversationState.IDLE

    def test_rent_with_amount_insufficient_funds(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/rent 10"))
        result = router.handle(_text(VALID_ADDRESS))
        assert result.error.code == "insufficient_funds"
        assert Decimal(result.error.details["shortfall"]) == Decimal("5")
        session = router.registry.get_session("42")
        assert session.state == ConversationState.IDLE
        assert session.pending_amount is None

    def test_cancel(self, router):
        router.handle(_command("/start"))
        router.handle(_command("/rent"))
        result = router.handle(_command("/cancel"))
        assert result.data == {"cancelled_state": "awaiting_wallet_address", "state": "idle"}


class TestIsolation:
    def test_unexpected_error_confined_to_operation(self, router, monkeypatch):
        router.handle(_command("/start", identity="1"))
        router.handle(_command("/start", identity="2"))
        router.handle(_command("/topup 10", identity="2"))

        def boom(account, session, argument):
            raise KeyError("bug")

        monkeypatch.setitem(router._handlers, Operation.GET_HISTORY, boom)
        result = router.handle(_command("/history", identity="1"))
        assert result.error.code == "internal_error"

        assert router.handle(_command("/credit", identity="2")).data["balance"] == Decimal("10")

    def test_invariant_violation_is_loud_in_strict_mode(self, router):
        router.handle(_command("/start"))
        router.registry.get_account("42").balance = Decimal("1")
        with pytest.raises(LedgerInvariantError):
            router.handle(_command("/topup 5"))

    def test_invariant_violation_reported_when_lenient(self):
        router = build_router(Settings(strict_invariants=False), registry=AccountRegistry())
        router.handle(_command("/start"))

        def broken(account, amount):
            raise LedgerInvariantError(account.account_id, "test")

        router.ledger.credit = broken
        result = router.handle(_command("/topup 5"))
        assert result.error.code == "internal_error"
