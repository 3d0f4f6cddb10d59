"""
Chat replies for OperationResults.

This is adapter territory: the core hands back typed results and this module
turns them into the text the bot sends.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict

from energy_rent.models.events import Operation, OperationResult

START_MESSAGE = """Welcome to Energy Rent Bot! ⚡

Available commands:
/start - Show this message
/credit - Check your credit balance
/topup <amount> - Add credit to account
/rentals - View energy rental options
/rent [kWh] - Rent energy units
/myrentals - View your active rentals
/history - View transaction history
/cancel - Abort the current rental
/help - Get help with commands"""

HELP_MESSAGE = """📚 Command Help:

💳 CREDIT MANAGEMENT:
/credit - Check your credit balance
/topup <amount> - Add credit (e.g., /topup 50)

⚡ ENERGY RENTAL:
/rentals - View rental options & pricing
/rent [kWh] - Rent energy (e.g., /rent 10); you will be asked for a wallet address
/myrentals - View your active rentals
/cancel - Abort a rental in progress

📊 HISTORY & INFO:
/history - View all transactions
/help - Show this help message"""

PLAN_NAMES = ("Small", "Medium", "Large")


def _money(value: Any, symbol: str) -> str:
    return f"{symbol}{Decimal(str(value)):.2f}"


def _kwh(value: Any) -> str:
    return format(Decimal(str(value)).normalize(), "f")


def _date(value: Any) -> str:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value.strftime("%Y-%m-%d")


class MessageRenderer:
    """Renders results the way the original chat bot worded them."""

    def __init__(self, currency_symbol: str = "$"):
        self.symbol = currency_symbol
        self._success: Dict[Operation, Callable[[Dict[str, Any]], str]] = {
            Operation.INITIALIZE: lambda d: START_MESSAGE,
            Operation.GET_BALANCE: self._balance,
            Operation.TOPUP: self._topup,
            Operation.REQUEST_RENTAL: self._request_rental,
            Operation.PROVIDE_DESTINATION: self._destination,
            Operation.PROVIDE_ENERGY_AMOUNT: self._rental,
            Operation.GET_ACTIVE_RENTALS: self._rentals,
            Operation.GET_HISTORY: self._history,
            Operation.GET_PRICING: self._pricing,
            Operation.HELP: lambda d: HELP_MESSAGE,
            Operation.CANCEL: lambda d: "Cancelled. Nothing was charged.",
            Operation.UNRECOGNIZED: lambda d: "",
        }

    def render(self, result: OperationResult) -> str:
        if result.ok:
            return self._success[result.operation](result.data)
        return self._error(result)

    # --- Successes ---

    def _balance(self, d: Dict[str, Any]) -> str:
        if d.get("remote"):
            return (
                f"💳 Your Balance: {_money(d['balance'], self.symbol)}\n\n"
                f"Deposit address: {d['address']}"
            )
        return (
            f"💳 Your Credit Balance: {_money(d['balance'], self.symbol)}\n\n"
            f"Active Rentals: {d['active_rentals']}\n"
            f"Total Transactions: {d['transactions']}"
        )

    def _topup(self, d: Dict[str, Any]) -> str:
        if d.get("remote"):
            return f"Send funds to your deposit address:\n{d['deposit_address']}"
        return (
            "✅ Credit added successfully!\n\n"
            f"Added: {_money(d['amount'], self.symbol)}\n"
            f"New Balance: {_money(d['balance'], self.symbol)}"
        )

    def _request_rental(self, d: Dict[str, Any]) -> str:
        if d.get("energy_amount") is not None:
            return f"⚡ Send the wallet address that should receive {_kwh(d['energy_amount'])} kWh."
        return "⚡ Send the wallet address that should receive the energy."

    def _destination(self, d: Dict[str, Any]) -> str:
        # Amount was given with /rent, so the rental is already issued
        if "cost" in d:
            return self._rental(d)
        return "How many kWh do you want to rent? Example: 10"

    def _rental(self, d: Dict[str, Any]) -> str:
        lines = ["⚡ Energy rental successful!", ""]
        if d.get("rental_id"):
            lines.append(f"Rental ID: {d['rental_id']}")
        lines.append(f"Amount: {_kwh(d['energy_amount'])} kWh")
        if d.get("destination"):
            lines.append(f"Destination: {d['destination']}")
        lines.append(f"Cost: {_money(d['cost'], self.symbol)}")
        lines.append(f"Remaining Credit: {_money(d['balance_after'], self.symbol)}")
        return "\n".join(lines)

    def _rentals(self, d: Dict[str, Any]) -> str:
        rentals = d.get("rentals") or []
        if not rentals:
            return "No active rentals."
        parts = ["⚡ Your Active Rentals:", ""]
        for i, r in enumerate(rentals, start=1):
            parts.append(
                f"{i}. {_kwh(r['energy_amount'])} kWh\n"
                f"   ID: {r['rental_id']}\n"
                f"   Cost: {_money(r['cost'], self.symbol)}\n"
                f"   Started: {_date(r['started_at'])}\n"
            )
        return "\n".join(parts).rstrip()

    def _history(self, d: Dict[str, Any]) -> str:
        transactions = d.get("transactions") or []
        if not transactions:
            return "No transaction history yet."
        lines = ["📊 Transaction History:", ""]
        for i, t in enumerate(transactions, start=1):
            kind = getattr(t["kind"], "value", t["kind"])
            if kind == "topup":
                lines.append(
                    f"✅ {i}. Credit Top-up: +{_money(t['amount'], self.symbol)} ({_date(t['timestamp'])})"
                )
            else:
                lines.append(
                    f"⚡ {i}. Energy Rental: {_kwh(t['amount'])} kWh, "
                    f"-{_money(t['cost'], self.symbol)} ({_date(t['timestamp'])})"
                )
        return "\n".join(lines)

    def _pricing(self, d: Dict[str, Any]) -> str:
        lines = [
            "⚡ Energy Rental Options:",
            "",
            f"Energy Price: {_money(d['unit_price'], self.symbol)} per kWh",
            "",
            "Available Plans:",
        ]
        for i, plan in enumerate(d.get("plans") or []):
            name = PLAN_NAMES[i] if i < len(PLAN_NAMES) else f"Plan {i + 1}"
            lines.append(
                f"🔋 {name}: {_kwh(plan['energy_amount'])} kWh - {_money(plan['cost'], self.symbol)}"
            )
        lines.append("🔋 Custom: /rent <amount>")
        return "\n".join(lines)

    # --- Failures ---

    def _error(self, result: OperationResult) -> str:
        error = result.error
        if error is None:
            return "Something went wrong."
        if error.code == "insufficient_funds":
            details = error.details
            return (
                "❌ Insufficient credit!\n\n"
                f"Needed: {_money(details['required'], self.symbol)}\n"
                f"Your Balance: {_money(details['available'], self.symbol)}\n"
                f"Shortfall: {_money(details['shortfall'], self.symbol)}"
            )
        if error.code == "invalid_amount" and result.operation == Operation.TOPUP:
            return "❌ Please provide a valid amount. Example: /topup 50"
        if error.code == "invalid_destination":
            expected = error.details.get("expected")
            suffix = f" Expected {expected}." if expected else ""
            return f"❌ That wallet address is not valid.{suffix} Please send it again."
        if error.code in ("internal_error", "upstream_unavailable"):
            return f"⚠️ {error.message}"
        return f"❌ {error.message}" if error.code == "invalid_amount" else error.message
