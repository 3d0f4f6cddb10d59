"""
Event Router — one inbound event in, one typed OperationResult out.

Behavioral Contract:
- Only `initialize` may create an account; anything else for an unknown
  identity yields account_not_initialized
- Normalization and execution for one account run under that account's lock,
  so two events from the same identity never interleave. Remote wallet reads
  are the exception: they run after the lock is released
- Recoverable errors become failed results; unexpected errors are logged and
  confined to the single operation in progress
"""

from typing import Any, Callable, Dict, Optional

from energy_rent.accounts.registry import AccountRegistry
from energy_rent.conversation.destination import DestinationValidator
from energy_rent.conversation.machine import ConversationStateMachine
from energy_rent.core.errors import AccountNotInitialized, EnergyRentError, LedgerInvariantError
from energy_rent.core.log import get_logger
from energy_rent.core.settings import Settings, get_settings
from energy_rent.dispatch.normalizer import COMMAND_ALIASES, normalize
from energy_rent.ledger.store import LedgerStore
from energy_rent.models.account import Account
from energy_rent.models.events import InboundEvent, NormalizedCommand, Operation, OperationResult
from energy_rent.models.session import ConversationSession
from energy_rent.remote.client import PlatformClient
from energy_rent.rentals.backends import LocalRentalBackend, RemoteRentalBackend
from energy_rent.rentals.engine import RentalEngine

logger = get_logger(__name__)

Handler = Callable[[Account, ConversationSession, Optional[str]], Dict[str, Any]]


class EventRouter:
    """Resolves identities, serializes per account and executes operations."""

    def __init__(
        self,
        registry: AccountRegistry,
        ledger: LedgerStore,
        engine: RentalEngine,
        machine: ConversationStateMachine,
        settings: Optional[Settings] = None,
        platform: Optional[PlatformClient] = None,
    ):
        self.registry = registry
        self.ledger = ledger
        self.engine = engine
        self.machine = machine
        self.settings = settings or get_settings()
        self.platform = platform

        self._handlers: Dict[Operation, Handler] = {
            Operation.INITIALIZE: self._initialize,
            Operation.GET_BALANCE: self._get_balance,
            Operation.TOPUP: self._topup,
            Operation.REQUEST_RENTAL: self._request_rental,
            Operation.PROVIDE_DESTINATION: self._provide_destination,
            Operation.PROVIDE_ENERGY_AMOUNT: self._provide_energy_amount,
            Operation.GET_ACTIVE_RENTALS: self._get_active_rentals,
            Operation.GET_HISTORY: self._get_history,
            Operation.GET_PRICING: self._get_pricing,
            Operation.HELP: self._help,
            Operation.CANCEL: self._cancel,
            Operation.UNRECOGNIZED: self._unrecognized,
        }
        missing = set(Operation) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for operations: {sorted(o.value for o in missing)}")

        # Operations that run without the account lock
        self._unlocked = (
            frozenset({Operation.GET_BALANCE, Operation.TOPUP}) if self.remote else frozenset()
        )

    @property
    def remote(self) -> bool:
        return self.platform is not None

    def close(self) -> None:
        """Release the platform connection pool, if any."""
        if self.platform is not None:
            self.platform.close()

    def handle(self, event: InboundEvent) -> OperationResult:
        """Execute one inbound event."""
        operation = Operation.UNRECOGNIZED
        try:
            account = self.registry.find_account(event.identity)
            if account is None:
                # No session yet: free text cannot mean anything but a command
                command = normalize(event, Operation.UNRECOGNIZED)
                operation = command.operation
                if operation != Operation.INITIALIZE:
                    raise AccountNotInitialized(event.identity)
                account = self.registry.ensure_account(event.identity, event.display_name)

            with account.lock:
                session = self.registry.get_session(account.account_id)
                command = normalize(event, self.machine.operation_for_text(session))
                operation = command.operation
                if operation not in self._unlocked:
                    return OperationResult.success(operation, **self._execute(account, session, command))
            # Platform reads touch no local state and may retry for a while
            return OperationResult.success(operation, **self._execute(account, session, command))

        except EnergyRentError as e:
            logger.warning(
                "Operation refused",
                extra={"identity": event.identity, "operation": operation.value, "code": e.code},
            )
            return OperationResult.failure(operation, e.code, e.message, e.details)
        except LedgerInvariantError:
            logger.critical(
                "Ledger invariant violated",
                extra={"identity": event.identity, "operation": operation.value},
                exc_info=True,
            )
            if self.settings.strict_invariants:
                raise
            return OperationResult.failure(operation, "internal_error", "Something went wrong.")
        except Exception:
            logger.exception(
                "Operation failed",
                extra={"identity": event.identity, "operation": operation.value},
            )
            return OperationResult.failure(operation, "internal_error", "Something went wrong.")

    def _execute(
        self, account: Account, session: ConversationSession, command: NormalizedCommand
    ) -> Dict[str, Any]:
        return self._handlers[command.operation](account, session, command.argument)

    # --- Handlers ---

    def _initialize(self, account, session, argument):
        return {
            "account_id": account.account_id,
            "display_name": account.display_name,
            "balance": account.balance,
        }

    def _get_balance(self, account, session, argument):
        if self.remote:
            wallet = self.platform.fetch_wallet(account.account_id)
            return {"balance": wallet.balance, "address": wallet.address, "remote": True}
        return {
            "balance": self.ledger.get_balance(account),
            "active_rentals": len(self.ledger.list_active_rentals(account)),
            "transactions": len(self.ledger.list_transactions(account)),
        }

    def _topup(self, account, session, argument):
        if self.remote:
            # The platform credits on-chain deposits; hand out the address
            wallet = self.platform.fetch_wallet(account.account_id)
            return {"deposit_address": wallet.address, "balance": wallet.balance, "remote": True}
        transaction = self.ledger.credit(account, argument)
        return {"amount": transaction.amount, "balance": account.balance}

    def _request_rental(self, account, session, argument):
        self.machine.request_rental(session, argument)
        data = {"state": session.state.value}
        if session.pending_amount is not None:
            data["energy_amount"] = session.pending_amount
        return data

    def _provide_destination(self, account, session, argument):
        destination = self.machine.provide_destination(session, argument or "")
        if session.pending_amount is not None:
            receipt = self.machine.rent_pending(account, session)
            return {**receipt.model_dump(), "state": session.state.value}
        return {"destination": destination, "state": session.state.value}

    def _provide_energy_amount(self, account, session, argument):
        receipt = self.machine.provide_energy_amount(account, session, argument or "")
        return {**receipt.model_dump(), "state": session.state.value}

    def _get_active_rentals(self, account, session, argument):
        return {"rentals": [r.model_dump() for r in self.ledger.list_active_rentals(account)]}

    def _get_history(self, account, session, argument):
        return {"transactions": [t.model_dump() for t in self.ledger.list_transactions(account)]}

    def _get_pricing(self, account, session, argument):
        unit_price = self.settings.unit_price
        return {
            "unit_price": unit_price,
            "plans": self.engine.pricing(unit_price, self.settings.pricing.plans),
        }

    def _help(self, account, session, argument):
        return {"commands": sorted(COMMAND_ALIASES)}

    def _cancel(self, account, session, argument):
        previous = self.machine.cancel(session)
        return {"cancelled_state": previous.value, "state": session.state.value}

    def _unrecognized(self, account, session, argument):
        self.machine.reject(session, argument or "")
        return {}


def build_router(
    settings: Optional[Settings] = None,
    registry: Optional[AccountRegistry] = None,
    platform: Optional[PlatformClient] = None,
) -> EventRouter:
    """Wire the default in-memory core, or the remote variant when configured."""
    settings = settings or get_settings()
    registry = registry or AccountRegistry()
    ledger = LedgerStore(strict_invariants=settings.strict_invariants)
    engine = RentalEngine(ledger)

    if platform is None and settings.remote_enabled:
        platform = PlatformClient(settings.platform)

    if platform is not None:
        backend = RemoteRentalBackend(platform)
    else:
        backend = LocalRentalBackend(engine, settings.unit_price)

    machine = ConversationStateMachine(backend, DestinationValidator(settings.destination))
    return EventRouter(registry, ledger, engine, machine, settings=settings, platform=platform)
