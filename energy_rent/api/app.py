"""
Energy Rent API — FastAPI endpoints for chat-platform adapters.

Exposes:
- Inbound event handling (commands, free text, button taps)
- Account, ledger and session inspection
- Pricing
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from energy_rent.core.errors import AccountNotInitialized
from energy_rent.core.log import configure_logging
from energy_rent.core.settings import Settings, get_settings
from energy_rent.dispatch.router import EventRouter, build_router
from energy_rent.models.events import EventKind, InboundEvent
from energy_rent.presentation.messages import MessageRenderer


# --- Request/Response Models ---

class EventRequest(BaseModel):
    identity: str
    kind: EventKind
    payload: str = ""
    display_name: Optional[str] = None


class EventResponse(BaseModel):
    result: dict
    reply: str


# --- Application Factory ---

def create_app(
    router: Optional[EventRouter] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = router.settings if router is not None else get_settings()
    configure_logging(settings.log_level)

    rt = router or build_router(settings)
    renderer = MessageRenderer(settings.pricing.currency_symbol)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        rt.close()

    app = FastAPI(
        title="Energy Rent API",
        description="Conversation state machine and account ledger for energy rental",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.router = rt
    app.state.renderer = renderer

    def _account(identity: str):
        try:
            return rt.registry.get_account(identity)
        except AccountNotInitialized as e:
            raise HTTPException(404, e.message)

    # === EVENTS ===

    @app.post("/events", response_model=EventResponse)
    def handle_event(req: EventRequest):
        """Handle one inbound chat event and return the typed result plus reply text."""
        event = InboundEvent(
            identity=req.identity,
            kind=req.kind,
            payload=req.payload,
            display_name=req.display_name,
        )
        result = rt.handle(event)
        return EventResponse(
            result=result.model_dump(mode="json"),
            reply=renderer.render(result),
        )

    # === ACCOUNTS ===

    @app.get("/accounts/{identity}")
    def get_account(identity: str):
        account = _account(identity)
        with account.lock:
            return {
                "account_id": account.account_id,
                "display_name": account.display_name,
                "balance": str(account.balance),
                "active_rentals": len(account.active_rentals),
                "transactions": len(account.transactions),
                "consistent": rt.ledger.is_consistent(account),
            }

    @app.get("/accounts/{identity}/transactions")
    def list_transactions(identity: str):
        account = _account(identity)
        return [t.model_dump(mode="json") for t in rt.ledger.list_transactions(account)]

    @app.get("/accounts/{identity}/rentals")
    def list_rentals(identity: str):
        account = _account(identity)
        return [r.model_dump(mode="json") for r in rt.ledger.list_active_rentals(account)]

    @app.get("/accounts/{identity}/session")
    def get_session(identity: str):
        _account(identity)
        return rt.registry.get_session(identity).model_dump(mode="json")

    # === PRICING ===

    @app.get("/pricing")
    def get_pricing():
        unit_price = settings.unit_price
        return {
            "unit_price": str(unit_price),
            "plans": [
                {"energy_amount": str(p["energy_amount"]), "cost": str(p["cost"])}
                for p in rt.engine.pricing(unit_price, settings.pricing.plans)
            ],
        }

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "remote": rt.remote,
            "accounts": len(rt.registry.accounts.keys()),
        }

    return app


# Default application instance
app = create_app()
