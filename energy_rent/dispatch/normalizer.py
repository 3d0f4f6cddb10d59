"""Maps raw commands, button payloads and free text onto core operations."""

import json
from typing import Dict, Optional, Tuple

from energy_rent.models.events import EventKind, InboundEvent, NormalizedCommand, Operation

COMMAND_ALIASES: Dict[str, Operation] = {
    "start": Operation.INITIALIZE,
    "credit": Operation.GET_BALANCE,
    "balance": Operation.GET_BALANCE,
    "topup": Operation.TOPUP,
    "rentals": Operation.GET_PRICING,
    "rent": Operation.REQUEST_RENTAL,
    "myrentals": Operation.GET_ACTIVE_RENTALS,
    "history": Operation.GET_HISTORY,
    "help": Operation.HELP,
    "cancel": Operation.CANCEL,
}

BUTTON_ALIASES: Dict[str, Operation] = {
    **COMMAND_ALIASES,
    "support": Operation.HELP,
}


def split_command(payload: str) -> Tuple[str, Optional[str]]:
    """'/topup@EnergyBot 50' -> ('topup', '50')."""
    text = (payload or "").strip()
    if text.startswith("/"):
        text = text[1:]
    head, _, rest = text.partition(" ")
    name = head.split("@", 1)[0].lower()
    argument = rest.strip() or None
    return name, argument


def parse_button(payload: str) -> Tuple[str, Optional[str]]:
    """Button payloads: 'rent', 'topup:50' or web-app JSON {"action": "rent"}."""
    text = (payload or "").strip()
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError:
            return "", None
        if not isinstance(data, dict):
            return "", None
        argument = data.get("amount")
        return str(data.get("action", "")).lower(), (str(argument) if argument is not None else None)
    name, _, argument = text.partition(":")
    return name.strip().lower(), (argument.strip() or None)


def normalize(event: InboundEvent, text_operation: Operation) -> NormalizedCommand:
    """
    Resolve an event to an operation.

    text_operation is what free text means in the sender's current
    conversation state; it is ignored for commands and buttons.
    """
    if event.kind == EventKind.TEXT and not event.payload.strip().startswith("/"):
        return NormalizedCommand(operation=text_operation, argument=event.payload)

    if event.kind == EventKind.BUTTON:
        name, argument = parse_button(event.payload)
        operation = BUTTON_ALIASES.get(name, Operation.UNRECOGNIZED)
    else:
        name, argument = split_command(event.payload)
        operation = COMMAND_ALIASES.get(name, Operation.UNRECOGNIZED)

    if operation == Operation.UNRECOGNIZED:
        return NormalizedCommand(operation=operation, argument=event.payload)
    return NormalizedCommand(operation=operation, argument=argument)
