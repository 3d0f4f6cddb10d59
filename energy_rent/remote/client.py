"""
Platform Client — bearer-token HTTP calls to the remote energy platform.

Behavioral Contract:
- Every call is bounded by the configured timeout
- fetch_wallet is an idempotent read and is retried on transport failures
- submit_rental is never retried, to avoid double issuance
- Transport failures, timeouts and 5xx answers raise UpstreamUnavailable
- An insufficient-funds answer raises InsufficientFunds with the platform's shortfall
- Bodies that are not a JSON object raise UpstreamUnavailable
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from energy_rent.core.errors import InsufficientFunds, UpstreamUnavailable
from energy_rent.core.log import get_logger
from energy_rent.core.settings import PlatformSettings
from energy_rent.models.platform import RentalSubmission, WalletInfo

logger = get_logger(__name__)


class PlatformClient:
    """Thin synchronous client over httpx."""

    def __init__(
        self,
        settings: PlatformSettings,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not settings.base_url:
            raise ValueError("PlatformClient requires platform.base_url")
        self.settings = settings
        headers = {"Accept": "application/json"}
        if settings.api_token:
            headers["Authorization"] = f"Bearer {settings.api_token}"
        self._http = httpx.Client(
            base_url=settings.base_url.rstrip("/"),
            headers=headers,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    # --- Reads (retried) ---

    def fetch_wallet(self, identity: str) -> WalletInfo:
        """Balance and deposit address for identity."""
        payload = self._get_json(f"/wallets/{identity}", operation="fetch_wallet")
        try:
            return WalletInfo(
                balance=Decimal(str(payload["balance"])),
                address=str(payload["address"]),
            )
        except (KeyError, InvalidOperation) as e:
            raise UpstreamUnavailable("fetch_wallet", f"malformed response: {e}")

    def _get_json(self, path: str, operation: str) -> Dict[str, Any]:
        attempts = self.settings.read_retries + 1
        last_error = ""
        for attempt in range(1, attempts + 1):
            try:
                response = self._http.get(path)
            except httpx.HTTPError as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning(
                    "Platform read failed",
                    extra={"operation": operation, "attempt": attempt, "error": last_error},
                )
                continue
            if response.status_code >= 500:
                last_error = f"HTTP {response.status_code}"
                logger.warning(
                    "Platform read failed",
                    extra={"operation": operation, "attempt": attempt, "error": last_error},
                )
                continue
            if response.status_code >= 400:
                raise UpstreamUnavailable(operation, f"HTTP {response.status_code}")
            return _json_object(response, operation)
        raise UpstreamUnavailable(operation, last_error)

    # --- Writes (single attempt) ---

    def submit_rental(
        self, identity: str, energy_amount: Decimal, destination: Optional[str]
    ) -> RentalSubmission:
        """Ask the platform to debit and issue a rental. One attempt only."""
        body = {
            "identity": identity,
            "energy_amount": str(energy_amount),
            "destination": destination,
        }
        try:
            response = self._http.post("/rentals", json=body)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable("submit_rental", str(e) or e.__class__.__name__)

        if response.status_code >= 500:
            raise UpstreamUnavailable("submit_rental", f"HTTP {response.status_code}")

        payload = _json_object(response, "submit_rental")

        if response.status_code == 402 or payload.get("error") == "insufficient_funds":
            if payload.get("shortfall") is None:
                raise UpstreamUnavailable("submit_rental", "missing shortfall")
            try:
                shortfall = Decimal(str(payload["shortfall"]))
                available = Decimal(str(payload.get("balance", "0")))
            except InvalidOperation as e:
                raise UpstreamUnavailable("submit_rental", f"malformed response: {e}")
            raise InsufficientFunds(required=available + shortfall, available=available)

        if response.status_code >= 400 or not payload.get("success", False):
            raise UpstreamUnavailable(
                "submit_rental", payload.get("error") or f"HTTP {response.status_code}"
            )

        try:
            return RentalSubmission(
                cost=Decimal(str(payload["cost"])),
                new_balance=Decimal(str(payload["new_balance"])),
                rental_id=payload.get("rental_id"),
            )
        except (KeyError, InvalidOperation) as e:
            raise UpstreamUnavailable("submit_rental", f"malformed response: {e}")


def _json_object(response: httpx.Response, operation: str) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        raise UpstreamUnavailable(operation, "response is not JSON")
    if not isinstance(payload, dict):
        raise UpstreamUnavailable(operation, "response is not a JSON object")
    return payload
