# core/midtrans.py
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from marcha.core.config import Settings

logger = logging.getLogger("marcha.midtrans")

SNAP_PRODUCTION_URL = "https://app.midtrans.com"
SNAP_SANDBOX_URL = "https://app.sandbox.midtrans.com"
API_PRODUCTION_URL = "https://api.midtrans.com"
API_SANDBOX_URL = "https://api.sandbox.midtrans.com"


class MidtransError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def notification_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


class MidtransClient:
    """
    Thin async client for the Snap and Core APIs.
    One instance per process; owned and closed by the app lifespan.
    """

    def __init__(
        self,
        server_key: str,
        client_key: str,
        is_production: bool = False,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.server_key = server_key
        self.client_key = client_key
        self.snap_base_url = SNAP_PRODUCTION_URL if is_production else SNAP_SANDBOX_URL
        self.api_base_url = API_PRODUCTION_URL if is_production else API_SANDBOX_URL
        self._client = httpx.AsyncClient(
            timeout=timeout,
            auth=(server_key, ""),
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "MidtransClient":
        return cls(
            server_key=settings.MIDTRANS_SERVER_KEY,
            client_key=settings.MIDTRANS_CLIENT_KEY,
            is_production=settings.MIDTRANS_IS_PRODUCTION,
            timeout=settings.MIDTRANS_TIMEOUT,
        )

    async def create_transaction_token(self, parameter: Dict[str, Any]) -> Dict[str, Any]:
        """Create a Snap transaction; returns {"token": ..., "redirect_url": ...}."""
        url = f"{self.snap_base_url}/snap/v1/transactions"
        try:
            response = await self._client.post(url, json=parameter)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = e.response.text
            logger.error(f"Snap token request failed ({e.response.status_code}): {detail}")
            raise MidtransError(f"Snap rejected the transaction: {detail}", e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error(f"Snap token request failed: {e}")
            raise MidtransError(f"Snap unreachable: {e}") from e

        data = response.json()
        if "token" not in data:
            raise MidtransError(f"Snap response without token: {data}", response.status_code)
        logger.info(f"🎟️ Snap token created for {parameter['transaction_details']['order_id']}")
        return data

    async def get_transaction_status(self, transaction_id: str) -> Dict[str, Any]:
        url = f"{self.api_base_url}/v2/{transaction_id}/status"
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise MidtransError(f"Status lookup failed for {transaction_id}", e.response.status_code) from e
        except httpx.HTTPError as e:
            raise MidtransError(f"Midtrans unreachable: {e}") from e

        data = response.json()
        # Core API answers HTTP 200 with the real code in the body
        if str(data.get("status_code", "")) == "404":
            raise MidtransError(f"Transaction {transaction_id} not found", 404)
        return data

    def verify_signature(self, payload: Dict[str, Any]) -> bool:
        signature = payload.get("signature_key")
        order_id = payload.get("order_id")
        status_code = payload.get("status_code")
        gross_amount = payload.get("gross_amount")
        if not all(isinstance(v, str) for v in (signature, order_id, status_code, gross_amount)):
            return False

        expected = notification_signature(order_id, status_code, gross_amount, self.server_key)
        return hmac.compare_digest(expected, signature)

    async def aclose(self) -> None:
        await self._client.aclose()
