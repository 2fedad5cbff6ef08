import base64
import logging
from decimal import Decimal
from typing import Optional, Tuple, Any
from urllib.parse import quote

import httpx

from shared.utils import Settings, ConfigurationError, GatewayError
from shared.security_config import verify_notification_signature

logger = logging.getLogger(__name__)

SNAP_SANDBOX_URL = "https://app.sandbox.midtrans.com"
SNAP_PRODUCTION_URL = "https://app.midtrans.com"
API_SANDBOX_URL = "https://api.sandbox.midtrans.com"
API_PRODUCTION_URL = "https://api.midtrans.com"


def basic_auth_header(server_key: str) -> str:
    # Server key is the username, password is empty
    token = base64.b64encode(f"{server_key}:".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def _json_amount(amount: Decimal):
    # Midtrans rejects "150000.0" style amounts for IDR, so whole values go out as ints
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}


class MidtransClient:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport
        if settings.MIDTRANS_IS_PRODUCTION:
            self.snap_url = SNAP_PRODUCTION_URL
            self.api_url = API_PRODUCTION_URL
        else:
            self.snap_url = SNAP_SANDBOX_URL
            self.api_url = API_SANDBOX_URL

    def _headers(self) -> dict:
        server_key = self.settings.MIDTRANS_SERVER_KEY
        if not server_key:
            raise ConfigurationError("MIDTRANS_SERVER_KEY not configured in Secrets")
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": basic_auth_header(server_key),
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=self.settings.HTTP_TIMEOUT)

    async def create_transaction(self, order_id: str, amount: Decimal) -> Tuple[int, Any]:
        """
        Create a Snap transaction and return (status_code, body).

        The body is handed back untouched; a non-2xx code is the
        gateway's own and is not turned into an error here.
        """
        headers = self._headers()
        payload = {
            "transaction_details": {
                "order_id": order_id,
                "gross_amount": _json_amount(amount),
            },
            "credit_card": {
                "secure": True,
            },
        }

        async with self._client() as client:
            try:
                response = await client.post(f"{self.snap_url}/snap/v1/transactions", json=payload, headers=headers)
            except httpx.RequestError as exc:
                logger.error("Midtrans unreachable", extra={"order_id": order_id, "target": self.snap_url})
                raise GatewayError("Midtrans API unavailable") from exc

        data = _response_body(response)
        if response.is_success:
            return 200, data

        logger.error(
            f"Midtrans Error: {data}",
            extra={"order_id": order_id, "gateway_status": response.status_code},
        )
        return response.status_code, data

    async def get_status(self, order_id: str) -> Optional[dict]:
        """Fetch the transaction status, or None if Midtrans has no such transaction."""
        headers = self._headers()
        url = f"{self.api_url}/v2/{quote(order_id, safe='')}/status"

        async with self._client() as client:
            try:
                response = await client.get(url, headers=headers)
            except httpx.RequestError as exc:
                logger.error("Midtrans unreachable", extra={"order_id": order_id, "target": self.api_url})
                raise GatewayError("Midtrans API unavailable") from exc

        if response.status_code == 404:
            return None

        if not response.is_success:
            data = _response_body(response)
            logger.error(
                f"Midtrans status lookup failed: {data}",
                extra={"order_id": order_id, "gateway_status": response.status_code},
            )
            raise GatewayError(f"Midtrans API error: {response.text}", payload=data)

        try:
            data = response.json()
        except ValueError:
            data = response.text
        if not isinstance(data, dict):
            logger.error(
                f"Midtrans status lookup returned an unexpected body: {data!r}",
                extra={"order_id": order_id, "gateway_status": response.status_code},
            )
            raise GatewayError("Midtrans API error: unexpected response", payload=data)

        # The core API answers unknown orders with HTTP 200 and status_code "404" in the body
        if str(data.get("status_code")) == "404":
            return None

        return data

    def verify_signature(self, notification: dict) -> bool:
        server_key = self.settings.MIDTRANS_SERVER_KEY
        if not server_key:
            raise ConfigurationError("MIDTRANS_SERVER_KEY not configured, cannot verify notification signature")
        return verify_notification_signature(
            order_id=str(notification.get("order_id") or ""),
            status_code=str(notification.get("status_code") or ""),
            gross_amount=str(notification.get("gross_amount") or ""),
            signature_key=str(notification.get("signature_key") or ""),
            server_key=server_key,
        )
