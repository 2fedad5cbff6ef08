import logging
from typing import Optional

import httpx

from shared.utils import Settings, ConfigurationError, StorageError
from shared.status_mapping import OrderStatus, allowed_predecessors

logger = logging.getLogger(__name__)


class OrderStore:
    """
    Writes order statuses through Supabase's PostgREST endpoint using the
    service role key, which bypasses row level security.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def _check_configured(self):
        if not self.settings.SUPABASE_URL or not self.settings.SUPABASE_SERVICE_ROLE_KEY:
            raise ConfigurationError(
                "Supabase environment variables not configured (SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)"
            )

    @property
    def table_url(self) -> str:
        return f"{self.settings.SUPABASE_URL.rstrip('/')}/rest/v1/{self.settings.SUPABASE_ORDERS_TABLE}"

    def _headers(self) -> dict:
        key = self.settings.SUPABASE_SERVICE_ROLE_KEY
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }

    def _filters(self, order_id: str, status: OrderStatus) -> dict:
        params = {"id": f"eq.{order_id}"}
        if self.settings.ENFORCE_MONOTONIC_STATUS:
            previous = sorted(s.value for s in allowed_predecessors(status))
            params["status"] = f"in.({','.join(previous)})"
        return params

    async def update_status(self, order_id: str, status: OrderStatus):
        """
        Set the order's status. An id matching no row (or a row the
        monotonic guard filters out) is not an error.
        """
        self._check_configured()
        status = OrderStatus(status)

        logger.info(
            f"Updating Order {order_id} to status: {status.value}",
            extra={"order_id": order_id, "order_status": status.value},
        )

        async with httpx.AsyncClient(transport=self.transport, timeout=self.settings.HTTP_TIMEOUT) as client:
            try:
                response = await client.patch(
                    self.table_url,
                    params=self._filters(order_id, status),
                    json={"status": status.value},
                    headers=self._headers(),
                )
            except httpx.RequestError as exc:
                logger.error("Order store unreachable", extra={"order_id": order_id})
                raise StorageError(f"Error updating order: {exc}") from exc

        if not response.is_success:
            logger.error(
                f"Error updating order: {response.text}",
                extra={"order_id": order_id, "status_code": response.status_code},
            )
            raise StorageError(f"Error updating order: {response.text}")
