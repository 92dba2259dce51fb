# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Outbound client for the Bridge payments API.

One ``httpx.Client`` per process, created lazily and closed on shutdown.
Every provider failure (HTTP error status, timeout, unreadable body) is
re-raised as ``BridgeError`` so route handlers deal with a single type.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from core.errors import BridgeError
from core.logger import logger

log = logger.getChild("bridge")


class BridgeClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # -- calls -------------------------------------------------------------

    def create_onramp(
        self, customer_id: str, amount: Decimal, currency: str, wallet_address: str
    ) -> Dict[str, Any]:
        return self._post(
            "/v1/onramp",
            {
                "customerId": customer_id,
                "amount": str(amount),
                "currency": currency,
                "walletAddress": wallet_address,
            },
        )

    def create_offramp(
        self,
        customer_id: str,
        amount: Decimal,
        currency: str,
        wallet_address: str,
        bank_account: str,
    ) -> Dict[str, Any]:
        return self._post(
            "/v1/offramp",
            {
                "customerId": customer_id,
                "amount": str(amount),
                "currency": currency,
                "walletAddress": wallet_address,
                "bankAccount": bank_account,
            },
        )

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured:
            raise BridgeError("Bridge API key is not configured")
        try:
            response = self._get_client().post(path, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            log.error("Bridge %s failed: status=%d", path, exc.response.status_code)
            raise BridgeError(
                f"Bridge request failed: {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.TimeoutException as exc:
            log.error("Bridge %s timed out", path)
            raise BridgeError("Bridge request timed out") from exc
        except (httpx.HTTPError, ValueError) as exc:
            log.error("Bridge %s error: %s", path, exc)
            raise BridgeError("Bridge request failed") from exc

        if not isinstance(data, dict) or not transaction_id(data):
            raise BridgeError("Bridge response carried no transaction id")
        return data


def transaction_id(data: Dict[str, Any]) -> Optional[str]:
    """Bridge has used both spellings across API versions."""
    value = data.get("transactionId") or data.get("id")
    return str(value) if value else None
