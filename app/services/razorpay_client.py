# app/services/razorpay_client.py

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx


class RazorpayError(RuntimeError):
    pass


@dataclass(frozen=True)
class RazorpayOrder:
    id: str
    amount: int
    currency: str
    status: str


class RazorpayClient:
    """Minimal Razorpay Orders API client.

    Docs: https://razorpay.com/docs/api/orders/
    """

    def __init__(
        self,
        *,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout_seconds: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.key_id = key_id
        self._key_secret = key_secret
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    async def create_order(
        self,
        *,
        amount: int,
        currency: str = "INR",
        receipt: str,
        notes: Dict[str, Any],
    ) -> RazorpayOrder:
        body = {
            "amount": int(amount),
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        async with httpx.AsyncClient(
            timeout=self._timeout,
            auth=(self.key_id, self._key_secret),
            transport=self._transport,
        ) as client:
            resp = await client.post(f"{self._base_url}/orders", json=body)

        try:
            data = resp.json()
        except ValueError:
            data = {"_raw": resp.text}
        if resp.status_code >= 400:
            raise RazorpayError(f"Razorpay create_order failed: HTTP {resp.status_code}: {data}")

        order_id = str(data.get("id") or "").strip()
        if not order_id:
            raise RazorpayError(f"Razorpay create_order: unexpected response: {data}")
        return RazorpayOrder(
            id=order_id,
            amount=int(data.get("amount", amount)),
            currency=str(data.get("currency") or currency),
            status=str(data.get("status") or "created"),
        )
