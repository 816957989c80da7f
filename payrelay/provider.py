import logging
from typing import Optional

import httpx

from .models import Order
from .settings import PROVIDER_API_BASE

logger = logging.getLogger(__name__)

SETTLED_STATUSES = ("captured", "authorized")


def _auth(key_id: str, key_secret: str) -> httpx.BasicAuth:
    return httpx.BasicAuth(key_id, key_secret)


async def create_order(
    key_id: str,
    key_secret: str,
    amount_minor_units: int,
    currency: str,
    receipt: str,
    notes: dict,
    client: Optional[httpx.AsyncClient] = None,
) -> Order:
    """
    POST /v1/orders. Raises httpx.HTTPStatusError on a non-2xx answer and
    httpx.TransportError when the provider cannot be reached.
    """
    payload = {
        "amount": amount_minor_units,
        "currency": currency,
        "receipt": receipt,
        "notes": notes,
    }
    if client is None:
        async with httpx.AsyncClient() as owned:
            r = await owned.post(f"{PROVIDER_API_BASE}/v1/orders", json=payload, auth=_auth(key_id, key_secret))
    else:
        r = await client.post(f"{PROVIDER_API_BASE}/v1/orders", json=payload, auth=_auth(key_id, key_secret))

    if r.is_error:
        logger.error("Provider order API error: %s %s", r.status_code, r.text)
    r.raise_for_status()
    return Order.from_provider(r.json())


async def fetch_payment(
    key_id: str,
    key_secret: str,
    payment_id: str,
    client: Optional[httpx.AsyncClient] = None,
) -> dict:
    url = f"{PROVIDER_API_BASE}/v1/payments/{payment_id}"
    if client is None:
        async with httpx.AsyncClient() as owned:
            r = await owned.get(url, auth=_auth(key_id, key_secret))
    else:
        r = await client.get(url, auth=_auth(key_id, key_secret))
    r.raise_for_status()
    payment = r.json()
    if not isinstance(payment, dict):
        raise ValueError(f"Payment lookup returned {type(payment).__name__}, not an object")
    return payment


def is_settled(payment: dict) -> bool:
    return payment.get("status") in SETTLED_STATUSES
