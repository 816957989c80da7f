import logging
import math
import time
from datetime import datetime, timezone
from typing import Optional

import httpx
from pydantic import ValidationError

from . import catalog
from .checkout import CheckoutOptions, WidgetFactory, open_checkout
from .errors import (
    ConfigurationError,
    GatewayUnavailable,
    InvalidAmount,
    OrderCreationFailed,
    PaymentDeclined,
    PaymentError,
    UserCancelled,
    VerificationFailed,
    from_code,
)
from .gateway import GatewayLoader, check_gateway
from .models import (
    BuyerInfo,
    GatewayStatus,
    PaymentAttemptResult,
    PurchaseResult,
    VerificationOutcome,
)
from .settings import (
    APP_API_TOKEN,
    COMPANY_NAME,
    DEFAULT_CURRENCY,
    MAX_AMOUNT,
    PAYMENT_API_URL,
    SIMULATE_ON_GATEWAY_FAILURE,
    THEME_COLOR,
    public_key_id,
)

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def failure(exc: PaymentError, **ids) -> PurchaseResult:
    outcome = "cancelled" if isinstance(exc, UserCancelled) else "failed"
    return PurchaseResult(success=False, outcome=outcome, error=exc.message, error_kind=exc.code, **ids)


class OrderRelayClient:
    """
    Client side of the purchase protocol.

    Public operations never raise: every path ends in a PurchaseResult.
    Only a result with outcome "verified" means the money arrived.
    """

    def __init__(
        self,
        loader: GatewayLoader,
        widget_factory: WidgetFactory,
        base_url: str = PAYMENT_API_URL,
        api_token: str = APP_API_TOKEN,
        key_id: Optional[str] = None,
        max_amount: float = MAX_AMOUNT,
        currency: str = DEFAULT_CURRENCY,
        simulate_on_gateway_failure: bool = SIMULATE_ON_GATEWAY_FAILURE,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.loader = loader
        self.widget_factory = widget_factory
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.key_id = key_id if key_id is not None else public_key_id()
        self.max_amount = max_amount
        self.currency = currency
        self.simulate_on_gateway_failure = simulate_on_gateway_failure
        self._http = http_client

    # ---- transport ----

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _request(self, method: str, path: str, body: dict = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self._http is not None:
            return await self._http.request(method, url, json=body, headers=self._headers())
        async with httpx.AsyncClient() as client:
            return await client.request(method, url, json=body, headers=self._headers())

    @staticmethod
    def _json(r: httpx.Response) -> dict:
        try:
            data = r.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    # ---- protocol steps ----

    def validate_amount(self, amount) -> float:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise InvalidAmount("Amount must be a number")
        if amount <= 0 or amount > self.max_amount or not math.isfinite(amount):
            raise InvalidAmount(f"Invalid amount. Must be greater than 0 and at most {self.max_amount}")
        return amount

    async def create_order(self, amount: float, description: str, metadata: Optional[dict] = None) -> dict:
        notes = {"description": description, "timestamp": datetime.now(timezone.utc).isoformat()}
        for k, v in (metadata or {}).items():
            notes[str(k)] = str(v)

        try:
            r = await self._request("POST", "/create-order", {
                "amount": amount,
                "currency": self.currency,
                "receipt": f"receipt_{_now_ms()}",
                "notes": notes,
            })
        except httpx.HTTPError as e:
            raise OrderCreationFailed(f"Failed to create payment order: {type(e).__name__}")

        data = self._json(r)
        if r.is_error or data.get("success") is False:
            raise from_code(
                data.get("code"),
                data.get("error") or f"HTTP {r.status_code}: Failed to create order",
                default=OrderCreationFailed,
            )
        if not data.get("orderId") or not isinstance(data.get("amountMinorUnits"), int) or not data.get("currency"):
            raise OrderCreationFailed("Malformed order response")
        return data

    async def verify(self, attempt: PaymentAttemptResult) -> VerificationOutcome:
        try:
            r = await self._request("POST", "/verify-payment", {
                "paymentId": attempt.payment_id,
                "orderId": attempt.order_id,
                "signature": attempt.signature,
            })
        except httpx.HTTPError as e:
            raise VerificationFailed(f"Payment verification failed: {type(e).__name__}")

        data = {"success": False, "verified": False, **self._json(r)}
        if r.is_error and not data.get("error"):
            data["error"] = f"HTTP {r.status_code}: Payment verification failed"
        try:
            return VerificationOutcome.model_validate(data)
        except ValidationError:
            raise VerificationFailed("Malformed verification response")

    def _simulate(self, amount: float, description: str) -> PurchaseResult:
        stamp = _now_ms()
        logger.warning("Checkout unavailable, simulating purchase of %s (%s)", amount, description)
        return PurchaseResult(
            success=False,
            outcome="simulated",
            payment_id=f"sim_pay_{stamp}",
            order_id=f"sim_order_{stamp}",
            error="Payment gateway not available; purchase simulated",
            error_kind=GatewayUnavailable.code,
        )

    async def _purchase(self, amount, description, buyer, metadata) -> PurchaseResult:
        amount = self.validate_amount(amount)

        if not await self.loader.ensure_ready():
            if self.simulate_on_gateway_failure:
                return self._simulate(amount, description)
            raise GatewayUnavailable()
        if not self.key_id:
            raise ConfigurationError("Payment gateway key not configured")

        order = await self.create_order(amount, description, metadata)
        order_id = order["orderId"]

        attempt = await open_checkout(self.widget_factory, CheckoutOptions(
            key=self.key_id,
            order_id=order_id,
            amount=order["amountMinorUnits"],
            currency=order["currency"],
            name=COMPANY_NAME,
            description=description,
            prefill=buyer or BuyerInfo(),
            theme_color=THEME_COLOR,
        ))
        if attempt.status == "cancelled":
            raise UserCancelled()
        if attempt.status == "failed":
            raise PaymentDeclined(attempt.reason)

        outcome = await self.verify(attempt)
        ids = {
            "payment_id": outcome.payment_id or attempt.payment_id,
            "order_id": outcome.order_id or attempt.order_id or order_id,
        }
        if not outcome.verified:
            return failure(VerificationFailed(outcome.error), **ids)
        return PurchaseResult(success=True, outcome="verified", **ids)

    async def purchase(
        self,
        amount: float,
        description: str,
        buyer: Optional[BuyerInfo] = None,
        metadata: Optional[dict] = None,
    ) -> PurchaseResult:
        try:
            return await self._purchase(amount, description, buyer, metadata)
        except PaymentError as e:
            logger.warning("Purchase not completed (%s): %s", e.code, e.message)
            return failure(e)
        except Exception as e:
            logger.exception("Payment initiation error")
            return PurchaseResult(
                success=False,
                outcome="failed",
                error=str(e) or "Failed to initiate payment",
                error_kind=PaymentError.code,
            )

    # ---- catalog shortcuts ----

    async def buy_coin_package(self, package_id: str, buyer: Optional[BuyerInfo] = None) -> PurchaseResult:
        try:
            package = catalog.coin_package(package_id)
        except PaymentError as e:
            return failure(e)
        return await self.purchase(
            package["price"],
            f"{package['coins']} Coins Package",
            buyer,
            {"product_id": package["id"], "kind": "coins", "coins": package["coins"]},
        )

    async def subscribe_to_premium(self, plan_id: str, buyer: Optional[BuyerInfo] = None) -> PurchaseResult:
        try:
            plan = catalog.premium_plan(plan_id)
        except PaymentError as e:
            return failure(e)
        return await self.purchase(
            plan["price"],
            f"Premium Subscription - {plan['duration']}",
            buyer,
            {"product_id": plan["id"], "kind": "premium", "duration": plan["duration"]},
        )

    async def subscribe_to_unlimited_calls(self, auto_renew: bool, buyer: Optional[BuyerInfo] = None) -> PurchaseResult:
        plan = catalog.UNLIMITED_CALLS_PLAN
        description = f"Unlimited Voice Calls - {plan['duration']}"
        if auto_renew:
            description += " (Auto-renew)"
        return await self.purchase(
            plan["price"],
            description,
            buyer,
            {"product_id": plan["id"], "kind": "unlimited_calls", "auto_renew": str(bool(auto_renew)).lower()},
        )

    # ---- probes ----

    async def check_gateway(self) -> GatewayStatus:
        try:
            return await check_gateway(self.loader, self.key_id)
        except Exception:
            logger.exception("Payment gateway test failed")
            return GatewayStatus(available=False, error="Payment gateway test failed")

    async def check_backend_health(self) -> bool:
        try:
            r = await self._request("GET", "/health")
        except httpx.HTTPError:
            return False
        return r.status_code == 200
