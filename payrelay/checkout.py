import asyncio
import logging
from typing import Callable, Dict, Optional, Protocol

from pydantic import BaseModel, Field

from .models import BuyerInfo, PaymentAttemptResult

logger = logging.getLogger(__name__)

PAYMENT_FAILED_EVENT = "payment.failed"


class CheckoutWidget(Protocol):
    def on(self, event: str, handler: Callable[[dict], None]) -> None:
        ...

    def open(self) -> None:
        ...


WidgetFactory = Callable[[dict], CheckoutWidget]


class CheckoutOptions(BaseModel):
    key: str
    order_id: str
    # minor units, taken from the created order as-is
    amount: int
    currency: str
    name: str
    description: str
    prefill: BuyerInfo = Field(default_factory=BuyerInfo)
    notes: Dict[str, str] = Field(default_factory=dict)
    theme_color: Optional[str] = None

    def widget_options(self, handler, on_dismiss) -> dict:
        return {
            "key": self.key,
            "amount": self.amount,
            "currency": self.currency,
            "name": self.name,
            "description": self.description,
            "order_id": self.order_id,
            "handler": handler,
            "modal": {"ondismiss": on_dismiss},
            "prefill": {
                "name": self.prefill.name or "",
                "email": self.prefill.email or "",
                "contact": self.prefill.phone or "",
            },
            "notes": self.notes,
            "theme": {"color": self.theme_color} if self.theme_color else {},
        }


async def open_checkout(factory: WidgetFactory, options: CheckoutOptions) -> PaymentAttemptResult:
    """
    Opens the checkout widget and waits for the first of success, dismissal
    or failure. Whatever arrives after that is ignored.
    """
    result = asyncio.get_running_loop().create_future()

    def resolve(attempt: PaymentAttemptResult):
        if result.done():
            logger.info("Ignoring late checkout callback (%s) for order %s", attempt.status, options.order_id)
            return
        result.set_result(attempt)

    def guarded(parse, source):
        # a callback that raises inside the widget would leave the future pending
        def callback(*args):
            try:
                resolve(parse(*args))
            except Exception:
                logger.exception("Malformed %s callback for order %s", source, options.order_id)
                resolve(PaymentAttemptResult.failed(f"Malformed {source} response from checkout"))
        return callback

    def parse_success(response):
        if not isinstance(response, dict):
            raise TypeError(f"expected an object, got {type(response).__name__}")
        return PaymentAttemptResult.succeeded(
            payment_id=str(response.get("razorpay_payment_id") or ""),
            order_id=str(response.get("razorpay_order_id") or ""),
            signature=str(response.get("razorpay_signature") or ""),
        )

    def parse_failure(event):
        error = event.get("error") if isinstance(event, dict) else None
        if isinstance(error, dict):
            description = error.get("description")
        else:
            description = error
        return PaymentAttemptResult.failed(str(description or "Payment failed"))

    on_success = guarded(parse_success, "success")
    on_failed = guarded(parse_failure, "payment.failed")

    def on_dismiss():
        resolve(PaymentAttemptResult.cancelled())

    try:
        widget = factory(options.widget_options(on_success, on_dismiss))
        widget.on(PAYMENT_FAILED_EVENT, on_failed)
        widget.open()
    except Exception as e:
        logger.exception("Could not open checkout for order %s", options.order_id)
        resolve(PaymentAttemptResult.failed(f"Could not open checkout: {e}"))

    return await result
