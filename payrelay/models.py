from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Any, Dict, Literal, Optional

AttemptStatus = Literal["success", "cancelled", "failed"]
PurchaseOutcome = Literal["verified", "simulated", "cancelled", "failed"]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateOrderRequest(WireModel):
    # left loose so bad amounts surface as InvalidAmount instead of a 422
    amount: Any = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    receipt: Optional[str] = None
    notes: Optional[Dict[str, str]] = None


class CreateOrderResponse(WireModel):
    success: bool = True
    order_id: str = Field(alias="orderId")
    amount: float
    amount_minor_units: int = Field(alias="amountMinorUnits")
    currency: str
    receipt: str


class VerifyPaymentRequest(WireModel):
    payment_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("paymentId", "razorpay_payment_id", "payment_id")
    )
    order_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("orderId", "razorpay_order_id", "order_id")
    )
    signature: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("signature", "razorpay_signature")
    )


class VerificationOutcome(WireModel):
    """Answer of /verify-payment; the only proof that money arrived."""

    success: bool
    verified: bool
    payment_id: Optional[str] = Field(default=None, alias="paymentId")
    order_id: Optional[str] = Field(default=None, alias="orderId")
    error: Optional[str] = None
    code: Optional[str] = None


class ErrorResponse(WireModel):
    success: bool = False
    error: str
    code: Optional[str] = None


class Order(BaseModel):
    order_id: str
    amount_minor_units: int
    currency: str = Field(min_length=3, max_length=3)
    receipt: str
    notes: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_provider(cls, payload: dict) -> "Order":
        return cls(
            order_id=payload["id"],
            amount_minor_units=payload["amount"],
            currency=payload["currency"],
            receipt=payload.get("receipt") or "",
            notes={str(k): str(v) for k, v in (payload.get("notes") or {}).items()},
        )


class BuyerInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class PaymentAttemptResult(BaseModel):
    """What the checkout widget reported, before any server-side check."""

    status: AttemptStatus
    payment_id: Optional[str] = None
    order_id: Optional[str] = None
    signature: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def succeeded(cls, payment_id: str, order_id: str, signature: str) -> "PaymentAttemptResult":
        return cls(status="success", payment_id=payment_id, order_id=order_id, signature=signature)

    @classmethod
    def cancelled(cls) -> "PaymentAttemptResult":
        return cls(status="cancelled")

    @classmethod
    def failed(cls, reason: str) -> "PaymentAttemptResult":
        return cls(status="failed", reason=reason)


class PurchaseResult(BaseModel):
    success: bool
    outcome: PurchaseOutcome
    payment_id: Optional[str] = None
    order_id: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def is_simulated(self) -> bool:
        return self.outcome == "simulated"


class GatewayStatus(BaseModel):
    available: bool
    error: Optional[str] = None
