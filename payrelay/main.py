from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

import logging
import math
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import httpx

from . import provider
from .errors import (
    ConfigurationError,
    InvalidAmount,
    MissingParameters,
    OrderCreationFailed,
    PaymentError,
)
from .models import (
    CreateOrderRequest,
    CreateOrderResponse,
    ErrorResponse,
    VerificationOutcome,
    VerifyPaymentRequest,
)
from .settings import (
    APP_API_TOKEN,
    DEFAULT_CURRENCY,
    LOG_LEVEL,
    MAX_AMOUNT,
    VERIFY_PAYMENT_STATUS,
    provider_credentials,
)
from .signature import verify_signature

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

app = FastAPI(title="Payment Verification Service", version="0.1.0")


@app.middleware("http")
async def cors(request: Request, call_next):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


def error_response(status_code: int, error: str, code: str = None) -> JSONResponse:
    body = ErrorResponse(error=error, code=code).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    return error_response(exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return error_response(400, "Invalid request body", "InvalidRequest")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, "Endpoint not found")
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return error_response(500, "Internal server error")


async def get_provider_client():
    async with httpx.AsyncClient() as client:
        yield client


def require_app_token(authorization: Optional[str] = Header(None)):
    if not APP_API_TOKEN:
        return
    if authorization != f"Bearer {APP_API_TOKEN}":
        raise StarletteHTTPException(status_code=401, detail="Unauthorized")


def require_credentials():
    key_id, key_secret = provider_credentials()
    if not key_id or not key_secret:
        logger.error("Missing payment provider credentials")
        raise ConfigurationError()
    return key_id, key_secret


def to_minor_units(amount: float) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_amount(amount) -> float:
    # bool is an int subclass; JSON true must not become a 1.00 order
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidAmount("Invalid amount. Must be a number")
    if amount <= 0 or amount > MAX_AMOUNT or not math.isfinite(amount):
        raise InvalidAmount(f"Invalid amount. Must be greater than 0 and at most {MAX_AMOUNT}")
    return amount


def verification_response(status_code: int, outcome: VerificationOutcome) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=outcome.model_dump(by_alias=True, exclude_none=True),
    )


@app.get("/health")
def health():
    return {"ok": True}


@app.post(
    "/create-order",
    response_model=CreateOrderResponse,
    dependencies=[Depends(require_app_token)],
)
async def create_order(
    req: CreateOrderRequest,
    credentials: tuple = Depends(require_credentials),
    client: httpx.AsyncClient = Depends(get_provider_client),
):
    amount = validate_amount(req.amount)
    amount_minor_units = to_minor_units(amount)
    if amount_minor_units <= 0:
        raise InvalidAmount("Invalid amount. Smaller than the currency's minor unit")

    key_id, key_secret = credentials
    try:
        order = await provider.create_order(
            key_id,
            key_secret,
            amount_minor_units=amount_minor_units,
            currency=(req.currency or DEFAULT_CURRENCY).upper(),
            receipt=req.receipt or f"receipt_{int(time.time() * 1000)}",
            notes=req.notes or {},
            client=client,
        )
    except (httpx.HTTPError, KeyError, ValueError) as e:
        logger.error("Order creation failed: %s", type(e).__name__)
        raise OrderCreationFailed()

    logger.info("Order created: %s", order.order_id)
    return CreateOrderResponse(
        order_id=order.order_id,
        amount=order.amount_minor_units / 100,
        amount_minor_units=order.amount_minor_units,
        currency=order.currency,
        receipt=order.receipt,
    )


@app.post("/verify-payment", dependencies=[Depends(require_app_token)])
async def verify_payment(
    req: VerifyPaymentRequest,
    credentials: tuple = Depends(require_credentials),
    client: httpx.AsyncClient = Depends(get_provider_client),
):
    """
    Signature match is the trust boundary: the secret never reaches the
    client, so only the provider can produce a valid signature.
    The settlement lookup can only reject, never rescue, a payment.
    """
    if not (req.payment_id and req.order_id and req.signature):
        raise MissingParameters()

    key_id, key_secret = credentials
    if not verify_signature(req.order_id, req.payment_id, req.signature, key_secret):
        logger.warning("Invalid payment signature for order %s", req.order_id)
        return verification_response(400, VerificationOutcome(
            success=False,
            verified=False,
            payment_id=req.payment_id,
            order_id=req.order_id,
            error="Invalid payment signature",
            code="VerificationFailed",
        ))

    if VERIFY_PAYMENT_STATUS:
        try:
            payment = await provider.fetch_payment(key_id, key_secret, req.payment_id, client=client)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Could not check payment %s, signature is valid: %s", req.payment_id, e)
        else:
            if not provider.is_settled(payment):
                logger.warning("Payment %s not settled: %s", req.payment_id, payment.get("status"))
                return verification_response(400, VerificationOutcome(
                    success=False,
                    verified=False,
                    payment_id=req.payment_id,
                    order_id=req.order_id,
                    error="Payment not completed successfully",
                    code="VerificationFailed",
                ))

    logger.info("Payment verified: %s", req.payment_id)
    return verification_response(200, VerificationOutcome(
        success=True,
        verified=True,
        payment_id=req.payment_id,
        order_id=req.order_id,
    ))
