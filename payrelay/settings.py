import os


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


PROVIDER_API_BASE = os.environ.get("PROVIDER_API_BASE", "https://api.razorpay.com")
CHECKOUT_SCRIPT_URL = os.environ.get("CHECKOUT_SCRIPT_URL", "https://checkout.razorpay.com/v1/checkout.js")
SCRIPT_LOAD_TIMEOUT_SECONDS = float(os.environ.get("SCRIPT_LOAD_TIMEOUT_SECONDS", "10"))

MAX_AMOUNT = int(os.environ.get("MAX_AMOUNT", "100000"))
DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "INR")

PAYMENT_API_URL = os.environ.get("PAYMENT_API_URL", "http://localhost:8000")
APP_API_TOKEN = os.environ.get("APP_API_TOKEN", "")

VERIFY_PAYMENT_STATUS = _flag("VERIFY_PAYMENT_STATUS", "true")
SIMULATE_ON_GATEWAY_FAILURE = _flag("SIMULATE_ON_GATEWAY_FAILURE", "true")

COMPANY_NAME = os.environ.get("COMPANY_NAME", "AjnabiCam")
THEME_COLOR = os.environ.get("THEME_COLOR", "#E91E63")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def public_key_id() -> str:
    return os.environ.get("RAZORPAY_KEY_ID", "")


def provider_credentials():
    """Key id and secret, read at call time. Either may be empty."""
    return os.environ.get("RAZORPAY_KEY_ID", ""), os.environ.get("RAZORPAY_KEY_SECRET", "")
