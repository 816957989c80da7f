import hashlib
import hmac


def signing_payload(order_id: str, payment_id: str) -> str:
    return f"{order_id}|{payment_id}"


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """
    Hex HMAC-SHA256 over "order_id|payment_id", keyed with the provider secret.
    Same construction the provider uses to sign the checkout callback.
    """
    return hmac.new(
        secret.encode("utf-8"),
        signing_payload(order_id, payment_id).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    expected = compute_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
