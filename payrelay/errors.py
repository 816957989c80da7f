class PaymentError(Exception):
    """Base for every failure kind the purchase protocol reports."""

    code = "PaymentError"
    status_code = 500
    default_message = "Payment failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidAmount(PaymentError):
    code = "InvalidAmount"
    status_code = 400
    default_message = "Invalid amount"


class InvalidSelection(PaymentError):
    code = "InvalidSelection"
    status_code = 400
    default_message = "Invalid selection"


class MissingParameters(PaymentError):
    code = "MissingParameters"
    status_code = 400
    default_message = "Missing payment verification parameters"


class GatewayUnavailable(PaymentError):
    code = "GatewayUnavailable"
    status_code = 503
    default_message = "Payment gateway not available"


class OrderCreationFailed(PaymentError):
    code = "OrderCreationFailed"
    status_code = 500
    default_message = "Failed to create payment order"


class PaymentDeclined(PaymentError):
    code = "PaymentDeclined"
    status_code = 402
    default_message = "Payment failed"


class VerificationFailed(PaymentError):
    code = "VerificationFailed"
    status_code = 400
    default_message = "Payment verification failed"


class ConfigurationError(PaymentError):
    code = "ConfigurationError"
    status_code = 500
    default_message = "Payment service configuration error"


class UserCancelled(PaymentError):
    # client side only, never sent over HTTP
    code = "UserCancelled"
    status_code = 499
    default_message = "Payment cancelled by user"


KINDS = {
    kind.code: kind
    for kind in (
        InvalidAmount,
        InvalidSelection,
        MissingParameters,
        GatewayUnavailable,
        OrderCreationFailed,
        PaymentDeclined,
        VerificationFailed,
        ConfigurationError,
    )
}


def from_code(code, message: str, default=PaymentError) -> PaymentError:
    """Rebuild the error a server reported by its code, falling back to default."""
    kind = KINDS.get(code, default) if isinstance(code, str) else default
    return kind(message)
