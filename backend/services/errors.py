from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "InvalidInput"
    COUPON_NOT_FOUND = "CouponNotFound"
    COUPON_INACTIVE = "CouponInactive"
    COUPON_NOT_VALID_NOW = "CouponNotValidNow"
    COUPON_USAGE_LIMIT_REACHED = "CouponUsageLimitReached"
    COUPON_USER_LIMIT_REACHED = "CouponUserLimitReached"
    ORDER_BELOW_MINIMUM = "OrderBelowMinimum"
    INVALID_COUPON = "InvalidCoupon"
    CONCURRENT_LIMIT_EXCEEDED = "ConcurrentLimitExceeded"
    INSUFFICIENT_STOCK = "InsufficientStock"
    EMPTY_CART = "EmptyCart"


# Messages surfaced to shoppers when a coupon is rejected
REASON_MESSAGES = {
    ErrorKind.COUPON_NOT_FOUND: "Invalid coupon code",
    ErrorKind.COUPON_INACTIVE: "Coupon is not active",
    ErrorKind.COUPON_NOT_VALID_NOW: "Coupon is not valid at this time",
    ErrorKind.COUPON_USAGE_LIMIT_REACHED: "Coupon usage limit exceeded",
    ErrorKind.COUPON_USER_LIMIT_REACHED: "You have already used this coupon the maximum number of times",
    ErrorKind.ORDER_BELOW_MINIMUM: "Order amount is below the coupon minimum",
    ErrorKind.INVALID_COUPON: "Coupon is misconfigured",
    ErrorKind.CONCURRENT_LIMIT_EXCEEDED: "Coupon is no longer available",
}


class CheckoutError(Exception):
    """
    Base class for recoverable checkout failures.

    Every error carries an ErrorKind so callers can map it to a precise
    response without parsing the message.
    """
    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message=None, kind=None):
        if kind is not None:
            self.kind = kind
        self.message = message or REASON_MESSAGES.get(self.kind, self.kind.value)
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.message, "kind": self.kind.value}


class InvalidInput(CheckoutError):
    kind = ErrorKind.INVALID_INPUT


class InvalidCoupon(CheckoutError):
    kind = ErrorKind.INVALID_COUPON


class CouponInvalid(CheckoutError):
    """Raised when a supplied coupon fails validation; `kind` is the validator's reason."""

    def __init__(self, reason: ErrorKind, message=None):
        super().__init__(message, kind=reason)
        self.reason = reason


class ConcurrentLimitExceeded(CheckoutError):
    kind = ErrorKind.CONCURRENT_LIMIT_EXCEEDED


class InsufficientStock(CheckoutError):
    kind = ErrorKind.INSUFFICIENT_STOCK
