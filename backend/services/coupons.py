import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from sqlalchemy import func, or_
from schema import Coupon, CouponUsage
from services.errors import ErrorKind, InvalidCoupon, REASON_MESSAGES
from services.pricing import Money, ZERO, quantize_money, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class DiscountType(str, Enum):
    PERCENTAGE = "Percentage"
    FIXED_AMOUNT = "FixedAmount"


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[ErrorKind] = None

    @property
    def message(self) -> Optional[str]:
        if self.reason is None:
            return None
        return REASON_MESSAGES.get(self.reason, self.reason.value)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def rejected(cls, reason: ErrorKind) -> "ValidationResult":
        return cls(valid=False, reason=reason)


class CouponValidator:
    """
    Pure eligibility checks for a coupon against a proposed order.

    Checks run in a fixed order and stop at the first failure so the caller
    always gets the most fundamental reason. Nothing is mutated here; usage
    counters only move inside the redemption ledger, which lets validation be
    retried freely.
    """

    def validate(self, coupon, order_amount: Money, user_id: Optional[str],
                 prior_usage_count_for_user: int, now: Optional[datetime] = None) -> ValidationResult:
        """
        Args:
            coupon: A live (non-deleted) coupon row or any object with the same attributes.
            order_amount: Pre-discount order amount the minimum is compared against.
            user_id: Shopper the per-user cap applies to.
            prior_usage_count_for_user: Redemptions already recorded for this shopper.
            now: Evaluation instant; defaults to the current UTC time.

        Returns:
            ValidationResult with valid=True, or the first failing ErrorKind.
        """
        now = as_utc(now or datetime.now(timezone.utc))

        if not coupon.is_active:
            return ValidationResult.rejected(ErrorKind.COUPON_INACTIVE)

        # Inclusive on both ends
        if now < as_utc(coupon.valid_from) or now > as_utc(coupon.valid_to):
            return ValidationResult.rejected(ErrorKind.COUPON_NOT_VALID_NOW)

        used_count = coupon.used_count or 0
        if coupon.usage_limit is not None and used_count >= coupon.usage_limit:
            return ValidationResult.rejected(ErrorKind.COUPON_USAGE_LIMIT_REACHED)

        if coupon.usage_limit_per_user is not None and prior_usage_count_for_user >= coupon.usage_limit_per_user:
            logger.info(f"Coupon {coupon.code} per-user cap reached for user {user_id}")
            return ValidationResult.rejected(ErrorKind.COUPON_USER_LIMIT_REACHED)

        if coupon.min_order_amount is not None and to_decimal(order_amount) < to_decimal(coupon.min_order_amount):
            return ValidationResult.rejected(ErrorKind.ORDER_BELOW_MINIMUM)

        return ValidationResult.ok()


class DiscountApplier:
    """
    Turns an already validated coupon into a concrete discount amount.
    """

    def apply_discount(self, coupon, sub_total: Money) -> Decimal:
        """
        Args:
            coupon: Validated coupon.
            sub_total: Pre-discount order subtotal.

        Returns:
            Discount rounded half-up to cents, capped by max_discount_amount
            and never larger than the subtotal.

        Raises:
            InvalidCoupon: If the coupon's discount settings are unusable.
        """
        sub_total = to_decimal(sub_total)
        value = to_decimal(coupon.discount_value) if coupon.discount_value is not None else ZERO
        if value <= 0:
            raise InvalidCoupon(f"Coupon {coupon.code} has a non-positive discount value")

        discount_type = coupon.discount_type
        if discount_type == DiscountType.PERCENTAGE:
            if value > HUNDRED:
                raise InvalidCoupon(f"Coupon {coupon.code} has a percentage above 100")
            raw = sub_total * value / HUNDRED
        elif discount_type == DiscountType.FIXED_AMOUNT:
            raw = value
        else:
            raise InvalidCoupon(f"Coupon {coupon.code} has unknown discount type {discount_type!r}")

        if coupon.max_discount_amount is not None:
            raw = min(raw, to_decimal(coupon.max_discount_amount))

        return quantize_money(max(min(raw, sub_total), ZERO))


class CouponService:
    """
    Read-side collaborator for coupons. Applies the live-only predicate so
    deleted coupons never reach validation.
    """

    def __init__(self, db):
        self.db = db

    def get_by_code(self, code: str) -> Optional[Coupon]:
        normalized = normalize_code(code)
        if not normalized:
            return None
        return (
            self.db.query(Coupon)
            .filter(func.upper(Coupon.code) == normalized)
            .filter(Coupon.is_deleted == False)
            .first()
        )

    def count_user_redemptions(self, coupon_id: str, user_id: Optional[str]) -> int:
        if not user_id:
            return 0
        return (
            self.db.query(func.count(CouponUsage.usage_id))
            .filter_by(coupon_id=coupon_id, user_id=user_id)
            .scalar()
        ) or 0

    def list_active(self, now: Optional[datetime] = None) -> List[Coupon]:
        """
        Returns:
            Coupons that are active, inside their validity window and not exhausted.
        """
        now = as_utc(now or datetime.now(timezone.utc)).astimezone(timezone.utc).replace(tzinfo=None)
        return (
            self.db.query(Coupon)
            .filter(Coupon.is_deleted == False)
            .filter(Coupon.is_active == True)
            .filter(Coupon.valid_from <= now, Coupon.valid_to >= now)
            .filter(or_(Coupon.usage_limit == None, Coupon.used_count < Coupon.usage_limit))
            .order_by(Coupon.created_at.desc())
            .all()
        )
