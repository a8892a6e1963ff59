import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import func, or_, update
from sqlalchemy.exc import OperationalError
from schema import Coupon, CouponUsage
from services.errors import CheckoutError, ConcurrentLimitExceeded, CouponInvalid, ErrorKind
from services.pricing import Money, quantize_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedemptionResult:
    usage_id: str
    coupon_id: str
    user_id: str
    order_id: str
    discount_amount: Decimal
    used_at: datetime
    used_count: int


class CouponUsageLedger:
    """
    Sole writer of coupon usage.

    A redemption is a single transaction: a conditional increment of
    `used_count` that only matches while the coupon is under its usage limit,
    followed by the append-only usage record. The increment is the hard cap;
    whatever the validator saw earlier is only advisory.
    """

    def __init__(self, db):
        self.db = db

    def redeem(self, coupon_id: str, user_id: str, order_id: str, discount_amount: Money,
               commit: bool = True) -> RedemptionResult:
        """
        Records one use of a coupon against an order.

        Args:
            coupon_id: Coupon being consumed.
            user_id: Shopper redeeming it.
            order_id: Order the discount was applied to.
            discount_amount: Discount granted on that order.
            commit: Commit (or roll back) here. Pass False to enlist in the
                caller's transaction; the caller then owns commit and rollback.

        Returns:
            RedemptionResult with the coupon's new used_count.

        Raises:
            ConcurrentLimitExceeded: The usage limit was reached by a concurrent
                redemption, or storage reported a write conflict.
            CouponInvalid: The shopper's per-user cap is already used up.
        """
        now = datetime.now(timezone.utc)
        usage_id = str(uuid.uuid4())
        granted = quantize_money(discount_amount)
        try:
            # No read may hold a SQLite SHARED lock ahead of the first write in this transaction
            result = self.db.execute(
                update(Coupon)
                .where(Coupon.coupon_id == coupon_id)
                .where(Coupon.is_deleted == False)
                .where(or_(Coupon.usage_limit == None, Coupon.used_count < Coupon.usage_limit))
                .values(used_count=Coupon.used_count + 1, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConcurrentLimitExceeded(f"Coupon {coupon_id} reached its usage limit before this order could redeem it")

            coupon = self.db.get(Coupon, coupon_id, populate_existing=True)
            used_count = coupon.used_count

            if coupon.usage_limit_per_user is not None:
                prior = (
                    self.db.query(func.count(CouponUsage.usage_id))
                    .filter_by(coupon_id=coupon_id, user_id=user_id)
                    .scalar()
                ) or 0
                if prior >= coupon.usage_limit_per_user:
                    raise CouponInvalid(ErrorKind.COUPON_USER_LIMIT_REACHED)

            self.db.add(CouponUsage(
                usage_id=usage_id,
                coupon_id=coupon_id,
                user_id=user_id,
                order_id=order_id,
                discount_amount=granted,
                used_at=now,
            ))
            self.db.flush()

            if commit:
                self.db.commit()
        except CheckoutError as e:
            if commit:
                self.db.rollback()
            logger.warning(f"Redemption of coupon {coupon_id} for order {order_id} rejected: {e.kind.value}")
            raise
        except OperationalError as e:
            if commit:
                self.db.rollback()
            logger.warning(f"Redemption of coupon {coupon_id} for order {order_id} hit a write conflict: {e}")
            raise ConcurrentLimitExceeded("Coupon redemption conflicted with a concurrent order") from e
        except Exception:
            if commit:
                self.db.rollback()
            raise

        logger.info(f"Coupon {coupon_id} redeemed by {user_id} on order {order_id} ({granted}), used {used_count}")
        return RedemptionResult(
            usage_id=usage_id,
            coupon_id=coupon_id,
            user_id=user_id,
            order_id=order_id,
            discount_amount=granted,
            used_at=now,
            used_count=used_count,
        )
