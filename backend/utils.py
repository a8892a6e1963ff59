import uuid
import time
import random
from datetime import datetime, timezone
from schema import Order, OrderStatusHistory


def write_status_history(db, order_id, status, comments=""):
    """
    Appends a new entry to an order's status timeline.

    Args:
        db: SQLAlchemy database session.
        order_id: Order whose status changed.
        status: New status label (e.g., 'Pending', 'Shipped').
        comments: Free-text note shown alongside the entry.

    Returns:
        The newly created OrderStatusHistory instance.
    """
    entry = OrderStatusHistory(
        history_id=str(uuid.uuid4()),
        order_id=order_id,
        status=status,
        comments=comments,
        created_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    return entry


def generate_order_number(db, attempts=5):
    """
    Builds a human-facing order number from the current unix time plus six
    random digits, drawing again if the number is already taken.

    Raises:
        RuntimeError: If every attempt collided with an existing order.
    """
    timestamp = int(time.time())
    for _ in range(attempts):
        number = f"ORD{timestamp}{random.randint(100000, 999999)}"
        if db.query(Order.order_id).filter_by(order_number=number).first() is None:
            return number
    raise RuntimeError(f"Could not allocate a unique order number after {attempts} attempts")
