"""
Order Status Transitions

ההזמנה משתנה רק ע"י מעבד ה-webhooks של ספק התשלומים, ורק לאורך המעברים
המוגדרים כאן. כל מעבר אחר (כולל מעבר לאותו סטטוס) נרשם ללוג ומתעלמים ממנו.
"""
from marketplace.db.models.order import OrderStatus


ORDER_TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    # checkout completed / payment failed
    OrderStatus.PENDING: [OrderStatus.PAID, OrderStatus.FAILED],

    # charge refunded
    OrderStatus.PAID: [OrderStatus.REFUNDED],

    # סטטוסים סופיים
    OrderStatus.FAILED: [],
    OrderStatus.REFUNDED: [],
    OrderStatus.CANCELED: [],
}


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    """Check if moving an order from current to target status is allowed"""
    try:
        current_status = OrderStatus(current)
        target_status = OrderStatus(target)
    except ValueError:
        return False
    return target_status in ORDER_TRANSITIONS.get(current_status, [])
