"""
State Machine Module for Order Lifecycle
"""
from marketplace.state_machine.order_states import ORDER_TRANSITIONS, can_transition

__all__ = ["ORDER_TRANSITIONS", "can_transition"]
