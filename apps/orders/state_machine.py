"""
Order status transition table.

Every status write goes through `ensure_transition`, so an illegal pair
is rejected before anything touches the database.
"""
from apps.utils.exceptions import InvalidTransition
from .models import OrderStatus

TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.ASSIGNED}),
    OrderStatus.ASSIGNED: frozenset({OrderStatus.PICKED_UP}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.ON_THE_WAY}),
    OrderStatus.ON_THE_WAY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATES = frozenset(s for s, nxt in TRANSITIONS.items() if not nxt)

CANCELLABLE_STATUSES = frozenset(
    s for s, nxt in TRANSITIONS.items() if OrderStatus.CANCELLED in nxt
)


def can_transition(current, target) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current, target):
    if current in TERMINAL_STATES:
        raise InvalidTransition(
            f"Order is already {current}; no further status changes are allowed."
        )
    if not can_transition(current, target):
        raise InvalidTransition(f"Cannot move an order from '{current}' to '{target}'.")
