"""
Who may do what to which order.

All role and ownership checks for the order endpoints live here; the
service layer calls `authorize` right after loading the order, then
`authorize_target` and `authorize_window` around the transition check.
"""
from apps.accounts.models import Role
from apps.utils.exceptions import Forbidden
from .models import OrderStatus


class Action:
    CREATE = "create"
    VIEW = "view"
    LIST = "list"
    LIST_RESTAURANT = "list_restaurant"
    LIST_AVAILABLE = "list_available"
    UPDATE_STATUS = "update_status"
    ASSIGN = "assign"
    ACCEPT = "accept"
    CANCEL = "cancel"
    RATE = "rate"
    TRACK = "track"
    STATS = "stats"
    EARNINGS = "earnings"


ACTION_ROLES = {
    Action.CREATE: {Role.CUSTOMER},
    Action.VIEW: {Role.CUSTOMER, Role.RESTAURANT_OWNER, Role.ADMIN},
    Action.LIST: {Role.CUSTOMER, Role.RESTAURANT_OWNER, Role.DELIVERY, Role.ADMIN},
    Action.LIST_RESTAURANT: {Role.RESTAURANT_OWNER},
    Action.LIST_AVAILABLE: {Role.DELIVERY},
    Action.UPDATE_STATUS: {Role.RESTAURANT_OWNER, Role.DELIVERY, Role.ADMIN},
    Action.ASSIGN: {Role.ADMIN},
    Action.ACCEPT: {Role.DELIVERY},
    Action.CANCEL: {Role.CUSTOMER, Role.RESTAURANT_OWNER, Role.ADMIN},
    Action.RATE: {Role.CUSTOMER},
    Action.TRACK: {Role.CUSTOMER, Role.ADMIN},
    Action.STATS: {Role.ADMIN, Role.RESTAURANT_OWNER, Role.DELIVERY},
    Action.EARNINGS: {Role.DELIVERY},
}

# The Order column that ties an order to a non-admin actor
OWNERSHIP_FIELD = {
    Role.CUSTOMER: "customer_id",
    Role.RESTAURANT_OWNER: "restaurant_id",
    Role.DELIVERY: "delivery_person_id",
}

ROLE_TARGETS = {
    Role.RESTAURANT_OWNER: frozenset({
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.CANCELLED,
    }),
    Role.DELIVERY: frozenset({
        OrderStatus.PICKED_UP,
        OrderStatus.ON_THE_WAY,
        OrderStatus.DELIVERED,
    }),
    Role.CUSTOMER: frozenset({OrderStatus.CANCELLED}),
    Role.ADMIN: frozenset(OrderStatus.values),
}

# Narrower source windows for specific (role, target) pairs
ROLE_WINDOWS = {
    (Role.CUSTOMER, OrderStatus.CANCELLED): frozenset({
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
    }),
}


def owns(actor, order) -> bool:
    if actor.role == Role.ADMIN:
        return True
    field = OWNERSHIP_FIELD.get(actor.role)
    return field is not None and getattr(order, field) == actor.id


def authorize(actor, action, order=None):
    if actor.role not in ACTION_ROLES.get(action, ()):
        raise Forbidden(f"A {actor.role} account cannot {action.replace('_', ' ')} orders.")
    if order is not None and not owns(actor, order):
        raise Forbidden("You do not have access to this order.")


def authorize_target(actor, target):
    if target not in ROLE_TARGETS.get(actor.role, ()):
        raise Forbidden(f"A {actor.role} account cannot set an order to '{target}'.")


def authorize_window(actor, current, target):
    window = ROLE_WINDOWS.get((actor.role, target))
    if window is not None and current not in window:
        raise Forbidden(
            f"Orders can no longer be {target} by a {actor.role} once they are {current}."
        )
