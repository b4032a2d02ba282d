"""
Read-side queries for orders. Nothing here writes.
"""
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncDate

from apps.accounts.models import Role
from apps.utils.exceptions import DomainValidationError, Forbidden
from apps.utils.pagination import paginate_queryset
from apps.utils.utils import money, now
from .filters import OrderFilter
from .models import Order, OrderStatus
from .policies import Action, authorize

PERIOD_DAYS = {
    "day": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}
DEFAULT_PERIOD = "month"
BREAKDOWN_PERIODS = {"week", "month"}


def order_queryset():
    return (
        Order.objects
        .select_related("customer", "restaurant", "delivery_person", "rating")
        .prefetch_related("items")
    )


# One scope per role, picked once per request
ROLE_SCOPES = {
    Role.CUSTOMER: lambda actor, qs: qs.filter(customer=actor),
    Role.RESTAURANT_OWNER: lambda actor, qs: qs.filter(restaurant=actor),
    Role.DELIVERY: lambda actor, qs: qs.filter(delivery_person=actor),
    Role.ADMIN: lambda actor, qs: qs,
}


def scoped_orders(actor, queryset=None):
    scope = ROLE_SCOPES.get(actor.role)
    if scope is None:
        raise Forbidden("Your account cannot list orders.")
    return scope(actor, order_queryset() if queryset is None else queryset)


def _filtered(queryset, params):
    filterset = OrderFilter(data=params, queryset=queryset)
    if not filterset.is_valid():
        raise DomainValidationError("Invalid filters.", errors=filterset.errors.get_json_data())
    return filterset.qs


def list_orders(actor, params):
    authorize(actor, Action.LIST)
    qs = _filtered(scoped_orders(actor), params).order_by("-created_at", "-id")
    return paginate_queryset(qs, params.get("page"), params.get("limit"))


def restaurant_orders(actor, params):
    authorize(actor, Action.LIST_RESTAURANT)
    qs = _filtered(order_queryset().filter(restaurant=actor), params).order_by("-created_at", "-id")
    return paginate_queryset(qs, params.get("page"), params.get("limit"))


def available_orders(actor, params):
    """
    Ready orders nobody has picked up yet, oldest first.
    """
    authorize(actor, Action.LIST_AVAILABLE)
    qs = order_queryset().filter(
        status=OrderStatus.READY, delivery_person__isnull=True
    ).order_by("created_at", "id")
    return paginate_queryset(qs, params.get("page"), params.get("limit"))


def _period_window(period):
    period = period or DEFAULT_PERIOD
    if period not in PERIOD_DAYS:
        raise DomainValidationError(
            f"Unknown period '{period}'.", errors={"period": list(PERIOD_DAYS)}
        )
    return period, now() - timedelta(days=PERIOD_DAYS[period])


class OrderStatsService:

    @staticmethod
    def summarize(actor, period=None):
        authorize(actor, Action.STATS)
        period, since = _period_window(period)

        qs = scoped_orders(actor, Order.objects.all()).filter(created_at__gte=since)

        delivered = Q(status=OrderStatus.DELIVERED)
        agg = qs.aggregate(
            total_orders=Count("id"),
            completed_orders=Count("id", filter=delivered),
            cancelled_orders=Count("id", filter=Q(status=OrderStatus.CANCELLED)),
            total_revenue=Sum("total_amount", filter=delivered),
        )

        revenue = money(agg["total_revenue"] or Decimal("0"))
        completed = agg["completed_orders"]
        return {
            "period": period,
            "since": since,
            "total_orders": agg["total_orders"],
            "total_revenue": revenue,
            "avg_order_value": money(revenue / completed) if completed else money(0),
            "completed_orders": completed,
            "cancelled_orders": agg["cancelled_orders"],
        }

    @staticmethod
    def earnings(actor, period=None):
        """
        Delivery fees a rider earned on orders delivered inside the period.
        Week and month summaries carry a per-day breakdown as well.
        """
        authorize(actor, Action.EARNINGS)
        period, since = _period_window(period)

        qs = ROLE_SCOPES[Role.DELIVERY](actor, Order.objects.all()).filter(
            status=OrderStatus.DELIVERED,
            actual_delivery_time__gte=since,
        )
        agg = qs.aggregate(total=Sum("delivery_fee"), deliveries=Count("id"))

        total = money(agg["total"] or Decimal("0"))
        deliveries = agg["deliveries"]

        breakdown = []
        if period in BREAKDOWN_PERIODS:
            rows = (
                qs.annotate(date=TruncDate("actual_delivery_time"))
                .values("date")
                .annotate(earnings=Sum("delivery_fee"), deliveries=Count("id"))
                .order_by("date")
            )
            breakdown = [
                {"date": row["date"], "earnings": money(row["earnings"]), "deliveries": row["deliveries"]}
                for row in rows
            ]

        return {
            "period": period,
            "since": since,
            "total_earnings": total,
            "delivery_count": deliveries,
            "avg_earnings_per_delivery": money(total / deliveries) if deliveries else money(0),
            "breakdown": breakdown,
        }
