from decimal import Decimal

from django.conf import settings

from apps.utils.exceptions import DomainValidationError
from apps.utils.utils import money
from .models import Coupon

ZERO = Decimal("0.00")


def resolve_coupon(code, subtotal, at):
    """
    Look up an active coupon and check its window and minimum purchase.
    """
    try:
        coupon = Coupon.objects.get(code__iexact=code.strip(), active=True)
    except Coupon.DoesNotExist:
        raise DomainValidationError("Invalid coupon code.", code="coupon_invalid")

    if not (coupon.valid_from <= at <= coupon.valid_to):
        raise DomainValidationError("This coupon has expired.", code="coupon_expired")

    if subtotal < coupon.min_purchase_amount:
        raise DomainValidationError(
            f"A minimum purchase of {coupon.min_purchase_amount} is required for this coupon.",
            code="coupon_min_purchase",
        )
    return coupon


def coupon_discount(coupon, subtotal):
    if coupon is None:
        return ZERO
    if coupon.is_percentage:
        discount = subtotal * coupon.discount_value / Decimal("100")
    else:
        discount = coupon.discount_value
    return money(min(discount, subtotal))


def calculate_pricing(subtotal, coupon=None):
    """
    Price breakdown for an order. Fees and tax are derived from the
    subtotal; the total never goes below zero.
    """
    subtotal = money(subtotal)
    delivery_fee = money(settings.BASE_DELIVERY_FEE)
    service_fee = money(subtotal * Decimal(str(settings.SERVICE_FEE_RATE)))
    tax = money(subtotal * Decimal(str(settings.TAX_RATE)))
    discount = coupon_discount(coupon, subtotal)

    total = subtotal + delivery_fee + service_fee + tax - discount
    return {
        "subtotal": subtotal,
        "delivery_fee": delivery_fee,
        "service_fee": service_fee,
        "tax": tax,
        "discount": discount,
        "total_amount": max(money(total), ZERO),
    }
