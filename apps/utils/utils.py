import uuid
from decimal import Decimal, ROUND_HALF_UP
from django.utils import timezone

CENT = Decimal("0.01")


def now():
    return timezone.now()


def generate_order_number():
    """
    ORD-<yymmdd>-<10 hex chars>. The random part comes from uuid4,
    the DB unique constraint on Order.order_number is the final guard.
    """
    return f"ORD-{timezone.now():%y%m%d}-{uuid.uuid4().hex[:10].upper()}"


def money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)

