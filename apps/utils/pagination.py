from django.conf import settings
from django.core.paginator import Paginator

from .exceptions import DomainValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def _positive_int(value, default, name):
    if value in (None, ""):
        return default
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise DomainValidationError(f"'{name}' must be an integer.")
    if value < 1:
        raise DomainValidationError(f"'{name}' must be at least 1.")
    return value


def paginate_queryset(queryset, page=None, limit=None, key="orders"):
    """
    Page/limit pagination over an ordered queryset.

    Returns {key: [...], total_count, total_pages, current_page}.
    A page past the end yields an empty list rather than an error.
    """
    page = _positive_int(page, DEFAULT_PAGE, "page")
    limit = min(
        _positive_int(limit, DEFAULT_LIMIT, "limit"),
        getattr(settings, "ORDER_PAGE_SIZE_MAX", 100),
    )

    paginator = Paginator(queryset, limit)
    total_count = paginator.count
    total_pages = paginator.num_pages if total_count else 0

    if page > paginator.num_pages:
        rows = []
    else:
        rows = list(paginator.page(page).object_list)

    return {
        key: rows,
        "total_count": total_count,
        "total_pages": total_pages,
        "current_page": page,
    }
