"""
Timezone helpers. The clinic runs on Asia/Manila time (settings.TIME_ZONE),
so "today" for dose schedules and dashboards is always the Manila date.
"""
from django.utils import timezone


def get_manila_now():
    return timezone.localtime(timezone.now())


def get_manila_today():
    return timezone.localtime(timezone.now()).date()


def get_manila_date(dt):
    """
    Convert a datetime to Manila timezone and extract the date.

    Args:
        dt (datetime): A timezone-aware or naive datetime

    Returns:
        date: The date in Asia/Manila timezone, or None
    """
    if dt is None:
        return None

    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt)

    return timezone.localtime(dt).date()


def parse_int(value, default=None):
    """int() that returns default for blank or malformed input"""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


# Calendar pages only navigate within these years
MIN_CALENDAR_YEAR = 1900
MAX_CALENDAR_YEAR = 2999


def month_from_request(request, today):
    """(year, month) from ?year=&month=, falling back to the current month"""
    year = parse_int(request.GET.get('year'), today.year)
    month = parse_int(request.GET.get('month'), today.month)
    if not MIN_CALENDAR_YEAR <= year <= MAX_CALENDAR_YEAR or not 1 <= month <= 12:
        return today.year, today.month
    return year, month
