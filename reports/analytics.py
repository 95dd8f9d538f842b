# reports/analytics.py
"""
Bite-case analytics computed from appointment rows.

Every function works on plain dicts (as returned by QuerySet.values()) so
the reductions can be tested without the database. Nothing is cached; the
figures are recomputed on each request.
"""
import calendar
from datetime import timedelta

from appointments.models import Appointment
from core.utils import get_manila_today

ROW_FIELDS = ('appointment_date', 'biting_animal', 'time_bitten', 'patient_age', 'place_bitten')

PERIODS = ('week', 'month', 'year')

KNOWN_ANIMALS = ('dog', 'cat', 'rat', 'monkey', 'bat')

CHART_COLORS = [
    '#3b82f6', '#f59e0b', '#10b981', '#8b5cf6', '#ef4444',
    '#06b6d4', '#f97316', '#84cc16', '#ec4899', '#6366f1',
]

# (label, start hour, end hour)
TIME_SLOTS = [
    ('6:00 AM', 6, 8),
    ('8:00 AM', 8, 10),
    ('10:00 AM', 10, 12),
    ('12:00 PM', 12, 14),
    ('2:00 PM', 14, 16),
    ('4:00 PM', 16, 18),
    ('6:00 PM', 18, 20),
    ('8:00 PM', 20, 22),
]

# (label, min age, max age); None means no upper bound
AGE_GROUPS = [
    ('0-10 years', 0, 10),
    ('11-20 years', 11, 20),
    ('21-30 years', 21, 30),
    ('31-40 years', 31, 40),
    ('41-50 years', 41, 50),
    ('51+ years', 51, None),
]

MONTH_LABELS = [calendar.month_abbr[m] for m in range(1, 13)]


def appointment_rows():
    return list(Appointment.objects.values(*ROW_FIELDS))


def _percentage(count, total):
    return round(count / total * 100) if total > 0 else 0


def _one_month_before(day):
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


def filter_period(rows, year, period='month', today=None):
    """
    Rows whose appointment date falls in `year`, narrowed to the last 7 days
    for 'week' or the last month for 'month'. 'year' keeps the whole year.
    """
    today = today or get_manila_today()
    filtered = [row for row in rows if row.get('appointment_date') and row['appointment_date'].year == year]

    if period == 'week':
        start = today - timedelta(days=7)
    elif period == 'month':
        start = _one_month_before(today)
    else:
        return filtered
    return [row for row in filtered if row['appointment_date'] >= start]


def normalize_animal(value):
    """'dog', 'DOG' and 'Stray dog ' all count as 'Dog'"""
    animal = (value or '').strip()
    if not animal:
        return ''
    lowered = animal.lower()
    for name in KNOWN_ANIMALS:
        if name in lowered:
            return name.capitalize()
    return animal[0].upper() + animal[1:].lower()


def animal_type_breakdown(rows):
    counts = {}
    for row in rows:
        animal = normalize_animal(row.get('biting_animal'))
        if animal:
            counts[animal] = counts.get(animal, 0) + 1

    total = sum(counts.values())
    ordered = sorted(counts.items(), key=lambda item: -item[1])
    return [
        {
            'animal': animal,
            'count': count,
            'percentage': _percentage(count, total),
            'color': CHART_COLORS[index % len(CHART_COLORS)],
        }
        for index, (animal, count) in enumerate(ordered)
    ]


def hour_of(time_bitten):
    """Hour before the first ':' of a time string, or None when unusable"""
    if time_bitten is None:
        return None
    try:
        hour = int(str(time_bitten).strip().split(':')[0])
    except ValueError:
        return None
    if hour < 0 or hour >= 24:
        return None
    return hour


def time_slot_for(time_bitten):
    hour = hour_of(time_bitten)
    if hour is None:
        return None
    for label, start, end in TIME_SLOTS:
        if start <= hour < end:
            return label
    return None


def time_of_day_breakdown(rows):
    counts = {label: 0 for label, _, _ in TIME_SLOTS}
    for row in rows:
        label = time_slot_for(row.get('time_bitten'))
        if label:
            counts[label] += 1
    return [
        {'time': label, 'start': start, 'end': end, 'count': counts[label]}
        for label, start, end in TIME_SLOTS
    ]


def age_group_for(age):
    try:
        age = int(age)
    except (TypeError, ValueError):
        return None
    for label, low, high in AGE_GROUPS:
        if age >= low and (high is None or age <= high):
            return label
    return None


def age_breakdown(rows):
    counts = {label: 0 for label, _, _ in AGE_GROUPS}
    for row in rows:
        label = age_group_for(row.get('patient_age'))
        if label:
            counts[label] += 1

    total = sum(counts.values())
    return [
        {
            'age_group': label,
            'count': counts[label],
            'percentage': _percentage(counts[label], total),
            'color': CHART_COLORS[index % len(CHART_COLORS)],
        }
        for index, (label, _, _) in enumerate(AGE_GROUPS)
    ]


def monthly_trend(rows):
    counts = [0] * 12
    for row in rows:
        if row.get('appointment_date'):
            counts[row['appointment_date'].month - 1] += 1
    return [{'month': MONTH_LABELS[i], 'cases': counts[i]} for i in range(12)]


def yearly_trend(rows, current_year=None):
    """Cases per year from at least five years back up to the current year, zero-filled"""
    current_year = current_year or get_manila_today().year
    counts = {}
    for row in rows:
        if row.get('appointment_date'):
            year = row['appointment_date'].year
            counts[year] = counts.get(year, 0) + 1

    first = min(list(counts) + [current_year - 4])
    last = max(list(counts) + [current_year])
    return [{'year': year, 'cases': counts.get(year, 0)} for year in range(first, last + 1)]


def available_years(rows, current_year=None):
    current_year = current_year or get_manila_today().year
    years = {row['appointment_date'].year for row in rows if row.get('appointment_date')}
    years.add(current_year)
    return sorted(years, reverse=True)


def build_analytics(rows, year, period='month', today=None):
    """Everything the analytics page shows for one year/period selection"""
    today = today or get_manila_today()
    filtered = filter_period(rows, year, period, today=today)
    animals = animal_type_breakdown(filtered)
    time_data = time_of_day_breakdown(filtered)
    monthly = monthly_trend(filtered)

    peak_time = max(time_data, key=lambda slot: slot['count']) if filtered else None
    peak_month = max(monthly, key=lambda month: month['cases']) if filtered else None

    return {
        'year': year,
        'period': period,
        'total_cases': len(filtered),
        'animal_types': animals,
        'time_of_day': time_data,
        'age_groups': age_breakdown(filtered),
        'monthly_trend': monthly,
        'yearly_trend': yearly_trend(rows, current_year=today.year),
        'available_years': available_years(rows, current_year=today.year),
        'top_animal': animals[0] if animals else None,
        'peak_time': peak_time,
        'peak_month': peak_month,
    }
