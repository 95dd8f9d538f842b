# reports/geo.py
"""
Barangay coordinates and per-barangay case counts for the bite-case map.
"""
from django.db.models import Count
from django.db.models.functions import Trim

from appointments.models import Appointment

MAP_CENTER = (11.044526, 124.004376)

BARANGAY_COORDINATES = {
    'Taytayan': (11.0488, 123.9919),
    'Barangay Taytayan': (11.0488, 123.9919),
    'Barangay 1': (11.0500, 124.0100),
    'Barangay 2': (11.0450, 124.0050),
    'Barangay 3': (11.0400, 124.0000),
    'Barangay 4': (11.0350, 124.0080),
    'Barangay 5': (11.0480, 124.0030),
    'Barangay 6': (11.0420, 124.0120),
    'Barangay 7': (11.0380, 124.0060),
    'Barangay 8': (11.0520, 124.0070),
    'Barangay 9': (11.0460, 124.0020),
    'Barangay 10': (11.0410, 124.0090),
}

# (minimum cases, level, color), highest first
RISK_LEVELS = [
    (20, 'High', '#ef4444'),
    (10, 'Medium', '#f97316'),
    (5, 'Low', '#eab308'),
    (0, 'Minimal', '#22c55e'),
]


def fallback_coordinates(name):
    """Stable pseudo-coordinate within 0.1 degrees of the map centre"""
    h = sum(ord(c) for c in name)
    lat = MAP_CENTER[0] + ((h % 200) - 100) / 1000
    lng = MAP_CENTER[1] + (((h * 7) % 200) - 100) / 1000
    return (lat, lng)


def coordinates_for(name):
    """
    Exact name, then case-insensitive name, then a partial match either way.
    Unknown names fall back to a generated coordinate.
    """
    name = (name or '').strip()
    if name in BARANGAY_COORDINATES:
        return BARANGAY_COORDINATES[name]

    lowered = name.lower()
    for known, coords in BARANGAY_COORDINATES.items():
        if known.lower() == lowered:
            return coords

    if lowered:
        for known, coords in BARANGAY_COORDINATES.items():
            known_lower = known.lower()
            if known_lower in lowered or lowered in known_lower:
                return coords

    return fallback_coordinates(name)


def risk_level(count):
    for minimum, level, color in RISK_LEVELS:
        if count >= minimum:
            return level, color
    return RISK_LEVELS[-1][1], RISK_LEVELS[-1][2]


def barangay_case_count(name):
    """Appointments whose place bitten matches the name, ignoring case"""
    name = (name or '').strip()
    if not name:
        return 0
    return Appointment.objects.annotate(place=Trim('place_bitten')).filter(place__iexact=name).count()


def barangay_counts():
    """{trimmed place_bitten: count}, skipping blank places"""
    rows = (
        Appointment.objects
        .annotate(place=Trim('place_bitten'))
        .exclude(place='')
        .order_by()
        .values('place')
        .annotate(total=Count('id'))
    )
    counts = {}
    for row in rows:
        counts[row['place']] = counts.get(row['place'], 0) + row['total']
    return counts


def barangay_map_data(counts=None):
    """One marker per barangay with cases, largest count first"""
    if counts is None:
        counts = barangay_counts()

    markers = []
    for name, count in sorted(counts.items(), key=lambda item: (-item[1], item[0])):
        lat, lng = coordinates_for(name)
        level, color = risk_level(count)
        markers.append({
            'barangay': name,
            'count': count,
            'lat': lat,
            'lng': lng,
            'risk_level': level,
            'color': color,
        })
    return markers
