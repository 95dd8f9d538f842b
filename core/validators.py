# core/validators.py
import re
from datetime import datetime

from django.core.exceptions import ValidationError


def clean_name(name, field_name="name", max_length=100):
    """
    Collapse whitespace and validate a person's name.

    Raises:
        ValidationError: If name format is invalid
    """
    if not name:
        raise ValidationError(f'Please enter a {field_name}.')

    name = ' '.join(name.split())

    if len(name) < 2:
        raise ValidationError(f'{field_name.capitalize()} must be at least 2 characters long.')

    if len(name) > max_length:
        raise ValidationError(f'{field_name.capitalize()} must not exceed {max_length} characters.')

    # Letters (including accented), spaces, periods, hyphens and apostrophes
    if not re.match(r"^[a-zA-ZÀ-ÿñÑ\s'.\-]+$", name):
        raise ValidationError(
            f'{field_name.capitalize()} can only contain letters, spaces, periods, hyphens, and apostrophes.'
        )

    return name


def clean_philippine_phone_number(phone, field_name="phone number"):
    """
    Normalize a Philippine mobile number to +639XXXXXXXXX.

    Accepts 09XXXXXXXXX, 639XXXXXXXXX, 9XXXXXXXXX and +639XXXXXXXXX, with
    spaces or dashes. Returns '' for empty input.
    """
    if not phone:
        return ''

    phone = phone.strip().replace(' ', '').replace('-', '')
    if not phone:
        return ''

    if phone.startswith('09'):
        phone = '+63' + phone[1:]
    elif phone.startswith('639'):
        phone = '+' + phone
    elif phone.startswith('9') and len(phone) == 10:
        phone = '+63' + phone

    if not re.match(r'^\+639\d{9}$', phone):
        raise ValidationError(f'Please enter a valid {field_name}.')

    return phone


def clean_time_of_day(value):
    """Accept HH:MM (24-hour) or blank; returns the normalized HH:MM string"""
    if not value:
        return ''
    value = value.strip()
    for fmt in ('%H:%M', '%I:%M %p', '%H:%M:%S'):
        try:
            return datetime.strptime(value, fmt).strftime('%H:%M')
        except ValueError:
            continue
    raise ValidationError('Enter a time such as 14:30.')
