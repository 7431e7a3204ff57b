"""
Ticket number generation

Email tickets:  {email_prefix}-{YYMMDD}-{sequence}   e.g. TIPA-HD-250314-007
Manual tickets: {manual_prefix}-{sequence}           e.g. TKT-000042

Prefixes and padding are read from Setting rows in the ``ticket_numbering``
category and fall back to the defaults below.
"""
import logging

from django.utils import timezone

from uxone.core.models import Setting
from .models import Ticket

logger = logging.getLogger(__name__)

SETTINGS_CATEGORY = 'ticket_numbering'

DEFAULT_CONFIG = {
    'email_prefix': 'TIPA-HD',
    'email_sequence_padding': 3,
    'manual_prefix': 'TKT',
    'manual_sequence_padding': 6,
}

SETTING_DESCRIPTIONS = {
    'email_prefix': 'Email-based ticket prefix',
    'email_sequence_padding': 'Email ticket sequence padding',
    'manual_prefix': 'Manual ticket prefix',
    'manual_sequence_padding': 'Manual ticket sequence padding',
}

PADDING_LIMITS = {
    'email_sequence_padding': (1, 5),
    'manual_sequence_padding': (1, 8),
}


def get_numbering_config():
    """Current numbering config; unreadable values fall back to defaults"""
    config = dict(DEFAULT_CONFIG)
    rows = Setting.objects.filter(category=SETTINGS_CATEGORY, is_active=True, key__in=DEFAULT_CONFIG.keys())
    for row in rows:
        if row.key in PADDING_LIMITS:
            try:
                config[row.key] = int(row.value)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring invalid ticket numbering setting {row.key}={row.value!r}")
        elif row.value:
            config[row.key] = row.value
    return config


def save_numbering_config(values):
    """Validate and upsert the numbering settings; returns (config, errors)"""
    errors = []
    if not values.get('email_prefix') or not values.get('manual_prefix'):
        errors.append('Email prefix and manual prefix are required')
    for key, (low, high) in PADDING_LIMITS.items():
        try:
            padding = int(values.get(key, DEFAULT_CONFIG[key]))
        except (TypeError, ValueError):
            errors.append(f'{key} must be an integer')
            continue
        if not low <= padding <= high:
            label = 'Email' if key.startswith('email') else 'Manual'
            errors.append(f'{label} sequence padding must be between {low} and {high}')
    if errors:
        return None, errors

    for key in DEFAULT_CONFIG:
        value = values.get(key, DEFAULT_CONFIG[key])
        Setting.objects.update_or_create(
            key=key,
            defaults={
                'value': str(value).strip(),
                'category': SETTINGS_CATEGORY,
                'description': SETTING_DESCRIPTIONS[key],
                'is_active': True,
            },
        )
    return get_numbering_config(), []


def _sequence_of(ticket_number):
    try:
        return int(ticket_number.rsplit('-', 1)[-1])
    except (ValueError, IndexError):
        return 0


def generate_email_ticket_number(now=None):
    """Next email ticket number for today, continuing from the highest one issued"""
    config = get_numbering_config()
    now = now or timezone.localtime()
    date_string = now.strftime('%y%m%d')
    base = f"{config['email_prefix']}-{date_string}-"

    existing = Ticket.objects.filter(ticket_number__startswith=base).values_list('ticket_number', flat=True)
    last_sequence = max((_sequence_of(number) for number in existing), default=0)
    return f"{base}{str(last_sequence + 1).zfill(config['email_sequence_padding'])}"


def generate_manual_ticket_number():
    """Ticket count + 1, skipping forward past numbers that are already taken"""
    config = get_numbering_config()
    sequence = Ticket.objects.count() + 1
    while True:
        number = f"{config['manual_prefix']}-{str(sequence).zfill(config['manual_sequence_padding'])}"
        if not Ticket.objects.filter(ticket_number=number).exists():
            return number
        sequence += 1
