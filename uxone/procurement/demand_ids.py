"""Demand id generation: LR-YYYYMMDD-XXX with a per-day sequence"""
import logging
import re

from django.db import transaction
from django.utils import timezone

from .models import Demand, DemandSequence

logger = logging.getLogger(__name__)

DEMAND_ID_RE = re.compile(r'^LR-(\d{8})-\d{3,}$')
MAX_ATTEMPTS = 10


def current_date_string(now=None):
    return (now or timezone.localtime()).strftime('%Y%m%d')


def _next_sequence(date_string):
    with transaction.atomic():
        sequence, _ = DemandSequence.objects.select_for_update().get_or_create(
            date=date_string, defaults={'sequence': 0}
        )
        sequence.sequence += 1
        sequence.save(update_fields=['sequence', 'updated_at'])
        return sequence.sequence


def generate_demand_id(now=None):
    """
    Next demand id for today. The counter row is locked while incremented;
    ids that already exist (e.g. migrated data) are skipped.
    """
    date_string = current_date_string(now)
    for _ in range(MAX_ATTEMPTS):
        demand_id = f"LR-{date_string}-{str(_next_sequence(date_string)).zfill(3)}"
        if not Demand.objects.filter(id=demand_id).exists():
            return demand_id
        logger.warning(f"Demand ID {demand_id} already exists, generating new one")
    raise RuntimeError(f"Could not allocate a demand id for {date_string}")


def validate_demand_id(demand_id):
    return bool(DEMAND_ID_RE.match(demand_id or ''))


def extract_date_from_demand_id(demand_id):
    """'LR-20250314-001' -> '2025-03-14'; None when the id is malformed"""
    match = DEMAND_ID_RE.match(demand_id or '')
    if not match:
        return None
    date_string = match.group(1)
    return f"{date_string[:4]}-{date_string[4:6]}-{date_string[6:]}"
