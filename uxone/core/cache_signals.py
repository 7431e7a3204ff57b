"""
Cache invalidation signals
Dashboard KPIs are derived from projects, tasks and comments, so any write to
those models drops the cached KPI payloads.
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .cache_utils import invalidate_dashboard_cache

logger = logging.getLogger(__name__)

DASHBOARD_SOURCES = ('projects.Project', 'projects.Task', 'projects.Comment')


def _invalidate_dashboard(sender, instance, **kwargs):
    logger.debug(f"{sender.__name__} {instance.pk} changed, invalidating dashboard cache")
    invalidate_dashboard_cache()


for _source in DASHBOARD_SOURCES:
    receiver(post_save, sender=_source, dispatch_uid=f'dashboard_save_{_source}')(_invalidate_dashboard)
    receiver(post_delete, sender=_source, dispatch_uid=f'dashboard_delete_{_source}')(_invalidate_dashboard)
