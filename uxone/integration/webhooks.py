"""Outgoing notification webhooks to the mobile app"""
import logging
import time

import requests
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

HEALTH_CHECK_USER = 'health-check'


def send_webhook_to_mobile(payload):
    """
    POST one notification payload to the mobile app.

    Returns {'success': bool, 'status_code': int|None, 'error': str|None};
    network errors are reported, not raised.
    """
    headers = {
        'Content-Type': 'application/json',
        'X-Webhook-Secret': settings.WEBHOOK_SECRET,
        'X-Source': 'uxone',
    }
    try:
        response = requests.post(
            settings.MOBILE_WEBHOOK_URL,
            json=payload,
            headers=headers,
            timeout=settings.WEBHOOK_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.warning(f"Webhook to mobile failed: {str(e)}")
        return {'success': False, 'status_code': None, 'error': str(e)}

    if response.ok:
        return {'success': True, 'status_code': response.status_code, 'error': None}
    logger.warning(f"Webhook to mobile rejected with HTTP {response.status_code}")
    return {'success': False, 'status_code': response.status_code, 'error': f'HTTP {response.status_code}: {response.text[:200]}'}


def transform_notification_for_webhook(notification, target_user_id):
    return {
        'userId': str(target_user_id),
        'title': notification.title,
        'message': notification.message,
        'type': notification.type,
        'link': notification.link,
        'createdAt': notification.created_at.isoformat(),
        'source': 'uxone',
    }


def send_webhook_with_retry(payload, max_retries=3):
    """Retry failed deliveries, waiting 2s then 4s between attempts"""
    result = None
    for attempt in range(1, max_retries + 1):
        result = send_webhook_to_mobile(payload)
        if result['success']:
            result['attempts'] = attempt
            return result
        if attempt < max_retries:
            time.sleep(2 ** attempt)
    logger.error(f"Webhook delivery failed after {max_retries} attempts: {result['error']}")
    result['attempts'] = max_retries
    return result


def send_batch_webhooks(notifications, target_user_id, max_retries=3):
    summary = {'total': len(notifications), 'successful': 0, 'failed': 0, 'errors': []}
    for notification in notifications:
        result = send_webhook_with_retry(transform_notification_for_webhook(notification, target_user_id),
                                         max_retries=max_retries)
        if result['success']:
            summary['successful'] += 1
        else:
            summary['failed'] += 1
            summary['errors'].append(f"{notification.title}: {result['error']}")
    return summary


def check_webhook_health():
    """Send a health-check payload and time the round trip"""
    payload = {
        'userId': HEALTH_CHECK_USER,
        'title': 'Health Check',
        'message': 'Webhook health check',
        'type': 'INFO',
        'createdAt': timezone.now().isoformat(),
        'source': 'uxone',
    }
    started = time.monotonic()
    result = send_webhook_to_mobile(payload)
    return {
        'healthy': result['success'],
        'response_time': round((time.monotonic() - started) * 1000),
        'error': result['error'],
    }
