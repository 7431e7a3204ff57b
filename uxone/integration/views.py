import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from uxone.core.models import Notification
from uxone.core.permissions import require_permission
from uxone.core.rbac import Permissions, has_permission
from uxone.core.serializers import UserSerializer
from uxone.core.utils import create_audit_log
from .sync import (
    sync_user_from_mobile, sync_notifications, sync_notifications_to_mobile,
    sync_notifications_bidirectional, get_notification_counts, cleanup_old_notifications
)
from .webhooks import send_batch_webhooks, check_webhook_health

logger = logging.getLogger(__name__)

SYNC_DIRECTIONS = ('from_mobile', 'to_mobile', 'both')
PUSH_BATCH_LIMIT = 10


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def sync_user(request):
    """Refresh a local account from the mobile database; other users need user:update"""
    emp_code = (request.data.get('emp_code') or '').strip()
    if not emp_code:
        return Response({'error': 'emp_code is required'}, status=status.HTTP_400_BAD_REQUEST)
    if emp_code != request.user.username and not has_permission(request.user, Permissions.USER_UPDATE):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    user = sync_user_from_mobile(emp_code)
    if user is None:
        return Response({'error': f'Employee {emp_code} not found in mobile database'},
                        status=status.HTTP_404_NOT_FOUND)

    create_audit_log(
        request=request,
        action='sync',
        model_name='User',
        object_id=user.id,
        object_name=user.display_name,
        object_reference=user.username,
    )
    return Response({'success': True, 'user': UserSerializer(user).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_sync(request):
    """Sync the caller's notifications; direction is from_mobile, to_mobile or both"""
    direction = request.data.get('direction', 'both')
    if direction not in SYNC_DIRECTIONS:
        return Response({'error': f"direction must be one of {', '.join(SYNC_DIRECTIONS)}"},
                        status=status.HTTP_400_BAD_REQUEST)

    if direction == 'from_mobile':
        results = {'from_mobile': sync_notifications(request.user)}
    elif direction == 'to_mobile':
        results = {'to_mobile': sync_notifications_to_mobile(request.user)}
    else:
        results = sync_notifications_bidirectional(request.user)

    results = {key: result.to_dict() for key, result in results.items()}
    success = not any(result['errors'] for result in results.values())
    return Response({'success': success, 'direction': direction, 'results': results})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_counts(request):
    return Response(get_notification_counts(request.user))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_cleanup(request):
    try:
        days = int(request.data.get('days', 30))
    except (TypeError, ValueError):
        return Response({'error': 'days must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    if days < 1:
        return Response({'error': 'days must be at least 1'}, status=status.HTTP_400_BAD_REQUEST)

    result = cleanup_old_notifications(request.user, days=days)
    return Response({'deleted': result.synced, 'days': days, 'errors': result.errors})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_push(request):
    """
    Deliver the caller's most recent unread notifications to the mobile app.

    Runs inside the request, so the batch is capped and each notification is sent
    once; the sync_notifications command with --push delivers the rest with retries.
    """
    pending = Notification.objects.filter(user=request.user, read=False, hidden=False)
    notifications = list(pending[:PUSH_BATCH_LIMIT])
    summary = send_batch_webhooks(notifications, request.user.username, max_retries=1)
    summary['remaining'] = max(pending.count() - len(notifications), 0)
    logger.info(f"Pushed {summary['successful']}/{summary['total']} notifications for {request.user.username}")
    return Response(summary)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission(Permissions.SYSTEM_ADMIN)])
def webhook_health(request):
    health = check_webhook_health()
    return Response(health, status=status.HTTP_200_OK if health['healthy'] else status.HTTP_503_SERVICE_UNAVAILABLE)
