"""
Synchronisation between the main database and the mobile app database

Users are pulled from the mobile database on login; notifications flow both
ways and are matched on (user, title, created_at) because the two databases
do not share primary keys. None of these helpers raise on database errors:
failures are logged and reported through SyncStatus.errors.
"""
import logging
from datetime import timedelta

from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from uxone.core.models import User, Notification, UserRole, EmployeePosition
from .models import MobileUser, MobileNotification

logger = logging.getLogger(__name__)

SYNC_BATCH_SIZE = 100


class SyncStatus:
    def __init__(self, total=0):
        self.total = total
        self.synced = 0
        self.skipped = 0
        self.errors = []

    def to_dict(self):
        return {
            'total': self.total,
            'synced': self.synced,
            'skipped': self.skipped,
            'errors': self.errors,
        }

    def __repr__(self):
        return f"SyncStatus(total={self.total}, synced={self.synced}, skipped={self.skipped}, errors={len(self.errors)})"


def map_mobile_role(value):
    """Mobile 'role' holds either a system role or a job position"""
    value = (value or '').strip().upper()
    if value in UserRole.values:
        return {'role': value}
    if value in EmployeePosition.values:
        return {'position': value}
    return {'position': EmployeePosition.STAFF}


def find_mobile_user(identifier):
    return MobileUser.objects.filter(Q(username=identifier) | Q(emp_code=identifier)).first()


def sync_user_from_mobile(emp_code):
    """
    Create or refresh the local account of an employee from the mobile database

    Returns the local User, or None when the employee is unknown to the mobile
    database or the mobile database cannot be reached.
    """
    try:
        mobile_user = find_mobile_user(emp_code)
    except DatabaseError as e:
        logger.error(f"Mobile user lookup failed for {emp_code}: {str(e)}")
        return None
    if mobile_user is None:
        logger.info(f"No mobile user found for {emp_code}")
        return None

    defaults = {
        'name': mobile_user.name,
        'email': mobile_user.email or '',
        'department': mobile_user.department or 'OPS',
        'central_department': mobile_user.central_department,
        'department_name': mobile_user.department_name,
        'is_active': mobile_user.is_active,
    }
    defaults.update(map_mobile_role(mobile_user.role))

    user = User.objects.filter(username=mobile_user.username).first()
    if user is None:
        user = User(username=mobile_user.username, **defaults)
        user.set_unusable_password()
        user.save()
        logger.info(f"Created local user {user.username} from mobile database")
        return user

    for field, value in defaults.items():
        setattr(user, field, value)
    user.save(update_fields=list(defaults.keys()) + ['updated_at'])
    logger.info(f"Updated local user {user.username} from mobile database")
    return user


def _mobile_user_for(user):
    return find_mobile_user(user.username)


def sync_notifications(user):
    """Copy the latest mobile notifications of a user into the main database"""
    status = SyncStatus()
    try:
        mobile_user = _mobile_user_for(user)
        if mobile_user is None:
            status.errors.append(f'User {user.username} not found in mobile database')
            return status
        mobile_notifications = list(
            MobileNotification.objects.filter(user=mobile_user).order_by('-created_at')[:SYNC_BATCH_SIZE]
        )
    except DatabaseError as e:
        logger.error(f"Reading mobile notifications failed for {user.username}: {str(e)}")
        status.errors.append(str(e))
        return status

    status.total = len(mobile_notifications)
    for mobile_notification in mobile_notifications:
        try:
            existing = Notification.objects.filter(
                user=user,
                title=mobile_notification.title,
                created_at=mobile_notification.created_at,
            ).first()
            if existing is None:
                Notification.objects.create(
                    user=user,
                    title=mobile_notification.title,
                    message=mobile_notification.message,
                    link=mobile_notification.link,
                    type=mobile_notification.type or 'INFO',
                    read=mobile_notification.read,
                    hidden=mobile_notification.hidden,
                    created_at=mobile_notification.created_at,
                )
                status.synced += 1
            elif existing.read != mobile_notification.read or existing.hidden != mobile_notification.hidden:
                existing.read = mobile_notification.read
                existing.hidden = mobile_notification.hidden
                existing.save(update_fields=['read', 'hidden', 'updated_at'])
                status.synced += 1
            else:
                status.skipped += 1
        except DatabaseError as e:
            logger.error(f"Failed to sync mobile notification {mobile_notification.id}: {str(e)}")
            status.errors.append(f'Notification {mobile_notification.id}: {str(e)}')

    logger.info(f"Notification sync mobile -> main for {user.username}: {status}")
    return status


def sync_notifications_to_mobile(user):
    """Push main-database notifications the mobile database does not have yet"""
    status = SyncStatus()
    try:
        mobile_user = _mobile_user_for(user)
    except DatabaseError as e:
        status.errors.append(str(e))
        return status
    if mobile_user is None:
        status.errors.append(f'User {user.username} not found in mobile database')
        return status

    notifications = list(Notification.objects.filter(user=user).order_by('-created_at')[:SYNC_BATCH_SIZE])
    status.total = len(notifications)
    for notification in notifications:
        try:
            exists = MobileNotification.objects.filter(
                user=mobile_user,
                title=notification.title,
                created_at=notification.created_at,
            ).exists()
            if exists:
                status.skipped += 1
                continue
            MobileNotification.objects.create(
                user=mobile_user,
                title=notification.title,
                message=notification.message,
                link=notification.link,
                type=notification.type,
                read=notification.read,
                hidden=notification.hidden,
                created_at=notification.created_at,
            )
            status.synced += 1
        except DatabaseError as e:
            logger.error(f"Failed to push notification {notification.id} to mobile: {str(e)}")
            status.errors.append(f'Notification {notification.id}: {str(e)}')

    logger.info(f"Notification sync main -> mobile for {user.username}: {status}")
    return status


def sync_notifications_bidirectional(user):
    return {
        'from_mobile': sync_notifications(user),
        'to_mobile': sync_notifications_to_mobile(user),
    }


def mark_notification_read(user, notification_id, is_read=True):
    """Set the read flag locally and on the matching mobile notification"""
    status = SyncStatus(total=2)
    notification = Notification.objects.filter(pk=notification_id, user=user).first()
    if notification is None:
        status.errors.append(f'Notification {notification_id} not found')
        return status

    with transaction.atomic():
        Notification.objects.filter(pk=notification.pk).update(read=is_read, updated_at=timezone.now())
    status.synced += 1

    try:
        mobile_user = _mobile_user_for(user)
        if mobile_user is None:
            status.skipped += 1
            return status
        updated = MobileNotification.objects.filter(
            user=mobile_user,
            title=notification.title,
            created_at=notification.created_at,
        ).update(read=is_read, updated_at=timezone.now())
        if updated:
            status.synced += 1
        else:
            status.skipped += 1
    except DatabaseError as e:
        logger.error(f"Failed to mark mobile notification read for {user.username}: {str(e)}")
        status.errors.append(str(e))
    return status


def get_notification_counts(user):
    counts = {
        'main_count': Notification.objects.filter(user=user).count(),
        'unread_main': Notification.objects.filter(user=user, read=False).count(),
        'mobile_count': 0,
        'unread_mobile': 0,
    }
    try:
        mobile_user = _mobile_user_for(user)
        if mobile_user is not None:
            mobile_notifications = MobileNotification.objects.filter(user=mobile_user)
            counts['mobile_count'] = mobile_notifications.count()
            counts['unread_mobile'] = mobile_notifications.filter(read=False).count()
    except DatabaseError as e:
        logger.error(f"Counting mobile notifications failed for {user.username}: {str(e)}")
    return counts


def cleanup_old_notifications(user, days=30):
    """Delete read notifications older than `days` in both databases"""
    status = SyncStatus()
    cutoff = timezone.now() - timedelta(days=days)

    deleted, _ = Notification.objects.filter(user=user, read=True, created_at__lt=cutoff).delete()
    status.synced += deleted

    try:
        mobile_user = _mobile_user_for(user)
        if mobile_user is not None:
            deleted, _ = MobileNotification.objects.filter(
                user=mobile_user, read=True, created_at__lt=cutoff
            ).delete()
            status.synced += deleted
    except DatabaseError as e:
        logger.error(f"Mobile notification cleanup failed for {user.username}: {str(e)}")
        status.errors.append(str(e))

    status.total = status.synced
    logger.info(f"Cleaned up {status.synced} notifications older than {days} days for {user.username}")
    return status
