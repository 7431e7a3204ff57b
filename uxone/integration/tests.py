"""
Test suite for the mobile integration module
Tests: database routing, user sync, notification sync both ways, cleanup, webhooks, API endpoints, management command
"""
from datetime import timedelta
from io import StringIO
from unittest.mock import patch, MagicMock

import requests
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from uxone.core.models import User, Notification, AuditLog, UserRole, EmployeePosition
from uxone.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from uxone.integration.models import MobileUser, MobileNotification
from uxone.integration.routers import MobileDatabaseRouter
from uxone.integration.sync import (
    map_mobile_role, sync_user_from_mobile, sync_notifications, sync_notifications_to_mobile,
    sync_notifications_bidirectional, mark_notification_read, get_notification_counts,
    cleanup_old_notifications
)
from uxone.integration.webhooks import (
    send_webhook_to_mobile, send_webhook_with_retry, send_batch_webhooks,
    transform_notification_for_webhook, check_webhook_health
)


def create_mobile_user(username='EMP001', emp_code='E001', role='USER', department='QC', **kwargs):
    return MobileUser.objects.create(
        username=username,
        emp_code=emp_code,
        name=kwargs.pop('name', 'Nguyen Van An'),
        email=kwargs.pop('email', f'{username.lower()}@example.com'),
        department=department,
        role=role,
        **kwargs
    )


def create_mobile_notification(mobile_user, title, read=False, created_at=None):
    return MobileNotification.objects.create(
        user=mobile_user,
        title=title,
        message='From the mobile app',
        read=read,
        created_at=created_at or timezone.now(),
    )


def webhook_response(ok=True, status_code=200, text=''):
    return MagicMock(ok=ok, status_code=status_code, text=text)


class MobileDatabaseRouterTests(TestCase):

    def setUp(self):
        self.router = MobileDatabaseRouter()

    def test_routing(self):
        self.assertEqual(self.router.db_for_read(MobileUser), 'mobile')
        self.assertEqual(self.router.db_for_write(MobileNotification), 'mobile')
        self.assertIsNone(self.router.db_for_read(User))

    def test_relations(self):
        mobile_user = MobileUser(username='a')
        mobile_notification = MobileNotification(title='x')
        local_user = User(username='a')
        self.assertTrue(self.router.allow_relation(mobile_user, mobile_notification))
        self.assertFalse(self.router.allow_relation(mobile_user, local_user))
        self.assertIsNone(self.router.allow_relation(local_user, Notification(title='y')))

    def test_migrations(self):
        self.assertTrue(self.router.allow_migrate('mobile', 'integration'))
        self.assertFalse(self.router.allow_migrate('default', 'integration'))
        self.assertFalse(self.router.allow_migrate('mobile', 'core'))
        self.assertFalse(self.router.allow_migrate('jde', 'projects'))
        self.assertIsNone(self.router.allow_migrate('default', 'core'))


class UserSyncTests(TestCase):
    databases = {'default', 'mobile'}

    def test_role_mapping(self):
        self.assertEqual(map_mobile_role('manager'), {'role': UserRole.MANAGER})
        self.assertEqual(map_mobile_role('ENGINEER'), {'position': EmployeePosition.ENGINEER})
        self.assertEqual(map_mobile_role(None), {'position': EmployeePosition.STAFF})
        self.assertEqual(map_mobile_role('Janitor'), {'position': EmployeePosition.STAFF})

    def test_creates_local_user_by_emp_code(self):
        create_mobile_user(role='MANAGER', department_name='Quality Control')
        user = sync_user_from_mobile('E001')
        self.assertEqual(user.username, 'EMP001')
        self.assertEqual(user.role, UserRole.MANAGER)
        self.assertEqual(user.department, 'QC')
        self.assertEqual(user.department_name, 'Quality Control')
        self.assertFalse(user.has_usable_password())

    def test_updates_existing_user(self):
        existing = TestDataFactory.create_user(username='EMP001', department='OPS')
        create_mobile_user(role='SENIOR_ENGINEER', department='IS', is_active=False)
        user = sync_user_from_mobile('EMP001')
        self.assertEqual(user.pk, existing.pk)
        self.assertEqual(user.department, 'IS')
        self.assertEqual(user.position, EmployeePosition.SENIOR_ENGINEER)
        self.assertFalse(user.is_active)
        self.assertTrue(user.check_password('testpass123'))

    def test_unknown_employee(self):
        self.assertIsNone(sync_user_from_mobile('NOPE'))
        self.assertFalse(User.objects.filter(username='NOPE').exists())

    def test_empty_department_defaults_to_ops(self):
        create_mobile_user(department='')
        self.assertEqual(sync_user_from_mobile('E001').department, 'OPS')


class NotificationSyncTests(TestCase):
    databases = {'default', 'mobile'}

    def setUp(self):
        self.user = TestDataFactory.create_user(username='EMP001')
        self.mobile_user = create_mobile_user()
        self.created_at = timezone.now() - timedelta(hours=1)

    def test_from_mobile_creates_and_updates(self):
        create_mobile_notification(self.mobile_user, 'Shift changed')
        create_mobile_notification(self.mobile_user, 'Payslip ready', read=True, created_at=self.created_at)
        TestDataFactory.create_notification(self.user, title='Payslip ready', read=False, created_at=self.created_at)

        result = sync_notifications(self.user)
        self.assertEqual((result.total, result.synced, result.skipped), (2, 2, 0))
        self.assertTrue(Notification.objects.get(user=self.user, title='Payslip ready').read)
        self.assertTrue(Notification.objects.filter(user=self.user, title='Shift changed').exists())

        again = sync_notifications(self.user)
        self.assertEqual((again.synced, again.skipped), (0, 2))

    def test_from_mobile_without_mobile_account(self):
        stranger = TestDataFactory.create_user(username='EMP999')
        result = sync_notifications(stranger)
        self.assertEqual(result.total, 0)
        self.assertIn('User EMP999 not found in mobile database', result.errors)

    def test_to_mobile_is_insert_only(self):
        TestDataFactory.create_notification(self.user, title='Task assigned', created_at=self.created_at)
        create_mobile_notification(self.mobile_user, 'Task assigned', read=True, created_at=self.created_at)
        TestDataFactory.create_notification(self.user, title='Project approved')

        result = sync_notifications_to_mobile(self.user)
        self.assertEqual((result.total, result.synced, result.skipped), (2, 1, 1))
        self.assertTrue(MobileNotification.objects.get(title='Task assigned').read)
        self.assertTrue(MobileNotification.objects.filter(user=self.mobile_user, title='Project approved').exists())

    def test_bidirectional(self):
        create_mobile_notification(self.mobile_user, 'From phone')
        TestDataFactory.create_notification(self.user, title='From web')
        results = sync_notifications_bidirectional(self.user)
        self.assertEqual(results['from_mobile'].synced, 1)
        # 'From phone' was copied locally first, so it already exists on mobile
        self.assertEqual((results['to_mobile'].synced, results['to_mobile'].skipped), (1, 1))
        self.assertEqual(MobileNotification.objects.filter(user=self.mobile_user).count(), 2)

    def test_mark_read_updates_both_databases(self):
        notification = TestDataFactory.create_notification(self.user, title='Meeting', created_at=self.created_at)
        create_mobile_notification(self.mobile_user, 'Meeting', created_at=self.created_at)

        result = mark_notification_read(self.user, notification.id)
        self.assertEqual((result.synced, result.skipped), (2, 0))
        notification.refresh_from_db()
        self.assertTrue(notification.read)
        self.assertTrue(MobileNotification.objects.get(title='Meeting').read)

        result = mark_notification_read(self.user, notification.id, is_read=False)
        self.assertFalse(MobileNotification.objects.get(title='Meeting').read)

    def test_mark_read_unknown_notification(self):
        result = mark_notification_read(self.user, 999999)
        self.assertEqual(result.synced, 0)
        self.assertEqual(result.errors, ['Notification 999999 not found'])

    def test_counts(self):
        TestDataFactory.create_notification(self.user, read=True)
        TestDataFactory.create_notification(self.user)
        create_mobile_notification(self.mobile_user, 'One', read=False)
        self.assertEqual(get_notification_counts(self.user), {
            'main_count': 2, 'unread_main': 1, 'mobile_count': 1, 'unread_mobile': 1,
        })

    def test_cleanup_removes_old_read_notifications(self):
        old = timezone.now() - timedelta(days=45)
        TestDataFactory.create_notification(self.user, title='Old read', read=True, created_at=old)
        TestDataFactory.create_notification(self.user, title='Old unread', read=False, created_at=old)
        TestDataFactory.create_notification(self.user, title='New read', read=True)
        create_mobile_notification(self.mobile_user, 'Old read', read=True, created_at=old)

        result = cleanup_old_notifications(self.user, days=30)
        self.assertEqual(result.synced, 2)
        self.assertEqual(
            set(Notification.objects.filter(user=self.user).values_list('title', flat=True)),
            {'Old unread', 'New read'},
        )
        self.assertFalse(MobileNotification.objects.exists())


@override_settings(MOBILE_WEBHOOK_URL='http://mobile.local/webhook', WEBHOOK_SECRET='s3cret')
class WebhookTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()

    @patch('uxone.integration.webhooks.requests.post')
    def test_send_sets_headers(self, mock_post):
        mock_post.return_value = webhook_response()
        result = send_webhook_to_mobile({'title': 'Hi'})
        self.assertEqual(result, {'success': True, 'status_code': 200, 'error': None})
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'http://mobile.local/webhook')
        self.assertEqual(kwargs['headers']['X-Webhook-Secret'], 's3cret')
        self.assertEqual(kwargs['headers']['X-Source'], 'uxone')

    @patch('uxone.integration.webhooks.requests.post')
    def test_send_reports_failures(self, mock_post):
        mock_post.return_value = webhook_response(ok=False, status_code=500, text='boom')
        result = send_webhook_to_mobile({})
        self.assertFalse(result['success'])
        self.assertEqual(result['error'], 'HTTP 500: boom')

        mock_post.side_effect = requests.ConnectionError('refused')
        result = send_webhook_to_mobile({})
        self.assertIsNone(result['status_code'])
        self.assertIn('refused', result['error'])

    def test_transform(self):
        notification = TestDataFactory.create_notification(self.user, title='Approved')
        payload = transform_notification_for_webhook(notification, 42)
        self.assertEqual(payload['userId'], '42')
        self.assertEqual(payload['title'], 'Approved')
        self.assertEqual(payload['createdAt'], notification.created_at.isoformat())
        self.assertEqual(payload['source'], 'uxone')

    @patch('uxone.integration.webhooks.time.sleep')
    @patch('uxone.integration.webhooks.requests.post')
    def test_retry_with_backoff(self, mock_post, mock_sleep):
        mock_post.side_effect = [webhook_response(ok=False, status_code=502), webhook_response()]
        result = send_webhook_with_retry({})
        self.assertTrue(result['success'])
        self.assertEqual(result['attempts'], 2)
        mock_sleep.assert_called_once_with(2)

    @patch('uxone.integration.webhooks.time.sleep')
    @patch('uxone.integration.webhooks.requests.post')
    def test_retry_gives_up(self, mock_post, mock_sleep):
        mock_post.return_value = webhook_response(ok=False, status_code=503)
        result = send_webhook_with_retry({}, max_retries=3)
        self.assertFalse(result['success'])
        self.assertEqual(result['attempts'], 3)
        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [2, 4])

    @patch('uxone.integration.webhooks.send_webhook_with_retry')
    def test_batch_summary(self, mock_send):
        mock_send.side_effect = lambda payload, max_retries: (
            {'success': True, 'error': None} if payload['title'] == 'ok'
            else {'success': False, 'error': 'HTTP 500'}
        )
        notifications = [
            TestDataFactory.create_notification(self.user, title='ok'),
            TestDataFactory.create_notification(self.user, title='bad'),
        ]
        summary = send_batch_webhooks(notifications, 'EMP001')
        self.assertEqual(summary, {'total': 2, 'successful': 1, 'failed': 1, 'errors': ['bad: HTTP 500']})

    @patch('uxone.integration.webhooks.requests.post')
    def test_health_check(self, mock_post):
        mock_post.return_value = webhook_response()
        health = check_webhook_health()
        self.assertTrue(health['healthy'])
        self.assertIsInstance(health['response_time'], int)
        self.assertEqual(mock_post.call_args.kwargs['json']['userId'], 'health-check')


class IntegrationAPITests(TestCase):
    databases = {'default', 'mobile'}

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(username='EMP001')
        self.mobile_user = create_mobile_user(department='IS')
        self.client.authenticate_user(self.user)

    def test_sync_own_account(self):
        response = self.client.post('/api/v1/integration/sync-user/', {'emp_code': 'EMP001'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['department'], 'IS')
        self.assertTrue(AuditLog.objects.filter(action='sync', object_reference='EMP001').exists())

    def test_sync_other_account_needs_permission(self):
        create_mobile_user(username='EMP002', emp_code='E002')
        url = '/api/v1/integration/sync-user/'
        self.assertEqual(self.client.post(url, {'emp_code': 'EMP002'}, format='json').status_code,
                         status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.post(url, {}, format='json').status_code, status.HTTP_400_BAD_REQUEST)

        self.client.authenticate_user(TestDataFactory.create_admin())
        self.assertEqual(self.client.post(url, {'emp_code': 'E002'}, format='json').status_code,
                         status.HTTP_200_OK)
        self.assertEqual(self.client.post(url, {'emp_code': 'MISSING'}, format='json').status_code,
                         status.HTTP_404_NOT_FOUND)

    def test_notification_sync_endpoint(self):
        create_mobile_notification(self.mobile_user, 'From phone')
        url = '/api/v1/integration/notifications/sync/'
        response = self.client.post(url, {'direction': 'from_mobile'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['results']['from_mobile']['synced'], 1)

        response = self.client.post(url, {}, format='json')
        self.assertEqual(set(response.data['results']), {'from_mobile', 'to_mobile'})
        self.assertEqual(self.client.post(url, {'direction': 'sideways'}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)

    def test_sync_reports_missing_mobile_account(self):
        self.client.authenticate_user(TestDataFactory.create_user(username='EMP404'))
        response = self.client.post('/api/v1/integration/notifications/sync/', {'direction': 'to_mobile'},
                                    format='json')
        self.assertFalse(response.data['success'])

    def test_counts_and_cleanup(self):
        TestDataFactory.create_notification(self.user, read=True, created_at=timezone.now() - timedelta(days=10))
        response = self.client.get('/api/v1/integration/notifications/counts/')
        self.assertEqual(response.data['main_count'], 1)

        url = '/api/v1/integration/notifications/cleanup/'
        self.assertEqual(self.client.post(url, {'days': 'soon'}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.post(url, {'days': 0}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {'days': 7}, format='json')
        self.assertEqual(response.data, {'deleted': 1, 'days': 7, 'errors': []})

    @patch('uxone.integration.webhooks.requests.post')
    def test_push_unread_notifications(self, mock_post):
        mock_post.return_value = webhook_response()
        TestDataFactory.create_notification(self.user, title='Unread')
        TestDataFactory.create_notification(self.user, title='Read', read=True)
        response = self.client.post('/api/v1/integration/notifications/push/')
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['successful'], 1)
        self.assertEqual(mock_post.call_args.kwargs['json']['userId'], 'EMP001')

    @patch('uxone.integration.webhooks.time.sleep')
    @patch('uxone.integration.webhooks.requests.post')
    def test_push_is_capped_and_not_retried(self, mock_post, mock_sleep):
        mock_post.side_effect = requests.ConnectionError('mobile app down')
        for index in range(12):
            TestDataFactory.create_notification(self.user, title=f'Unread {index}')
        response = self.client.post('/api/v1/integration/notifications/push/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 10)
        self.assertEqual(response.data['failed'], 10)
        self.assertEqual(response.data['remaining'], 2)
        self.assertEqual(mock_post.call_count, 10)
        mock_sleep.assert_not_called()

    @patch('uxone.integration.webhooks.requests.post')
    def test_webhook_health_endpoint(self, mock_post):
        url = '/api/v1/integration/webhook-health/'
        self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_super_admin())
        mock_post.return_value = webhook_response()
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)
        mock_post.side_effect = requests.Timeout('timed out')
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertFalse(response.data['healthy'])


class SyncNotificationsCommandTests(TestCase):
    databases = {'default', 'mobile'}

    def test_unknown_user(self):
        with self.assertRaises(CommandError):
            call_command('sync_notifications', username='ghost', stdout=StringIO())

    def test_sync_single_user(self):
        user = TestDataFactory.create_user(username='EMP001')
        create_mobile_notification(create_mobile_user(), 'Shift changed')
        out = StringIO()
        call_command('sync_notifications', username='EMP001', direction='from_mobile', stdout=out)
        self.assertIn('Synced 1, skipped 0, errors 0', out.getvalue())
        self.assertTrue(Notification.objects.filter(user=user, title='Shift changed').exists())

    def test_users_without_mobile_account_are_reported(self):
        TestDataFactory.create_user(username='EMP777')
        out = StringIO()
        call_command('sync_notifications', direction='to_mobile', stdout=out)
        self.assertIn('EMP777: User EMP777 not found in mobile database', out.getvalue())
        self.assertIn('errors 1', out.getvalue())

    @patch('uxone.integration.webhooks.time.sleep')
    @patch('uxone.integration.webhooks.requests.post')
    def test_push_delivers_unread_with_retries(self, mock_post, mock_sleep):
        mock_post.side_effect = [webhook_response(ok=False, status_code=503), webhook_response(),
                                 webhook_response()]
        user = TestDataFactory.create_user(username='EMP001')
        TestDataFactory.create_notification(user, title='Shift changed')
        TestDataFactory.create_notification(user, title='Payslip ready')
        TestDataFactory.create_notification(user, title='Old news', read=True)
        out = StringIO()
        call_command('sync_notifications', username='EMP001', direction='from_mobile', push=True, stdout=out)
        self.assertIn('Pushed 2 notifications', out.getvalue())
        self.assertEqual(mock_post.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 1)
