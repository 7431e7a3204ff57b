"""
Test suite for the core module
Tests: RBAC, login (local and central API), users, departments, settings, audit logs, notifications, search
"""
from unittest import mock

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from uxone.core.auth_backends import CentralAPIBackend
from uxone.core.cache_utils import make_cache_key, get_cached_dashboard_kpis, cache_dashboard_kpis
from uxone.core.models import AuditLog, Department, Notification, Setting, User, UserRole, EmployeePosition
from uxone.core.rbac import Permissions, get_user_permissions, has_permission, can_manage_department, map_position_to_role
from uxone.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from uxone.core.utils import create_audit_log


class RBACTests(TestCase):
    """Role and position permission resolution"""

    def test_super_admin_has_every_permission(self):
        user = TestDataFactory.create_super_admin()
        self.assertTrue(has_permission(user, Permissions.SYSTEM_ADMIN))
        self.assertTrue(has_permission(user, Permissions.USER_DELETE))

    def test_permissions_are_union_of_role_and_position(self):
        user = TestDataFactory.create_user(role=UserRole.USER, position=EmployeePosition.MANAGER)
        permissions = get_user_permissions(user)
        self.assertIn(Permissions.PROJECT_READ, permissions)
        self.assertIn(Permissions.PROJECT_APPROVE, permissions)
        self.assertEqual(len(permissions), len(set(permissions)))

    def test_operator_cannot_create_documents(self):
        user = TestDataFactory.create_user(position=EmployeePosition.OPERATOR)
        self.assertFalse(has_permission(user, Permissions.DOCUMENT_CREATE))
        self.assertTrue(has_permission(user, Permissions.DOCUMENT_READ))

    def test_department_management_limited_to_own_department(self):
        user = TestDataFactory.create_user(position=EmployeePosition.SENIOR_MANAGER, department='QC')
        self.assertTrue(can_manage_department(user, 'QC'))
        self.assertFalse(can_manage_department(user, 'HR'))

    def test_map_position_to_role(self):
        self.assertEqual(map_position_to_role('Senior Manager 2'), EmployeePosition.SENIOR_MANAGER_2)
        self.assertEqual(map_position_to_role('assistant-manager'), EmployeePosition.ASSISTANT_MANAGER)
        self.assertEqual(map_position_to_role('Assistant General Manager'), EmployeePosition.AGM)
        self.assertEqual(map_position_to_role('Chief Happiness Officer'), EmployeePosition.STAFF)
        self.assertEqual(map_position_to_role(None), EmployeePosition.STAFF)


class AuthTests(TestCase):
    """Login and token endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='10001', password='testpass123')
        self.client = AuthenticatedAPIClient()

    def test_login_with_local_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': '10001', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['username'], '10001')
        self.assertTrue(AuditLog.objects.filter(action='login', user=self.user).exists())

    def test_login_with_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': '10001', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_includes_permissions(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('permissions', response.data)
        self.assertIn('helpdesk', response.data)
        self.assertFalse(response.data['is_super_admin'])

    def test_unauthenticated_request_rejected(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class CentralAPIBackendTests(TestCase):
    """Employee login through the central API"""

    def setUp(self):
        self.backend = CentralAPIBackend()

    def _response(self, payload):
        response = mock.Mock()
        response.json.return_value = payload
        response.raise_for_status.return_value = None
        return response

    @mock.patch('uxone.integration.sync.sync_user_from_mobile', return_value=None)
    @mock.patch('uxone.core.auth_backends.requests.post')
    def test_accepted_login_creates_local_user(self, mock_post, mock_sync):
        mock_post.return_value = self._response({
            'message': 'OK', 'emp_code': '20002', 'emp_name': 'Nguyen Van A',
            'emp_dept': 'QC', 'emp_dept_name': 'Quality Control',
        })
        with self.settings(CENTRAL_API_URL='http://central.test/login'):
            user = self.backend.authenticate(None, username='20002', password='secret')
        self.assertIsNotNone(user)
        self.assertEqual(user.username, '20002')
        self.assertEqual(user.department, 'OPS')
        self.assertEqual(user.central_department, 'QC')
        self.assertFalse(user.has_usable_password())
        mock_sync.assert_called_once_with('20002')

    @mock.patch('uxone.core.auth_backends.requests.post')
    def test_rejected_login_returns_none(self, mock_post):
        mock_post.return_value = self._response({'message': 'Invalid password'})
        with self.settings(CENTRAL_API_URL='http://central.test/login'):
            self.assertIsNone(self.backend.authenticate(None, username='20002', password='bad'))
        self.assertFalse(User.objects.filter(username='20002').exists())

    def test_unconfigured_api_returns_none(self):
        with self.settings(CENTRAL_API_URL=''):
            self.assertIsNone(self.backend.authenticate(None, username='20002', password='secret'))


class UserAPITests(TestCase):
    """User management endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_super_admin(username='admin1')
        self.user = TestDataFactory.create_user(username='staff1')
        self.client = AuthenticatedAPIClient()

    def test_register_requires_user_create(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/auth/register/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_register_creates_user(self):
        self.client.authenticate_user(self.admin)
        data = {
            'username': '30003',
            'name': 'New Hire',
            'email': 'new@test.com',
            'password': 'Str0ng-passw0rd!',
            'password_confirm': 'Str0ng-passw0rd!',
            'department': 'QC',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertTrue(User.objects.filter(username='30003').exists())

    def test_only_super_admin_changes_roles(self):
        admin = TestDataFactory.create_admin()
        self.client.authenticate_user(admin)
        response = self.client.patch(f'/api/v1/users/{self.user.id}/', {'role': 'ADMIN'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cannot_delete_self(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_department(self):
        Department.objects.create(code='QC', name='Quality Control')
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/v1/users/{self.user.id}/department/', {'department': 'qc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.department, 'QC')
        log = AuditLog.objects.filter(model_name='User', object_id=str(self.user.id), action='update').first()
        self.assertEqual(log.changes['department'], {'from': 'OPS', 'to': 'QC'})

    def test_change_to_unknown_department(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/v1/users/{self.user.id}/department/', {'department': 'ZZ'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class DepartmentAndSettingTests(TestCase):
    """Department and setting endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_super_admin()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()

    def test_create_department_uppercases_code(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/departments/', {'code': 'fin', 'name': 'Finance'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'FIN')

    def test_delete_department_with_users_rejected(self):
        department = Department.objects.create(code='OPS', name='Operations')
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/departments/{department.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_settings_require_permission(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_setting_records_change(self):
        setting = Setting.objects.create(key='helpdesk.sla_hours', value='24', category='helpdesk')
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/settings/{setting.id}/', {'value': '48'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(model_name='Setting', action='update')
        self.assertEqual(log.changes['value'], {'from': '24', 'to': '48'})

    def test_seed_departments_command(self):
        call_command('seed_departments')
        self.assertTrue(Department.objects.filter(code='PROC').exists())
        count = Department.objects.count()
        call_command('seed_departments')
        self.assertEqual(Department.objects.count(), count)


class AuditLogTests(TestCase):
    """Audit log helper and visibility"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_missing_fields_skip_entry(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Project', user=self.user))

    def test_non_admin_sees_own_entries_only(self):
        create_audit_log(action='create', model_name='Project', object_id=1, user=self.user)
        create_audit_log(action='create', model_name='Project', object_id=2, user=self.other)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['object_id'], '1')


class NotificationTests(TestCase):
    """Notification endpoints"""
    databases = {'default', 'mobile'}

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_excludes_hidden(self):
        TestDataFactory.create_notification(self.user, title='Visible')
        hidden = TestDataFactory.create_notification(self.user, title='Hidden')
        hidden.hidden = True
        hidden.save()
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual([n['title'] for n in response.data], ['Visible'])

    def test_mark_read_without_mobile_account(self):
        notification = TestDataFactory.create_notification(self.user)
        response = self.client.post(f'/api/v1/notifications/{notification.id}/read/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['read'])
        self.assertEqual(response.data['sync']['synced'], 1)
        self.assertEqual(response.data['sync']['skipped'], 1)

    def test_mark_all_read_and_count(self):
        TestDataFactory.create_notification(self.user)
        TestDataFactory.create_notification(self.user)
        self.assertEqual(self.client.get('/api/v1/notifications/unread-count/').data['count'], 2)
        response = self.client.post('/api/v1/notifications/mark-all-read/')
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(Notification.objects.filter(user=self.user, read=False).count(), 0)

    def test_cannot_read_other_users_notification(self):
        other = TestDataFactory.create_user()
        notification = TestDataFactory.create_notification(other)
        response = self.client.post(f'/api/v1/notifications/{notification.id}/read/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class CacheUtilsTests(TestCase):
    """Dashboard cache helpers"""

    def setUp(self):
        cache.clear()

    def test_cache_key_is_stable_and_prefixed(self):
        key = make_cache_key('dashboard_kpis', 1, 30, None)
        self.assertEqual(key, make_cache_key('dashboard_kpis', 1, 30, None))
        self.assertTrue(key.startswith('dashboard_kpis:'))
        self.assertNotEqual(key, make_cache_key('dashboard_kpis', 2, 30, None))

    def test_dashboard_cache_roundtrip_and_invalidation_on_project_save(self):
        data, key = get_cached_dashboard_kpis(1, 30)
        self.assertIsNone(data)
        cache_dashboard_kpis(key, {'overview': {}})
        self.assertEqual(get_cached_dashboard_kpis(1, 30)[0], {'overview': {}})
        TestDataFactory.create_project(TestDataFactory.create_user())
        self.assertIsNone(get_cached_dashboard_kpis(1, 30)[0])


class GlobalSearchTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_empty_query_returns_empty_buckets(self):
        response = self.client.get('/api/v1/search/')
        self.assertEqual(response.data['projects'], [])
        self.assertIn('demands', response.data)

    def test_search_matches_projects_and_tickets(self):
        TestDataFactory.create_project(self.user, name='Warehouse Automation')
        TestDataFactory.create_ticket(self.user, title='Warehouse scanner broken')
        response = self.client.get('/api/v1/search/', {'q': 'warehouse'})
        self.assertEqual(len(response.data['projects']), 1)
        self.assertEqual(len(response.data['tickets']), 1)

    def test_results_are_limited_to_what_the_caller_may_open(self):
        ops_owner = TestDataFactory.create_user(department='OPS')
        project = TestDataFactory.create_project(ops_owner, name='ZebraSecret rollout', departments=['OPS'])
        TestDataFactory.create_task(project=project, title='ZebraSecret task', creator=ops_owner)
        TestDataFactory.create_ticket(ops_owner, title='ZebraSecret outage', assigned_team='OPS')
        demand = TestDataFactory.create_demand(ops_owner)
        demand.justification = 'ZebraSecret hardware'
        demand.save()

        outsider = TestDataFactory.create_user(department='QA')
        self.client.authenticate_user(outsider)
        response = self.client.get('/api/v1/search/', {'q': 'ZebraSecret'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        for bucket in ('projects', 'tasks', 'tickets', 'demands'):
            self.assertEqual(response.data[bucket], [], bucket)
        self.assertEqual(self.client.get('/api/v1/projects/').data, [])

        self.client.authenticate_user(ops_owner)
        response = self.client.get('/api/v1/search/', {'q': 'ZebraSecret'})
        for bucket in ('projects', 'tasks', 'tickets', 'demands'):
            self.assertEqual(len(response.data[bucket]), 1, bucket)

        self.client.authenticate_user(TestDataFactory.create_admin(department='QA'))
        response = self.client.get('/api/v1/search/', {'q': 'ZebraSecret'})
        self.assertEqual(len(response.data['projects']), 1)
        self.assertEqual(len(response.data['demands']), 1)
