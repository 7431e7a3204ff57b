"""
Test suite for the reports module
Tests: dashboard KPIs, project analytics, team workload
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from uxone.core.cache_utils import get_cached_dashboard_kpis
from uxone.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from uxone.projects.models import Comment
from uxone.reports.views import build_dashboard_kpis


class DashboardKPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.project = TestDataFactory.create_project(self.user)
        now = timezone.now()
        self.done = TestDataFactory.create_task(self.project, status='COMPLETED', creator=self.user,
                                                estimated_hours=Decimal('4'), actual_hours=Decimal('2'))
        TestDataFactory.create_task(self.project, status='IN_PROGRESS', creator=self.user,
                                    due_date=now - timedelta(days=1))
        TestDataFactory.create_task(self.project, status='TODO', assignee=self.user,
                                    due_date=now + timedelta(days=3))
        TestDataFactory.create_task(self.project, status='REVIEW', creator=self.user)
        # Not the user's task
        TestDataFactory.create_task(self.project, status='TODO', creator=TestDataFactory.create_user())
        Comment.objects.create(author=self.user, task=self.done, content='Verified on line 3')

    def tearDown(self):
        cache.clear()

    def test_overview(self):
        data = build_dashboard_kpis(self.user, 30)
        overview = data['overview']
        self.assertEqual(overview['total_tasks'], 4)
        self.assertEqual(overview['completed_tasks'], 1)
        self.assertEqual(overview['review_tasks'], 1)
        self.assertEqual(overview['completion_rate'], 25.0)
        self.assertEqual(overview['total_projects'], 1)
        self.assertEqual(overview['active_projects'], 1)
        self.assertEqual(overview['overdue_tasks'], 1)
        self.assertEqual(overview['upcoming_deadlines'], 1)
        self.assertEqual(data['time_range'], 30)

    def test_time_tracking_and_trends(self):
        data = build_dashboard_kpis(self.user, 30)
        self.assertEqual(data['time_tracking'], {
            'total_estimated_hours': 4.0,
            'total_actual_hours': 2.0,
            'efficiency': 50.0,
            'hours_remaining': 2.0,
        })
        trends = data['productivity']['trends']
        self.assertEqual(len(trends), 7)
        self.assertEqual(trends[-1]['date'], timezone.localdate().isoformat())
        self.assertEqual(trends[-1]['completed_tasks'], 1)
        self.assertEqual(data['productivity']['average_daily_tasks'], 0.14)

    def test_recent_activity(self):
        data = build_dashboard_kpis(self.user, 30)
        self.assertEqual(len(data['recent_activity']['tasks']), 4)
        self.assertEqual(data['recent_activity']['comments'][0]['task']['id'], self.done.id)
        self.assertEqual(data['upcoming_deadlines'][0]['assignee']['id'], self.user.id)

    def test_project_scope(self):
        other_project = TestDataFactory.create_project(self.user)
        TestDataFactory.create_task(other_project, creator=self.user)
        data = build_dashboard_kpis(self.user, 30, project_id=other_project.id)
        self.assertEqual(data['overview']['total_tasks'], 1)
        self.assertEqual(data['overview']['total_projects'], 1)
        self.assertEqual(data['recent_activity']['comments'], [])

    def test_endpoint_caches_result(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/reports/dashboard-kpis/', {'time_range': 7})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['time_range'], 7)
        cached, _ = get_cached_dashboard_kpis(self.user.id, 7)
        self.assertEqual(cached['overview']['total_tasks'], 4)

    def test_invalid_time_range(self):
        self.client.authenticate_user(self.user)
        for value in ('abc', '0'):
            response = self.client.get('/api/v1/reports/dashboard-kpis/', {'time_range': value})
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProjectAnalyticsTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(department='QC')
        self.client.authenticate_user(self.user)

    def test_analytics_for_visible_projects(self):
        own = TestDataFactory.create_project(self.user, name='Alpha', budget=Decimal('1000'))
        TestDataFactory.create_task(own, status='COMPLETED')
        TestDataFactory.create_task(own, due_date=timezone.now() - timedelta(days=2))
        other = TestDataFactory.create_user(department='IS')
        TestDataFactory.create_project(other, name='Beta', departments=['IS', 'QC'], budget=Decimal('500'),
                                       status='PLANNING')
        TestDataFactory.create_project(other, name='Hidden', departments=['IS'])

        response = self.client.get('/api/v1/reports/project-analytics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data['projects']], ['Alpha', 'Beta'])
        alpha = response.data['projects'][0]
        self.assertEqual(alpha['progress'], 50.0)
        self.assertEqual(alpha['tasks_by_status'], {'COMPLETED': 1, 'TODO': 1})
        self.assertEqual(alpha['overdue_tasks'], 1)
        self.assertEqual(response.data['summary']['total_budget'], 1500.0)
        self.assertEqual(response.data['summary']['average_progress'], 25.0)

        response = self.client.get('/api/v1/reports/project-analytics/', {'status': 'PLANNING'})
        self.assertEqual([p['name'] for p in response.data['projects']], ['Beta'])


class TeamWorkloadTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.lead = TestDataFactory.create_user(username='ops_lead', department='OPS')
        self.busy = TestDataFactory.create_user(username='ops_busy', department='OPS')
        TestDataFactory.create_user(username='hr_staff', department='HR')
        now = timezone.now()
        TestDataFactory.create_task(assignee=self.busy, status='IN_PROGRESS', estimated_hours=Decimal('3'),
                                    due_date=now - timedelta(days=1))
        TestDataFactory.create_task(assignee=self.busy, estimated_hours=Decimal('2'))
        TestDataFactory.create_task(assignee=self.busy, status='COMPLETED', estimated_hours=Decimal('8'))

    def test_workload_of_own_department(self):
        self.client.authenticate_user(self.lead)
        response = self.client.get('/api/v1/reports/team-workload/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['department'], 'OPS')
        members = {row['username']: row for row in response.data['members']}
        self.assertEqual(set(members), {'ops_lead', 'ops_busy'})
        self.assertEqual(response.data['members'][0]['username'], 'ops_busy')
        busy = members['ops_busy']
        self.assertEqual(busy['open_tasks'], 2)
        self.assertEqual(busy['in_progress_tasks'], 1)
        self.assertEqual(busy['overdue_tasks'], 1)
        self.assertEqual(busy['open_estimated_hours'], 5.0)
        self.assertEqual(members['ops_lead']['open_tasks'], 0)
        self.assertEqual(response.data['total_open_tasks'], 2)

    def test_other_department_requires_admin(self):
        self.client.authenticate_user(self.lead)
        response = self.client.get('/api/v1/reports/team-workload/', {'department': 'HR'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_admin(department='IS'))
        response = self.client.get('/api/v1/reports/team-workload/', {'department': 'hr'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['username'] for row in response.data['members']], ['hr_staff'])
