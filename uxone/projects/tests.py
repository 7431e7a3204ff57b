"""
Test suite for the projects module
Tests: project CRUD and visibility, approvals, due dates, team, tasks, dependencies, time tracking, attachments
"""
import shutil
import tempfile
from datetime import timedelta
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from uxone.core.models import AuditLog, Notification, EmployeePosition
from uxone.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from uxone.projects.models import Project, ProjectMember, Task, TaskDependency
from uxone.projects.utils import (
    visible_projects, completion_blockers, compute_project_kpi, task_efficiency, creates_dependency_cycle
)

MEDIA_ROOT = tempfile.mkdtemp()


class ProjectUtilsTests(TestCase):
    """Visibility, completion and KPI helpers"""

    def setUp(self):
        self.owner = TestDataFactory.create_user(department='QC')
        self.project = TestDataFactory.create_project(self.owner, departments=['QC', 'PROC'])

    def test_department_members_see_project(self):
        proc_user = TestDataFactory.create_user(department='PROC')
        hr_user = TestDataFactory.create_user(department='HR')
        self.assertIn(self.project, visible_projects(proc_user))
        self.assertNotIn(self.project, visible_projects(hr_user))

    def test_completion_blockers_report_main_tasks_first(self):
        main = TestDataFactory.create_task(project=self.project, title='Main')
        TestDataFactory.create_task(project=self.project, title='Sub', parent_task=main)
        blockers = completion_blockers(self.project)
        self.assertEqual(blockers['error'], 'Cannot complete project with incomplete tasks')
        self.assertEqual([t['title'] for t in blockers['incomplete_tasks']], ['Main'])

        main.status = 'COMPLETED'
        main.save()
        blockers = completion_blockers(self.project)
        self.assertEqual(blockers['error'], 'Cannot complete project with incomplete sub-tasks')

    def test_project_kpi(self):
        TestDataFactory.create_task(project=self.project, status='COMPLETED',
                                    estimated_hours=Decimal('4'), actual_hours=Decimal('2'))
        TestDataFactory.create_task(project=self.project, estimated_hours=Decimal('4'))
        kpi = compute_project_kpi(self.project)
        self.assertEqual(kpi['total_tasks'], 2)
        self.assertEqual(kpi['completion_percentage'], 50.0)
        self.assertEqual(kpi['estimated_hours'], 8.0)
        self.assertEqual(kpi['efficiency'], 25.0)

    def test_task_efficiency(self):
        task = TestDataFactory.create_task(estimated_hours=Decimal('3'), actual_hours=Decimal('4'))
        self.assertEqual(task_efficiency(task), 75)
        self.assertIsNone(task_efficiency(TestDataFactory.create_task(estimated_hours=Decimal('3'))))

    def test_dependency_cycle_detection(self):
        a = TestDataFactory.create_task(project=self.project)
        b = TestDataFactory.create_task(project=self.project)
        c = TestDataFactory.create_task(project=self.project)
        TaskDependency.objects.create(dependent_task=b, blocking_task=a)
        TaskDependency.objects.create(dependent_task=c, blocking_task=b)
        self.assertTrue(creates_dependency_cycle(a, c))
        self.assertFalse(creates_dependency_cycle(c, a))
        self.assertTrue(creates_dependency_cycle(a, a))


class ProjectAPITests(TestCase):
    """Project endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(position=EmployeePosition.MANAGER, department='QC')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_project_with_team(self):
        member = TestDataFactory.create_user()
        data = {'name': 'Line 3 retrofit', 'departments': ['qc', 'pm'], 'team_members': [member.id]}
        response = self.client.post('/api/v1/projects/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        project = Project.objects.get(name='Line 3 retrofit')
        self.assertEqual(project.departments, ['QC', 'PM'])
        self.assertTrue(ProjectMember.objects.filter(project=project, user=self.user, role='owner').exists())
        self.assertTrue(ProjectMember.objects.filter(project=project, user=member).exists())

    def test_create_project_with_unknown_member(self):
        response = self.client.post('/api/v1/projects/', {'name': 'X', 'team_members': [99999]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['invalid_user_ids'], [99999])

    def test_create_project_without_permission(self):
        operator = TestDataFactory.create_user(position=EmployeePosition.OPERATOR)
        self.client.authenticate_user(operator)
        response = self.client.post('/api/v1/projects/', {'name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_end_date_before_start_date(self):
        data = {'name': 'X', 'start_date': '2025-05-10', 'end_date': '2025-05-01'}
        response = self.client.post('/api/v1/projects/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_complete_project_with_open_tasks(self):
        project = TestDataFactory.create_project(self.user)
        TestDataFactory.create_task(project=project)
        response = self.client.patch(f'/api/v1/projects/{project.id}/', {'status': 'COMPLETED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('incomplete_tasks', response.data)

    def test_project_detail_includes_kpi(self):
        project = TestDataFactory.create_project(self.user)
        response = self.client.get(f'/api/v1/projects/{project.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('kpi', response.data)

    def test_only_owner_deletes(self):
        project = TestDataFactory.create_project(TestDataFactory.create_user(department='QC'))
        response = self.client.delete(f'/api/v1/projects/{project.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_bulk_update_and_delete(self):
        first = TestDataFactory.create_project(self.user, status='PLANNING')
        second = TestDataFactory.create_project(self.user, status='PLANNING')
        response = self.client.patch('/api/v1/projects/bulk/',
                                     {'project_ids': [first.id, second.id], 'updates': {'status': 'ACTIVE'}},
                                     format='json')
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(Project.objects.filter(status='ACTIVE').count(), 2)

        response = self.client.delete(f'/api/v1/projects/bulk/?project_ids={first.id},{second.id}')
        self.assertEqual(response.data['deleted'], 2)

    def test_bulk_delete_rejects_bad_ids(self):
        response = self.client.delete('/api/v1/projects/bulk/?project_ids=1,abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProjectApprovalTests(TestCase):
    """Department approvals"""

    def setUp(self):
        self.owner = TestDataFactory.create_user(department='IS')
        self.project = TestDataFactory.create_project(self.owner, status='PLANNING', departments=['QC', 'PROC'])
        self.qc = TestDataFactory.create_user(department='QC')
        self.proc = TestDataFactory.create_user(department='PROC')
        self.client = AuthenticatedAPIClient()

    def _approve(self, user, department, action='approved'):
        self.client.authenticate_user(user)
        return self.client.post(f'/api/v1/projects/{self.project.id}/approve/',
                                {'department': department, 'action': action}, format='json')

    def test_all_departments_approving_sets_status(self):
        self.assertEqual(self._approve(self.qc, 'QC').status_code, status.HTTP_200_OK)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, 'PLANNING')

        self._approve(self.proc, 'PROC')
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, 'APPROVED')
        self.assertTrue(Notification.objects.filter(user=self.owner).exists())

    def test_other_department_cannot_approve(self):
        response = self._approve(self.qc, 'PROC')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_department_not_in_project(self):
        hr = TestDataFactory.create_user(department='HR')
        response = self._approve(hr, 'HR')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_project_without_departments_is_never_auto_approved(self):
        self.project.departments = []
        self.project.save()
        self.assertFalse(self.project.all_departments_approved())
        response = self._approve(self.qc, 'QC')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, 'PLANNING')

    def test_invalid_action(self):
        response = self._approve(self.qc, 'QC', action='maybe')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_disapproval_logged_as_reject(self):
        self._approve(self.qc, 'QC', action='disapproved')
        self.assertTrue(AuditLog.objects.filter(action='reject', model_name='Project').exists())


class ProjectDueDateAndTeamTests(TestCase):
    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.project = TestDataFactory.create_project(self.owner)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)

    def test_update_due_dates_drops_empty_values(self):
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/due-dates/', {
            'request_date': '2025-03-01',
            'department_due_dates': {'QC': '2025-04-01T00:00:00Z', 'PROC': ''},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['department_due_dates'], {'QC': '2025-04-01'})

    def test_invalid_due_date(self):
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/due-dates/',
                                     {'department_due_dates': {'QC': 'next week'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_owner_cannot_update_due_dates(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.patch(f'/api/v1/projects/{self.project.id}/due-dates/',
                                     {'department_due_dates': {}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_add_and_remove_member(self):
        member = TestDataFactory.create_user()
        response = self.client.post(f'/api/v1/projects/{self.project.id}/team/', {'user_id': member.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.post(f'/api/v1/projects/{self.project.id}/team/', {'user_id': member.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(f'/api/v1/projects/{self.project.id}/team/{member.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_owner_cannot_be_removed(self):
        response = self.client.delete(f'/api/v1/projects/{self.project.id}/team/{self.owner.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TaskAPITests(TestCase):
    """Task endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.project = TestDataFactory.create_project(self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_task_notifies_assignee(self):
        assignee = TestDataFactory.create_user()
        data = {'title': 'Calibrate scale', 'project': self.project.id, 'assignee_id': assignee.id}
        response = self.client.post('/api/v1/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['assignee']['id'], assignee.id)
        self.assertTrue(Notification.objects.filter(user=assignee, title='New task assigned').exists())

    def test_non_member_cannot_add_task(self):
        outsider = TestDataFactory.create_user(department='HR')
        self.client.authenticate_user(outsider)
        response = self.client.post('/api/v1/tasks/', {'title': 'X', 'project': self.project.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_completing_task_sets_completed_at(self):
        task = TestDataFactory.create_task(project=self.project, creator=self.user)
        response = self.client.patch(f'/api/v1/tasks/{task.id}/', {'status': 'COMPLETED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        task.refresh_from_db()
        self.assertIsNotNone(task.completed_at)

        self.client.patch(f'/api/v1/tasks/{task.id}/', {'status': 'IN_PROGRESS'}, format='json')
        task.refresh_from_db()
        self.assertIsNone(task.completed_at)
        self.assertEqual(AuditLog.objects.filter(action='status_change', model_name='Task').count(), 2)

    def test_outsider_gets_404(self):
        task = TestDataFactory.create_task(project=self.project, creator=self.user)
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/tasks/{task.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_subtask_inherits_project(self):
        parent = TestDataFactory.create_task(project=self.project, creator=self.user)
        response = self.client.post(f'/api/v1/tasks/{parent.id}/subtasks/', {'title': 'Step 1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Task.objects.get(pk=response.data['id']).project, self.project)

    def test_dependency_rules(self):
        a = TestDataFactory.create_task(project=self.project, creator=self.user)
        b = TestDataFactory.create_task(project=self.project, creator=self.user)
        url = f'/api/v1/tasks/{b.id}/dependencies/'
        self.assertEqual(self.client.post(url, {'blocking_task_id': a.id}, format='json').status_code,
                         status.HTTP_201_CREATED)
        self.assertEqual(self.client.post(url, {'blocking_task_id': a.id}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.post(url, {'blocking_task_id': b.id}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)
        response = self.client.post(f'/api/v1/tasks/{a.id}/dependencies/', {'blocking_task_id': b.id}, format='json')
        self.assertEqual(response.data['error'], 'This dependency would create a circular dependency')

        response = self.client.get(url)
        self.assertEqual(len(response.data['dependencies']), 1)

    def test_time_tracking(self):
        task = TestDataFactory.create_task(project=self.project, creator=self.user)
        url = f'/api/v1/tasks/{task.id}/time-tracking/'
        self.client.post(url, {'action': 'update_estimate', 'hours': 4}, format='json')
        self.client.post(url, {'action': 'add_time', 'hours': 1.5}, format='json')
        response = self.client.post(url, {'action': 'add_time', 'hours': '0.5'}, format='json')
        self.assertEqual(response.data['actual_hours'], 2.0)
        self.assertEqual(response.data['efficiency'], 200)

        response = self.client.post(url, {'action': 'add_time', 'hours': -1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {'action': 'rewind', 'hours': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(TASK_ATTACHMENT_MAX_SIZE=10)
    def test_attachment_size_limit(self):
        task = TestDataFactory.create_task(project=self.project, creator=self.user)
        upload = SimpleUploadedFile('big.txt', b'x' * 20, content_type='text/plain')
        response = self.client.post(f'/api/v1/tasks/{task.id}/attachments/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_task_filter_by_status(self):
        TestDataFactory.create_task(project=self.project, creator=self.user, status='REVIEW')
        TestDataFactory.create_task(project=self.project, creator=self.user, status='TODO',
                                    due_date=timezone.now() + timedelta(days=1))
        response = self.client.get('/api/v1/tasks/', {'status': 'REVIEW'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['status'] for t in response.data], ['REVIEW'])

    def test_unknown_assignee_is_rejected(self):
        data = {'title': 'Calibrate scale', 'project': self.project.id, 'assignee_id': 999999}
        response = self.client.post('/api/v1/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['assignee_id'], ['Assignee not found'])
        self.assertFalse(Task.objects.filter(title='Calibrate scale').exists())


class TaskBulkTests(TestCase):
    """Bulk task updates and deletes"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.project = TestDataFactory.create_project(self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.other = TestDataFactory.create_user()
        self.own = TestDataFactory.create_task(project=self.project, creator=self.user)
        self.assigned = TestDataFactory.create_task(project=self.project, creator=self.other, assignee=self.user)
        self.foreign = TestDataFactory.create_task(project=self.project, creator=self.other)

    def test_bulk_update_only_touches_related_tasks(self):
        response = self.client.patch('/api/v1/tasks/bulk/', {
            'task_ids': [self.own.id, self.assigned.id, self.foreign.id],
            'updates': {'status': 'COMPLETED', 'priority': 'HIGH'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated'], 2)

        self.own.refresh_from_db()
        self.assertEqual(self.own.status, 'COMPLETED')
        self.assertEqual(self.own.priority, 'HIGH')
        self.assertIsNotNone(self.own.completed_at)
        self.foreign.refresh_from_db()
        self.assertEqual(self.foreign.status, 'TODO')

    def test_bulk_update_validation(self):
        url = '/api/v1/tasks/bulk/'
        self.assertEqual(self.client.patch(url, {'updates': {'status': 'TODO'}}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.patch(url, {'task_ids': [self.own.id]}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(url, {'task_ids': [self.own.id], 'updates': {'status': 'DONE'}},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['task_id'], self.own.id)

    def test_bulk_delete_owned_or_created_only(self):
        ids = f'{self.own.id},{self.assigned.id},{self.foreign.id}'
        response = self.client.delete(f'/api/v1/tasks/bulk/?task_ids={ids}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted'], 1)
        self.assertFalse(Task.objects.filter(pk=self.own.pk).exists())
        self.assertTrue(Task.objects.filter(pk=self.assigned.pk).exists())

        response = self.client.delete('/api/v1/tasks/bulk/?task_ids=a,b')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class TaskAttachmentDownloadTests(TestCase):

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.project = TestDataFactory.create_project(self.user)
        self.task = TestDataFactory.create_task(project=self.project, creator=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_download_goes_through_access_check(self):
        upload = SimpleUploadedFile('notes.txt', b'calibration notes', content_type='text/plain')
        response = self.client.post(f'/api/v1/tasks/{self.task.id}/attachments/', {'file': upload},
                                    format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        download_url = response.data['download_url']
        self.assertEqual(download_url, f"/api/v1/tasks/{self.task.id}/attachments/{response.data['id']}/")

        download = self.client.get(download_url)
        self.assertEqual(download.status_code, status.HTTP_200_OK)
        self.assertEqual(b''.join(download.streaming_content), b'calibration notes')

        self.client.authenticate_user(TestDataFactory.create_user(department='HR'))
        self.assertEqual(self.client.get(download_url).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(APIClient().get(download_url).status_code, status.HTTP_401_UNAUTHORIZED)
