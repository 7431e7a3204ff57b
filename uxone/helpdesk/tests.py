"""
Test suite for the helpdesk module
Tests: ticket numbering, email intake, permission levels, status transitions, comments, task conversion, reports
"""
from datetime import datetime

from django.test import TestCase, override_settings
from rest_framework import status

from uxone.core.models import AuditLog, Notification, UserRole, EmployeePosition
from uxone.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from uxone.projects.models import Task
from uxone.helpdesk.models import Ticket, TicketComment
from uxone.helpdesk.permissions import get_permission_level, can, has_department_scope
from uxone.helpdesk.ticket_numbers import (
    generate_email_ticket_number, generate_manual_ticket_number, save_numbering_config, get_numbering_config
)
from uxone.helpdesk.email_intake import (
    extract_email, extract_name, clean_subject, determine_category, determine_priority, determine_team
)


class TicketNumberTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_manual_number_defaults(self):
        self.assertEqual(generate_manual_ticket_number(), 'TKT-000001')

    def test_manual_number_skips_taken_numbers(self):
        TestDataFactory.create_ticket(self.user, ticket_number='TKT-000002')
        self.assertEqual(generate_manual_ticket_number(), 'TKT-000003')

    def test_email_number_continues_daily_sequence(self):
        now = datetime(2025, 3, 14, 9, 30)
        self.assertEqual(generate_email_ticket_number(now=now), 'TIPA-HD-250314-001')
        TestDataFactory.create_ticket(self.user, ticket_number='TIPA-HD-250314-007')
        self.assertEqual(generate_email_ticket_number(now=now), 'TIPA-HD-250314-008')

    def test_saved_config_changes_numbers(self):
        config, errors = save_numbering_config({
            'email_prefix': 'HD', 'email_sequence_padding': 2,
            'manual_prefix': 'REQ', 'manual_sequence_padding': 4,
        })
        self.assertEqual(errors, [])
        self.assertEqual(config['manual_sequence_padding'], 4)
        self.assertEqual(generate_manual_ticket_number(), 'REQ-0001')
        self.assertEqual(generate_email_ticket_number(now=datetime(2025, 1, 2)), 'HD-250102-01')

    def test_invalid_padding_is_rejected(self):
        config, errors = save_numbering_config({
            'email_prefix': 'HD', 'email_sequence_padding': 3,
            'manual_prefix': 'REQ', 'manual_sequence_padding': 9,
        })
        self.assertIsNone(config)
        self.assertIn('Manual sequence padding must be between 1 and 8', errors)
        self.assertEqual(get_numbering_config()['manual_prefix'], 'TKT')


class EmailParsingTests(TestCase):

    def test_sender_parsing(self):
        self.assertEqual(extract_email('John Doe <john@example.com>'), 'john@example.com')
        self.assertEqual(extract_email('jane@example.com'), 'jane@example.com')
        self.assertEqual(extract_name('John Doe <john@example.com>'), 'John Doe')
        self.assertEqual(extract_name('jane@example.com'), 'Unknown Sender')

    def test_clean_subject_strips_one_prefix(self):
        self.assertEqual(clean_subject('Re: Printer jam'), 'printer jam')
        self.assertEqual(clean_subject('FWD - Printer jam'), 'printer jam')
        self.assertEqual(clean_subject('Printer jam'), 'printer jam')

    def test_keyword_classification(self):
        self.assertEqual(determine_category('App crash on save', ''), 'BUG')
        self.assertEqual(determine_category('Database slow', ''), 'TECHNICAL_ISSUE')
        self.assertEqual(determine_category('Hello', 'Thanks'), 'SUPPORT')
        self.assertEqual(determine_priority('Server down', ''), 'URGENT')
        self.assertEqual(determine_priority('Idea', 'nice to have'), 'LOW')
        self.assertEqual(determine_priority('Hello', ''), 'MEDIUM')
        self.assertEqual(determine_team('BUG'), 'IS')
        self.assertEqual(determine_team('GENERAL'), 'CS')


@override_settings(EMAIL_WEBHOOK_SECRET='hook-secret')
class EmailWebhookTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.system = TestDataFactory.create_admin(username='system')
        self.is_manager = TestDataFactory.create_user(department='IS', role=UserRole.MANAGER)
        self.url = '/api/v1/email-webhook/'
        self.payload = {
            'from': 'Jane Customer <jane@example.com>',
            'subject': 'Server down',
            'text': 'Our server is unreachable since this morning',
            'messageId': '<abc@mail>',
        }

    def post(self, payload, secret='hook-secret'):
        return self.client.post(self.url, payload, format='json', HTTP_AUTHORIZATION=f'Bearer {secret}')

    def test_rejects_wrong_secret(self):
        response = self.post(self.payload, secret='wrong')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(Ticket.objects.count(), 0)

    @override_settings(EMAIL_WEBHOOK_SECRET='')
    def test_unconfigured_webhook(self):
        response = self.post(self.payload)
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    def test_missing_fields(self):
        response = self.post({'from': 'jane@example.com', 'subject': 'Hi'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_or_partial_authorization(self):
        response = self.client.post(self.url, self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        response = self.client.post(self.url, self.payload, format='json', HTTP_AUTHORIZATION='Bearer hook')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_attachment_metadata_is_ignored(self):
        payload = dict(self.payload, attachments=[{'filename': 'screenshot.png', 'size': 2048}])
        with self.assertLogs('uxone.helpdesk.email_intake', level='INFO') as logs:
            response = self.post(payload)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(any('Ignored 1 attachment(s)' in line for line in logs.output))

    def test_payload_must_be_an_object(self):
        for body in ([self.payload], 'plain text'):
            response = self.post(body)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Ticket.objects.count(), 0)

    def test_new_email_creates_ticket(self):
        response = self.post(self.payload)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['action'], 'ticket_created')

        ticket = Ticket.objects.get(pk=response.data['ticket']['id'])
        self.assertTrue(ticket.ticket_number.startswith('TIPA-HD-'))
        self.assertTrue(ticket.ticket_number.endswith('-001'))
        self.assertEqual(ticket.category, 'TECHNICAL_ISSUE')
        self.assertEqual(ticket.priority, 'URGENT')
        self.assertEqual(ticket.assigned_team, 'IS')
        self.assertEqual(ticket.source, 'email')
        self.assertEqual(ticket.customer_email, 'jane@example.com')
        self.assertEqual(ticket.created_by, self.system)
        self.assertTrue(ticket.comments.filter(author_type='SYSTEM', is_internal=True).exists())
        self.assertTrue(Notification.objects.filter(user=self.is_manager).exists())

    def test_reply_is_added_to_existing_ticket(self):
        created = self.post(self.payload)
        ticket = Ticket.objects.get(pk=created.data['ticket']['id'])
        ticket.status = 'RESOLVED'
        ticket.save()

        reply = dict(self.payload, subject='Re: Server down', text='Still down')
        response = self.post(reply)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['action'], 'reply_added')
        self.assertEqual(response.data['ticket']['id'], ticket.id)
        ticket.refresh_from_db()
        self.assertEqual(ticket.status, 'OPEN')
        self.assertEqual(Ticket.objects.count(), 1)
        self.assertTrue(ticket.comments.filter(author_type='CUSTOMER').exists())

    def test_no_admin_account(self):
        self.system.delete()
        response = self.post(self.payload)
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)


class HelpdeskPermissionTests(TestCase):

    def test_levels(self):
        self.assertEqual(get_permission_level(TestDataFactory.create_admin()), 'ADMIN')
        manager = TestDataFactory.create_user(position=EmployeePosition.MANAGER)
        self.assertEqual(get_permission_level(manager), 'MANAGEMENT')
        self.assertTrue(can(manager, 'resolve'))
        self.assertFalse(can(manager, 'delete'))

        engineer = TestDataFactory.create_user(position=EmployeePosition.ENGINEER)
        self.assertTrue(has_department_scope(engineer))
        self.assertFalse(can(engineer, 'update'))

        operator = TestDataFactory.create_user(position=EmployeePosition.OPERATOR)
        self.assertEqual(get_permission_level(operator), 'OPERATIONS')
        self.assertFalse(can(operator, 'create'))


class TicketAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.staff = TestDataFactory.create_user(department='CS')
        self.manager = TestDataFactory.create_user(department='CS', position=EmployeePosition.MANAGER)
        self.admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.staff)

    def test_create_manual_ticket(self):
        response = self.client.post('/api/v1/tickets/', {
            'title': 'Cannot print',
            'description': 'Printer on floor 2 is offline',
            'customer_name': 'Alice',
            'customer_email': 'alice@example.com',
            'assigned_team': 'cs',
            'assigned_to_id': self.manager.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['ticket_number'], 'TKT-000001')
        self.assertEqual(response.data['source'], 'manual')
        self.assertEqual(response.data['assigned_team'], 'CS')
        self.assertTrue(Notification.objects.filter(user=self.manager).exists())
        self.assertTrue(AuditLog.objects.filter(model_name='Ticket', action='create').exists())

    def test_operator_cannot_create(self):
        operator = TestDataFactory.create_user(position=EmployeePosition.OPERATOR)
        self.client.authenticate_user(operator)
        response = self.client.post('/api/v1/tickets/', {
            'title': 'X', 'description': 'Y', 'customer_name': 'Z', 'customer_email': 'z@example.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_is_scoped_to_department(self):
        TestDataFactory.create_ticket(self.admin, title='CS ticket', assigned_team='CS')
        TestDataFactory.create_ticket(self.admin, title='IS ticket', assigned_team='IS')
        response = self.client.get('/api/v1/tickets/')
        self.assertEqual([t['title'] for t in response.data], ['CS ticket'])

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/tickets/', {'search': 'ticket'})
        self.assertEqual(len(response.data), 2)

    def test_staff_cannot_resolve(self):
        ticket = TestDataFactory.create_ticket(self.admin, assigned_team='CS')
        response = self.client.patch(f'/api/v1/tickets/{ticket.id}/', {'status': 'RESOLVED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_manager_resolves_and_reopens(self):
        ticket = TestDataFactory.create_ticket(self.admin, assigned_team='CS')
        self.client.authenticate_user(self.manager)
        url = f'/api/v1/tickets/{ticket.id}/'

        response = self.client.patch(url, {'status': 'RESOLVED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['resolved_at'])
        self.assertTrue(AuditLog.objects.filter(action='status_change', object_id=str(ticket.id)).exists())

        response = self.client.patch(url, {'status': 'OPEN'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['resolved_at'])

    def test_invalid_transition(self):
        ticket = TestDataFactory.create_ticket(self.admin, status='CLOSED')
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/tickets/{ticket.id}/', {'status': 'IN_PROGRESS'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Invalid status transition', response.data['error'])

    def test_delete_requires_permission(self):
        ticket = TestDataFactory.create_ticket(self.admin, assigned_team='CS')
        url = f'/api/v1/tickets/{ticket.id}/'
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Ticket.objects.filter(pk=ticket.pk).exists())

    def test_internal_comments_hidden_from_read_only_users(self):
        operator = TestDataFactory.create_user(department='CS', position=EmployeePosition.OPERATOR)
        ticket = TestDataFactory.create_ticket(self.admin, assigned_team='CS')
        url = f'/api/v1/tickets/{ticket.id}/comments/'

        response = self.client.post(url, {'content': 'Checked the cable', 'is_internal': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.client.post(url, {'content': 'We are on it'}, format='json')

        self.client.authenticate_user(operator)
        response = self.client.get(url)
        self.assertEqual([c['content'] for c in response.data], ['We are on it'])
        response = self.client.post(url, {'content': 'Internal?', 'is_internal': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TicketConversionTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(department='CS')
        self.project = TestDataFactory.create_project(self.user)
        self.ticket = TestDataFactory.create_ticket(self.user, ticket_number='TKT-000009',
                                                    title='Login fails', assigned_team='CS')
        self.client.authenticate_user(self.user)
        self.url = f'/api/v1/tickets/{self.ticket.id}/convert-to-task/'

    def test_convert_with_subtasks(self):
        response = self.client.post(self.url, {
            'project_id': self.project.id,
            'priority': 'HIGH',
            'estimated_hours': '6',
            'create_subtasks': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['subtasks']), 4)

        task = Task.objects.get(pk=response.data['task']['id'])
        self.assertEqual(task.title, '[TKT-000009] Login fails')
        self.assertEqual(task.source_ticket, self.ticket)
        self.assertEqual(task.ticket_integration['estimated_effort'], 6.0)
        self.assertEqual(task.subtasks.count(), 4)

        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, 'IN_PROGRESS')
        self.assertEqual(self.ticket.related_tasks, [task.id])
        self.assertTrue(TicketComment.objects.filter(ticket=self.ticket, author_type='SYSTEM').exists())

        detail = self.client.get(f'/api/v1/tickets/{self.ticket.id}/')
        self.assertEqual([t['id'] for t in detail.data['tasks']], [task.id])

    def test_invalid_priority(self):
        response = self.client.post(self.url, {'priority': 'SOMEDAY'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_engineer_cannot_convert(self):
        engineer = TestDataFactory.create_user(position=EmployeePosition.ENGINEER)
        self.client.authenticate_user(engineer)
        response = self.client.post(self.url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TicketReportAndConfigTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.staff = TestDataFactory.create_user()

    def test_reports(self):
        TestDataFactory.create_ticket(self.admin, priority='HIGH')
        TestDataFactory.create_ticket(self.admin, status='CLOSED', assigned_to=self.staff)
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/tickets/reports/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_tickets'], 2)
        self.assertEqual(response.data['open_tickets'], 1)
        self.assertEqual(response.data['closed_tickets'], 1)
        self.assertEqual(response.data['top_assignees'][0]['id'], self.staff.id)

    def test_reports_forbidden_for_staff(self):
        self.client.authenticate_user(self.staff)
        self.assertEqual(self.client.get('/api/v1/tickets/reports/').status_code, status.HTTP_403_FORBIDDEN)

    def test_numbering_config_endpoint(self):
        self.client.authenticate_user(self.admin)
        url = '/api/v1/helpdesk/ticket-numbering/'
        self.assertEqual(self.client.get(url).data['manual_prefix'], 'TKT')

        response = self.client.put(url, {
            'email_prefix': 'HD', 'email_sequence_padding': 3,
            'manual_prefix': 'SR', 'manual_sequence_padding': 5,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['config']['manual_prefix'], 'SR')

        response = self.client.put(url, {'email_prefix': '', 'manual_prefix': 'SR'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.client.authenticate_user(self.staff)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN)
