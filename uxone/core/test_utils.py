"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from decimal import Decimal
from django.utils import timezone
import random
import string

from uxone.core.models import Department, Notification, UserRole, EmployeePosition
from uxone.projects.models import Project, ProjectMember, Task
from uxone.helpdesk.models import Ticket
from uxone.procurement.models import Demand, DemandLine
from uxone.procurement.demand_ids import generate_demand_id
from uxone.documents.models import DocumentTemplate

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role=UserRole.USER,
                    position=EmployeePosition.STAFF, department='OPS', name=None):
        """Create a test user"""
        if not username:
            username = f'emp_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            position=position,
            department=department,
            name=name or f'Employee {username}',
        )

    @staticmethod
    def create_admin(**kwargs):
        kwargs.setdefault('role', UserRole.ADMIN)
        return TestDataFactory.create_user(**kwargs)

    @staticmethod
    def create_super_admin(**kwargs):
        kwargs.setdefault('role', UserRole.SUPER_ADMIN)
        return TestDataFactory.create_user(**kwargs)

    @staticmethod
    def create_department(code=None, name=None):
        if not code:
            code = TestDataFactory.random_string(4).upper()
        return Department.objects.create(code=code, name=name or f'Department {code}')

    @staticmethod
    def create_notification(user, title=None, read=False, created_at=None):
        return Notification.objects.create(
            user=user,
            title=title or f'Notice {TestDataFactory.random_string(6)}',
            message='Test notification',
            read=read,
            created_at=created_at or timezone.now(),
        )

    @staticmethod
    def create_project(owner, name=None, status='ACTIVE', departments=None, budget=None):
        """Create a test project with its owner as a member"""
        project = Project.objects.create(
            name=name or f'Project_{TestDataFactory.random_string(6)}',
            description='Test project',
            status=status,
            owner=owner,
            departments=departments if departments is not None else [owner.department],
            budget=budget,
        )
        ProjectMember.objects.create(project=project, user=owner, role='owner')
        return project

    @staticmethod
    def create_task(project=None, title=None, status='TODO', assignee=None, creator=None,
                    due_date=None, estimated_hours=None, actual_hours=None, parent_task=None):
        return Task.objects.create(
            title=title or f'Task_{TestDataFactory.random_string(6)}',
            project=project,
            status=status,
            assignee=assignee,
            creator=creator,
            owner=creator,
            due_date=due_date,
            estimated_hours=estimated_hours,
            actual_hours=actual_hours,
            parent_task=parent_task,
            completed_at=timezone.now() if status == 'COMPLETED' else None,
        )

    @staticmethod
    def create_ticket(created_by, ticket_number=None, title=None, status='OPEN', priority='MEDIUM',
                      assigned_team=None, assigned_to=None, customer_email='customer@example.com'):
        return Ticket.objects.create(
            ticket_number=ticket_number or f'TKT-{TestDataFactory.random_string(8).upper()}',
            title=title or 'Printer not working',
            description='The office printer shows an error',
            status=status,
            priority=priority,
            customer_name='Test Customer',
            customer_email=customer_email,
            assigned_team=assigned_team,
            assigned_to=assigned_to,
            created_by=created_by,
        )

    @staticmethod
    def create_demand(requester, status='PENDING', department=None, expense_account=64173, lines=None):
        """Create a demand with one or more lines"""
        demand = Demand.objects.create(
            id=generate_demand_id(),
            requester=requester,
            department=department or requester.department,
            expense_account=expense_account,
            justification='Office supplies for Q3',
            status=status,
            expected_delivery_date=timezone.localdate(),
        )
        for line in lines or [{'item_description': 'A4 paper', 'quantity': 10, 'unit_of_measure': 'BOX',
                               'estimated_cost': Decimal('150000.00')}]:
            DemandLine.objects.create(demand=demand, **line)
        return demand

    @staticmethod
    def create_document_template(created_by=None, template_code=None, prefix='QP', year=None):
        if not template_code:
            template_code = f'TPL{TestDataFactory.random_string(5).upper()}'
        return DocumentTemplate.objects.create(
            template_name=f'Template {template_code}',
            template_code=template_code,
            prefix=prefix,
            year=year or timezone.now().year,
            created_by=created_by,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
