from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class UserRole(models.TextChoices):
    SUPER_ADMIN = 'SUPER_ADMIN', 'Super Admin'
    ADMIN = 'ADMIN', 'Admin'
    MANAGER = 'MANAGER', 'Manager'
    USER = 'USER', 'User'


class EmployeePosition(models.TextChoices):
    GENERAL_DIRECTOR = 'GENERAL_DIRECTOR', 'General Director'
    GENERAL_MANAGER = 'GENERAL_MANAGER', 'General Manager'
    AGM = 'AGM', 'Assistant General Manager'
    AGM_2 = 'AGM_2', 'Assistant General Manager 2'
    SENIOR_MANAGER = 'SENIOR_MANAGER', 'Senior Manager'
    SENIOR_MANAGER_2 = 'SENIOR_MANAGER_2', 'Senior Manager 2'
    ASSISTANT_SENIOR_MANAGER = 'ASSISTANT_SENIOR_MANAGER', 'Assistant Senior Manager'
    MANAGER = 'MANAGER', 'Manager'
    MANAGER_2 = 'MANAGER_2', 'Manager 2'
    ASSISTANT_MANAGER = 'ASSISTANT_MANAGER', 'Assistant Manager'
    ASSISTANT_MANAGER_2 = 'ASSISTANT_MANAGER_2', 'Assistant Manager 2'
    CHIEF_SPECIALIST = 'CHIEF_SPECIALIST', 'Chief Specialist'
    SENIOR_ENGINEER = 'SENIOR_ENGINEER', 'Senior Engineer'
    ENGINEER = 'ENGINEER', 'Engineer'
    SENIOR_SPECIALIST = 'SENIOR_SPECIALIST', 'Senior Specialist'
    SENIOR_SPECIALIST_2 = 'SENIOR_SPECIALIST_2', 'Senior Specialist 2'
    SPECIALIST = 'SPECIALIST', 'Specialist'
    SPECIALIST_2 = 'SPECIALIST_2', 'Specialist 2'
    TECHNICAL_SPECIALIST = 'TECHNICAL_SPECIALIST', 'Technical Specialist'
    SENIOR_ASSOCIATE = 'SENIOR_ASSOCIATE', 'Senior Associate'
    ASSOCIATE = 'ASSOCIATE', 'Associate'
    SENIOR_STAFF = 'SENIOR_STAFF', 'Senior Staff'
    STAFF = 'STAFF', 'Staff'
    SUPERVISOR = 'SUPERVISOR', 'Supervisor'
    SUPERVISOR_2 = 'SUPERVISOR_2', 'Supervisor 2'
    LINE_LEADER = 'LINE_LEADER', 'Line Leader'
    SENIOR_OPERATOR = 'SENIOR_OPERATOR', 'Senior Operator'
    OPERATOR = 'OPERATOR', 'Operator'
    TECHNICIAN = 'TECHNICIAN', 'Technician'
    INTERN = 'INTERN', 'Intern'


class User(AbstractUser):
    """Employee account; username holds the employee code"""
    name = models.CharField(max_length=255, blank=True)
    department = models.CharField(max_length=50, default='OPS', db_index=True, help_text="Department code (e.g., IS, QC, PROC)")
    central_department = models.CharField(max_length=100, blank=True, null=True, help_text="Department code reported by the central employee API")
    department_name = models.CharField(max_length=255, blank=True, null=True)
    role = models.CharField(max_length=20, choices=UserRole.choices, default=UserRole.USER)
    position = models.CharField(max_length=40, choices=EmployeePosition.choices, default=EmployeePosition.STAFF)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'

    def __str__(self):
        return self.name or self.username

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.username


class Department(models.Model):
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.code} - {self.name}"

    class Meta:
        db_table = 'departments'
        ordering = ['code']


class Setting(models.Model):
    """System settings grouped by category"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    category = models.CharField(max_length=100, default='general', db_index=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'
        ordering = ['category', 'key']


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('view', 'View'),
        ('login', 'Login'),
        ('approve', 'Approve'),
        ('reject', 'Reject'),
        ('status_change', 'Status Change'),
        ('member_add', 'Member Added'),
        ('member_remove', 'Member Removed'),
        ('ticket_convert', 'Ticket Converted To Task'),
        ('document_number', 'Document Number Generated'),
        ('erp_submit', 'ERP Submission'),
        ('sync', 'Data Sync'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., project name, ticket title)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., ticket number, demand id)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
            models.Index(fields=['object_reference'], name='idx_audit_reference'),
        ]


class Notification(models.Model):
    TYPE_CHOICES = [
        ('INFO', 'Info'),
        ('SUCCESS', 'Success'),
        ('WARNING', 'Warning'),
        ('ERROR', 'Error'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=500, blank=True, null=True)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='INFO')
    read = models.BooleanField(default=False)
    hidden = models.BooleanField(default=False)
    # Not auto_now_add: mobile sync copies created_at verbatim
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user} - {self.title}"

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'read'], name='idx_notification_user_read'),
            models.Index(fields=['user', 'title', 'created_at'], name='idx_notification_match'),
        ]
