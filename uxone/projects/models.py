import os

from django.conf import settings
from django.db import models


class Project(models.Model):
    STATUS_CHOICES = [
        ('PLANNING', 'Planning'),
        ('ACTIVE', 'Active'),
        ('ON_HOLD', 'On Hold'),
        ('COMPLETED', 'Completed'),
        ('CANCELLED', 'Cancelled'),
        ('APPROVED', 'Approved'),
    ]

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PLANNING', db_index=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    budget = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='owned_projects')
    departments = models.JSONField(default=list, blank=True, help_text="Department codes involved in the project")
    tags = models.JSONField(default=list, blank=True)
    approval_state = models.JSONField(default=dict, blank=True, help_text="Department code -> approved | disapproved")
    request_date = models.DateField(null=True, blank=True)
    department_due_dates = models.JSONField(default=dict, blank=True, help_text="Department code -> ISO date")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def is_member(self, user):
        return self.owner_id == user.id or self.members.filter(user=user).exists()

    def all_departments_approved(self):
        # A project with no approving departments stays in its current status
        if not self.departments:
            return False
        return all(self.approval_state.get(dept) == 'approved' for dept in self.departments)

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', 'status'], name='idx_project_owner_status'),
        ]


class ProjectMember(models.Model):
    ROLE_CHOICES = [
        ('owner', 'Owner'),
        ('member', 'Member'),
    ]

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='project_memberships')
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='member')
    joined_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} in {self.project}"

    class Meta:
        db_table = 'project_members'
        unique_together = [['project', 'user']]


class Task(models.Model):
    STATUS_CHOICES = [
        ('TODO', 'To Do'),
        ('IN_PROGRESS', 'In Progress'),
        ('REVIEW', 'Review'),
        ('COMPLETED', 'Completed'),
        ('BLOCKED', 'Blocked'),
    ]
    PRIORITY_CHOICES = [
        ('LOW', 'Low'),
        ('MEDIUM', 'Medium'),
        ('HIGH', 'High'),
        ('URGENT', 'Urgent'),
    ]

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='TODO', db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='MEDIUM')
    project = models.ForeignKey(Project, on_delete=models.CASCADE, null=True, blank=True, related_name='tasks')
    parent_task = models.ForeignKey('self', on_delete=models.CASCADE, null=True, blank=True, related_name='subtasks')
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='owned_tasks')
    assignee = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_tasks')
    creator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_tasks')
    due_date = models.DateTimeField(null=True, blank=True)
    estimated_hours = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    actual_hours = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    source_ticket = models.ForeignKey('helpdesk.Ticket', on_delete=models.SET_NULL, null=True, blank=True, related_name='converted_tasks')
    ticket_integration = models.JSONField(default=dict, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'tasks'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['project', 'status'], name='idx_task_project_status'),
            models.Index(fields=['assignee', 'status'], name='idx_task_assignee_status'),
            models.Index(fields=['due_date'], name='idx_task_due_date'),
        ]


class TaskDependency(models.Model):
    """dependent_task cannot start before blocking_task is done"""
    dependent_task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='dependencies')
    blocking_task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='blocking')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.dependent_task_id} depends on {self.blocking_task_id}"

    class Meta:
        db_table = 'task_dependencies'
        unique_together = [['dependent_task', 'blocking_task']]


def task_attachment_path(instance, filename):
    return f'task_attachments/{instance.task_id}/{filename}'


class TaskAttachment(models.Model):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name='attachments')
    file = models.FileField(upload_to=task_attachment_path)
    file_name = models.CharField(max_length=255)
    file_size = models.PositiveIntegerField(default=0)
    content_type = models.CharField(max_length=100, blank=True)
    uploaded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='task_attachments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.file_name or os.path.basename(self.file.name)

    class Meta:
        db_table = 'task_attachments'
        ordering = ['-created_at']


class Comment(models.Model):
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='comments')
    content = models.TextField()
    project = models.ForeignKey(Project, on_delete=models.CASCADE, null=True, blank=True, related_name='comments')
    task = models.ForeignKey(Task, on_delete=models.CASCADE, null=True, blank=True, related_name='comments')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Comment by {self.author} on {self.task or self.project}"

    class Meta:
        db_table = 'comments'
        ordering = ['-created_at']
