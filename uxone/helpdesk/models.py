from django.conf import settings
from django.db import models


class Ticket(models.Model):
    STATUS_CHOICES = [
        ('OPEN', 'Open'),
        ('IN_PROGRESS', 'In Progress'),
        ('PENDING', 'Pending'),
        ('RESOLVED', 'Resolved'),
        ('CLOSED', 'Closed'),
    ]
    PRIORITY_CHOICES = [
        ('LOW', 'Low'),
        ('MEDIUM', 'Medium'),
        ('HIGH', 'High'),
        ('URGENT', 'Urgent'),
    ]
    CATEGORY_CHOICES = [
        ('SUPPORT', 'Support'),
        ('BUG', 'Bug'),
        ('FEATURE_REQUEST', 'Feature Request'),
        ('TECHNICAL_ISSUE', 'Technical Issue'),
        ('GENERAL', 'General'),
    ]
    SOURCE_CHOICES = [
        ('manual', 'Manual'),
        ('email', 'Email'),
    ]

    ticket_number = models.CharField(max_length=50, unique=True)
    title = models.CharField(max_length=500)
    description = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='OPEN', db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='MEDIUM')
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='SUPPORT')
    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField()
    customer_id = models.CharField(max_length=100, blank=True, null=True)
    assigned_to = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_tickets')
    assigned_team = models.CharField(max_length=50, blank=True, null=True, help_text="Department code handling the ticket")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='created_tickets')
    tags = models.JSONField(default=list, blank=True)
    related_tasks = models.JSONField(default=list, blank=True, help_text="IDs of tasks created from this ticket")
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES, default='manual')
    resolved_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.ticket_number} - {self.title}"

    class Meta:
        db_table = 'tickets'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'priority'], name='idx_ticket_status_priority'),
            models.Index(fields=['customer_email', 'created_at'], name='idx_ticket_customer'),
            models.Index(fields=['assigned_team'], name='idx_ticket_team'),
        ]


class TicketComment(models.Model):
    AUTHOR_TYPE_CHOICES = [
        ('USER', 'User'),
        ('SYSTEM', 'System'),
        ('CUSTOMER', 'Customer'),
    ]

    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name='comments')
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='ticket_comments')
    author_type = models.CharField(max_length=10, choices=AUTHOR_TYPE_CHOICES, default='USER')
    content = models.TextField()
    is_internal = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.author_type} comment on {self.ticket.ticket_number}"

    class Meta:
        db_table = 'ticket_comments'
        ordering = ['created_at']
