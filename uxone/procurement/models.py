from django.conf import settings
from django.db import models


class Demand(models.Model):
    """Internal purchase requisition, identified as LR-YYYYMMDD-XXX"""
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('REJECTED', 'Rejected'),
        ('ERP_PROCESSING', 'ERP Processing'),
    ]
    PRIORITY_CHOICES = [
        ('LOW', 'Low'),
        ('MEDIUM', 'Medium'),
        ('HIGH', 'High'),
        ('URGENT', 'Urgent'),
    ]

    id = models.CharField(max_length=20, primary_key=True)
    requester = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='demands')
    bu = models.CharField(max_length=20, blank=True, default='')
    department = models.CharField(max_length=50, db_index=True)
    user_department = models.CharField(max_length=50, blank=True, null=True)
    account = models.CharField(max_length=50, blank=True, default='')
    approval_route = models.CharField(max_length=100, blank=True, default='')
    expense_account = models.IntegerField(null=True, blank=True)
    expense_description = models.CharField(max_length=255, blank=True, default='')
    expense_gl_class = models.CharField(max_length=20, blank=True, default='')
    expense_stock_type = models.CharField(max_length=20, blank=True, default='')
    expense_order_type = models.CharField(max_length=20, blank=True, default='')
    justification = models.TextField()
    priority_level = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='MEDIUM')
    expected_delivery_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING', db_index=True)
    department_specific = models.JSONField(default=dict, blank=True)
    attachments = models.JSONField(default=list, blank=True)
    submitted_at = models.DateTimeField(auto_now_add=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.id} ({self.department})"

    @property
    def total_estimated_cost(self):
        return sum((line.estimated_cost or 0) for line in self.lines.all())

    class Meta:
        db_table = 'demands'
        ordering = ['-submitted_at']
        indexes = [
            models.Index(fields=['requester', 'status'], name='idx_demand_requester_status'),
            models.Index(fields=['department', 'status'], name='idx_demand_dept_status'),
        ]


class DemandLine(models.Model):
    demand = models.ForeignKey(Demand, on_delete=models.CASCADE, related_name='lines')
    item_description = models.CharField(max_length=500)
    quantity = models.PositiveIntegerField()
    unit_of_measure = models.CharField(max_length=10, default='EA')
    estimated_cost = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    specifications = models.TextField(blank=True, default='')
    supplier_preference = models.CharField(max_length=255, blank=True, default='')
    status = models.CharField(max_length=20, choices=Demand.STATUS_CHOICES, default='PENDING')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.demand_id}: {self.item_description} x {self.quantity}"

    class Meta:
        db_table = 'demand_lines'
        ordering = ['created_at', 'id']


class DemandSequence(models.Model):
    """Per-day counter behind demand ids"""
    date = models.CharField(max_length=8, unique=True, help_text="YYYYMMDD")
    sequence = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.date}: {self.sequence}"

    class Meta:
        db_table = 'demand_sequences'
