"""
Tables of the legacy database shared with the mobile app.

These models are routed to the 'mobile' database by MobileDatabaseRouter and
never hold foreign keys into the main database.
"""
from django.db import models
from django.utils import timezone


class MobileUser(models.Model):
    username = models.CharField(max_length=150, unique=True)
    emp_code = models.CharField(max_length=50, blank=True, null=True, db_index=True)
    name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True, null=True)
    department = models.CharField(max_length=50, blank=True, null=True)
    central_department = models.CharField(max_length=100, blank=True, null=True)
    department_name = models.CharField(max_length=255, blank=True, null=True)
    role = models.CharField(max_length=40, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    hashed_password = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name or self.username

    class Meta:
        db_table = 'users'
        ordering = ['username']


class MobileNotification(models.Model):
    user = models.ForeignKey(MobileUser, on_delete=models.CASCADE, related_name='notifications')
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=500, blank=True, null=True)
    type = models.CharField(max_length=10, default='INFO')
    read = models.BooleanField(default=False)
    hidden = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user_id} - {self.title}"

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'title', 'created_at'], name='idx_mobile_notification_match'),
        ]
