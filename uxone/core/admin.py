from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Department, Setting, AuditLog, Notification


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'name', 'email', 'department', 'role', 'position', 'is_active']
    list_filter = ['is_active', 'role', 'position', 'department']
    search_fields = ['username', 'name', 'email']
    ordering = ['username']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Employee', {'fields': ('name', 'department', 'central_department', 'department_name', 'role', 'position')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Employee', {'fields': ('name', 'department', 'role', 'position')}),
    )


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'is_active', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['code', 'name']


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'category', 'is_active', 'updated_at']
    list_filter = ['category', 'is_active']
    search_fields = ['key', 'description']
    ordering = ['category', 'key']
    readonly_fields = ['updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'model_name', 'object_id', 'object_reference', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__username', 'model_name', 'object_id', 'object_reference']
    ordering = ['-created_at']
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'changes', 'ip_address', 'created_at']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'title', 'type', 'read', 'hidden', 'created_at']
    list_filter = ['type', 'read', 'hidden']
    search_fields = ['user__username', 'title']
