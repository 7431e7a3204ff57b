from django.contrib import admin

from .models import MobileUser, MobileNotification


class MobileAdmin(admin.ModelAdmin):
    using = 'mobile'

    def get_queryset(self, request):
        return super().get_queryset(request).using(self.using)

    def save_model(self, request, obj, form, change):
        obj.save(using=self.using)

    def delete_model(self, request, obj):
        obj.delete(using=self.using)


@admin.register(MobileUser)
class MobileUserAdmin(MobileAdmin):
    list_display = ['username', 'emp_code', 'name', 'department', 'role', 'is_active']
    list_filter = ['department', 'is_active']
    search_fields = ['username', 'emp_code', 'name', 'email']


@admin.register(MobileNotification)
class MobileNotificationAdmin(MobileAdmin):
    list_display = ['title', 'user', 'type', 'read', 'hidden', 'created_at']
    list_filter = ['type', 'read', 'hidden']
    search_fields = ['title', 'message']
    raw_id_fields = ['user']
