from django.contrib import admin
from .models import Demand, DemandLine, DemandSequence


class DemandLineInline(admin.TabularInline):
    model = DemandLine
    extra = 0
    fields = ['item_description', 'quantity', 'unit_of_measure', 'estimated_cost', 'status']


@admin.register(Demand)
class DemandAdmin(admin.ModelAdmin):
    list_display = ['id', 'requester', 'department', 'status', 'priority_level', 'expected_delivery_date', 'submitted_at']
    list_filter = ['status', 'priority_level', 'department']
    search_fields = ['id', 'justification', 'requester__username', 'requester__name']
    readonly_fields = ['id', 'submitted_at', 'approved_at', 'created_at', 'updated_at']
    raw_id_fields = ['requester']
    inlines = [DemandLineInline]


@admin.register(DemandSequence)
class DemandSequenceAdmin(admin.ModelAdmin):
    list_display = ['date', 'sequence', 'updated_at']
    ordering = ['-date']
