from django.contrib import admin
from .models import Ticket, TicketComment


class TicketCommentInline(admin.TabularInline):
    model = TicketComment
    extra = 0
    fields = ['author', 'author_type', 'content', 'is_internal', 'created_at']
    readonly_fields = ['created_at']
    raw_id_fields = ['author']


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ['ticket_number', 'title', 'status', 'priority', 'category', 'assigned_team', 'assigned_to', 'created_at']
    list_filter = ['status', 'priority', 'category', 'source', 'assigned_team']
    search_fields = ['ticket_number', 'title', 'customer_name', 'customer_email']
    readonly_fields = ['ticket_number', 'resolved_at', 'closed_at', 'created_at', 'updated_at']
    raw_id_fields = ['assigned_to', 'created_by']
    inlines = [TicketCommentInline]
