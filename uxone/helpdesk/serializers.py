from rest_framework import serializers
from uxone.core.serializers import UserSummarySerializer
from .models import Ticket, TicketComment


class TicketCommentSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = TicketComment
        fields = ['id', 'ticket', 'author', 'author_type', 'content', 'is_internal', 'created_at']
        read_only_fields = ['ticket', 'author_type', 'created_at']

    def validate_content(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Comment content is required")
        return value


class TicketSerializer(serializers.ModelSerializer):
    assigned_to = UserSummarySerializer(read_only=True)
    assigned_to_id = serializers.IntegerField(write_only=True, required=False, allow_null=True)
    created_by = UserSummarySerializer(read_only=True)
    comment_count = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = ['id', 'ticket_number', 'title', 'description', 'status', 'priority', 'category',
                  'customer_name', 'customer_email', 'customer_id', 'assigned_to', 'assigned_to_id',
                  'assigned_team', 'created_by', 'tags', 'related_tasks', 'source', 'resolved_at',
                  'closed_at', 'comment_count', 'created_at', 'updated_at']
        read_only_fields = ['ticket_number', 'related_tasks', 'source', 'resolved_at', 'closed_at',
                            'created_at', 'updated_at']

    def get_comment_count(self, obj):
        return obj.comments.count()

    def validate_title(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Title is required")
        return value.strip()

    def validate_assigned_team(self, value):
        return value.strip().upper() if value else value
