from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import serializers
from uxone.core.serializers import UserSummarySerializer
from .models import Project, ProjectMember, Task, TaskDependency, TaskAttachment, Comment

User = get_user_model()


class ProjectMemberSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = ProjectMember
        fields = ['id', 'user', 'role', 'joined_at']


class ProjectSerializer(serializers.ModelSerializer):
    owner = UserSummarySerializer(read_only=True)
    team_members = serializers.ListField(child=serializers.IntegerField(), write_only=True, required=False)

    class Meta:
        model = Project
        fields = ['id', 'name', 'description', 'status', 'start_date', 'end_date', 'budget', 'owner',
                  'departments', 'tags', 'approval_state', 'request_date', 'department_due_dates',
                  'team_members', 'created_at', 'updated_at']
        read_only_fields = ['owner', 'approval_state', 'department_due_dates', 'created_at', 'updated_at']

    def validate_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Project name is required")
        return value.strip()

    def validate_departments(self, value):
        return [str(code).strip().upper() for code in value if str(code).strip()]

    def validate(self, attrs):
        start_date = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end_date = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({'end_date': 'End date cannot be before start date'})
        return attrs

    def create(self, validated_data):
        team_members = validated_data.pop('team_members', [])
        owner = self.context['request'].user
        project = Project.objects.create(owner=owner, **validated_data)
        ProjectMember.objects.create(project=project, user=owner, role='owner')
        for user_id in team_members:
            if user_id == owner.id:
                continue
            ProjectMember.objects.get_or_create(project=project, user_id=user_id, defaults={'role': 'member'})
        return project

    def update(self, instance, validated_data):
        validated_data.pop('team_members', None)
        return super().update(instance, validated_data)


class TaskSerializer(serializers.ModelSerializer):
    owner = UserSummarySerializer(read_only=True)
    assignee = UserSummarySerializer(read_only=True)
    creator = UserSummarySerializer(read_only=True)
    assignee_id = serializers.IntegerField(write_only=True, required=False, allow_null=True)
    project_name = serializers.CharField(source='project.name', read_only=True, default=None)
    subtask_count = serializers.SerializerMethodField()

    class Meta:
        model = Task
        fields = ['id', 'title', 'description', 'status', 'priority', 'project', 'project_name',
                  'parent_task', 'owner', 'assignee', 'assignee_id', 'creator', 'due_date',
                  'estimated_hours', 'actual_hours', 'source_ticket', 'ticket_integration',
                  'completed_at', 'subtask_count', 'created_at', 'updated_at']
        read_only_fields = ['source_ticket', 'ticket_integration', 'completed_at', 'created_at', 'updated_at']

    def get_subtask_count(self, obj):
        return obj.subtasks.count()

    def validate_title(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Task title is required")
        return value.strip()

    def validate_assignee_id(self, value):
        if value is not None and not User.objects.filter(pk=value).exists():
            raise serializers.ValidationError("Assignee not found")
        return value

    def validate(self, attrs):
        parent = attrs.get('parent_task')
        if parent is not None and self.instance is not None and parent.pk == self.instance.pk:
            raise serializers.ValidationError({'parent_task': 'Task cannot be its own parent'})
        return attrs


class TaskDependencySerializer(serializers.ModelSerializer):
    class Meta:
        model = TaskDependency
        fields = ['id', 'dependent_task', 'blocking_task', 'created_at']


class TaskAttachmentSerializer(serializers.ModelSerializer):
    uploaded_by = UserSummarySerializer(read_only=True)
    download_url = serializers.SerializerMethodField()

    class Meta:
        model = TaskAttachment
        fields = ['id', 'task', 'download_url', 'file_name', 'file_size', 'content_type', 'uploaded_by', 'created_at']
        read_only_fields = ['task', 'file_name', 'file_size', 'content_type', 'created_at']

    def get_download_url(self, obj):
        return reverse('task-attachment-detail', args=[obj.task_id, obj.pk])


class CommentSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = Comment
        fields = ['id', 'author', 'content', 'project', 'task', 'created_at', 'updated_at']
        read_only_fields = ['project', 'task', 'created_at', 'updated_at']

    def validate_content(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Comment content is required")
        return value.strip()
