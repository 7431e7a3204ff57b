from django.contrib import admin
from .models import Project, ProjectMember, Task, TaskDependency, TaskAttachment, Comment


class ProjectMemberInline(admin.TabularInline):
    model = ProjectMember
    extra = 0
    raw_id_fields = ['user']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['name', 'status', 'owner', 'start_date', 'end_date', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['name', 'description', 'owner__username']
    raw_id_fields = ['owner']
    inlines = [ProjectMemberInline]


class SubtaskInline(admin.TabularInline):
    model = Task
    fk_name = 'parent_task'
    extra = 0
    fields = ['title', 'status', 'priority', 'assignee', 'due_date']
    raw_id_fields = ['assignee']


class TaskAttachmentInline(admin.TabularInline):
    model = TaskAttachment
    extra = 0
    readonly_fields = ['file_name', 'file_size', 'content_type', 'uploaded_by', 'created_at']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['title', 'project', 'status', 'priority', 'assignee', 'due_date', 'created_at']
    list_filter = ['status', 'priority']
    search_fields = ['title', 'description', 'project__name']
    raw_id_fields = ['project', 'parent_task', 'owner', 'assignee', 'creator', 'source_ticket']
    inlines = [SubtaskInline, TaskAttachmentInline]


@admin.register(TaskDependency)
class TaskDependencyAdmin(admin.ModelAdmin):
    list_display = ['dependent_task', 'blocking_task', 'created_at']
    raw_id_fields = ['dependent_task', 'blocking_task']


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ['author', 'project', 'task', 'created_at']
    search_fields = ['content', 'author__username']
    raw_id_fields = ['author', 'project', 'task']
