import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from django.db.models import Q
from .models import Department, Setting, AuditLog, Notification, UserRole
from .serializers import (
    UserSerializer, UserCreateSerializer, DepartmentSerializer,
    SettingSerializer, AuditLogSerializer, NotificationSerializer
)
from .permissions import require_permission
from .rbac import Permissions, get_user_permissions, has_permission, is_super_admin, can_manage_department
from .utils import create_audit_log

logger = logging.getLogger(__name__)

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        create_audit_log(
            action='login',
            model_name='User',
            object_id=self.user.id,
            object_name=self.user.display_name,
            user=self.user,
        )
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['name'] = user.display_name
        token['role'] = user.role
        token['position'] = user.position
        token['department'] = user.department
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    """Login with employee code and password (local account or central API)"""
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([IsAuthenticated, require_permission(Permissions.USER_CREATE)])
def register(request):
    """Create an account on behalf of an employee (user:create)"""
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        if serializer.validated_data.get('role') == UserRole.SUPER_ADMIN and not is_super_admin(request.user):
            return Response({'error': 'Only super admins can create super admins'}, status=status.HTTP_403_FORBIDDEN)
        user = serializer.save()
        create_audit_log(request=request, action='create', model_name='User', object_id=user.id,
                         object_name=user.display_name)
        token = CustomTokenObtainPairSerializer.get_token(user)
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with the resolved permission list and helpdesk level"""
    from uxone.helpdesk.permissions import get_helpdesk_permissions

    user = request.user
    user_data = UserSerializer(user).data
    user_data['permissions'] = get_user_permissions(user)
    user_data['is_super_admin'] = is_super_admin(user)
    user_data['helpdesk'] = get_helpdesk_permissions(user)
    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def user_list_create(request):
    """List users (user:read) or create one (user:create)"""
    if request.method == 'GET':
        if not has_permission(request.user, Permissions.USER_READ):
            return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
        users = User.objects.all().order_by('username')
        department = request.query_params.get('department')
        if department:
            users = users.filter(department=department)
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            users = users.filter(is_active=is_active.lower() == 'true')
        search = request.query_params.get('search', '').strip()
        if search:
            users = users.filter(
                Q(username__icontains=search) | Q(name__icontains=search) | Q(email__icontains=search)
            )
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)

    if not has_permission(request.user, Permissions.USER_CREATE):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        create_audit_log(request=request, action='create', model_name='User', object_id=user.id,
                         object_name=user.display_name)
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        if user != request.user and not has_permission(request.user, Permissions.USER_READ):
            return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
        return Response(UserSerializer(user).data)

    if request.method in ('PUT', 'PATCH'):
        if not has_permission(request.user, Permissions.USER_UPDATE):
            return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
        if 'role' in request.data and not is_super_admin(request.user):
            return Response({'error': 'Only super admins can change roles'}, status=status.HTTP_403_FORBIDDEN)
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='User', object_id=user.id,
                             object_name=user.display_name, changes=dict(request.data))
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    if not has_permission(request.user, Permissions.USER_DELETE):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    if user == request.user:
        return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='delete', model_name='User', object_id=user.id,
                     object_name=user.display_name)
    user.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def user_change_department(request, pk):
    """Move a user to another department"""
    user = get_object_or_404(User, pk=pk)
    department = (request.data.get('department') or '').strip().upper()
    if not department:
        return Response({'error': 'department is required'}, status=status.HTTP_400_BAD_REQUEST)
    if not Department.objects.filter(code=department, is_active=True).exists():
        return Response({'error': f'Unknown department: {department}'}, status=status.HTTP_400_BAD_REQUEST)
    # Managers may only move people in or out of their own department
    if not is_super_admin(request.user) and not (
        can_manage_department(request.user, user.department) or can_manage_department(request.user, department)
    ):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    previous = user.department
    user.department = department
    user.save(update_fields=['department', 'updated_at'])
    create_audit_log(request=request, action='update', model_name='User', object_id=user.id,
                     object_name=user.display_name,
                     changes={'department': {'from': previous, 'to': department}})
    return Response(UserSerializer(user).data)


# Department views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def department_list_create(request):
    if request.method == 'GET':
        departments = Department.objects.all()
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            departments = departments.filter(is_active=is_active.lower() == 'true')
        return Response(DepartmentSerializer(departments, many=True).data)

    if not has_permission(request.user, Permissions.DEPARTMENT_MANAGE):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    serializer = DepartmentSerializer(data=request.data)
    if serializer.is_valid():
        department = serializer.save()
        create_audit_log(request=request, action='create', model_name='Department',
                         object_id=department.id, object_name=department.name,
                         object_reference=department.code)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def department_detail(request, pk):
    department = get_object_or_404(Department, pk=pk)

    if request.method == 'GET':
        data = DepartmentSerializer(department).data
        data['user_count'] = User.objects.filter(department=department.code).count()
        return Response(data)

    if not has_permission(request.user, Permissions.DEPARTMENT_MANAGE):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = DepartmentSerializer(department, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Department',
                             object_id=department.id, object_name=department.name,
                             object_reference=department.code, changes=dict(request.data))
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if User.objects.filter(department=department.code).exists():
        return Response({'error': 'Department still has users; deactivate it instead'},
                        status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, action='delete', model_name='Department',
                     object_id=department.id, object_name=department.name,
                     object_reference=department.code)
    department.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission(Permissions.SYSTEM_SETTINGS)])
def setting_list_create(request):
    """List settings (optionally by category) or create a new setting"""
    if request.method == 'GET':
        settings_qs = Setting.objects.all()
        category = request.query_params.get('category')
        if category:
            settings_qs = settings_qs.filter(category=category)
        return Response(SettingSerializer(settings_qs, many=True).data)

    serializer = SettingSerializer(data=request.data)
    if serializer.is_valid():
        setting = serializer.save()
        create_audit_log(request=request, action='create', model_name='Setting',
                         object_id=setting.id, object_name=setting.key)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission(Permissions.SYSTEM_SETTINGS)])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    setting = get_object_or_404(Setting, pk=pk)

    if request.method == 'GET':
        return Response(SettingSerializer(setting).data)
    elif request.method in ('PUT', 'PATCH'):
        old_value = setting.value
        serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Setting',
                             object_id=setting.id, object_name=setting.key,
                             changes={'value': {'from': old_value, 'to': setting.value}})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request=request, action='delete', model_name='Setting',
                         object_id=setting.id, object_name=setting.key)
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering; non-admins only see their own entries"""
    queryset = AuditLog.objects.select_related('user')

    if not has_permission(request.user, Permissions.SYSTEM_ADMIN):
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')[:500]
    serializer = AuditLogSerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if not has_permission(request.user, Permissions.SYSTEM_ADMIN) and audit_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    return Response(AuditLogSerializer(audit_log).data)


# Notification views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    """Notifications of the current user; hidden ones are excluded unless asked for"""
    notifications = Notification.objects.filter(user=request.user)
    if request.query_params.get('include_hidden', '').lower() != 'true':
        notifications = notifications.filter(hidden=False)
    if request.query_params.get('unread', '').lower() == 'true':
        notifications = notifications.filter(read=False)
    try:
        limit = min(int(request.query_params.get('limit', 50)), 200)
    except ValueError:
        return Response({'error': 'limit must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(NotificationSerializer(notifications[:limit], many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk):
    """Mark one notification read (or unread with {"read": false}) in both databases"""
    from uxone.integration.sync import mark_notification_read

    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    is_read = request.data.get('read', True)
    if isinstance(is_read, str):
        is_read = is_read.lower() == 'true'
    result = mark_notification_read(request.user, notification.id, bool(is_read))
    notification.refresh_from_db()
    data = NotificationSerializer(notification).data
    data['sync'] = result.to_dict()
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    updated = Notification.objects.filter(user=request.user, read=False).update(read=True)
    return Response({'updated': updated})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_clear_all(request):
    """Hide every notification of the current user"""
    cleared = Notification.objects.filter(user=request.user, hidden=False).update(hidden=True)
    return Response({'cleared': cleared})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    count = Notification.objects.filter(user=request.user, read=False, hidden=False).count()
    return Response({'count': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """Global search across projects, tasks, tickets, demands, templates and users"""
    query = request.query_params.get('q', '').strip()

    buckets = ['projects', 'tasks', 'tickets', 'demands', 'document_templates', 'users']
    if not query:
        return Response({bucket: [] for bucket in buckets})

    from uxone.projects.utils import visible_projects, visible_tasks
    from uxone.helpdesk.permissions import can
    from uxone.helpdesk.views import scoped_tickets
    from uxone.procurement.models import Demand
    from uxone.procurement.views import can_view_all_demands
    from uxone.documents.models import DocumentTemplate

    results = {}

    # Each bucket only holds records the caller could open through its own endpoint
    projects = visible_projects(request.user).filter(
        Q(name__icontains=query) | Q(description__icontains=query)
    )[:20]
    results['projects'] = [
        {'id': p.id, 'name': p.name, 'status': p.status} for p in projects
    ]

    tasks = visible_tasks(request.user).filter(
        Q(title__icontains=query) | Q(description__icontains=query)
    ).select_related('project')[:20]
    results['tasks'] = [
        {'id': t.id, 'title': t.title, 'status': t.status,
         'project': t.project.name if t.project else None} for t in tasks
    ]

    tickets = []
    if can(request.user, 'read'):
        tickets = scoped_tickets(request.user).filter(
            Q(ticket_number__icontains=query) |
            Q(title__icontains=query) |
            Q(customer_name__icontains=query) |
            Q(customer_email__icontains=query)
        )[:20]
    results['tickets'] = [
        {'id': t.id, 'ticket_number': t.ticket_number, 'title': t.title, 'status': t.status}
        for t in tickets
    ]

    demands = Demand.objects.filter(Q(id__icontains=query) | Q(justification__icontains=query))
    if not can_view_all_demands(request.user):
        demands = demands.filter(requester=request.user)
    demands = demands[:20]
    results['demands'] = [
        {'id': d.id, 'department': d.department, 'status': d.status} for d in demands
    ]

    templates = DocumentTemplate.objects.filter(
        Q(template_name__icontains=query) | Q(template_code__icontains=query)
    )[:20]
    results['document_templates'] = [
        {'id': t.id, 'template_name': t.template_name, 'template_code': t.template_code}
        for t in templates
    ]

    users = User.objects.filter(
        Q(username__icontains=query) | Q(name__icontains=query) | Q(email__icontains=query)
    )[:20]
    results['users'] = [
        {'id': u.id, 'username': u.username, 'name': u.display_name, 'department': u.department}
        for u in users
    ]

    return Response(results)
