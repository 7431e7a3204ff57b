"""
Role based access control

Permissions are granted by two static tables: one keyed by the user's system
role and one keyed by the employee position. A user holds the union of both.
"""
import re

from .models import UserRole, EmployeePosition


class Permissions:
    PROJECT_CREATE = 'project:create'
    PROJECT_READ = 'project:read'
    PROJECT_UPDATE = 'project:update'
    PROJECT_DELETE = 'project:delete'
    PROJECT_APPROVE = 'project:approve'

    DOCUMENT_CREATE = 'document:create'
    DOCUMENT_READ = 'document:read'
    DOCUMENT_UPDATE = 'document:update'
    DOCUMENT_DELETE = 'document:delete'

    USER_CREATE = 'user:create'
    USER_READ = 'user:read'
    USER_UPDATE = 'user:update'
    USER_DELETE = 'user:delete'

    DEPARTMENT_MANAGE = 'department:manage'
    SYSTEM_ADMIN = 'system:admin'
    SYSTEM_SETTINGS = 'system:settings'

    @classmethod
    def all(cls):
        return [value for name, value in vars(cls).items() if name.isupper()]


P = Permissions

_PROJECT_CRUD = [P.PROJECT_CREATE, P.PROJECT_READ, P.PROJECT_UPDATE, P.PROJECT_DELETE]
_DOCUMENT_CRUD = [P.DOCUMENT_CREATE, P.DOCUMENT_READ, P.DOCUMENT_UPDATE, P.DOCUMENT_DELETE]

ROLE_PERMISSIONS = {
    UserRole.SUPER_ADMIN: Permissions.all(),
    UserRole.ADMIN: _PROJECT_CRUD + _DOCUMENT_CRUD + [P.USER_READ, P.USER_UPDATE, P.DEPARTMENT_MANAGE],
    UserRole.MANAGER: [
        P.PROJECT_CREATE, P.PROJECT_READ, P.PROJECT_UPDATE,
        P.DOCUMENT_CREATE, P.DOCUMENT_READ, P.DOCUMENT_UPDATE,
        P.USER_READ,
    ],
    UserRole.USER: [P.PROJECT_READ, P.DOCUMENT_READ, P.USER_READ],
}

_EXECUTIVE = [P.SYSTEM_ADMIN, P.SYSTEM_SETTINGS, P.PROJECT_APPROVE, P.DEPARTMENT_MANAGE]
_AGM = [P.PROJECT_APPROVE, P.DEPARTMENT_MANAGE, P.SYSTEM_SETTINGS]
_SENIOR_MANAGER = [P.PROJECT_APPROVE, P.DEPARTMENT_MANAGE, P.PROJECT_CREATE]
_MANAGER = [P.PROJECT_APPROVE, P.PROJECT_CREATE, P.DOCUMENT_CREATE]
_CREATOR = [P.PROJECT_CREATE, P.DOCUMENT_CREATE]
_APPROVING_CREATOR = [P.PROJECT_CREATE, P.DOCUMENT_CREATE, P.PROJECT_APPROVE]

EP = EmployeePosition

POSITION_PERMISSIONS = {
    EP.GENERAL_DIRECTOR: _EXECUTIVE,
    EP.GENERAL_MANAGER: _EXECUTIVE,
    EP.AGM: _AGM,
    EP.AGM_2: _AGM,
    EP.SENIOR_MANAGER: _SENIOR_MANAGER,
    EP.SENIOR_MANAGER_2: _SENIOR_MANAGER,
    EP.ASSISTANT_SENIOR_MANAGER: _APPROVING_CREATOR,
    EP.MANAGER: _MANAGER,
    EP.MANAGER_2: _MANAGER,
    EP.ASSISTANT_MANAGER: _CREATOR,
    EP.ASSISTANT_MANAGER_2: _CREATOR,
    EP.CHIEF_SPECIALIST: _APPROVING_CREATOR,
    EP.SENIOR_ENGINEER: _CREATOR,
    EP.ENGINEER: _CREATOR,
    EP.SENIOR_SPECIALIST: _CREATOR,
    EP.SENIOR_SPECIALIST_2: _CREATOR,
    EP.SPECIALIST: [P.DOCUMENT_CREATE],
    EP.SPECIALIST_2: [P.DOCUMENT_CREATE],
    EP.TECHNICAL_SPECIALIST: [P.DOCUMENT_CREATE],
    EP.SENIOR_ASSOCIATE: [P.DOCUMENT_CREATE],
    EP.ASSOCIATE: [P.DOCUMENT_CREATE],
    EP.SENIOR_STAFF: [P.DOCUMENT_CREATE],
    EP.STAFF: [P.DOCUMENT_CREATE],
    EP.SUPERVISOR: [P.DOCUMENT_CREATE, P.PROJECT_CREATE],
    EP.SUPERVISOR_2: [P.DOCUMENT_CREATE, P.PROJECT_CREATE],
    EP.LINE_LEADER: [P.DOCUMENT_READ],
    EP.SENIOR_OPERATOR: [P.DOCUMENT_READ],
    EP.OPERATOR: [P.DOCUMENT_READ],
    EP.TECHNICIAN: [P.DOCUMENT_READ],
    EP.INTERN: [P.DOCUMENT_READ],
}


def is_super_admin(user):
    return bool(user) and getattr(user, 'role', None) == UserRole.SUPER_ADMIN


def get_user_permissions(user):
    """Union of the role grants and the position grants, in a stable order"""
    if not user:
        return []
    granted = list(ROLE_PERMISSIONS.get(getattr(user, 'role', None), []))
    for perm in POSITION_PERMISSIONS.get(getattr(user, 'position', None), []):
        if perm not in granted:
            granted.append(perm)
    return granted


def has_permission(user, permission):
    if not user:
        return False
    if is_super_admin(user):
        return True
    return permission in get_user_permissions(user)


def has_permissions(user, permissions):
    return all(has_permission(user, perm) for perm in permissions)


def can_manage_department(user, department):
    if is_super_admin(user):
        return True
    return has_permission(user, P.DEPARTMENT_MANAGE) and user.department == department


def can_approve_projects(user):
    return has_permission(user, P.PROJECT_APPROVE)


def can_create_projects(user):
    return has_permission(user, P.PROJECT_CREATE)


def can_manage_documents(user):
    return has_permissions(user, [P.DOCUMENT_CREATE, P.DOCUMENT_UPDATE, P.DOCUMENT_DELETE])


def map_position_to_role(position_text):
    """
    Map a position label from the central employee API to an EmployeePosition.

    Labels arrive as free text, e.g. "Senior Manager 2" or "assistant-manager";
    unknown or empty labels map to STAFF.
    """
    if not position_text:
        return EP.STAFF
    normalized = re.sub(r'[\s\-]+', '_', str(position_text).strip().upper())
    normalized = re.sub(r'_+', '_', normalized).strip('_')
    if normalized == 'ASSISTANT_GENERAL_MANAGER':
        return EP.AGM
    if normalized == 'ASSISTANT_GENERAL_MANAGER_2':
        return EP.AGM_2
    if normalized in EP.values:
        return EP(normalized)
    return EP.STAFF
