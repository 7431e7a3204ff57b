"""
Helpdesk permission matrix

Each employee position belongs to one permission level. A level carries the
action flags and the department scope ('all' or 'own') used to filter the
ticket list.
"""
from rest_framework.permissions import BasePermission

from uxone.core.models import UserRole, EmployeePosition as EP

ACTIONS = ('read', 'create', 'update', 'delete', 'assign', 'resolve', 'escalate', 'reports', 'admin')


def _flags(*granted, scope='own'):
    flags = {action: action in granted for action in ACTIONS}
    flags['scope'] = scope
    return flags


_ALL = _flags(*ACTIONS, scope='all')

PERMISSION_LEVELS = {
    'ADMIN': {
        'positions': [],
        'permissions': _ALL,
    },
    'EXECUTIVE': {
        'positions': [EP.GENERAL_DIRECTOR, EP.GENERAL_MANAGER],
        'permissions': _ALL,
    },
    'SENIOR_MANAGEMENT': {
        'positions': [EP.AGM, EP.AGM_2, EP.SENIOR_MANAGER, EP.SENIOR_MANAGER_2],
        'permissions': _ALL,
    },
    'MANAGEMENT': {
        'positions': [EP.ASSISTANT_SENIOR_MANAGER, EP.MANAGER, EP.MANAGER_2],
        'permissions': _flags('read', 'create', 'update', 'assign', 'resolve', 'escalate', 'reports'),
    },
    'ASSISTANT_MANAGEMENT': {
        'positions': [EP.ASSISTANT_MANAGER, EP.ASSISTANT_MANAGER_2],
        'permissions': _flags('read', 'create', 'update', 'assign', 'resolve'),
    },
    'SUPERVISION': {
        'positions': [EP.SUPERVISOR, EP.SUPERVISOR_2, EP.LINE_LEADER],
        'permissions': _flags('read', 'create', 'update', 'assign', 'resolve'),
    },
    'SPECIALIST': {
        'positions': [EP.CHIEF_SPECIALIST, EP.TECHNICAL_SPECIALIST, EP.SENIOR_SPECIALIST,
                      EP.SENIOR_SPECIALIST_2, EP.SPECIALIST, EP.SPECIALIST_2],
        'permissions': _flags('read', 'create', 'assign', scope='all'),
    },
    'ENGINEERING': {
        'positions': [EP.SENIOR_ENGINEER, EP.ENGINEER, EP.TECHNICIAN],
        'permissions': _flags('read', 'create', 'assign', scope='all'),
    },
    'STAFF': {
        'positions': [EP.SENIOR_ASSOCIATE, EP.ASSOCIATE, EP.SENIOR_STAFF, EP.STAFF],
        'permissions': _flags('read', 'create', 'update'),
    },
    'OPERATIONS': {
        'positions': [EP.SENIOR_OPERATOR, EP.OPERATOR, EP.INTERN],
        'permissions': _flags('read'),
    },
}

POSITION_LEVELS = {
    position: level
    for level, config in PERMISSION_LEVELS.items()
    for position in config['positions']
}


def get_permission_level(user):
    """Return the helpdesk level name for a user (system admins map to ADMIN)"""
    if getattr(user, 'role', None) in (UserRole.SUPER_ADMIN, UserRole.ADMIN):
        return 'ADMIN'
    return POSITION_LEVELS.get(getattr(user, 'position', None), 'STAFF')


def get_helpdesk_permissions(user):
    level = get_permission_level(user)
    return {'level': level, **PERMISSION_LEVELS[level]['permissions']}


def can(user, action):
    return bool(get_helpdesk_permissions(user).get(action))


def has_department_scope(user):
    """True when the user may see tickets of every department"""
    return get_helpdesk_permissions(user)['scope'] == 'all'


def helpdesk_permission(action):
    """Permission class factory checking one helpdesk action flag"""
    return type(
        f'Helpdesk{action.title()}Permission',
        (HelpdeskPermission,),
        {'action': action, 'message': f"Helpdesk permission '{action}' required"},
    )


class HelpdeskPermission(BasePermission):
    action = 'read'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and can(user, self.action))
