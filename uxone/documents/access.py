"""Document visibility rules"""
from uxone.core.models import UserRole, EmployeePosition

RESTRICTED_DOCUMENT_TYPES = ('quote', 'contract', 'invoice')

SENIOR_MANAGER_POSITIONS = (EmployeePosition.SENIOR_MANAGER, EmployeePosition.SENIOR_MANAGER_2)
MANAGER_POSITIONS = (EmployeePosition.MANAGER, EmployeePosition.MANAGER_2)


def is_restricted_document_type(document_type):
    return document_type in RESTRICTED_DOCUMENT_TYPES


def check_document_access(document, user):
    """Returns (can_access, reason)"""
    is_admin = user.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)
    is_senior_manager = user.position in SENIOR_MANAGER_POSITIONS
    is_manager = user.role == UserRole.MANAGER or user.position in MANAGER_POSITIONS
    is_project_owner = document.project_id is not None and document.project.owner_id == user.id
    is_document_owner = document.owner_id == user.id
    same_department = bool(document.department) and \
        (user.department or '').upper() == document.department.upper()

    if is_restricted_document_type(document.document_type):
        if is_admin or is_senior_manager or is_project_owner:
            return True, None
        return False, 'Access restricted to Senior Managers and above for this document type'

    if is_admin or is_project_owner or is_document_owner:
        return True, None
    if (is_senior_manager or is_manager) and same_department:
        return True, None
    return False, "You don't have permission to access this document"


def filter_accessible(documents, user):
    return [document for document in documents if check_document_access(document, user)[0]]
