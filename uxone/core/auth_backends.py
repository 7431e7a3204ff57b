"""
Authentication against the central employee API

The central API validates the employee code and password and returns the
employee profile. Local accounts are created or refreshed from the mobile
database first, then from the API payload.
"""
import logging

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.backends import BaseBackend

from .models import UserRole
from .rbac import map_position_to_role

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_DEPARTMENT = 'OPS'
DEFAULT_EMAIL_DOMAIN = 'tipa.co.th'


class CentralAPIError(Exception):
    """The central employee API could not be reached or answered garbage"""


def check_central_login(emp_code, password):
    """
    POST the credentials to the central API.

    Returns the response payload when the login is accepted, None when it is
    rejected. Raises CentralAPIError when the API is unavailable.
    """
    if not settings.CENTRAL_API_URL:
        raise CentralAPIError('CENTRAL_API_URL is not configured')
    try:
        response = requests.post(
            settings.CENTRAL_API_URL,
            json={'username': emp_code, 'password': password},
            timeout=settings.CENTRAL_API_TIMEOUT,
        )
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Central login API error for {emp_code}: {str(e)}")
        raise CentralAPIError(str(e))

    if payload.get('message') == 'OK' and payload.get('emp_code'):
        return payload
    logger.info(f"Central login rejected for {emp_code}: {payload.get('message')}")
    return None


def upsert_user_from_central(payload):
    """Create or update the local user from a central API payload"""
    emp_code = str(payload['emp_code']).strip()
    defaults = {
        'name': payload.get('emp_name') or emp_code,
        'email': payload.get('email') or f'{emp_code}@{DEFAULT_EMAIL_DOMAIN}',
        'central_department': payload.get('emp_dept'),
        'department_name': payload.get('emp_dept_name'),
        'is_active': True,
    }
    user, created = User.objects.get_or_create(
        username=emp_code,
        defaults={**defaults, 'department': DEFAULT_DEPARTMENT, 'role': UserRole.USER,
                  'position': map_position_to_role(payload.get('emp_position'))},
    )
    if created:
        user.set_unusable_password()
        user.save(update_fields=['password'])
        logger.info(f"Created local user {emp_code} from central API")
    else:
        for field, value in defaults.items():
            setattr(user, field, value)
        user.save()
    return user


class CentralAPIBackend(BaseBackend):
    """Authenticate employee codes through the central employee API"""

    def authenticate(self, request, username=None, password=None, **kwargs):
        if not username or not password:
            return None
        try:
            payload = check_central_login(username, password)
        except CentralAPIError:
            return None
        if payload is None:
            return None

        # Prefer the profile held in the mobile database when it exists
        from uxone.integration.sync import sync_user_from_mobile
        user = sync_user_from_mobile(str(payload['emp_code']))
        if user is None:
            user = upsert_user_from_central(payload)
        if not user.is_active:
            return None
        return user

    def get_user(self, user_id):
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None
