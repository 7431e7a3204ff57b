"""
Demand -> JDE purchase order transformation and submission

The payload matches the JDE AIS orchestration that creates a purchase order
through P4310 (Supplier_code, Requested, GridIn_1_3 lines, P4310_Version).
"""
import logging
import re

import requests
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

DEFAULT_SUPPLIER_CODE = '1001411'
DEFAULT_P4310_VERSION = 'TIPA0031'

EXPENSE_ACCOUNT_MAPPINGS = {
    64173: {'gl_class': 'NS26', 'cost_center': '1320', 'object_account': '64173', 'gl_offset': 'NS26'},
    64174: {'gl_class': 'NS26', 'cost_center': '1310', 'object_account': '64174', 'gl_offset': 'NS26'},
}

DEFAULT_MAPPING = {'gl_class': 'NS26', 'cost_center': '1300', 'object_account': '64170', 'gl_offset': 'NS26'}

ERP_UNITS = {'EA', 'KG', 'L', 'M', 'PCS', 'BOX', 'SET', 'PACK', 'TON', 'GAL', 'FT', 'LB'}

REQUESTED_DATE_RE = re.compile(r'^\d{2}/\d{2}/\d{4}$')


class ERPSubmissionError(Exception):
    pass


def get_expense_account_mapping(expense_account, custom_mappings=None):
    mappings = dict(EXPENSE_ACCOUNT_MAPPINGS)
    if custom_mappings:
        if not isinstance(custom_mappings, dict):
            raise TypeError('custom_mappings must be an object keyed by expense account')
        # JSON bodies carry the account numbers as string keys
        mappings.update({int(account): mapping for account, mapping in custom_mappings.items()})
    return mappings.get(expense_account, DEFAULT_MAPPING)


def map_unit_of_measure(uom):
    uom = (uom or 'EA').upper()
    return uom if uom in ERP_UNITS else 'EA'


def format_date_for_erp(value):
    """date -> MM/DD/YYYY; no date means today"""
    value = value or timezone.localdate()
    return value.strftime('%m/%d/%Y')


def transform_demand_to_erp(demand, supplier_code=None, p4310_version=None, custom_mappings=None):
    """Build the purchase order payload for a demand and its lines"""
    mapping = get_expense_account_mapping(demand.expense_account, custom_mappings)
    lines = []
    for index, line in enumerate(demand.lines.all(), start=1):
        lines.append({
            'Item_Number': line.item_description or f'MUA-DICH-VU-{index}',
            'Quantity_Ordered': str(line.quantity),
            'Tr_UoM': map_unit_of_measure(line.unit_of_measure),
            'G_L_Offset': mapping['gl_offset'],
            'Cost_Center': mapping['cost_center'],
            'Obj_Acct': mapping['object_account'],
        })
    return {
        'Supplier_code': supplier_code or DEFAULT_SUPPLIER_CODE,
        'Requested': format_date_for_erp(demand.expected_delivery_date),
        'GridIn_1_3': lines,
        'P4310_Version': p4310_version or DEFAULT_P4310_VERSION,
    }


def _blank(value):
    return not value or not str(value).strip()


def validate_erp_data(erp_data):
    """Returns a list of error messages; empty when the payload is valid"""
    errors = []
    if _blank(erp_data.get('Supplier_code')):
        errors.append('Supplier_code is required')
    if not REQUESTED_DATE_RE.match(erp_data.get('Requested') or ''):
        errors.append('Requested date must be in MM/DD/YYYY format')

    lines = erp_data.get('GridIn_1_3') or []
    if not lines:
        errors.append('At least one purchase order line is required')
    for index, line in enumerate(lines, start=1):
        if _blank(line.get('Item_Number')):
            errors.append(f'Line {index}: Item_Number is required')
        try:
            quantity = int(line.get('Quantity_Ordered') or 0)
        except ValueError:
            quantity = 0
        if quantity <= 0:
            errors.append(f'Line {index}: Quantity_Ordered must be greater than 0')
        for field in ('Tr_UoM', 'G_L_Offset', 'Cost_Center', 'Obj_Acct'):
            if _blank(line.get(field)):
                errors.append(f'Line {index}: {field} is required')

    if _blank(erp_data.get('P4310_Version')):
        errors.append('P4310_Version is required')
    return errors


def generate_transformation_summary(demand, erp_data):
    lines = erp_data['GridIn_1_3']
    return {
        'total_lines': len(lines),
        'total_quantity': sum(int(line['Quantity_Ordered']) for line in lines),
        'total_estimated_cost': float(demand.total_estimated_cost),
        'supplier_code': erp_data['Supplier_code'],
        'requested_date': erp_data['Requested'],
        'version': erp_data['P4310_Version'],
    }


def submit_purchase_order(erp_data):
    """
    POST the payload to the JDE AIS orchestration.

    Raises ERPSubmissionError when AIS is not configured, unreachable or
    answers with an error status.
    """
    url = settings.JDE_AIS_URL
    if not url:
        raise ERPSubmissionError('JDE AIS endpoint is not configured')
    auth = (settings.JDE_AIS_USER, settings.JDE_AIS_PASSWORD) if settings.JDE_AIS_USER else None
    try:
        response = requests.post(url, json=erp_data, auth=auth, timeout=settings.JDE_AIS_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"ERP submission failed: {str(e)}")
        raise ERPSubmissionError(f'ERP request failed: {str(e)}') from e
    try:
        return response.json()
    except ValueError:
        return {'raw': response.text}
