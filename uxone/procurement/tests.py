"""
Test suite for the procurement module
Tests: demand ids, demand submission and visibility, approval, ERP transformation and submission
"""
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import patch, MagicMock

import requests
from django.test import TestCase, override_settings
from rest_framework import status

from uxone.core.models import AuditLog, Notification, EmployeePosition
from uxone.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from uxone.procurement.demand_ids import generate_demand_id, validate_demand_id, extract_date_from_demand_id
from uxone.procurement.erp import (
    transform_demand_to_erp, validate_erp_data, map_unit_of_measure, get_expense_account_mapping,
    generate_transformation_summary, submit_purchase_order, ERPSubmissionError
)
from uxone.procurement.models import Demand, DemandSequence


class DemandIdTests(TestCase):

    def test_sequence_per_day(self):
        now = datetime(2025, 3, 14, 10, 0)
        self.assertEqual(generate_demand_id(now=now), 'LR-20250314-001')
        self.assertEqual(generate_demand_id(now=now), 'LR-20250314-002')
        self.assertEqual(generate_demand_id(now=datetime(2025, 3, 15)), 'LR-20250315-001')
        self.assertEqual(DemandSequence.objects.get(date='20250314').sequence, 2)

    def test_existing_ids_are_skipped(self):
        requester = TestDataFactory.create_user()
        Demand.objects.create(id='LR-20250314-001', requester=requester, department='OPS', justification='Migrated')
        self.assertEqual(generate_demand_id(now=datetime(2025, 3, 14)), 'LR-20250314-002')

    def test_validation_and_date_extraction(self):
        self.assertTrue(validate_demand_id('LR-20250314-001'))
        self.assertFalse(validate_demand_id('LR-2025031-001'))
        self.assertFalse(validate_demand_id(None))
        self.assertEqual(extract_date_from_demand_id('LR-20250314-001'), '2025-03-14')
        self.assertIsNone(extract_date_from_demand_id('DEM-1'))

    def test_sequence_past_three_digits(self):
        DemandSequence.objects.create(date='20250314', sequence=999)
        demand_id = generate_demand_id(now=datetime(2025, 3, 14))
        self.assertEqual(demand_id, 'LR-20250314-1000')
        self.assertTrue(validate_demand_id(demand_id))
        self.assertEqual(extract_date_from_demand_id(demand_id), '2025-03-14')


class ERPTransformTests(TestCase):

    def setUp(self):
        self.requester = TestDataFactory.create_user()
        self.demand = TestDataFactory.create_demand(self.requester, lines=[
            {'item_description': 'A4 paper', 'quantity': 10, 'unit_of_measure': 'BOX',
             'estimated_cost': Decimal('150000.00')},
            {'item_description': 'Toner', 'quantity': 2, 'unit_of_measure': 'cartridge',
             'estimated_cost': Decimal('50000.00')},
        ])
        self.demand.expected_delivery_date = date(2025, 4, 2)
        self.demand.save()

    def test_transform(self):
        erp_data = transform_demand_to_erp(self.demand)
        self.assertEqual(erp_data['Supplier_code'], '1001411')
        self.assertEqual(erp_data['Requested'], '04/02/2025')
        self.assertEqual(erp_data['P4310_Version'], 'TIPA0031')
        first, second = erp_data['GridIn_1_3']
        self.assertEqual(first['Quantity_Ordered'], '10')
        self.assertEqual(first['Tr_UoM'], 'BOX')
        self.assertEqual(first['Cost_Center'], '1320')
        self.assertEqual(second['Tr_UoM'], 'EA')
        self.assertEqual(validate_erp_data(erp_data), [])

        summary = generate_transformation_summary(self.demand, erp_data)
        self.assertEqual(summary['total_lines'], 2)
        self.assertEqual(summary['total_quantity'], 12)
        self.assertEqual(summary['total_estimated_cost'], 200000.0)

    def test_mappings(self):
        self.assertEqual(get_expense_account_mapping(99999)['cost_center'], '1300')
        custom = {'99999': {'gl_class': 'X', 'cost_center': '9000', 'object_account': '99999', 'gl_offset': 'X'}}
        self.assertEqual(get_expense_account_mapping(99999, custom)['cost_center'], '9000')
        self.assertEqual(map_unit_of_measure('kg'), 'KG')
        self.assertEqual(map_unit_of_measure(None), 'EA')

    def test_validation_errors(self):
        errors = validate_erp_data({
            'Supplier_code': ' ',
            'Requested': '2025-04-02',
            'GridIn_1_3': [{'Item_Number': 'Pen', 'Quantity_Ordered': '0', 'Tr_UoM': 'EA',
                            'G_L_Offset': 'NS26', 'Cost_Center': '', 'Obj_Acct': '64173'}],
            'P4310_Version': 'TIPA0031',
        })
        self.assertIn('Supplier_code is required', errors)
        self.assertIn('Requested date must be in MM/DD/YYYY format', errors)
        self.assertIn('Line 1: Quantity_Ordered must be greater than 0', errors)
        self.assertIn('Line 1: Cost_Center is required', errors)
        self.assertIn('At least one purchase order line is required', validate_erp_data({'GridIn_1_3': []}))

    @override_settings(JDE_AIS_URL='')
    def test_submit_requires_configuration(self):
        with self.assertRaises(ERPSubmissionError):
            submit_purchase_order({})

    @override_settings(JDE_AIS_URL='http://ais.local/po')
    @patch('uxone.procurement.erp.requests.post')
    def test_submit_wraps_request_errors(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('refused')
        with self.assertRaises(ERPSubmissionError):
            submit_purchase_order({})


class DemandAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.requester = TestDataFactory.create_user(department='OPS')
        self.other = TestDataFactory.create_user(department='HR')
        self.procurement = TestDataFactory.create_user(department='PROC')
        self.client.authenticate_user(self.requester)

    def test_create_demand(self):
        response = self.client.post('/api/v1/demands/', {
            'department': 'ops',
            'expense_account': 64173,
            'justification': 'New hires need laptops',
            'lines': [
                {'item_description': 'Laptop', 'quantity': 2, 'unit_of_measure': 'ea',
                 'estimated_cost': '25000000.00'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(validate_demand_id(response.data['id']))
        self.assertEqual(response.data['department'], 'OPS')
        self.assertEqual(response.data['status'], 'PENDING')
        self.assertEqual(response.data['lines'][0]['unit_of_measure'], 'EA')
        self.assertEqual(response.data['total_estimated_cost'], 25000000.0)
        self.assertTrue(AuditLog.objects.filter(model_name='Demand', object_id=response.data['id']).exists())

    def test_create_requires_lines(self):
        response = self.client.post('/api/v1/demands/', {
            'department': 'OPS', 'justification': 'Nothing', 'lines': [],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_line_quantity_must_be_positive(self):
        response = self.client.post('/api/v1/demands/', {
            'department': 'OPS', 'justification': 'Pens',
            'lines': [{'item_description': 'Pen', 'quantity': 0}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_visibility(self):
        own = TestDataFactory.create_demand(self.requester)
        TestDataFactory.create_demand(self.other)
        response = self.client.get('/api/v1/demands/')
        self.assertEqual([d['id'] for d in response.data], [own.id])

        self.client.authenticate_user(self.procurement)
        self.assertEqual(len(self.client.get('/api/v1/demands/').data), 2)

        self.client.authenticate_user(self.other)
        response = self.client.get(f'/api/v1/demands/{own.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_approve_by_department_supervisor(self):
        demand = TestDataFactory.create_demand(self.requester)
        supervisor = TestDataFactory.create_user(department='OPS', position=EmployeePosition.SUPERVISOR)
        self.client.authenticate_user(supervisor)
        response = self.client.post(f'/api/v1/demands/{demand.id}/approve/',
                                    {'action': 'approve', 'comment': 'OK'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        demand.refresh_from_db()
        self.assertEqual(demand.status, 'APPROVED')
        self.assertIsNotNone(demand.approved_at)
        self.assertEqual(set(demand.lines.values_list('status', flat=True)), {'APPROVED'})
        notification = Notification.objects.get(user=self.requester)
        self.assertIn('with comment: OK', notification.message)

        response = self.client.post(f'/api/v1/demands/{demand.id}/approve/', {'action': 'reject'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approve_permissions_and_action(self):
        demand = TestDataFactory.create_demand(self.requester)
        url = f'/api/v1/demands/{demand.id}/approve/'
        self.client.authenticate_user(self.other)
        self.assertEqual(self.client.post(url, {'action': 'approve'}, format='json').status_code,
                         status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.post(url, {'action': 'maybe'}, format='json').status_code,
                         status.HTTP_400_BAD_REQUEST)

        self.client.authenticate_user(self.procurement)
        response = self.client.post(url, {'action': 'reject'}, format='json')
        self.assertEqual(response.data['demand']['status'], 'REJECTED')


@override_settings(JDE_AIS_URL='http://ais.local/po')
class DemandERPIntegrationTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.requester = TestDataFactory.create_user()
        self.procurement = TestDataFactory.create_user(department='PROC')
        self.url = '/api/v1/demands/erp-integration/'

    def test_preview(self):
        demand = TestDataFactory.create_demand(self.requester)
        self.client.authenticate_user(self.requester)
        response = self.client.get(self.url, {'demand_id': demand.id, 'supplier_code': '2002'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['erp_data']['Supplier_code'], '2002')
        self.assertTrue(response.data['validation']['is_valid'])
        self.assertEqual(response.data['summary']['total_lines'], 1)

    def test_preview_requires_demand_id(self):
        self.client.authenticate_user(self.requester)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_400_BAD_REQUEST)

    @patch('uxone.procurement.erp.requests.post')
    def test_submit_approved_demand(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200, json=MagicMock(return_value={'OrderNumber': '4500123'}))
        demand = TestDataFactory.create_demand(self.requester, status='APPROVED')
        self.client.authenticate_user(self.procurement)
        response = self.client.post(self.url, {
            'demand_id': demand.id,
            'custom_mappings': {'64173': {'gl_class': 'NS30', 'cost_center': '1999',
                                          'object_account': '64173', 'gl_offset': 'NS30'}},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['erp_response'], {'OrderNumber': '4500123'})
        self.assertEqual(response.data['data']['erp_data']['GridIn_1_3'][0]['Cost_Center'], '1999')

        demand.refresh_from_db()
        self.assertEqual(demand.status, 'ERP_PROCESSING')
        self.assertIn('erp_integration', demand.department_specific)
        self.assertEqual(mock_post.call_args.args[0], 'http://ais.local/po')

    @patch('uxone.procurement.erp.requests.post')
    def test_only_approved_demands_are_submitted(self, mock_post):
        demand = TestDataFactory.create_demand(self.requester)
        self.client.authenticate_user(self.procurement)
        response = self.client.post(self.url, {'demand_id': demand.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        mock_post.assert_not_called()

    @patch('uxone.procurement.erp.requests.post')
    def test_erp_failure_returns_503(self, mock_post):
        mock_post.side_effect = requests.Timeout('timed out')
        demand = TestDataFactory.create_demand(self.requester, status='APPROVED')
        self.client.authenticate_user(self.procurement)
        response = self.client.post(self.url, {'demand_id': demand.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        demand.refresh_from_db()
        self.assertEqual(demand.status, 'APPROVED')

    def test_requester_cannot_submit(self):
        demand = TestDataFactory.create_demand(self.requester, status='APPROVED')
        self.client.authenticate_user(self.requester)
        response = self.client.post(self.url, {'demand_id': demand.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_preview_hidden_from_unrelated_user(self):
        demand = TestDataFactory.create_demand(self.requester)
        self.client.authenticate_user(TestDataFactory.create_user(department='QA'))
        response = self.client.get(self.url, {'demand_id': demand.id})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertNotIn('erp_data', response.data)

    @patch('uxone.procurement.erp.requests.post')
    def test_custom_mappings_must_be_an_object(self, mock_post):
        demand = TestDataFactory.create_demand(self.requester, status='APPROVED')
        self.client.authenticate_user(self.procurement)
        for bad_mappings in (['x'], 'NS30'):
            response = self.client.post(self.url, {'demand_id': demand.id, 'custom_mappings': bad_mappings},
                                        format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        mock_post.assert_not_called()
