"""
Test suite for the JDE module
Tests: Julian dates, quantity formatting, row mapping, inventory/PO/MRP endpoints with the JDE service mocked
"""
import csv
import io
from datetime import date
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from uxone.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from uxone.jde.connector import JDEService, JDEConnectionError, currency_amount, stock_status
from uxone.jde.dates import julian_to_date, julian_to_iso, format_julian_date, date_to_julian
from uxone.jde.quantities import format_quantity, format_quantity_with_uom, get_decimal_places


def inventory_item(item_number, description='Bearing 6204', stock='OK', business_unit='M30', gl_class='IN30',
                   on_hand=125000, uom='EA'):
    return {
        'item_number': item_number,
        'long_item_number': f'LONG-{item_number}',
        'description': description,
        'business_unit': business_unit,
        'gl_class': gl_class,
        'primary_uom': uom,
        'purchasing_uom': uom,
        'quantity_on_hand': on_hand,
        'quantity_on_order': 0,
        'hard_commit': 0,
        'soft_commit': 0,
        'in_transit': 0,
        'backorder': 0,
        'safety_stock': 0,
        'available_stock': on_hand,
        'net_stock': on_hand,
        'stock_status': stock,
    }


class JulianDateTests(TestCase):

    def test_conversion(self):
        self.assertEqual(julian_to_date(125074), date(2025, 3, 15))
        self.assertEqual(julian_to_date('125074'), date(2025, 3, 15))
        self.assertEqual(julian_to_date(99001), date(1999, 1, 1))
        self.assertEqual(julian_to_iso(124366), '2024-12-31')
        self.assertEqual(date_to_julian(date(2025, 3, 15)), 125074)

    def test_invalid_values(self):
        for value in (None, '', 0, 'abc', 125000, 125366):
            self.assertIsNone(julian_to_date(value))
        self.assertEqual(format_julian_date(None), 'N/A')
        self.assertEqual(format_julian_date(125074), 'Mar 15, 2025')


class QuantityFormatTests(TestCase):

    def test_format(self):
        self.assertEqual(format_quantity(1234567, 'KG'), '12,345.67')
        self.assertEqual(format_quantity(1250, 'EA'), '13')
        self.assertEqual(format_quantity(None, 'KG'), '0.00')
        self.assertEqual(format_quantity_with_uom(500, ' '), '5.00 EA')
        self.assertEqual(format_quantity_with_uom(500, 'box'), '5 box')
        self.assertEqual(get_decimal_places('pcs'), 0)
        self.assertEqual(get_decimal_places('L'), 2)

    def test_currency_and_stock_status(self):
        self.assertEqual(currency_amount(12345, 'VND'), 123.45)
        self.assertEqual(currency_amount(12345, 'USD'), 1.2345)
        self.assertEqual(stock_status(0, 10), 'OUT')
        self.assertEqual(stock_status(5, 10), 'LOW')
        self.assertEqual(stock_status(5, 0), 'OK')


class JDEServiceTests(TestCase):

    def test_unconfigured_database_raises(self):
        service = JDEService(alias='jde_missing')
        with self.assertRaises(JDEConnectionError):
            service.get_inventory()
        self.assertFalse(service.test_connection())

    def test_schema_prefix(self):
        self.assertEqual(JDEService(schema='PRODDTA').table('F4101'), 'PRODDTA.F4101')
        self.assertEqual(JDEService(schema='').table('F4101'), 'F4101')

    def test_inventory_row_mapping(self):
        row = {
            'IMITM': 60123, 'IMLITM': 'BRG-6204 ', 'IMDSC1': 'Bearing 6204', 'LIMCU': 'M30',
            'IMGLPT': 'IN30', 'IMUOM1': 'EA', 'IMUOM3': None, 'QOH': 1000, 'QOO': 500,
            'HARD_COMMIT': 200, 'SOFT_COMMIT': 100, 'IN_TRANSIT': None, 'BACKORDER': 0,
            'SAFETY_STOCK': 800,
        }
        with patch.object(JDEService, 'fetch_all', return_value=[row]) as mock_fetch:
            items = JDEService(schema='PRODDTA').get_inventory(item_number='60123', branch=' M30 ')
        item = items[0]
        self.assertEqual(item['item_number'], '60123')
        self.assertEqual(item['long_item_number'], 'BRG-6204')
        self.assertEqual(item['available_stock'], 700)
        self.assertEqual(item['net_stock'], 1200)
        self.assertEqual(item['stock_status'], 'LOW')
        self.assertEqual(item['in_transit'], 0)
        self.assertEqual(mock_fetch.call_args.args[1], ['60123', 'M30'])

    def test_purchase_order_row_mapping(self):
        row = {
            'PHDOCO': 4500123, 'PHAN8': 1001411, 'PHTRDJ': 125074, 'PHDRQJ': 125080, 'PHPDDJ': 0,
            'PHOTOT': 1500000, 'PHFAP': 0, 'PHCRCD': 'VND', 'PHORBY': 'BUYER1', 'PHDCTO': 'OP',
            'PHMCU': 'M30', 'PHKCOO': '00001',
        }
        with patch.object(JDEService, 'fetch_all', return_value=[row]):
            order = JDEService(schema='').get_purchase_order('4500123')
        self.assertEqual(order['po_number'], '4500123')
        self.assertEqual(order['order_date'], '2025-03-15')
        self.assertIsNone(order['promised_date'])
        self.assertEqual(order['base_amount'], 15000.0)
        self.assertEqual(order['currency'], 'VND')

    def test_unknown_supplier_placeholder(self):
        with patch.object(JDEService, 'fetch_all', return_value=[]):
            supplier = JDEService(schema='').get_supplier_info('42')
        self.assertEqual(supplier['name'], 'Supplier 42')


class JDEViewTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        patcher = patch('uxone.jde.views.JDEService')
        self.service_class = patcher.start()
        self.addCleanup(patcher.stop)
        self.service = self.service_class.return_value
        self.service.schema = 'PRODDTA'
        self.service.get_inventory.return_value = [
            inventory_item('100', description='Bearing 6204', stock='OK'),
            inventory_item('200', description='V-belt A42', stock='LOW', gl_class='IN40'),
            inventory_item('300', description='Grease', stock='OUT', on_hand=0, uom='KG'),
        ]

    def tearDown(self):
        cache.clear()

    def test_connection_status(self):
        self.service.test_connection.return_value = False
        response = self.client.get('/api/v1/jde/connection/')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertFalse(response.data['connected'])

    def test_inventory_filters_and_summary(self):
        response = self.client.get('/api/v1/jde/inventory/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['total_items'], 3)
        self.assertEqual(response.data['summary']['low_stock'], 1)
        self.assertEqual(response.data['items'][0]['display']['quantity_on_hand'], '1,250')

        response = self.client.get('/api/v1/jde/inventory/', {'search': 'belt'})
        self.assertEqual([i['item_number'] for i in response.data['items']], ['200'])
        response = self.client.get('/api/v1/jde/inventory/', {'gl_class': 'IN30', 'status': 'OUT'})
        self.assertEqual([i['item_number'] for i in response.data['items']], ['300'])

    def test_inventory_is_cached(self):
        self.client.get('/api/v1/jde/inventory/')
        self.client.get('/api/v1/jde/inventory/', {'search': 'grease'})
        self.assertEqual(self.service.get_inventory.call_count, 1)

    def test_inventory_pagination(self):
        response = self.client.get('/api/v1/jde/inventory/', {'page': 2, 'page_size': 2})
        self.assertEqual([i['item_number'] for i in response.data['items']], ['300'])
        self.assertEqual(response.data['pagination']['total_pages'], 2)

    def test_jde_unavailable(self):
        self.service.get_inventory.side_effect = JDEConnectionError('ORA-12541: TNS:no listener')
        response = self.client.get('/api/v1/jde/inventory/')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertIn('ORA-12541', response.data['details'])

    def test_inventory_export(self):
        response = self.client.get('/api/v1/jde/inventory/export/', {'items': '100,300'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'text/csv')
        self.assertIn('attachment; filename="inventory_export_', response['Content-Disposition'])
        rows = list(csv.reader(io.StringIO(response.content.decode())))
        self.assertEqual(rows[0][0], 'Item Number')
        self.assertEqual([row[0] for row in rows[1:]], ['100', '300'])
        self.assertEqual(rows[2][6], '0.00')

        response = self.client.get('/api/v1/jde/inventory/export/', {'include_headers': 'false'})
        rows = list(csv.reader(io.StringIO(response.content.decode())))
        self.assertEqual(len(rows), 3)

    def test_purchase_orders_search(self):
        self.service.get_purchase_orders.return_value = [
            {'po_number': '4500123', 'supplier_id': '1001411', 'business_unit': 'M30', 'order_type': 'OP'},
            {'po_number': '4500124', 'supplier_id': '2002', 'business_unit': 'M40', 'order_type': 'O2'},
        ]
        response = self.client.get('/api/v1/jde/purchase-orders/', {'search': 'm40'})
        self.assertEqual([o['po_number'] for o in response.data['purchase_orders']], ['4500124'])
        response = self.client.get('/api/v1/jde/purchase-orders/', {'order_type': 'OP'})
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_purchase_order_detail(self):
        self.service.get_purchase_order.return_value = {
            'po_number': '4500123', 'supplier_id': '1001411', 'currency': 'USD',
        }
        self.service.get_purchase_order_lines.return_value = [
            {'quantity_ordered': 10.0, 'quantity_received': 4.0, 'extended_price': 100.0},
            {'quantity_ordered': 5.0, 'quantity_received': 5.0, 'extended_price': 50.0},
        ]
        self.service.get_supplier_info.return_value = {'id': '1001411', 'name': 'ACME', 'address': ''}
        response = self.client.get('/api/v1/jde/purchase-orders/4500123/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['purchase_order']['line_item_count'], 2)
        self.assertEqual(response.data['totals']['quantity_received'], 9.0)
        self.assertEqual(response.data['purchase_order']['supplier']['name'], 'ACME')
        self.service.get_purchase_order_lines.assert_called_once_with('4500123', 'USD')

    def test_purchase_order_not_found(self):
        self.service.get_purchase_order.return_value = None
        response = self.client.get('/api/v1/jde/purchase-orders/999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mrp_messages(self):
        self.service.get_mrp_messages.return_value = [
            {'item_number': '100', 'message_type': 'O'},
            {'item_number': '200', 'message_type': 'E'},
            {'item_number': '300', 'message_type': 'O'},
        ]
        response = self.client.get('/api/v1/jde/mrp/')
        self.assertEqual(response.data['summary'], {'total_messages': 3, 'message_types': ['E', 'O']})

    def test_cache_refresh_requires_super_admin(self):
        self.assertEqual(self.client.post('/api/v1/jde/cache/refresh/').status_code, status.HTTP_403_FORBIDDEN)

        self.client.get('/api/v1/jde/inventory/')
        self.client.authenticate_user(TestDataFactory.create_super_admin())
        self.assertEqual(self.client.post('/api/v1/jde/cache/refresh/').status_code, status.HTTP_200_OK)
        self.client.get('/api/v1/jde/inventory/')
        self.assertEqual(self.service.get_inventory.call_count, 2)
