"""
Read-only access to the JDE EnterpriseOne database

Queries go through the optional ``jde`` database alias (Oracle). Nothing here
falls back to fabricated data: when the alias is missing or the database
cannot be reached a JDEConnectionError is raised and the API answers 503.

Tables:
    F4101   item master
    F41021  item location balances
    F4102   item branch (safety stock)
    F4301   purchase order headers
    F4311   purchase order lines
    F0101   address book (suppliers)
    F0116   address book addresses
    F3411   MRP messages
"""
import logging
from decimal import Decimal

from django.conf import settings
from django.db import connections, DatabaseError

from .dates import julian_to_iso

logger = logging.getLogger(__name__)

PO_ORDER_TYPES = ('O2', 'OP', 'O7')
CLOSED_LINE_STATUS = '999'

LINE_STATUS = {
    '520': 'A',
    '999': 'C',
    '550': 'H',
}

PO_STATUS_BY_TYPE = {
    'OP': 'ACTIVE',
    'CL': 'COMPLETED',
    'CA': 'CANCELLED',
    'HO': 'HOLD',
}


class JDEConnectionError(Exception):
    pass


def _text(value):
    return str(value).strip() if value is not None else ''


def _number(value):
    if value in (None, ''):
        return Decimal('0')
    return Decimal(str(value))


def currency_amount(amount, currency):
    """VND has no minor unit in JDE (scaled by 100), other currencies are scaled by 10000"""
    divisor = 100 if (currency or '').strip().upper() == 'VND' else 10000
    return float(_number(amount) / divisor)


def stock_status(available, safety_stock):
    if available <= 0:
        return 'OUT'
    if safety_stock and available < safety_stock:
        return 'LOW'
    return 'OK'


class JDEService:
    """Thin query layer over the JDE tables; rows come back as plain dicts"""

    def __init__(self, alias='jde', schema=None):
        self.alias = alias
        self.schema = schema if schema is not None else settings.JDE_SCHEMA

    def table(self, name):
        return f"{self.schema}.{name}" if self.schema else name

    def _connection(self):
        if self.alias not in settings.DATABASES:
            raise JDEConnectionError('JDE database is not configured')
        return connections[self.alias]

    def fetch_all(self, sql, params=None):
        try:
            with self._connection().cursor() as cursor:
                cursor.execute(sql, params or [])
                columns = [col[0].upper() for col in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
        except DatabaseError as e:
            logger.error(f"JDE query failed: {str(e)}")
            raise JDEConnectionError(f'JDE query failed: {str(e)}') from e

    def test_connection(self):
        """True when a trivial query succeeds; never raises"""
        try:
            return bool(self.fetch_all('SELECT 1 AS OK FROM DUAL'))
        except JDEConnectionError as e:
            logger.warning(f"JDE connection test failed: {str(e)}")
            return False

    def get_item_master(self, item_number=None, limit=100):
        if item_number:
            sql = (f"SELECT IMITM, IMLITM, IMDSC1, IMDSC2, IMSRTX, IMUOM1, IMGLPT "
                   f"FROM {self.table('F4101')} WHERE IMITM = %s")
            rows = self.fetch_all(sql, [item_number])
        else:
            sql = (f"SELECT * FROM (SELECT IMITM, IMLITM, IMDSC1, IMDSC2, IMSRTX, IMUOM1, IMGLPT "
                   f"FROM {self.table('F4101')} ORDER BY IMITM) WHERE ROWNUM <= %s")
            rows = self.fetch_all(sql, [limit])
        return [
            {
                'item_number': _text(row['IMITM']),
                'long_item_number': _text(row['IMLITM']),
                'description': _text(row['IMDSC1']),
                'description_2': _text(row['IMDSC2']),
                'search_text': _text(row['IMSRTX']),
                'uom': _text(row['IMUOM1']) or 'EA',
                'gl_class': _text(row['IMGLPT']),
            }
            for row in rows
        ]

    def get_inventory(self, item_number=None, branch=None):
        """
        Item balances summed per item and business unit. Quantities are
        returned raw (scaled by 100); use quantities.format_quantity to display.
        """
        conditions = []
        params = []
        if item_number:
            conditions.append('im.IMITM = %s')
            params.append(item_number)
        if branch:
            conditions.append('TRIM(li.LIMCU) = %s')
            params.append(branch.strip())
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ''
        sql = (
            f"SELECT im.IMITM, im.IMLITM, im.IMDSC1, TRIM(li.LIMCU) AS LIMCU, im.IMGLPT, im.IMUOM1, im.IMUOM3, "
            f"SUM(li.LIPQOH) AS QOH, SUM(li.LIPREQ) AS QOO, SUM(li.LIHCOM) AS HARD_COMMIT, "
            f"SUM(li.LIPCOM) AS SOFT_COMMIT, SUM(li.LIQTTR) AS IN_TRANSIT, SUM(li.LIQOWO) AS BACKORDER, "
            f"MAX(ib.IBSAFE) AS SAFETY_STOCK "
            f"FROM {self.table('F41021')} li JOIN {self.table('F4101')} im ON im.IMITM = li.LIITM "
            f"LEFT JOIN {self.table('F4102')} ib ON ib.IBITM = li.LIITM AND ib.IBMCU = li.LIMCU "
            f"{where} "
            f"GROUP BY im.IMITM, im.IMLITM, im.IMDSC1, TRIM(li.LIMCU), im.IMGLPT, im.IMUOM1, im.IMUOM3 "
            f"ORDER BY im.IMITM"
        )
        items = []
        for row in self.fetch_all(sql, params):
            on_hand = _number(row['QOH'])
            hard = _number(row['HARD_COMMIT'])
            soft = _number(row['SOFT_COMMIT'])
            available = on_hand - hard - soft
            on_order = _number(row['QOO'])
            safety_stock = _number(row['SAFETY_STOCK'])
            items.append({
                'item_number': _text(row['IMITM']),
                'long_item_number': _text(row['IMLITM']),
                'description': _text(row['IMDSC1']),
                'business_unit': _text(row['LIMCU']),
                'gl_class': _text(row['IMGLPT']),
                'primary_uom': _text(row['IMUOM1']) or 'EA',
                'purchasing_uom': _text(row['IMUOM3']),
                'quantity_on_hand': int(on_hand),
                'quantity_on_order': int(on_order),
                'hard_commit': int(hard),
                'soft_commit': int(soft),
                'in_transit': int(_number(row['IN_TRANSIT'])),
                'backorder': int(_number(row['BACKORDER'])),
                'safety_stock': int(safety_stock),
                'available_stock': int(available),
                'net_stock': int(available + on_order),
                'stock_status': stock_status(available, safety_stock),
            })
        return items

    def get_gl_classes(self):
        sql = (f"SELECT DISTINCT TRIM(IMGLPT) AS GL_CLASS FROM {self.table('F4101')} "
               f"WHERE IMGLPT IS NOT NULL ORDER BY 1")
        return [row['GL_CLASS'] for row in self.fetch_all(sql) if row['GL_CLASS']]

    def _purchase_order_sql(self, single):
        open_only = (
            f"AND NOT EXISTS (SELECT 1 FROM {self.table('F4311')} d "
            f"WHERE d.PDDOCO = h.PHDOCO AND d.PDLTTR = '{CLOSED_LINE_STATUS}')"
        )
        types = ', '.join(f"'{order_type}'" for order_type in PO_ORDER_TYPES)
        sql = (
            f"SELECT DISTINCT h.PHDOCO, h.PHAN8, h.PHTRDJ, h.PHDRQJ, h.PHPDDJ, h.PHOTOT, h.PHFAP, "
            f"h.PHCRCD, h.PHORBY, h.PHDCTO, h.PHMCU, h.PHKCOO "
            f"FROM {self.table('F4301')} h WHERE h.PHDCTO IN ({types}) {open_only}"
        )
        if single:
            return f"{sql} AND h.PHDOCO = %s"
        return f"{sql} ORDER BY h.PHTRDJ DESC"

    def _purchase_order_from_row(self, row):
        currency = _text(row['PHCRCD']) or 'USD'
        return {
            'po_number': _text(row['PHDOCO']),
            'order_type': _text(row['PHDCTO']),
            'company': _text(row['PHKCOO']),
            'supplier_id': _text(row['PHAN8']),
            'order_date': julian_to_iso(row['PHTRDJ']),
            'requested_date': julian_to_iso(row['PHDRQJ']),
            'promised_date': julian_to_iso(row['PHPDDJ']),
            'status': PO_STATUS_BY_TYPE.get(_text(row['PHDCTO']), 'ACTIVE'),
            'base_amount': float(_number(row['PHOTOT']) / 100),
            'foreign_amount': float(_number(row['PHFAP'])),
            'currency': currency,
            'ordered_by': _text(row['PHORBY']),
            'business_unit': _text(row['PHMCU']),
        }

    def get_purchase_orders(self, limit=None):
        """Open purchase order headers of the O2/OP/O7 types, newest first"""
        sql = self._purchase_order_sql(single=False)
        if limit:
            sql = f"SELECT * FROM ({sql}) WHERE ROWNUM <= {int(limit)}"
        return [self._purchase_order_from_row(row) for row in self.fetch_all(sql)]

    def get_purchase_order(self, po_number):
        rows = self.fetch_all(self._purchase_order_sql(single=True), [po_number])
        return self._purchase_order_from_row(rows[0]) if rows else None

    def get_purchase_order_lines(self, po_number, currency='USD'):
        sql = (
            f"SELECT PDDOCO, PDLNID, PDITM, PDLITM, PDDSC1, PDUORG, PDUREC, PDPRRC, PDAEXP, "
            f"PDFRRC, PDFEA, PDPDDJ, PDLTTR, PDNXTR, PDUOM "
            f"FROM {self.table('F4311')} WHERE PDDOCO = %s ORDER BY PDLNID"
        )
        lines = []
        for row in self.fetch_all(sql, [po_number]):
            status = LINE_STATUS.get(_text(row['PDLTTR']), 'A')
            lines.append({
                'po_number': _text(row['PDDOCO']),
                'line_number': float(_number(row['PDLNID']) / 1000),
                'item_number': _text(row['PDLITM']) or _text(row['PDITM']),
                'description': _text(row['PDDSC1']) or f"Item {_text(row['PDITM']) or 'Unknown'}",
                'quantity_ordered': float(_number(row['PDUORG']) / 100),
                'quantity_received': float(_number(row['PDUREC']) / 100),
                'uom': _text(row['PDUOM']) or 'EA',
                'unit_price': currency_amount(row['PDPRRC'], currency),
                'extended_price': float(_number(row['PDAEXP']) / 100),
                'foreign_unit_cost': float(_number(row['PDFRRC']) / 10000),
                'foreign_extended_cost': float(_number(row['PDFEA'])),
                'promised_date': julian_to_iso(row['PDPDDJ']),
                'status': status,
                'next_status': LINE_STATUS.get(_text(row['PDNXTR']), 'A'),
            })
        return lines

    def get_supplier_info(self, supplier_id):
        """Name and address from the address book; a placeholder name when unknown"""
        sql = f"SELECT ABALPH, ABAT1 FROM {self.table('F0101')} WHERE ABAN8 = %s"
        rows = self.fetch_all(sql, [supplier_id])
        if not rows:
            return {'id': supplier_id, 'name': f'Supplier {supplier_id}', 'address': ''}
        row = rows[0]
        address_sql = (f"SELECT ALADD1, ALADD2, ALADD3, ALADD4, ALCTY1 FROM {self.table('F0116')} "
                       f"WHERE ALAN8 = %s ORDER BY ALEFTB DESC")
        try:
            address_rows = self.fetch_all(address_sql, [supplier_id])
        except JDEConnectionError:
            address_rows = []
        address = ''
        if address_rows:
            address = ' '.join(_text(value) for value in address_rows[0].values() if _text(value))
        return {
            'id': supplier_id,
            'name': _text(row['ABALPH']) or f'Supplier {supplier_id}',
            'address': address,
            'search_type': _text(row['ABAT1']),
        }

    def get_mrp_messages(self, item_number=None, message_type=None):
        conditions = []
        params = []
        if item_number:
            conditions.append('TRIM(MMLITM) = %s')
            params.append(item_number.strip())
        if message_type:
            conditions.append('TRIM(MMMSGC) = %s')
            params.append(message_type.strip())
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ''
        sql = (f"SELECT MMITM, MMLITM, MMMCU, MMMSGC, MMDCTO, MMUORG, MMDRQJ, MMSTRT, MMUOM "
               f"FROM {self.table('F3411')} {where} ORDER BY MMDRQJ")
        return [
            {
                'item_number': _text(row['MMLITM']) or _text(row['MMITM']),
                'business_unit': _text(row['MMMCU']),
                'message_type': _text(row['MMMSGC']),
                'order_type': _text(row['MMDCTO']),
                'quantity': float(_number(row['MMUORG']) / 100),
                'uom': _text(row['MMUOM']) or 'EA',
                'requested_date': julian_to_iso(row['MMDRQJ']),
                'start_date': julian_to_iso(row['MMSTRT']),
            }
            for row in self.fetch_all(sql, params)
        ]
