import csv
import logging

from django.http import HttpResponse
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from uxone.core.cache_utils import JDE_QUERY_CACHE_TTL, cached_query, invalidate_jde_cache
from uxone.core.permissions import IsSuperAdmin
from .connector import JDEService, JDEConnectionError
from .quantities import format_quantity

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    ('Item Number', 'item_number', None),
    ('Item Description', 'description', None),
    ('Business Unit', 'business_unit', None),
    ('GL Class', 'gl_class', None),
    ('Primary UOM', 'primary_uom', None),
    ('Purchasing UOM', 'purchasing_uom', None),
    ('Total Qty On Hand', 'quantity_on_hand', 'qty'),
    ('Available Stock', 'available_stock', 'qty'),
    ('Total Qty On Order', 'quantity_on_order', 'qty'),
    ('Total Hard Commit', 'hard_commit', 'qty'),
    ('Total Soft Commit', 'soft_commit', 'qty'),
    ('Total In Transit', 'in_transit', 'qty'),
    ('Total Backorder', 'backorder', 'qty'),
    ('Net Stock', 'net_stock', 'qty'),
    ('Stock Status', 'stock_status', None),
    ('Safety Stock', 'safety_stock', 'qty'),
]


def jde_unavailable(error):
    logger.error(f"JDE unavailable: {str(error)}")
    return Response({'error': 'JDE system is unavailable', 'details': str(error)},
                    status=status.HTTP_503_SERVICE_UNAVAILABLE)


# Cache keys start with 'jde_' so invalidate_jde_cache() drops them all
@cached_query(cache_ttl=JDE_QUERY_CACHE_TTL, key_prefix='jde_inventory')
def load_inventory(item_number, branch):
    return JDEService().get_inventory(item_number, branch)


@cached_query(cache_ttl=JDE_QUERY_CACHE_TTL, key_prefix='jde_gl_classes')
def load_gl_classes():
    return JDEService().get_gl_classes()


@cached_query(cache_ttl=JDE_QUERY_CACHE_TTL, key_prefix='jde_purchase_orders')
def load_purchase_orders():
    return JDEService().get_purchase_orders()


@cached_query(cache_ttl=JDE_QUERY_CACHE_TTL, key_prefix='jde_mrp')
def load_mrp_messages(item_number, message_type):
    return JDEService().get_mrp_messages(item_number, message_type)


def filter_inventory(items, params):
    search = (params.get('search') or '').strip().lower()
    stock_status = params.get('status')
    business_unit = params.get('business_unit')
    gl_class = params.get('gl_class')
    result = []
    for item in items:
        if search and search not in item['item_number'].lower() and search not in item['description'].lower() \
                and search not in item['long_item_number'].lower():
            continue
        if stock_status and stock_status != 'all' and item['stock_status'] != stock_status:
            continue
        if business_unit and business_unit != 'all' and item['business_unit'] != business_unit.strip():
            continue
        if gl_class and gl_class != 'all' and item['gl_class'] != gl_class.strip():
            continue
        result.append(item)
    return result


def _positive_int(value, default, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < 1:
        return default
    return min(number, maximum) if maximum else number


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def jde_connection_status(request):
    service = JDEService()
    connected = service.test_connection()
    return Response({
        'connected': connected,
        'schema': service.schema,
        'timestamp': timezone.now().isoformat(),
    }, status=status.HTTP_200_OK if connected else status.HTTP_503_SERVICE_UNAVAILABLE)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def jde_inventory(request):
    """
    Inventory balances per item and business unit (cached for 5 minutes)

    Query params: item_number, branch, search, status (OK/LOW/OUT),
    business_unit, gl_class, page, page_size
    """
    item_number = request.query_params.get('item_number') or None
    branch = request.query_params.get('branch') or None
    try:
        items = load_inventory(item_number, branch)
    except JDEConnectionError as e:
        return jde_unavailable(e)

    filtered = filter_inventory(items, request.query_params)
    page = _positive_int(request.query_params.get('page'), 1)
    page_size = _positive_int(request.query_params.get('page_size'), 50, maximum=500)
    start = (page - 1) * page_size
    rows = []
    for item in filtered[start:start + page_size]:
        row = dict(item)
        row['display'] = {
            'quantity_on_hand': format_quantity(item['quantity_on_hand'], item['primary_uom']),
            'available_stock': format_quantity(item['available_stock'], item['primary_uom']),
            'quantity_on_order': format_quantity(item['quantity_on_order'], item['primary_uom']),
        }
        rows.append(row)

    return Response({
        'items': rows,
        'pagination': {
            'page': page,
            'page_size': page_size,
            'total': len(filtered),
            'total_pages': (len(filtered) + page_size - 1) // page_size,
        },
        'summary': {
            'total_items': len(filtered),
            'in_stock': sum(1 for item in filtered if item['stock_status'] == 'OK'),
            'low_stock': sum(1 for item in filtered if item['stock_status'] == 'LOW'),
            'out_of_stock': sum(1 for item in filtered if item['stock_status'] == 'OUT'),
            'timestamp': timezone.now().isoformat(),
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def jde_inventory_export(request):
    """CSV download of the filtered inventory; ?items=A,B limits it to specific item numbers"""
    try:
        items = load_inventory(None, None)
    except JDEConnectionError as e:
        return jde_unavailable(e)

    selected = [value.strip() for value in request.query_params.get('items', '').split(',') if value.strip()]
    if selected:
        items = [item for item in items if item['item_number'] in selected]
    else:
        items = filter_inventory(items, request.query_params)

    filename = f"inventory_export_{timezone.localdate().isoformat()}.csv"
    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    writer = csv.writer(response)
    if request.query_params.get('include_headers', 'true').lower() != 'false':
        writer.writerow([label for label, _, _ in EXPORT_COLUMNS])
    for item in items:
        writer.writerow([
            format_quantity(item[key], item['primary_uom']) if kind == 'qty' else item[key]
            for _, key, kind in EXPORT_COLUMNS
        ])
    logger.info(f"Exported {len(items)} inventory rows for {request.user.username}")
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def jde_gl_classes(request):
    try:
        gl_classes = load_gl_classes()
    except JDEConnectionError as e:
        return jde_unavailable(e)
    return Response({'gl_classes': gl_classes})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def jde_purchase_orders(request):
    """Open purchase orders (cached); ?search= matches PO number, supplier or business unit"""
    try:
        orders = load_purchase_orders()
    except JDEConnectionError as e:
        return jde_unavailable(e)

    search = request.query_params.get('search', '').strip().lower()
    if search:
        orders = [
            order for order in orders
            if search in order['po_number'].lower()
            or search in order['supplier_id'].lower()
            or search in order['business_unit'].lower()
        ]
    order_type = request.query_params.get('order_type')
    if order_type:
        orders = [order for order in orders if order['order_type'] == order_type]

    page = _positive_int(request.query_params.get('page'), 1)
    page_size = _positive_int(request.query_params.get('page_size'), 50, maximum=500)
    start = (page - 1) * page_size
    return Response({
        'purchase_orders': orders[start:start + page_size],
        'pagination': {
            'page': page,
            'page_size': page_size,
            'total': len(orders),
            'total_pages': (len(orders) + page_size - 1) // page_size,
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def jde_purchase_order_detail(request, po_number):
    service = JDEService()
    try:
        order = service.get_purchase_order(po_number)
        if order is None:
            return Response({'error': 'Purchase order not found'}, status=status.HTTP_404_NOT_FOUND)
        lines = service.get_purchase_order_lines(po_number, order['currency'])
        supplier = service.get_supplier_info(order['supplier_id'])
    except JDEConnectionError as e:
        return jde_unavailable(e)

    order['line_item_count'] = len(lines)
    order['supplier'] = supplier
    return Response({
        'purchase_order': order,
        'lines': lines,
        'totals': {
            'quantity_ordered': sum(line['quantity_ordered'] for line in lines),
            'quantity_received': sum(line['quantity_received'] for line in lines),
            'extended_price': sum(line['extended_price'] for line in lines),
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def jde_mrp_messages(request):
    item_number = request.query_params.get('item_number') or None
    message_type = request.query_params.get('message_type') or None
    try:
        messages = load_mrp_messages(item_number, message_type)
    except JDEConnectionError as e:
        return jde_unavailable(e)
    return Response({
        'mrp_messages': messages,
        'summary': {
            'total_messages': len(messages),
            'message_types': sorted({message['message_type'] for message in messages}),
        },
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsSuperAdmin])
def jde_cache_refresh(request):
    invalidate_jde_cache()
    return Response({'message': 'JDE cache cleared'})
