"""
Quantity formatting for JDE inventory figures

JDE keeps quantities as integers scaled by 100. Count-type units of measure
are shown as whole numbers, everything else with two decimals.
"""
from decimal import Decimal, ROUND_HALF_UP

NON_DECIMAL_UOMS = frozenset([
    'EA', 'PCS', 'UNT', 'SET', 'BOX', 'CASE', 'PACK', 'BAG', 'ROLL', 'BOTTLE', 'CAN', 'JAR',
    'TUBE', 'BUNDLE', 'PALLET', 'CONTAINER', 'DRUM', 'BARREL', 'TANK', 'CYLINDER', 'COIL',
    'REEL', 'SPOOL', 'BOLT', 'SHEET', 'PANEL', 'PLATE', 'BLOCK', 'SLAB', 'TILE', 'BRICK',
    'BEAM', 'POST', 'POLE', 'PIPE', 'WIRE', 'CABLE', 'CHAIN', 'ROPE', 'BELT', 'HOSE', 'VALVE',
    'PUMP', 'MOTOR', 'ENGINE', 'COMPRESSOR', 'GENERATOR', 'TRANSFORMER', 'SWITCH', 'RELAY',
    'FUSE', 'BREAKER', 'CONTACTOR', 'SENSOR', 'GAUGE', 'METER', 'INDICATOR', 'DISPLAY',
    'SCREEN', 'KEYBOARD', 'MOUSE', 'PRINTER', 'SCANNER', 'CAMERA', 'LENS', 'FILTER', 'LAMP',
    'BULB', 'LED', 'BATTERY', 'CHARGER', 'ADAPTER', 'CONNECTOR', 'TERMINAL', 'SOCKET', 'PLUG',
    'CORD', 'HARNESS', 'ASSEMBLY', 'KIT', 'MODULE', 'BOARD', 'CARD', 'CHIP', 'PROCESSOR',
    'MEMORY', 'STORAGE', 'DRIVE', 'DISC', 'TAPE', 'CASSETTE', 'CARTRIDGE',
])


def is_non_decimal_uom(uom):
    return bool(uom) and uom.strip().upper() in NON_DECIMAL_UOMS


def get_decimal_places(uom):
    return 0 if is_non_decimal_uom(uom) else 2


def scale_quantity(raw):
    return Decimal(str(raw or 0)) / 100


def format_quantity(raw, uom):
    """1234567, 'KG' -> '12,345.67'; 1250, 'EA' -> '13'"""
    quantity = scale_quantity(raw)
    if is_non_decimal_uom(uom):
        return f"{quantity.quantize(Decimal('1'), rounding=ROUND_HALF_UP):,}"
    return f"{quantity.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):,}"


def format_quantity_with_uom(raw, uom):
    clean_uom = (uom or '').strip() or 'EA'
    return f"{format_quantity(raw, uom)} {clean_uom}"
