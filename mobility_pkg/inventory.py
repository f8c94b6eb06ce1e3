"""
Inventory helpers shared by the parts catalogue, the cart and the admin stock page
"""

PART_CATEGORIES = [
    "engine_parts",
    "brake_parts",
    "electrical",
    "body_parts",
    "filters",
    "oils_lubricants",
    "batteries",
    "tires",
    "tools",
    "accessories",
]

STOCK_STATUSES = ("out_of_stock", "low_stock", "in_stock")


def stock_status(item):
    quantity = item.get('stock_quantity') or 0
    if quantity <= 0:
        return "out_of_stock"
    if quantity <= (item.get('minimum_stock') or 0):
        return "low_stock"
    return "in_stock"


def is_orderable(item):
    return bool(item.get('is_active')) and (item.get('stock_quantity') or 0) > 0


def orderable_items(items):
    """Active items with stock left, in the order given"""
    return [item for item in items if is_orderable(item)]


def _is_unset(value):
    return value is None or value == '' or value == 'all'


def filter_inventory(items, search=None, category=None, stock=None):
    """
    Filter inventory rows

    Args:
        items: Inventory dicts
        search: Case-insensitive substring of item_name, item_code or brand
        category: Exact category
        stock: One of STOCK_STATUSES

    "all" or an empty value disables a filter.
    """
    needle = None if _is_unset(search) else search.strip().lower()
    result = []
    for item in items:
        if needle:
            haystack = [str(item.get(key) or '').lower() for key in ('item_name', 'item_code', 'brand')]
            if not any(needle in value for value in haystack):
                continue
        if not _is_unset(category) and item.get('category') != category:
            continue
        if not _is_unset(stock) and stock_status(item) != stock:
            continue
        result.append(item)
    return result


def annotate_stock(items):
    """Copies of the rows with the derived stock_status added"""
    return [dict(item, stock_status=stock_status(item)) for item in items]
