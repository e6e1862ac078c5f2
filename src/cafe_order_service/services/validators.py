"""Payload validators.

Validators are pure functions: they never touch storage and return a mapping
from field path to problem description. An empty mapping means the payload is
valid.
"""

from cafe_order_service.models.inventory_models import InventoryItemRequest, UnitOfMeasure
from cafe_order_service.models.menu_models import MenuItemRequest
from cafe_order_service.models.order_models import OrderRequest
from cafe_order_service.repositories.transaction import MAX_TRANSACTION_ACTIONS

# Each line item costs a put and a menu check; the order row needs one more action
MAX_LINE_ITEMS = (MAX_TRANSACTION_ACTIONS - 1) // 2

VALID_UNITS = {unit.value for unit in UnitOfMeasure}


def validate_order(order: OrderRequest) -> dict[str, str]:
    """Validate an order payload.

    The first occurrence of a menu item wins; later occurrences are reported
    as duplicates.

    Args:
        order: Submitted order

    Returns:
        dict: Field path to problem (empty if the order is valid)
    """
    errors: dict[str, str] = {}

    if not order.customer_name.strip():
        errors["customer_name"] = "Customer name is required"

    if not order.items:
        errors["items"] = "At least one order item is required"
    elif len(order.items) > MAX_LINE_ITEMS:
        errors["items"] = f"Order exceeds the maximum of {MAX_LINE_ITEMS} line items"

    seen: set[str] = set()
    for index, item in enumerate(order.items):
        key = f"items[{index}]"

        if not item.menu_item_id:
            errors[f"{key}.menu_item_id"] = "Menu item ID is required"
        elif item.menu_item_id in seen:
            errors[f"{key}.menu_item_id"] = "Duplicate menu item ID detected"
        else:
            seen.add(item.menu_item_id)

        if item.quantity < 1:
            errors[f"{key}.quantity"] = "Quantity must be 1 or more"

    return errors


def validate_inventory_item(item: InventoryItemRequest) -> dict[str, str]:
    """Validate an inventory item payload."""
    errors: dict[str, str] = {}

    if not item.name.strip():
        errors["name"] = "missing Name"

    if not item.unit:
        errors["unit"] = "missing Unit"
    elif item.unit not in VALID_UNITS:
        errors["unit"] = f"Unit must be one of: {', '.join(sorted(VALID_UNITS))}"

    if item.quantity < 0:
        errors["quantity"] = "Quantity must not be negative"

    return errors


def validate_menu_item(item: MenuItemRequest) -> dict[str, str]:
    """Validate a menu item payload."""
    errors: dict[str, str] = {}

    if not item.name.strip():
        errors["name"] = "missing Name"

    if item.price < 0:
        errors["price"] = "Price must not be negative"

    seen: set[str] = set()
    for index, requirement in enumerate(item.requirements):
        key = f"requirements[{index}]"

        if not requirement.inventory_id:
            errors[f"{key}.inventory_id"] = "Inventory ID is required"
        elif requirement.inventory_id in seen:
            errors[f"{key}.inventory_id"] = "Duplicate inventory ID detected"
        else:
            seen.add(requirement.inventory_id)

        if requirement.quantity < 1:
            errors[f"{key}.quantity"] = "Quantity must be 1 or more"

    if len(item.requirements) >= MAX_TRANSACTION_ACTIONS:
        errors["requirements"] = f"Menu item exceeds {MAX_TRANSACTION_ACTIONS - 1} requirements"

    return errors
