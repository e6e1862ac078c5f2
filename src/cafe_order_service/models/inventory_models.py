"""Inventory data models.

Inventory items are the stock-tracked raw materials consumed by orders.
Stored in DynamoDB with inventory_id as partition key.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class UnitOfMeasure(str, Enum):
    """Enumeration of supported inventory units."""

    GRAMS = "g"
    KILOGRAMS = "kg"
    MILLILITERS = "ml"
    LITERS = "l"
    PIECES = "pcs"
    SHOTS = "shots"


class InventoryItemRequest(BaseModel):
    """Payload for creating or replacing an inventory item.

    Fields are deliberately loose so the validator can report every problem
    as a field map instead of failing on the first one.
    """

    name: str = ""
    unit: str = ""
    quantity: int = 0
    categories: list[str] = Field(default_factory=list)


class InventoryItem(BaseModel):
    """Inventory item with its current on-hand quantity."""

    inventory_id: str = Field(..., description="Unique inventory identifier")
    name: str = Field(..., description="Inventory item name", min_length=1)
    unit: UnitOfMeasure = Field(..., description="Unit of measure for quantity")
    quantity: int = Field(..., description="On-hand quantity", ge=0)
    categories: list[str] = Field(default_factory=list, description="Category tags")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "inventory_id": self.inventory_id,
            "name": self.name,
            "unit": self.unit.value,
            "quantity": self.quantity,
            "categories": list(self.categories),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "InventoryItem":
        """Create InventoryItem from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            InventoryItem: Parsed model instance
        """
        return cls(
            inventory_id=item["inventory_id"],
            name=item["name"],
            unit=UnitOfMeasure(item["unit"]),
            quantity=int(item["quantity"]),
            categories=list(item.get("categories", [])),
        )
