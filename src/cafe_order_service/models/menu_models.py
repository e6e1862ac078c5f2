"""Menu data models.

A menu item is a sellable product composed of inventory items in fixed
quantities. Stored in DynamoDB with menu_item_id as partition key; the
requirement list is embedded in the menu item record.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MenuItemRequirement(BaseModel):
    """Quantity of one inventory item consumed per unit of a menu item sold."""

    inventory_id: str = Field(..., description="Referenced inventory item")
    quantity: int = Field(..., description="Quantity consumed per unit sold", ge=1)


class MenuItemRequirementRequest(BaseModel):
    """Requirement as submitted by a client, checked by the menu validator."""

    inventory_id: str = ""
    quantity: int = 0


class MenuItemRequest(BaseModel):
    """Payload for creating or replacing a menu item."""

    name: str = ""
    description: str = ""
    price: Decimal = Decimal("0")
    requirements: list[MenuItemRequirementRequest] = Field(default_factory=list)


class MenuItem(BaseModel):
    """Menu item model."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    menu_item_id: str = Field(..., description="Unique identifier for the menu item")
    name: str = Field(..., description="Item name", min_length=1)
    description: str = Field(default="", description="Item description")
    price: Decimal = Field(..., description="Item price", ge=0)
    requirements: list[MenuItemRequirement] = Field(
        default_factory=list, description="Inventory consumed per unit sold"
    )

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "menu_item_id": self.menu_item_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "requirements": [
                {"inventory_id": r.inventory_id, "quantity": r.quantity}
                for r in self.requirements
            ],
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuItem":
        """Create MenuItem from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            MenuItem: Parsed model instance
        """
        return cls(
            menu_item_id=item["menu_item_id"],
            name=item["name"],
            description=item.get("description", ""),
            price=Decimal(str(item["price"])),
            requirements=[
                MenuItemRequirement(
                    inventory_id=r["inventory_id"], quantity=int(r["quantity"])
                )
                for r in item.get("requirements", [])
            ],
        )
