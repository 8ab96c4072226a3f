from .stock_item import StockItem
from .inventory_movement import InventoryMovement

__all__ = ["StockItem", "InventoryMovement"]
