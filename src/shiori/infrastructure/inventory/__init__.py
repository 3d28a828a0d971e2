# Infrastructure Inventory Package
from .json_inventory import InventoryNotFoundError, JsonInventorySource, parse_profile
from .memory import InMemoryInventorySource

__all__ = [
    "InMemoryInventorySource",
    "InventoryNotFoundError",
    "JsonInventorySource",
    "parse_profile",
]
