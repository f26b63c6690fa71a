"""
DynamoDB-backed stores for Trip Orders, plus in-memory doubles.
"""

from core.db.memory import InMemoryOrderStore, InMemoryVehicleRegistry
from core.db.orders import DynamoOrderStore, OrderStore, format_order_id
from core.db.rate_cards import load_rate_card
from core.db.vehicles import DynamoVehicleRegistry, VehicleRegistry

__all__ = [
    "DynamoOrderStore",
    "DynamoVehicleRegistry",
    "InMemoryOrderStore",
    "InMemoryVehicleRegistry",
    "OrderStore",
    "VehicleRegistry",
    "format_order_id",
    "load_rate_card",
]
