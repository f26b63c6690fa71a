"""In-memory stores for local runs and tests."""

import threading

from core.db.orders import OrderStore, format_order_id
from core.db.vehicles import VehicleRegistry
from core.errors import ConflictError, ErrorCode, NotFoundError
from core.models import Order, Vehicle, VehicleStatus


class InMemoryOrderStore(OrderStore):
    """Dict-backed store that keeps JSON snapshots, so callers never share instances."""

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}
        self._sequence = 0
        self._lock = threading.Lock()

    def next_order_id(self) -> str:
        with self._lock:
            self._sequence += 1
            return format_order_id(self._sequence)

    def read_order(self, order_id: str) -> Order | None:
        document = self._documents.get(order_id)
        if document is None:
            return None
        return Order.model_validate_json(document)

    def write_order(self, order: Order) -> Order:
        with self._lock:
            current = self._documents.get(order.order_id)
            current_version = Order.model_validate_json(current).version if current else 0
            if current_version != order.version:
                raise ConflictError(
                    f"Order {order.order_id} was modified concurrently (expected version {order.version})",
                    code=ErrorCode.CONCURRENT_UPDATE,
                )
            stored = order.model_copy(update={"version": order.version + 1})
            self._documents[order.order_id] = stored.model_dump_json()
        return stored

    def list_orders(self) -> list[Order]:
        return [Order.model_validate_json(document) for document in self._documents.values()]

    def snapshot(self, order_id: str) -> str | None:
        """Raw stored document, for byte-level comparisons."""
        return self._documents.get(order_id)


class InMemoryVehicleRegistry(VehicleRegistry):
    def __init__(self, vehicles: list[Vehicle] | None = None):
        self._vehicles = {vehicle.vehicle_id: vehicle for vehicle in vehicles or []}

    def get_vehicle(self, vehicle_id: str) -> Vehicle | None:
        return self._vehicles.get(vehicle_id)

    def set_vehicle_status(self, vehicle_id: str, status: VehicleStatus) -> Vehicle:
        vehicle = self._vehicles.get(vehicle_id)
        if vehicle is None:
            raise NotFoundError(f"Vehicle {vehicle_id} not found", code=ErrorCode.VEHICLE_NOT_FOUND)
        updated = vehicle.model_copy(update={"status": status})
        self._vehicles[vehicle_id] = updated
        return updated
