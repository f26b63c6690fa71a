"""Order service: the operations the API layer calls.

Every mutation follows the same shape: resolve the actor, take the per-order
lock, read, compute the new order on a copy, write it back with a version
check, and only then touch vehicles and notifications. Side effects after the
write are best-effort; ``reconcile_orders`` repairs anything they leave behind.
"""

import logging
import threading
import weakref
from collections.abc import Callable
from datetime import datetime, timezone

from core.auth import Actor, UserDirectory
from core.db import OrderStore, VehicleRegistry
from core.errors import ConflictError, ErrorCode, NotFoundError, ValidationError
from core.models import (
    CreateOrderRequest,
    Order,
    OrderStatus,
    RateQuote,
    SegmentSpec,
    StageKind,
    TripType,
    VehicleStatus,
    WorkflowAction,
)
from core.services.amendment import amend
from core.services.notification import NotificationSink
from core.services.rates import RateCard, resolve_rate
from core.services.segments import build_segments, classify_trip, order_category, route_endpoints
from core.services.totals import compute_totals
from core.services.workflow import apply_action, derive_order_status, initialize_workflow, is_order_completed

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.OPEN: frozenset(
        {OrderStatus.IN_PROGRESS, OrderStatus.EN_ROUTE, OrderStatus.CANCELLED, OrderStatus.REJECTED}
    ),
    OrderStatus.IN_PROGRESS: frozenset(
        {OrderStatus.EN_ROUTE, OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REJECTED}
    ),
    OrderStatus.EN_ROUTE: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REJECTED}),
}

DISPATCH_STATUSES = frozenset({OrderStatus.IN_PROGRESS, OrderStatus.EN_ROUTE})


class OrderService:
    def __init__(
        self,
        store: OrderStore,
        vehicles: VehicleRegistry,
        users: UserDirectory,
        rate_card: RateCard,
        notifications: NotificationSink,
    ):
        self._store = store
        self._vehicles = vehicles
        self._users = users
        self._rate_card = rate_card
        self._notifications = notifications
        # Entries disappear once no caller holds the lock.
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, order_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(order_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[order_id] = lock
            return lock

    def _resolve_actor(self, actor_id: str) -> Actor:
        if not actor_id:
            raise ValidationError("User ID is required")
        actor = self._users.get_user(actor_id)
        if actor is None:
            raise NotFoundError(f"User {actor_id} not found", code=ErrorCode.USER_NOT_FOUND)
        return actor

    def _load(self, order_id: str) -> Order:
        order = self._store.read_order(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def _set_vehicle_status(self, vehicle_id: str, status: VehicleStatus) -> bool:
        try:
            self._vehicles.set_vehicle_status(vehicle_id, status)
            return True
        except Exception:
            logger.exception("Failed to mark vehicle %s %s", vehicle_id, status.value)
            return False

    def _notify(self, send: Callable[[Order], int], order: Order) -> None:
        try:
            send(order)
        except Exception:
            logger.exception("Failed to send notifications for order %s", order.order_id)

    def get_order(self, order_id: str) -> Order:
        return self._load(order_id)

    def list_orders(self, creator_user_id: str | None = None) -> list[Order]:
        """All orders oldest first, or only those created by ``creator_user_id``."""
        orders = self._store.list_orders()
        if creator_user_id:
            orders = [order for order in orders if order.creator_user_id == creator_user_id]
        return sorted(orders, key=lambda order: (order.created_at, order.order_id))

    def calculate_rate(
        self,
        source: str,
        weight: int | None,
        destination: str | None = None,
        trip_type: TripType | None = None,
    ) -> RateQuote:
        if weight is None:
            raise ValidationError("Material weight is required")
        return resolve_rate(self._rate_card, source, weight, destination, trip_type)

    def create_order(self, request: CreateOrderRequest, actor_id: str) -> Order:
        actor = self._resolve_actor(actor_id)
        now = datetime.now(timezone.utc)

        trip_type, original_trip_type = classify_trip(
            request.trip_type, request.source, request.destination, self._rate_card
        )
        segments = build_segments(
            trip_type,
            request.source,
            request.destination,
            request.material_weight,
            request.material_type,
            self._rate_card,
            segment_specs=request.segments,
            invoice_amount=request.invoice_amount,
            toll_charges=request.toll_charges,
            original_trip_type=original_trip_type,
        )
        for segment in segments:
            segment.workflow = initialize_workflow(segment)

        vehicle_number = request.vehicle_number
        if request.vehicle_id:
            vehicle = self._vehicles.get_vehicle(request.vehicle_id)
            if vehicle is None:
                raise NotFoundError(f"Vehicle {request.vehicle_id} not found", code=ErrorCode.VEHICLE_NOT_FOUND)
            vehicle_number = vehicle_number or vehicle.vehicle_number

        is_round_trip = TripType.ROUND in (trip_type, original_trip_type)
        source, destination = route_endpoints(segments, is_round_trip)
        order = Order(
            order_id=self._store.next_order_id(),
            creator_user_id=actor.user_id,
            creator_name=actor.full_name,
            creator_department=actor.department,
            trip_type=trip_type,
            original_trip_type=original_trip_type,
            source=source,
            destination=destination,
            order_category=order_category(segments, self._rate_card),
            segments=segments,
            vehicle_id=request.vehicle_id or None,
            vehicle_number=vehicle_number or None,
            created_at=now,
        )
        order.apply_totals(compute_totals(segments, order.billing_trip_type))

        stored = self._store.write_order(order)
        logger.info(
            "Created order %s (%s, %d segments, invoice %d) for %s",
            stored.order_id,
            stored.trip_type.value,
            len(stored.segments),
            stored.total_invoice_amount,
            actor.full_name,
        )

        if stored.vehicle_id:
            self._set_vehicle_status(stored.vehicle_id, VehicleStatus.BOOKED)
        self._notify(self._notifications.notify_new_order, stored)
        return stored

    def assign_vehicle(self, order_id: str, vehicle_id: str, vehicle_number: str | None = None) -> Order:
        if not vehicle_id:
            raise ValidationError("Vehicle ID is required")

        with self._lock_for(order_id):
            order = self._load(order_id)
            if order.is_terminal:
                raise ConflictError(
                    f"Order {order_id} is {order.status.value}, vehicle cannot be changed",
                    code=ErrorCode.ORDER_TERMINAL,
                )
            vehicle = self._vehicles.get_vehicle(vehicle_id)
            if vehicle is None:
                raise NotFoundError(f"Vehicle {vehicle_id} not found", code=ErrorCode.VEHICLE_NOT_FOUND)

            previous_vehicle = order.vehicle_id
            updated = order.model_copy(
                update={
                    "vehicle_id": vehicle_id,
                    "vehicle_number": vehicle_number or vehicle.vehicle_number,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            stored = self._store.write_order(updated)

        logger.info("Assigned vehicle %s to order %s (was %s)", vehicle_id, order_id, previous_vehicle or "none")
        if previous_vehicle and previous_vehicle != vehicle_id:
            self._set_vehicle_status(previous_vehicle, VehicleStatus.FREE)
        self._set_vehicle_status(vehicle_id, VehicleStatus.BOOKED)
        return stored

    def set_order_status(self, order_id: str, status: OrderStatus, actor_id: str) -> Order:
        actor = self._resolve_actor(actor_id)

        with self._lock_for(order_id):
            order = self._load(order_id)
            previous = order.status
            if status == previous:
                return order
            _check_transition(order, status)

            now = datetime.now(timezone.utc)
            updated = order.model_copy(deep=True)
            updated.status = status
            updated.updated_at = now
            if previous == OrderStatus.OPEN and status in DISPATCH_STATUSES:
                updated.audit.approved_at = now
                updated.audit.approved_by = actor.full_name
                updated.audit.approved_by_department = actor.department
            stored = self._store.write_order(updated)

        logger.info(
            "Order %s status %s -> %s by %s (%s)",
            order_id,
            previous.value,
            status.value,
            actor.full_name,
            actor.department,
        )
        if stored.is_terminal and stored.vehicle_id:
            self._set_vehicle_status(stored.vehicle_id, VehicleStatus.FREE)
        if previous == OrderStatus.OPEN and status in DISPATCH_STATUSES:
            self._notify(self._notifications.notify_approved_order, stored)
        return stored

    def amend_order(self, order_id: str, new_segments: list[SegmentSpec], actor_id: str) -> Order:
        actor = self._resolve_actor(actor_id)

        with self._lock_for(order_id):
            order = self._load(order_id)
            amended, change_log = amend(order, new_segments, actor, self._rate_card)
            stored = self._store.write_order(amended)

        for entry in change_log:
            logger.info("Order %s amendment: %s", order_id, entry)
        return stored

    def perform_workflow_action(
        self,
        order_id: str,
        segment_id: int,
        stage: StageKind,
        location: str | None,
        action: WorkflowAction,
        actor_id: str,
        comments: str | None = None,
    ) -> Order:
        actor = self._resolve_actor(actor_id)

        with self._lock_for(order_id):
            order = self._load(order_id)
            updated = apply_action(order, segment_id, stage, location, action, actor, comments)
            stored = self._store.write_order(updated)

        if stored.status != order.status and stored.is_terminal and stored.vehicle_id:
            logger.info("Order %s is %s, releasing vehicle %s", order_id, stored.status.value, stored.vehicle_id)
            self._set_vehicle_status(stored.vehicle_id, VehicleStatus.FREE)
        return stored

    def reconcile_orders(self) -> dict[str, int]:
        """Correct derived statuses and vehicle flags across all orders; safe to rerun."""
        orders = self._store.list_orders()
        corrected = 0

        for order in orders:
            if order.is_terminal:
                continue
            with self._lock_for(order.order_id):
                current = self._store.read_order(order.order_id)
                if current is None or current.is_terminal:
                    continue
                derived = derive_order_status(current)
                if derived is None:
                    continue
                updated = current.model_copy(update={"status": derived, "updated_at": datetime.now(timezone.utc)})
                self._store.write_order(updated)
            logger.info("Reconciled order %s status %s -> %s", order.order_id, current.status.value, derived.value)
            corrected += 1

        # Re-read so vehicle flags follow the corrected statuses.
        orders = self._store.list_orders()
        active_vehicles = {o.vehicle_id for o in orders if o.vehicle_id and not o.is_terminal}
        released_vehicles = {o.vehicle_id for o in orders if o.vehicle_id and o.is_terminal} - active_vehicles

        freed = 0
        for vehicle_id in sorted(released_vehicles):
            vehicle = self._vehicles.get_vehicle(vehicle_id)
            if vehicle is not None and vehicle.status == VehicleStatus.BOOKED:
                freed += self._set_vehicle_status(vehicle_id, VehicleStatus.FREE)

        booked = 0
        for vehicle_id in sorted(active_vehicles):
            vehicle = self._vehicles.get_vehicle(vehicle_id)
            if vehicle is not None and vehicle.status == VehicleStatus.FREE:
                booked += self._set_vehicle_status(vehicle_id, VehicleStatus.BOOKED)

        logger.info(
            "Reconciled %d orders: %d statuses corrected, %d vehicles freed, %d vehicles booked",
            len(orders),
            corrected,
            freed,
            booked,
        )
        return {"scanned": len(orders), "corrected": corrected, "vehicles_freed": freed, "vehicles_booked": booked}


def _check_transition(order: Order, status: OrderStatus) -> None:
    if order.is_terminal:
        raise ConflictError(
            f"Order {order.order_id} is {order.status.value} and can no longer change status",
            code=ErrorCode.ORDER_TERMINAL,
        )
    if status == OrderStatus.COMPLETED and not is_order_completed(order):
        raise ConflictError(
            f"Order {order.order_id} cannot be marked as Completed until all workflow stages are approved",
            code=ErrorCode.INVALID_TRANSITION,
        )
    if status in (OrderStatus.CANCELLED, OrderStatus.REJECTED) and is_order_completed(order):
        raise ConflictError(
            f"Order {order.order_id} cannot be {status.value.lower()} after all approval stages have been completed",
            code=ErrorCode.ORDER_COMPLETED,
        )
    if status not in ALLOWED_TRANSITIONS.get(order.status, frozenset()):
        raise ConflictError(f"Cannot move order {order.order_id} from {order.status.value} to {status.value}")
    if status in DISPATCH_STATUSES and not order.vehicle_id:
        raise ConflictError(
            f"Order {order.order_id} has no vehicle assigned",
            code=ErrorCode.VEHICLE_REQUIRED,
        )
