"""Department notifications for new and approved orders."""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from core.models import Order

logger = logging.getLogger(__name__)

ORDER_CREATED = "ORDER_CREATED"
ORDER_APPROVED = "ORDER_APPROVED"

NEW_ORDER_RECIPIENTS = ("Accounts Team",)

# Unit spellings found in location names, mapped to the departments that staff that unit.
UNIT_DEPARTMENTS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("unit-1", "unit 1", "unit-i", "unit i"),
        ("Security-Factory 1", "Stores IAF Unit-1/ Soliflex unit-1", "Fabric IAF unit-1 / Soliflex unit-1"),
    ),
    (
        ("unit-2", "unit 2", "unit-ii", "unit ii"),
        ("Security-Factory 2", "Stores Unit-IV/ soliflex unit-II"),
    ),
    (
        ("unit-3", "unit 3", "unit-iii", "unit iii"),
        ("Security-Factory 3", "Soliflex Unit-III", "Fabric Solifelx unit-III"),
    ),
    (
        ("unit-4", "unit 4", "unit-iv", "unit iv"),
        ("Security-Factory 4", "Stores Unit-IV/ soliflex unit-II", "Fabric Unit-IV/ Soliflex unit-II"),
    ),
)


def segment_locations(order: Order) -> list[str]:
    locations: list[str] = []
    for segment in order.segments:
        for location in (segment.source, segment.destination):
            if location and location not in locations:
                locations.append(location)
    return locations


def order_locations(order: Order) -> list[str]:
    locations = segment_locations(order)
    for location in (order.source, order.destination):
        if location and location not in locations:
            locations.append(location)
    return locations


def recipients_for_new_order(order: Order) -> list[str]:
    return list(NEW_ORDER_RECIPIENTS)


def recipients_for_approved_order(order: Order) -> list[str]:
    """Security and stores departments of every factory unit the route touches."""
    recipients: list[str] = []
    for location in order_locations(order):
        lowered = location.lower()
        for spellings, departments in UNIT_DEPARTMENTS:
            if any(spelling in lowered for spelling in spellings):
                recipients.extend(d for d in departments if d not in recipients)
    return recipients


def approved_order_message(order: Order, department: str) -> str:
    facilities = ", ".join(segment_locations(order)) or "facility"
    lowered = department.lower()
    if "security" in lowered:
        return f"Vehicle entry/exit notification for {facilities}. Order ID: {order.order_id}"
    if "stores" in lowered or "fabric" in lowered:
        return f"Material verification required for {facilities}. Order ID: {order.order_id}"
    return f"Order approved and requires your attention. Order ID: {order.order_id}"


class NotificationSink(ABC):
    @abstractmethod
    def notify_new_order(self, order: Order) -> int: ...

    @abstractmethod
    def notify_approved_order(self, order: Order) -> int: ...


def store_notification(
    dynamo_client: Any,
    notifications_table: str,
    order_id: str,
    department: str,
    notification_type: str,
    message: str,
    related_user_id: str = "",
) -> str:
    """Write one unread notification for a department and return its id."""
    notification_id = str(uuid.uuid4())
    dynamo_client.put_item(
        TableName=notifications_table,
        Item={
            "notificationId": {"S": notification_id},
            "orderId": {"S": order_id},
            "recipientDepartment": {"S": department},
            "notificationType": {"S": notification_type},
            "message": {"S": message},
            "status": {"S": "unread"},
            "createdAt": {"S": datetime.now(timezone.utc).isoformat()},
            "relatedUserId": {"S": related_user_id},
        },
    )
    return notification_id


class DynamoNotificationSink(NotificationSink):
    """Writes one item per recipient department to the notifications table."""

    def __init__(self, dynamo_client: Any, notifications_table: str):
        self._client = dynamo_client
        self._table = notifications_table

    def notify_new_order(self, order: Order) -> int:
        recipients = recipients_for_new_order(order)
        for department in recipients:
            store_notification(
                self._client,
                self._table,
                order.order_id,
                department,
                ORDER_CREATED,
                f"New order created, pending for approval. Order ID: {order.order_id}",
                order.creator_user_id,
            )
        logger.info("Notified %s of new order %s", ", ".join(recipients), order.order_id)
        return len(recipients)

    def notify_approved_order(self, order: Order) -> int:
        recipients = recipients_for_approved_order(order)
        for department in recipients:
            store_notification(
                self._client,
                self._table,
                order.order_id,
                department,
                ORDER_APPROVED,
                approved_order_message(order, department),
                order.creator_user_id,
            )
        if recipients:
            logger.info("Notified %d departments of approved order %s", len(recipients), order.order_id)
        else:
            logger.warning("No factory departments matched the route of order %s", order.order_id)
        return len(recipients)
