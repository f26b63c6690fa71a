"""POST /orders/assign-vehicle: attach a vehicle to an order and book it."""

from typing import Any

from core.api import api_handler, order_response, parse_body, require
from core.clients import get_order_service


@api_handler
def handler(event: dict[str, Any], context: object) -> dict[str, Any]:
    body = parse_body(event)
    order = get_order_service().assign_vehicle(
        require(body, "order_id"),
        str(require(body, "vehicle_id")),
        body.get("vehicle_number"),
    )
    return order_response(order)
