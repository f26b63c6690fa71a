"""POST /orders/status: move an order through its lifecycle."""

from typing import Any

from core.api import actor_id, api_handler, order_response, parse_body, parse_enum, require
from core.clients import get_order_service
from core.models import OrderStatus


@api_handler
def handler(event: dict[str, Any], context: object) -> dict[str, Any]:
    body = parse_body(event)
    status = parse_enum(OrderStatus, require(body, "status"), "status")
    order = get_order_service().set_order_status(require(body, "order_id"), status, actor_id(event, body))
    return order_response(order)
