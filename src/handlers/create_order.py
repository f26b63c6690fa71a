"""POST /orders: create a trip order."""

from typing import Any

from core.api import actor_id, api_handler, order_response, parse_body, parse_model
from core.clients import get_order_service
from core.models import CreateOrderRequest


@api_handler
def handler(event: dict[str, Any], context: object) -> dict[str, Any]:
    body = parse_body(event)
    request = parse_model(CreateOrderRequest, body)
    order = get_order_service().create_order(request, actor_id(event, body))
    return order_response(order, status_code=201)
