"""GET /orders/{orderId}"""

from typing import Any

from core.api import api_handler, order_response, require
from core.clients import get_order_service


@api_handler
def handler(event: dict[str, Any], context: object) -> dict[str, Any]:
    order_id = require(event.get("pathParameters") or {}, "orderId")
    return order_response(get_order_service().get_order(order_id))
