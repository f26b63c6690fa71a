"""GET /orders and GET /orders/user/{userId}"""

from typing import Any

from core.api import api_handler, json_response
from core.clients import get_order_service


@api_handler
def handler(event: dict[str, Any], context: object) -> dict[str, Any]:
    user_id = (event.get("pathParameters") or {}).get("userId")
    orders = get_order_service().list_orders(creator_user_id=user_id)
    return json_response(200, {"success": True, "orders": [order.model_dump(mode="json") for order in orders]})
