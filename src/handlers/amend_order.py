"""POST /orders/amend: add segments to an in-flight order."""

from typing import Any

from core.api import actor_id, api_handler, order_response, parse_body, parse_model, require
from core.clients import get_order_service
from core.errors import ValidationError
from core.models import SegmentSpec


@api_handler
def handler(event: dict[str, Any], context: object) -> dict[str, Any]:
    body = parse_body(event)
    raw_segments = body.get("segments")
    if not isinstance(raw_segments, list) or not raw_segments:
        raise ValidationError("segments must be a non-empty list")

    segments = [parse_model(SegmentSpec, segment) for segment in raw_segments]
    order = get_order_service().amend_order(require(body, "order_id"), segments, actor_id(event, body))
    return order_response(order)
