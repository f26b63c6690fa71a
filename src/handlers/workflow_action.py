"""POST /orders/workflow: approve, reject, revoke or cancel a workflow stage."""

from typing import Any

from core.api import actor_id, api_handler, order_response, parse_body, parse_enum, require
from core.clients import get_order_service
from core.errors import ValidationError
from core.models import StageKind, WorkflowAction


@api_handler
def handler(event: dict[str, Any], context: object) -> dict[str, Any]:
    body = parse_body(event)
    try:
        segment_id = int(require(body, "segment_id"))
    except (TypeError, ValueError) as e:
        raise ValidationError("segment_id must be an integer") from e

    order = get_order_service().perform_workflow_action(
        require(body, "order_id"),
        segment_id,
        parse_enum(StageKind, require(body, "stage"), "stage"),
        body.get("location"),
        parse_enum(WorkflowAction, require(body, "action"), "action"),
        actor_id(event, body),
        body.get("comments"),
    )
    return order_response(order)
