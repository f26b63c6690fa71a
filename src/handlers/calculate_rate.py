"""POST /rates/calculate: quote invoice amount and toll for a location and weight."""

from typing import Any

from core.api import api_handler, json_response, parse_body, parse_enum, require
from core.clients import get_order_service
from core.errors import ValidationError
from core.models import TripType


@api_handler
def handler(event: dict[str, Any], context: object) -> dict[str, Any]:
    body = parse_body(event)
    source = require(body, "source")
    try:
        weight = int(require(body, "material_weight"))
    except (TypeError, ValueError) as e:
        raise ValidationError("Material weight must be a number") from e

    trip_type = None
    if body.get("trip_type"):
        trip_type = parse_enum(TripType, body["trip_type"], "trip_type")

    quote = get_order_service().calculate_rate(source, weight, body.get("destination"), trip_type)
    return json_response(200, {"success": True, **quote.model_dump()})
