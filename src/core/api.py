"""API Gateway proxy event helpers shared by the HTTP handlers."""

import json
import logging
from collections.abc import Callable
from enum import Enum
from functools import wraps
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.config import get_config
from core.errors import ErrorCode, InternalError, TripOrderError, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
EnumT = TypeVar("EnumT", bound=Enum)

Handler = Callable[[dict[str, Any], object], dict[str, Any]]


def parse_body(event: dict[str, Any]) -> dict[str, Any]:
    raw = event.get("body") or "{}"
    try:
        body = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Request body is not valid JSON: {e}", code=ErrorCode.INVALID_REQUEST) from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object", code=ErrorCode.INVALID_REQUEST)
    return body


def parse_model(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {model.__name__}: {e}", code=ErrorCode.INVALID_REQUEST) from e


def parse_enum(enum: type[EnumT], value: Any, field: str) -> EnumT:
    try:
        return enum(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field}: {value!r}") from e


def require(body: dict[str, Any], field: str) -> Any:
    value = body.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing required field: {field}")
    return value


def actor_id(event: dict[str, Any], body: dict[str, Any]) -> str:
    """Calling user from the authorizer context.

    Only local runs, which have no authorizer in front of them, may name the
    user in the request body instead.
    """
    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    if authorizer.get("userId"):
        return str(authorizer["userId"])
    if not body.get("user_id"):
        return ""
    if get_config().environment != "local":
        logger.warning("Ignoring user_id from request body outside local environment")
        return ""
    return str(body["user_id"])


def json_response(status_code: int, payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload, default=str),
    }


def order_response(order: BaseModel, status_code: int = 200) -> dict[str, Any]:
    return json_response(status_code, {"success": True, "order": order.model_dump(mode="json")})


def error_response(error: TripOrderError) -> dict[str, Any]:
    return json_response(
        error.http_status,
        {"success": False, "code": error.code.value, "message": error.user_message},
    )


def api_handler(func: Handler) -> Handler:
    """Map TripOrderError to its HTTP status; anything else becomes a 500."""

    @wraps(func)
    def wrapper(event: dict[str, Any], context: object) -> dict[str, Any]:
        try:
            return func(event, context)
        except TripOrderError as e:
            logger.warning("%s failed with %s: %s", func.__module__, e.code.value, e.message)
            return error_response(e)
        except Exception:
            logger.exception("Unhandled error in %s", func.__module__)
            return error_response(InternalError("Unhandled error"))

    return wrapper
