"""Order persistence: each order is one DynamoDB item holding the full JSON document."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from botocore.exceptions import ClientError
from pydantic import ValidationError as PydanticValidationError

from core.errors import ConflictError, ErrorCode, InternalError
from core.models import Order

logger = logging.getLogger(__name__)

ORDER_ID_PREFIX = "Order-"
FIRST_ORDER_NUMBER = 1000
ORDER_COUNTER_NAME = "orderId"


def format_order_id(sequence: int) -> str:
    """Order id for the n-th issued order, counting from 1."""
    return f"{ORDER_ID_PREFIX}{FIRST_ORDER_NUMBER + sequence - 1}"


class OrderStore(ABC):
    @abstractmethod
    def next_order_id(self) -> str: ...

    @abstractmethod
    def read_order(self, order_id: str) -> Order | None: ...

    @abstractmethod
    def write_order(self, order: Order) -> Order:
        """Persist ``order`` if the stored version still matches ``order.version``.

        Returns the stored copy with its version bumped; raises ConflictError
        when another writer got there first.
        """

    @abstractmethod
    def list_orders(self) -> list[Order]: ...


class DynamoOrderStore(OrderStore):
    def __init__(self, dynamo_client: Any, orders_table: str, counters_table: str):
        self._client = dynamo_client
        self._table = orders_table
        self._counters_table = counters_table

    def next_order_id(self) -> str:
        response = self._client.update_item(
            TableName=self._counters_table,
            Key={"counterName": {"S": ORDER_COUNTER_NAME}},
            UpdateExpression="ADD #value :one",
            ExpressionAttributeNames={"#value": "value"},
            ExpressionAttributeValues={":one": {"N": "1"}},
            ReturnValues="UPDATED_NEW",
        )
        return format_order_id(int(response["Attributes"]["value"]["N"]))

    def read_order(self, order_id: str) -> Order | None:
        try:
            response = self._client.get_item(
                TableName=self._table,
                Key={"orderId": {"S": order_id}},
                ConsistentRead=True,
            )
        except ClientError as e:
            raise InternalError(f"Failed to read order {order_id}: {e}") from e

        item = response.get("Item")
        if not item:
            return None
        return _parse_item(item)

    def write_order(self, order: Order) -> Order:
        expected_version = order.version
        stored = order.model_copy(update={"version": expected_version + 1})

        put_kwargs: dict[str, Any] = {
            "TableName": self._table,
            "Item": {
                "orderId": {"S": stored.order_id},
                "status": {"S": stored.status.value},
                "version": {"N": str(stored.version)},
                "document": {"S": stored.model_dump_json()},
            },
        }
        if expected_version == 0:
            put_kwargs["ConditionExpression"] = "attribute_not_exists(orderId)"
        else:
            put_kwargs["ConditionExpression"] = "#version = :expected"
            put_kwargs["ExpressionAttributeNames"] = {"#version": "version"}
            put_kwargs["ExpressionAttributeValues"] = {":expected": {"N": str(expected_version)}}

        try:
            self._client.put_item(**put_kwargs)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ConflictError(
                    f"Order {order.order_id} was modified concurrently (expected version {expected_version})",
                    code=ErrorCode.CONCURRENT_UPDATE,
                ) from e
            raise InternalError(f"Failed to write order {order.order_id}: {e}") from e

        logger.info("Stored order %s version %d (%s)", stored.order_id, stored.version, stored.status.value)
        return stored

    def list_orders(self) -> list[Order]:
        orders = []
        last_key = None

        while True:
            scan_kwargs: dict[str, Any] = {"TableName": self._table}
            if last_key:
                scan_kwargs["ExclusiveStartKey"] = last_key

            response = self._client.scan(**scan_kwargs)
            for item in response.get("Items", []):
                try:
                    orders.append(_parse_item(item))
                except InternalError:
                    logger.exception("Skipping unreadable order item %s", item.get("orderId", {}).get("S"))

            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break

        return orders


def _parse_item(item: dict[str, Any]) -> Order:
    order_id = item.get("orderId", {}).get("S", "")
    try:
        order = Order.model_validate_json(item["document"]["S"])
    except (KeyError, PydanticValidationError) as e:
        raise InternalError(f"Stored order {order_id} is malformed: {e}") from e
    if "version" in item:
        order.version = int(item["version"]["N"])
    return order
