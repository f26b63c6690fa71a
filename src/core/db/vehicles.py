"""Vehicle registry: booked/free flag per vehicle."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from botocore.exceptions import ClientError

from core.errors import ErrorCode, InternalError, NotFoundError
from core.models import Vehicle, VehicleStatus

logger = logging.getLogger(__name__)


class VehicleRegistry(ABC):
    @abstractmethod
    def get_vehicle(self, vehicle_id: str) -> Vehicle | None: ...

    @abstractmethod
    def set_vehicle_status(self, vehicle_id: str, status: VehicleStatus) -> Vehicle: ...


def _to_vehicle(item: dict[str, Any]) -> Vehicle:
    return Vehicle(
        vehicle_id=item["vehicleId"]["S"],
        vehicle_number=item.get("vehicleNumber", {}).get("S", ""),
        status=VehicleStatus(item.get("status", {}).get("S", VehicleStatus.FREE.value)),
    )


class DynamoVehicleRegistry(VehicleRegistry):
    def __init__(self, dynamo_client: Any, vehicles_table: str):
        self._client = dynamo_client
        self._table = vehicles_table

    def get_vehicle(self, vehicle_id: str) -> Vehicle | None:
        response = self._client.get_item(TableName=self._table, Key={"vehicleId": {"S": vehicle_id}})
        item = response.get("Item")
        return _to_vehicle(item) if item else None

    def set_vehicle_status(self, vehicle_id: str, status: VehicleStatus) -> Vehicle:
        try:
            response = self._client.update_item(
                TableName=self._table,
                Key={"vehicleId": {"S": vehicle_id}},
                UpdateExpression="SET #status = :status",
                ConditionExpression="attribute_exists(vehicleId)",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={":status": {"S": status.value}},
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError(f"Vehicle {vehicle_id} not found", code=ErrorCode.VEHICLE_NOT_FOUND) from e
            raise InternalError(f"Failed to update vehicle {vehicle_id}: {e}") from e

        logger.info("Vehicle %s marked %s", vehicle_id, status.value)
        return _to_vehicle(response["Attributes"])
