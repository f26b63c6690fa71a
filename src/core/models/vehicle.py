from enum import Enum

from pydantic import BaseModel


class VehicleStatus(str, Enum):
    BOOKED = "Booked"
    FREE = "Free"


class Vehicle(BaseModel):
    vehicle_id: str
    vehicle_number: str = ""
    status: VehicleStatus = VehicleStatus.FREE
