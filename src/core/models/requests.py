"""Request payloads accepted by the order service."""

from pydantic import BaseModel

from core.models.order import TripType


class SegmentSpec(BaseModel):
    source: str = ""
    destination: str = ""
    material_weight: int = 0
    material_type: str = ""
    invoice_amount: int | None = None
    toll_charges: int | None = None


class CreateOrderRequest(BaseModel):
    trip_type: TripType = TripType.SINGLE
    source: str = ""
    destination: str = ""
    material_weight: int = 0
    material_type: str = ""
    segments: list[SegmentSpec] = []
    invoice_amount: int | None = None
    toll_charges: int | None = None
    vehicle_id: str | None = None
    vehicle_number: str | None = None
