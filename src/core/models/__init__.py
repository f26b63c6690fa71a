"""
Pydantic models for Trip Orders.
"""

from core.models.order import (
    AmendmentRecord,
    Order,
    OrderStatus,
    OrderTotals,
    RateQuote,
    Segment,
    StageKind,
    StageStatus,
    TripAudit,
    TripType,
    WorkflowAction,
    WorkflowStage,
)
from core.models.rate_card import WEIGHT_BRACKETS, RateCardEntry
from core.models.requests import CreateOrderRequest, SegmentSpec
from core.models.vehicle import Vehicle, VehicleStatus

__all__ = [
    "AmendmentRecord",
    "CreateOrderRequest",
    "Order",
    "OrderStatus",
    "OrderTotals",
    "RateCardEntry",
    "RateQuote",
    "Segment",
    "SegmentSpec",
    "StageKind",
    "StageStatus",
    "TripAudit",
    "TripType",
    "Vehicle",
    "VehicleStatus",
    "WEIGHT_BRACKETS",
    "WorkflowAction",
    "WorkflowStage",
]
