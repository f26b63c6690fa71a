"""Pydantic models for trip orders, segments and their approval workflow."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


def _normalize(value: str) -> str:
    return value.replace("-", "").replace("_", "").replace(" ", "").lower()


class TripType(str, Enum):
    SINGLE = "SingleTripVendor"
    ROUND = "RoundTripVendor"
    MULTIPLE = "MultipleTripVendor"
    INTERNAL_TRANSFER = "InternalTransfer"

    @classmethod
    def _missing_(cls, value: object) -> "TripType | None":
        # Accepts legacy spellings such as "Round-Trip-Vendor".
        if isinstance(value, str):
            key = _normalize(value)
            for member in cls:
                if member.value.lower() == key:
                    return member
        return None


class OrderStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    EN_ROUTE = "EnRoute"
    COMPLETED = "Completed"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

    @classmethod
    def _missing_(cls, value: object) -> "OrderStatus | None":
        if isinstance(value, str):
            key = _normalize(value)
            if key == "canceled":
                return cls.CANCELLED
            for member in cls:
                if member.value.lower() == key:
                    return member
        return None

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.REJECTED, OrderStatus.CANCELLED})


class StageKind(str, Enum):
    SECURITY_ENTRY = "SECURITY_ENTRY"
    STORES_VERIFICATION = "STORES_VERIFICATION"
    SECURITY_EXIT = "SECURITY_EXIT"


class StageStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELED = "CANCELED"
    # Written by the 3-stage workflow; counts as approved.
    COMPLETED = "COMPLETED"

    @property
    def is_approved(self) -> bool:
        return self in (StageStatus.APPROVED, StageStatus.COMPLETED)


class WorkflowAction(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    REVOKE = "REVOKE"
    CANCEL = "CANCEL"


class WorkflowStage(BaseModel):
    stage: StageKind
    location: str = ""
    status: StageStatus = StageStatus.PENDING
    stage_index: int = Field(..., ge=0, le=5)
    approved_by: str = ""
    department: str = ""
    timestamp: datetime | None = None
    comments: str = ""


class Segment(BaseModel):
    segment_id: int = Field(..., ge=1)
    source: str
    destination: str
    material_weight: int = Field(default=0, ge=0)
    material_type: str = ""
    invoice_amount: int = 0
    toll_charges: int = 0
    is_manual_invoice: bool = False
    status: str = "SECURITY_ENTRY_PENDING"
    workflow: list[WorkflowStage] = []


class OrderTotals(BaseModel):
    total_weight: int = 0
    total_invoice_amount: int = 0
    total_toll_charges: int = 0


class RateQuote(BaseModel):
    invoice_amount: int
    toll_charges: int


class TripAudit(BaseModel):
    """Lifecycle checkpoints captured as the order moves through approval and transit."""

    approved_at: datetime | None = None
    approved_by: str | None = None
    approved_by_department: str | None = None
    vehicle_started_at: datetime | None = None
    vehicle_started_from: str | None = None
    security_entry_at: datetime | None = None
    security_entry_by: str | None = None
    security_entry_location: str | None = None
    stores_validated_at: datetime | None = None
    vehicle_exited_at: datetime | None = None
    exit_approved_at: datetime | None = None
    exit_approved_by: str | None = None


class AmendmentRecord(BaseModel):
    version: str
    timestamp: datetime
    amended_by: str = ""
    amended_by_department: str = ""
    amended_by_user_id: str = ""
    change_log: list[str] = []
    segments_before: int
    segments_after: int
    totals_before: OrderTotals
    totals_after: OrderTotals
    added_segment_ids: list[int] = []


class Order(BaseModel):
    order_id: str
    creator_user_id: str
    creator_name: str = ""
    creator_department: str = ""
    trip_type: TripType
    original_trip_type: TripType
    status: OrderStatus = OrderStatus.OPEN
    source: str = ""
    destination: str = ""
    order_category: str = ""
    segments: list[Segment] = Field(..., min_length=1)
    total_weight: int = 0
    total_invoice_amount: int = 0
    total_toll_charges: int = 0
    is_amended: bool = False
    amendment_history: list[AmendmentRecord] = []
    vehicle_id: str | None = None
    vehicle_number: str | None = None
    audit: TripAudit = Field(default_factory=TripAudit)
    created_at: datetime
    updated_at: datetime | None = None
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_round_trip(self) -> bool:
        return TripType.ROUND in (self.trip_type, self.original_trip_type)

    @property
    def billing_trip_type(self) -> TripType:
        """Trip type whose chargeable-segment rule applies to the totals.

        A round trip recategorized as an internal transfer keeps its A->B->A
        shape, so it is still billed as a round trip.
        """
        return TripType.ROUND if self.is_round_trip else self.trip_type

    @property
    def totals(self) -> OrderTotals:
        return OrderTotals(
            total_weight=self.total_weight,
            total_invoice_amount=self.total_invoice_amount,
            total_toll_charges=self.total_toll_charges,
        )

    def apply_totals(self, totals: OrderTotals) -> None:
        self.total_weight = totals.total_weight
        self.total_invoice_amount = totals.total_invoice_amount
        self.total_toll_charges = totals.total_toll_charges
