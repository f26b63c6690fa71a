"""Segment generation for each trip type."""

import logging

from core.errors import ErrorCode, InternalError, NotFoundError, ValidationError
from core.models import Segment, SegmentSpec, TripType
from core.services.rates import RateCard, resolve_rate

logger = logging.getLogger(__name__)

INTERNAL_TRANSFER_CATEGORY = "Internal Transfer"
VENDOR_ORDER_CATEGORY = "Client/Vendor Order"


def classify_trip(
    requested: TripType,
    source: str,
    destination: str,
    rate_card: RateCard,
) -> tuple[TripType, TripType]:
    """Return ``(effective_type, original_type)`` for a requested trip.

    A round trip between two factories is recategorized as an internal
    transfer; the caller's selection is kept as the original type.
    """
    if requested == TripType.ROUND and rate_card.is_factory(source) and rate_card.is_factory(destination):
        logger.info(
            "Both %s and %s are factories, recategorizing round trip as internal transfer",
            source,
            destination,
        )
        return TripType.INTERNAL_TRANSFER, TripType.ROUND
    return requested, requested


def apply_rate(
    segment: Segment,
    rate_card: RateCard,
    provided_invoice: int | None = None,
    provided_toll: int | None = None,
    *,
    destination: str | None = None,
    trip_type: TripType | None = None,
) -> Segment:
    """Price a segment from the rate card, keeping any differing manual override."""
    try:
        quote = resolve_rate(rate_card, segment.source, segment.material_weight, destination, trip_type)
    except NotFoundError:
        if provided_invoice is None or provided_toll is None:
            raise
        logger.warning(
            "No rate card entry for %s -> %s, keeping manual invoice %d and toll %d",
            segment.source,
            segment.destination,
            provided_invoice,
            provided_toll,
        )
        segment.invoice_amount = provided_invoice
        segment.toll_charges = provided_toll
        segment.is_manual_invoice = True
        return segment

    segment.invoice_amount = quote.invoice_amount
    segment.toll_charges = quote.toll_charges
    segment.is_manual_invoice = False
    if provided_invoice is not None and provided_invoice != quote.invoice_amount:
        segment.invoice_amount = provided_invoice
        segment.is_manual_invoice = True
    if provided_toll is not None and provided_toll != quote.toll_charges:
        segment.toll_charges = provided_toll
        segment.is_manual_invoice = True
    return segment


def validate_segment_spec(spec: SegmentSpec, position: int) -> None:
    if (
        not spec.source.strip()
        or not spec.destination.strip()
        or spec.material_weight <= 0
        or not spec.material_type.strip()
    ):
        raise ValidationError(
            f"Segment {position} is missing required fields: source, destination, "
            "material_weight (>0), or material_type"
        )


def segment_from_spec(spec: SegmentSpec, segment_id: int) -> Segment:
    return Segment(
        segment_id=segment_id,
        source=spec.source.strip(),
        destination=spec.destination.strip(),
        material_weight=spec.material_weight,
        material_type=spec.material_type,
    )


def build_segments(
    trip_type: TripType,
    source: str,
    destination: str,
    weight: int,
    material_type: str,
    rate_card: RateCard,
    segment_specs: list[SegmentSpec] | None = None,
    invoice_amount: int | None = None,
    toll_charges: int | None = None,
    original_trip_type: TripType | None = None,
) -> list[Segment]:
    if trip_type == TripType.MULTIPLE:
        return _build_multiple(segment_specs or [], rate_card)

    if weight is None or weight <= 0:
        raise ValidationError("Missing or invalid required field: material_weight")
    if not material_type or not material_type.strip():
        raise ValidationError("Missing required field: material_type")
    if not source or not source.strip() or not destination or not destination.strip():
        raise ValidationError(f"Source and destination are required for {trip_type.value}")

    source = source.strip()
    destination = destination.strip()

    if TripType.ROUND in (trip_type, original_trip_type):
        segments = _build_round_trip(source, destination, weight, material_type, rate_card, invoice_amount, toll_charges)
        verify_round_trip(segments)
        return segments

    segment = Segment(
        segment_id=1,
        source=source,
        destination=destination,
        material_weight=weight,
        material_type=material_type,
    )
    return [apply_rate(segment, rate_card, invoice_amount, toll_charges)]


def _build_round_trip(
    source: str,
    destination: str,
    weight: int,
    material_type: str,
    rate_card: RateCard,
    invoice_amount: int | None,
    toll_charges: int | None,
) -> list[Segment]:
    if source.lower() == destination.lower():
        raise ValidationError(
            "Starting Point and End Point cannot be the same location for Round Trip",
            code=ErrorCode.INVALID_TRIP,
        )

    # The far end may be a vendor or, for an internal transfer, another factory.
    if not rate_card.is_factory(source):
        raise ValidationError(
            f"Round Trip Starting Point must be a Factory location, '{source}' is not a Factory",
            code=ErrorCode.INVALID_TRIP,
        )

    outbound = Segment(
        segment_id=1,
        source=source,
        destination=destination,
        material_weight=weight,
        material_type=material_type,
    )
    apply_rate(outbound, rate_card, invoice_amount, toll_charges)

    # Return leg keeps the load on display but is never billed.
    inbound = Segment(
        segment_id=2,
        source=destination,
        destination=source,
        material_weight=weight,
        material_type=material_type,
        invoice_amount=0,
        toll_charges=0,
    )
    return [outbound, inbound]


def _build_multiple(segment_specs: list[SegmentSpec], rate_card: RateCard) -> list[Segment]:
    if not segment_specs:
        raise ValidationError("Missing or empty segments array for Multiple Trip")
    for position, spec in enumerate(segment_specs, start=1):
        validate_segment_spec(spec, position)

    segments = []
    for position, spec in enumerate(segment_specs, start=1):
        segment = segment_from_spec(spec, position)
        apply_rate(
            segment,
            rate_card,
            spec.invoice_amount,
            spec.toll_charges,
            destination=segment.destination,
            trip_type=TripType.MULTIPLE,
        )
        segments.append(segment)
    return segments


def verify_round_trip(segments: list[Segment]) -> None:
    if len(segments) != 2:
        raise InternalError(f"Round Trip must have exactly 2 segments, found {len(segments)}")
    outbound, inbound = segments
    if outbound.destination != inbound.source:
        raise InternalError(
            f"Round Trip continuity broken: {outbound.destination} does not match return source {inbound.source}"
        )
    if inbound.destination != outbound.source:
        raise InternalError(
            f"Round Trip return ends at {inbound.destination} instead of starting point {outbound.source}"
        )


def order_category(segments: list[Segment], rate_card: RateCard) -> str:
    locations = {loc for segment in segments for loc in (segment.source, segment.destination) if loc}
    if locations and all(rate_card.is_factory(location) for location in locations):
        return INTERNAL_TRANSFER_CATEGORY
    return VENDOR_ORDER_CATEGORY


def route_endpoints(segments: list[Segment], is_round_trip: bool) -> tuple[str, str]:
    """Route summary: first source to last destination, round trips end where they start."""
    source = segments[0].source
    if is_round_trip:
        return source, source
    return source, segments[-1].destination
