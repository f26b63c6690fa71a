"""Order amendments: extend an in-flight order's route with new segments.

Round trips are restructured so the truck still ends at its starting point:
``A->B->A`` becomes ``A->B->C->A`` where ``B->C`` is shown for the record only
and ``C->A`` carries the new leg's load and freight.
"""

import logging
from datetime import datetime, timezone

from core.auth import Actor
from core.errors import ConflictError, ErrorCode, ValidationError
from core.models import AmendmentRecord, Order, OrderStatus, Segment, SegmentSpec, StageKind, TripType
from core.services.rates import RateCard
from core.services.segments import (
    apply_rate,
    order_category,
    route_endpoints,
    segment_from_spec,
    validate_segment_spec,
)
from core.services.totals import compute_totals
from core.services.workflow import initialize_workflow, pending_marker

logger = logging.getLogger(__name__)


def amend(
    order: Order,
    new_segment_specs: list[SegmentSpec],
    actor: Actor,
    rate_card: RateCard,
    now: datetime | None = None,
) -> tuple[Order, list[str]]:
    """Return the amended copy of ``order`` and the change log describing it."""
    now = now or datetime.now(timezone.utc)

    if order.is_terminal:
        raise ConflictError(
            f"Order {order.order_id} is {order.status.value} and can no longer be amended",
            code=ErrorCode.ORDER_TERMINAL,
        )
    if not new_segment_specs:
        raise ValidationError("At least one new segment is required to amend an order")
    for position, spec in enumerate(new_segment_specs, start=1):
        validate_segment_spec(spec, position)

    existing = [segment.model_copy(deep=True) for segment in order.segments]
    next_id = max(segment.segment_id for segment in existing) + 1

    if order.is_round_trip:
        updated_segments, added_ids = _amend_round_trip(existing, new_segment_specs, rate_card, next_id)
    else:
        added = []
        for offset, spec in enumerate(new_segment_specs):
            segment = segment_from_spec(spec, next_id + offset)
            apply_rate(
                segment,
                rate_card,
                spec.invoice_amount,
                spec.toll_charges,
                destination=segment.destination,
                trip_type=TripType.MULTIPLE,
            )
            added.append(segment)
        updated_segments = existing + added
        added_ids = [segment.segment_id for segment in added]

    for segment in updated_segments:
        if segment.segment_id in added_ids:
            segment.workflow = initialize_workflow(segment)
            segment.status = pending_marker(StageKind.SECURITY_ENTRY)

    billing_type = order.billing_trip_type
    totals_before = compute_totals(order.segments, billing_type)
    totals_after = compute_totals(updated_segments, billing_type)
    change_log = build_change_log(order.segments, updated_segments, totals_before, totals_after)

    amended = order.model_copy(deep=True)
    amended.segments = updated_segments
    amended.apply_totals(totals_after)
    amended.source, amended.destination = route_endpoints(updated_segments, order.is_round_trip)
    amended.order_category = order_category(updated_segments, rate_card)
    amended.status = OrderStatus.OPEN
    amended.is_amended = True
    amended.updated_at = now
    amended.amendment_history.append(
        AmendmentRecord(
            version=f"V{len(order.amendment_history) + 1}",
            timestamp=now,
            amended_by=actor.full_name or "Unknown",
            amended_by_department=actor.department or "Unknown",
            amended_by_user_id=actor.user_id,
            change_log=change_log,
            segments_before=len(order.segments),
            segments_after=len(updated_segments),
            totals_before=totals_before,
            totals_after=totals_after,
            added_segment_ids=added_ids,
        )
    )

    logger.info(
        "Amended order %s by %s: %d -> %d segments, invoice %d -> %d",
        order.order_id,
        actor.full_name,
        len(order.segments),
        len(updated_segments),
        totals_before.total_invoice_amount,
        totals_after.total_invoice_amount,
    )
    return amended, change_log


def _amend_round_trip(
    existing: list[Segment],
    new_segment_specs: list[SegmentSpec],
    rate_card: RateCard,
    next_id: int,
) -> tuple[list[Segment], list[int]]:
    if len(new_segment_specs) != 1:
        raise ValidationError(
            "Round Trip amendments require exactly one additional route (B -> C), "
            f"received {len(new_segment_specs)} segments"
        )
    spec = new_segment_specs[0]
    outbound = existing[0]
    starting_point = outbound.source

    if spec.source.strip().lower() != outbound.destination.strip().lower():
        raise ValidationError(
            f"Round Trip amendment must start from {outbound.destination}, got {spec.source}",
            code=ErrorCode.INVALID_TRIP,
        )
    if spec.destination.strip().lower() == starting_point.strip().lower():
        raise ValidationError(
            f"Round Trip amendment cannot end at the starting point {starting_point}, "
            "the return leg is added automatically",
            code=ErrorCode.INVALID_TRIP,
        )

    new_leg = segment_from_spec(spec, next_id)
    # Priced at B on its own, the way a vendor pickup is billed.
    apply_rate(new_leg, rate_card, spec.invoice_amount, spec.toll_charges)

    return_index = None
    for index in range(len(existing) - 1, 0, -1):
        if existing[index].destination == starting_point:
            return_index = index
            break

    if return_index is None:
        closing = Segment(
            segment_id=next_id + 1,
            source=new_leg.destination,
            destination=starting_point,
            material_weight=0,
            material_type=new_leg.material_type,
        )
        logger.warning("No return segment to %s found, appending a zero-value return leg", starting_point)
        return existing + [new_leg, closing], [new_leg.segment_id, closing.segment_id]

    display_leg = Segment(
        segment_id=next_id,
        source=new_leg.source,
        destination=new_leg.destination,
        material_weight=outbound.material_weight,
        material_type=outbound.material_type or new_leg.material_type,
        invoice_amount=outbound.invoice_amount,
        toll_charges=outbound.toll_charges,
        is_manual_invoice=outbound.is_manual_invoice,
    )
    chargeable_return = Segment(
        segment_id=next_id + 1,
        source=new_leg.destination,
        destination=starting_point,
        material_weight=new_leg.material_weight,
        material_type=new_leg.material_type or outbound.material_type,
        invoice_amount=new_leg.invoice_amount,
        toll_charges=new_leg.toll_charges,
        is_manual_invoice=new_leg.is_manual_invoice,
    )
    segments = existing[:return_index] + [display_leg, chargeable_return]
    return segments, [display_leg.segment_id, chargeable_return.segment_id]


def build_change_log(before, after, totals_before, totals_after) -> list[str]:
    changes = []
    if len(after) != len(before):
        changes.append(f"Segment count changed from {len(before)} to {len(after)}")

    for number, segment in enumerate(after[len(before) :], start=len(before) + 1):
        changes.append(
            f"Added Segment #{number}: {segment.source} -> {segment.destination} "
            f"({segment.material_weight} kg, Type: {segment.material_type or 'N/A'})"
        )

    for number, (old, new) in enumerate(zip(before, after), start=1):
        diffs = []
        if old.source != new.source:
            diffs.append(f"Starting Point changed from '{old.source}' to '{new.source}'")
        if old.destination != new.destination:
            diffs.append(f"End Point changed from '{old.destination}' to '{new.destination}'")
        if old.material_weight != new.material_weight:
            diffs.append(f"Material Weight changed from {old.material_weight} kg to {new.material_weight} kg")
        if old.material_type != new.material_type:
            diffs.append(
                f"Material Type changed from '{old.material_type or 'N/A'}' to '{new.material_type or 'N/A'}'"
            )
        if old.invoice_amount != new.invoice_amount:
            diffs.append(f"Freight Charges changed from {old.invoice_amount} to {new.invoice_amount}")
        if diffs:
            changes.append(f"Segment #{number} modifications: {'; '.join(diffs)}")

    if totals_before.total_weight != totals_after.total_weight:
        changes.append(f"Total Weight changed from {totals_before.total_weight} kg to {totals_after.total_weight} kg")
    if totals_before.total_invoice_amount != totals_after.total_invoice_amount:
        changes.append(
            "Total Freight Charges changed from "
            f"{totals_before.total_invoice_amount} to {totals_after.total_invoice_amount}"
        )

    if not changes:
        changes.append(f"Order amended with {len(after) - len(before)} new segment(s)")
    return changes
