"""Order-level totals over the chargeable segments."""

from core.models import OrderTotals, Segment, TripType


def chargeable_segments(segments: list[Segment], trip_type: TripType) -> list[Segment]:
    """Segments whose weight, invoice and toll count towards the order totals.

    A round trip bills its outbound leg and, once amended, its final leg back
    to the start; legs in between only repeat the outbound figures for display.
    """
    if trip_type == TripType.ROUND and len(segments) >= 2:
        if len(segments) == 2:
            return [segments[0]]
        return [segments[0], segments[-1]]
    return list(segments)


def compute_totals(segments: list[Segment], trip_type: TripType) -> OrderTotals:
    billed = chargeable_segments(segments, trip_type)
    return OrderTotals(
        total_weight=sum(segment.material_weight for segment in billed),
        total_invoice_amount=sum(segment.invoice_amount for segment in billed),
        total_toll_charges=sum(segment.toll_charges for segment in billed),
    )
