import pytest

from core.errors import ErrorCode, InternalError, NotFoundError, ValidationError
from core.models import Segment, SegmentSpec, TripType
from core.services.segments import (
    INTERNAL_TRANSFER_CATEGORY,
    VENDOR_ORDER_CATEGORY,
    build_segments,
    classify_trip,
    order_category,
    route_endpoints,
    verify_round_trip,
)
from core.services.totals import compute_totals

# --- classification ---


def test_round_trip_between_factories_becomes_internal_transfer(rate_card):
    assert classify_trip(TripType.ROUND, "IAF unit-1", "IAF unit-2", rate_card) == (
        TripType.INTERNAL_TRANSFER,
        TripType.ROUND,
    )


def test_round_trip_to_vendor_is_unchanged(rate_card):
    assert classify_trip(TripType.ROUND, "IAF unit-1", "Vendor X", rate_card) == (TripType.ROUND, TripType.ROUND)


def test_single_trip_between_factories_is_unchanged(rate_card):
    assert classify_trip(TripType.SINGLE, "IAF unit-1", "IAF unit-2", rate_card) == (TripType.SINGLE, TripType.SINGLE)


# --- single trip ---


def test_single_trip_one_segment_rated_on_source(rate_card):
    segments = build_segments(TripType.SINGLE, "Vendor X", "IAF unit-1", 4000, "Steel", rate_card)
    assert len(segments) == 1
    segment = segments[0]
    assert (segment.segment_id, segment.source, segment.destination) == (1, "Vendor X", "IAF unit-1")
    assert (segment.invoice_amount, segment.toll_charges) == (1500, 120)
    assert not segment.is_manual_invoice
    assert segment.workflow == []


def test_single_trip_manual_override(rate_card):
    segments = build_segments(TripType.SINGLE, "Vendor X", "IAF unit-1", 4000, "Steel", rate_card, invoice_amount=1750)
    assert (segments[0].invoice_amount, segments[0].toll_charges) == (1750, 120)
    assert segments[0].is_manual_invoice


def test_single_trip_provided_values_equal_to_rate_are_not_manual(rate_card):
    segments = build_segments(
        TripType.SINGLE, "Vendor X", "IAF unit-1", 4000, "Steel", rate_card, invoice_amount=1500, toll_charges=120
    )
    assert not segments[0].is_manual_invoice


def test_unknown_location_uses_manual_values_when_both_given(rate_card):
    segments = build_segments(
        TripType.SINGLE, "New Vendor", "IAF unit-1", 100, "Steel", rate_card, invoice_amount=300, toll_charges=20
    )
    assert (segments[0].invoice_amount, segments[0].toll_charges) == (300, 20)
    assert segments[0].is_manual_invoice


def test_unknown_location_without_manual_values_fails(rate_card):
    with pytest.raises(NotFoundError):
        build_segments(TripType.SINGLE, "New Vendor", "IAF unit-1", 100, "Steel", rate_card, invoice_amount=300)


@pytest.mark.parametrize(
    "weight, material_type, source, destination",
    [
        (0, "Steel", "Vendor X", "IAF unit-1"),
        (100, "  ", "Vendor X", "IAF unit-1"),
        (100, "Steel", "", "IAF unit-1"),
        (100, "Steel", "Vendor X", None),
    ],
)
def test_single_trip_required_fields(rate_card, weight, material_type, source, destination):
    with pytest.raises(ValidationError):
        build_segments(TripType.SINGLE, source, destination, weight, material_type, rate_card)


# --- round trip ---


def test_round_trip_shape(rate_card):
    segments = build_segments(TripType.ROUND, "IAF unit-1", "Vendor X", 2500, "Coils", rate_card)

    assert len(segments) == 2
    outbound, inbound = segments
    assert outbound.destination == inbound.source
    assert inbound.destination == outbound.source
    assert (inbound.invoice_amount, inbound.toll_charges) == (0, 0)
    assert inbound.material_weight == outbound.material_weight
    # Outbound from a factory is rated on the factory's pick column.
    assert (outbound.invoice_amount, outbound.toll_charges) == (500, 0)


def test_round_trip_totals_ignore_return_leg(rate_card):
    segments = build_segments(TripType.ROUND, "IAF unit-1", "Vendor X", 2500, "Coils", rate_card)
    segments[1].invoice_amount = 9999
    totals = compute_totals(segments, TripType.ROUND)
    assert totals.total_invoice_amount == segments[0].invoice_amount
    assert totals.total_weight == 2500


def test_round_trip_same_endpoints(rate_card):
    with pytest.raises(ValidationError) as exc:
        build_segments(TripType.ROUND, "IAF unit-1", "iaf unit-1", 100, "Coils", rate_card)
    assert exc.value.code == ErrorCode.INVALID_TRIP


def test_round_trip_must_start_at_factory(rate_card):
    with pytest.raises(ValidationError, match="Starting Point must be a Factory"):
        build_segments(TripType.ROUND, "Vendor X", "Vendor Y", 100, "Coils", rate_card)


def test_round_trip_from_vendor_to_factory_is_rejected(rate_card):
    with pytest.raises(ValidationError, match="Starting Point must be a Factory"):
        build_segments(TripType.ROUND, "Vendor X", "IAF unit-1", 100, "Coils", rate_card)


def test_round_trip_between_factories_keeps_shape(rate_card):
    effective, original = classify_trip(TripType.ROUND, "IAF unit-1", "IAF unit-2", rate_card)
    segments = build_segments(
        effective, "IAF unit-1", "IAF unit-2", 100, "Coils", rate_card, original_trip_type=original
    )
    assert [(s.source, s.destination) for s in segments] == [
        ("IAF unit-1", "IAF unit-2"),
        ("IAF unit-2", "IAF unit-1"),
    ]
    assert (segments[1].invoice_amount, segments[1].toll_charges) == (0, 0)


def test_verify_round_trip_detects_broken_continuity():
    segments = [
        Segment(segment_id=1, source="A", destination="B"),
        Segment(segment_id=2, source="C", destination="A"),
    ]
    with pytest.raises(InternalError):
        verify_round_trip(segments)


def test_verify_round_trip_detects_wrong_count():
    with pytest.raises(InternalError):
        verify_round_trip([Segment(segment_id=1, source="A", destination="B")])


# --- multiple trip ---


def test_multiple_trip_segments_verbatim(rate_card):
    specs = [
        SegmentSpec(source="IAF unit-1", destination="Vendor X", material_weight=1000, material_type="Steel"),
        SegmentSpec(
            source="Vendor X", destination="Vendor Y", material_weight=3500, material_type="Coils", invoice_amount=999
        ),
    ]
    segments = build_segments(TripType.MULTIPLE, "", "", 0, "", rate_card, segment_specs=specs)

    assert [s.segment_id for s in segments] == [1, 2]
    # Drop column of the destination entry, whatever the endpoints are.
    assert (segments[0].invoice_amount, segments[0].toll_charges) == (1000, 120)
    assert not segments[0].is_manual_invoice
    assert (segments[1].invoice_amount, segments[1].toll_charges) == (999, 80)
    assert segments[1].is_manual_invoice


def test_multiple_trip_requires_segments(rate_card):
    with pytest.raises(ValidationError):
        build_segments(TripType.MULTIPLE, "", "", 0, "", rate_card, segment_specs=[])


def test_multiple_trip_validates_every_segment(rate_card):
    specs = [
        SegmentSpec(source="IAF unit-1", destination="Vendor X", material_weight=1000, material_type="Steel"),
        SegmentSpec(source="Vendor X", destination="Vendor Y", material_weight=0, material_type="Coils"),
    ]
    with pytest.raises(ValidationError, match="Segment 2"):
        build_segments(TripType.MULTIPLE, "", "", 0, "", rate_card, segment_specs=specs)


# --- route summary ---


def test_order_category(rate_card):
    factory_only = [Segment(segment_id=1, source="IAF unit-1", destination="IAF unit-2")]
    with_vendor = [Segment(segment_id=1, source="IAF unit-1", destination="Vendor X")]
    assert order_category(factory_only, rate_card) == INTERNAL_TRANSFER_CATEGORY
    assert order_category(with_vendor, rate_card) == VENDOR_ORDER_CATEGORY


def test_route_endpoints():
    segments = [
        Segment(segment_id=1, source="A", destination="B"),
        Segment(segment_id=2, source="B", destination="C"),
    ]
    assert route_endpoints(segments, is_round_trip=False) == ("A", "C")
    assert route_endpoints(segments, is_round_trip=True) == ("A", "A")
