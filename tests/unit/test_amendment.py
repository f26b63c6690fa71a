import pytest

from core.errors import ConflictError, ErrorCode, NotFoundError, ValidationError
from core.models import OrderStatus, SegmentSpec, StageStatus, TripType
from core.services.amendment import amend
from core.services.workflow import initialize_workflow


@pytest.fixture
def round_trip(make_order):
    # IAF unit-1 -> Vendor X -> IAF unit-1, outbound priced on the factory pick column (500).
    return make_order(trip_type=TripType.ROUND, source="IAF unit-1", destination="Vendor X", weight=2500)


def _spec(source, destination, weight, **kwargs):
    return SegmentSpec(source=source, destination=destination, material_weight=weight, material_type="Coils", **kwargs)


# --- round trip ---


def test_round_trip_amendment_restructures_route(round_trip, rate_card, creator, now):
    amended, _ = amend(round_trip, [_spec("Vendor X", "Vendor Y", 3500)], creator, rate_card, now=now)

    assert [(s.segment_id, s.source, s.destination) for s in amended.segments] == [
        (1, "IAF unit-1", "Vendor X"),
        (3, "Vendor X", "Vendor Y"),
        (4, "Vendor Y", "IAF unit-1"),
    ]
    display, chargeable = amended.segments[1], amended.segments[2]
    assert (display.material_weight, display.invoice_amount, display.toll_charges) == (2500, 500, 0)
    # New leg is priced at its source, a vendor: drop column plus toll.
    assert (chargeable.material_weight, chargeable.invoice_amount, chargeable.toll_charges) == (3500, 1500, 120)


def test_round_trip_amendment_totals_skip_display_leg(round_trip, rate_card, creator):
    amended, _ = amend(round_trip, [_spec("Vendor X", "Vendor Y", 3500)], creator, rate_card)

    assert amended.total_invoice_amount == round_trip.segments[0].invoice_amount + 1500
    assert amended.total_weight == 2500 + 3500
    assert amended.total_toll_charges == 120


def test_round_trip_amendment_manual_override(round_trip, rate_card, creator):
    amended, _ = amend(round_trip, [_spec("Vendor X", "Vendor Y", 3500, invoice_amount=1800)], creator, rate_card)

    assert amended.segments[2].invoice_amount == 1800
    assert amended.segments[2].is_manual_invoice
    assert amended.total_invoice_amount == 500 + 1800


def test_round_trip_amendment_route_summary(round_trip, rate_card, creator):
    amended, _ = amend(round_trip, [_spec("Vendor X", "Vendor Y", 3500)], creator, rate_card)
    assert (amended.source, amended.destination) == ("IAF unit-1", "IAF unit-1")


def test_round_trip_amendment_requires_exactly_one_segment(round_trip, rate_card, creator):
    specs = [_spec("Vendor X", "Vendor Y", 100), _spec("Vendor Y", "Vendor X", 100)]
    with pytest.raises(ValidationError, match="exactly one"):
        amend(round_trip, specs, creator, rate_card)


def test_round_trip_amendment_must_start_at_outbound_destination(round_trip, rate_card, creator):
    with pytest.raises(ValidationError) as exc:
        amend(round_trip, [_spec("Vendor Y", "Vendor X", 100)], creator, rate_card)
    assert exc.value.code == ErrorCode.INVALID_TRIP


def test_round_trip_amendment_cannot_end_at_starting_point(round_trip, rate_card, creator):
    before = round_trip.model_dump()

    with pytest.raises(ValidationError) as exc:
        amend(round_trip, [_spec("Vendor X", "iaf UNIT-1 ", 1000)], creator, rate_card)

    assert exc.value.code == ErrorCode.INVALID_TRIP
    assert round_trip.model_dump() == before


def test_second_round_trip_amendment_replaces_current_return(round_trip, rate_card, creator):
    first, _ = amend(round_trip, [_spec("Vendor X", "Vendor Y", 3500)], creator, rate_card)
    second, _ = amend(first, [_spec("Vendor X", "IAF unit-2", 1000)], creator, rate_card)

    assert [(s.segment_id, s.source, s.destination) for s in second.segments] == [
        (1, "IAF unit-1", "Vendor X"),
        (3, "Vendor X", "Vendor Y"),
        (5, "Vendor X", "IAF unit-2"),
        (6, "IAF unit-2", "IAF unit-1"),
    ]
    assert second.total_invoice_amount == 500 + 1000
    assert [record.version for record in second.amendment_history] == ["V1", "V2"]


def test_round_trip_without_return_leg_gets_zero_value_return(round_trip, rate_card, creator):
    round_trip.segments = round_trip.segments[:1]

    amended, _ = amend(round_trip, [_spec("Vendor X", "Vendor Y", 3500)], creator, rate_card)

    assert [(s.segment_id, s.source, s.destination) for s in amended.segments] == [
        (1, "IAF unit-1", "Vendor X"),
        (2, "Vendor X", "Vendor Y"),
        (3, "Vendor Y", "IAF unit-1"),
    ]
    assert amended.segments[1].invoice_amount == 1500
    closing = amended.segments[2]
    assert (closing.material_weight, closing.invoice_amount, closing.toll_charges) == (0, 0, 0)


def test_round_trip_new_leg_at_unknown_location(rate_card, creator, make_order):
    order = make_order(trip_type=TripType.ROUND, source="IAF unit-1", destination="Vendor X", weight=2500)
    order.segments[0].destination = "Unlisted Vendor"
    order.segments[1].source = "Unlisted Vendor"
    with pytest.raises(NotFoundError):
        amend(order, [_spec("Unlisted Vendor", "Vendor Y", 100)], creator, rate_card)


# --- other trip types ---


def test_single_trip_amendment_appends_with_drop_rates(make_order, rate_card, creator):
    order = make_order()

    amended, _ = amend(order, [_spec("IAF unit-1", "Vendor Y", 1000)], creator, rate_card)

    assert [s.segment_id for s in amended.segments] == [1, 2]
    added = amended.segments[1]
    assert (added.invoice_amount, added.toll_charges) == (800, 80)
    assert amended.total_invoice_amount == 1500 + 800
    assert amended.total_toll_charges == 120 + 80
    assert amended.total_weight == 4000 + 1000
    assert amended.destination == "Vendor Y"


def test_multiple_trip_amendment_appends_all(make_order, rate_card, creator):
    specs = [_spec("IAF unit-1", "Vendor X", 1000)]
    order = make_order(trip_type=TripType.MULTIPLE, segment_specs=specs)

    amended, _ = amend(
        order,
        [_spec("Vendor X", "Vendor Y", 500), _spec("Vendor Y", "IAF unit-2", 500)],
        creator,
        rate_card,
    )

    assert [s.segment_id for s in amended.segments] == [1, 2, 3]
    assert amended.total_invoice_amount == sum(s.invoice_amount for s in amended.segments)


# --- common effects ---


def test_amendment_reopens_order_and_records_history(round_trip, rate_card, creator, now):
    round_trip.status = OrderStatus.IN_PROGRESS

    amended, change_log = amend(round_trip, [_spec("Vendor X", "Vendor Y", 3500)], creator, rate_card, now=now)

    assert amended.status == OrderStatus.OPEN
    assert amended.is_amended
    record = amended.amendment_history[-1]
    assert record.version == "V1"
    assert record.timestamp == now
    assert (record.amended_by, record.amended_by_department, record.amended_by_user_id) == (
        "Asha Rao",
        "Logistics",
        "user-creator",
    )
    assert (record.segments_before, record.segments_after) == (2, 3)
    assert record.totals_before.total_invoice_amount == 500
    assert record.totals_after.total_invoice_amount == 2000
    assert record.added_segment_ids == [3, 4]
    assert record.change_log == change_log
    assert change_log == [
        "Segment count changed from 2 to 3",
        "Added Segment #3: Vendor Y -> IAF unit-1 (3500 kg, Type: Coils)",
        "Segment #2 modifications: End Point changed from 'IAF unit-1' to 'Vendor Y'; "
        "Freight Charges changed from 0 to 500",
        "Total Weight changed from 2500 kg to 6000 kg",
        "Total Freight Charges changed from 500 to 2000",
    ]


def test_only_new_segments_get_fresh_workflow(round_trip, rate_card, creator):
    round_trip.segments[0].workflow[0].status = StageStatus.APPROVED

    amended, _ = amend(round_trip, [_spec("Vendor X", "Vendor Y", 3500)], creator, rate_card)

    assert amended.segments[0].workflow[0].status == StageStatus.APPROVED
    for segment in amended.segments[1:]:
        assert segment.workflow == initialize_workflow(segment)
        assert segment.status == "SECURITY_ENTRY_PENDING"


def test_amendment_does_not_mutate_input(round_trip, rate_card, creator):
    before = round_trip.model_dump()
    amend(round_trip, [_spec("Vendor X", "Vendor Y", 3500)], creator, rate_card)
    assert round_trip.model_dump() == before


def test_amending_terminal_order_is_refused(make_order, rate_card, creator):
    order = make_order(status=OrderStatus.COMPLETED)
    with pytest.raises(ConflictError) as exc:
        amend(order, [_spec("IAF unit-1", "Vendor Y", 1000)], creator, rate_card)
    assert exc.value.code == ErrorCode.ORDER_TERMINAL


def test_amendment_requires_segments(make_order, rate_card, creator):
    with pytest.raises(ValidationError):
        amend(make_order(), [], creator, rate_card)


def test_amendment_validates_new_segments(make_order, rate_card, creator):
    with pytest.raises(ValidationError, match="Segment 1"):
        amend(make_order(), [_spec("IAF unit-1", "", 1000)], creator, rate_card)
