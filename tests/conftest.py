"""Shared test fixtures for Trip Orders."""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env file for test configuration
load_dotenv()

# Unset AWS_PROFILE for local testing (DynamoDB Local doesn't need it)
if "AWS_PROFILE" in os.environ:
    del os.environ["AWS_PROFILE"]

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from core.auth import Actor, Role, UserDirectory  # noqa: E402
from core.models import RateCardEntry, Vehicle  # noqa: E402

FACTORIES = ("IAF unit-1", "IAF unit-2", "Soliflex unit-3", "Soliflex unit-4")


class StaticUserDirectory(UserDirectory):
    def __init__(self, actors):
        self._actors = {actor.user_id: actor for actor in actors}

    def get_user(self, user_id):
        return self._actors.get(user_id)


class RecordingNotificationSink:
    def __init__(self):
        self.new_orders = []
        self.approved_orders = []

    def notify_new_order(self, order):
        self.new_orders.append(order.order_id)
        return 1

    def notify_approved_order(self, order):
        self.approved_orders.append(order.order_id)
        return 1


@pytest.fixture
def rate_entries():
    return [
        RateCardEntry(
            location="Vendor X",
            pick_below_3000=900,
            pick_3000_5999=1400,
            pick_above_6000=2000,
            drop_below_3000=1000,
            drop_3000_5999=1500,
            drop_above_6000=2100,
            toll_charges=120,
        ),
        RateCardEntry(
            location="Vendor Y",
            pick_below_3000=700,
            pick_3000_5999=1100,
            pick_above_6000=1600,
            drop_below_3000=800,
            drop_3000_5999=1200,
            drop_above_6000=1700,
            toll_charges=80,
        ),
        RateCardEntry(
            location="IAF unit-1",
            pick_below_3000=500,
            pick_3000_5999=750,
            pick_above_6000=1000,
            drop_below_3000=550,
            drop_3000_5999=800,
            drop_above_6000=1050,
            toll_charges=60,
        ),
        RateCardEntry(
            location="IAF unit-2",
            pick_below_3000=450,
            pick_3000_5999=650,
            pick_above_6000=900,
            drop_below_3000=480,
            drop_3000_5999=700,
            drop_above_6000=950,
            toll_charges=40,
        ),
    ]


@pytest.fixture
def rate_card(rate_entries):
    from core.services.rates import RateCard

    return RateCard(rate_entries, FACTORIES)


@pytest.fixture
def creator():
    return Actor(user_id="user-creator", full_name="Asha Rao", department="Logistics", role=Role.RFQ_CREATOR)


@pytest.fixture
def accounts():
    return Actor(user_id="user-accounts", full_name="Vikram Shah", department="Accounts Team", role=Role.APPROVAL_MANAGER)


@pytest.fixture
def admin():
    return Actor(user_id="user-admin", full_name="Admin User", department="Admin", role=Role.SUPER_USER)


@pytest.fixture
def security():
    return Actor(user_id="user-security", full_name="Ravi Kumar", department="Security-Factory 1", role=Role.RFQ_CREATOR)


@pytest.fixture
def stores():
    return Actor(
        user_id="user-stores",
        full_name="Meena Iyer",
        department="Stores IAF UNit-I/ Soliflex unit-I",
        role=Role.RFQ_CREATOR,
    )


@pytest.fixture
def user_directory(creator, accounts, admin, security, stores):
    return StaticUserDirectory([creator, accounts, admin, security, stores])


@pytest.fixture
def order_store():
    from core.db import InMemoryOrderStore

    return InMemoryOrderStore()


@pytest.fixture
def vehicle_registry():
    from core.db import InMemoryVehicleRegistry

    return InMemoryVehicleRegistry(
        [
            Vehicle(vehicle_id="veh-1", vehicle_number="MH12AB1234"),
            Vehicle(vehicle_id="veh-2", vehicle_number="MH12CD5678"),
        ]
    )


@pytest.fixture
def notifications():
    return RecordingNotificationSink()


@pytest.fixture
def order_service(order_store, vehicle_registry, user_directory, rate_card, notifications):
    from core.services.orders import OrderService

    return OrderService(order_store, vehicle_registry, user_directory, rate_card, notifications)


@pytest.fixture
def now():
    return datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


# DynamoDB fixtures
@pytest.fixture
def dynamodb_client():
    """Provide a DynamoDB Local client for integration tests."""
    import boto3
    from core.config import get_config

    config = get_config()

    return boto3.client(
        "dynamodb",
        endpoint_url=config.dynamodb_endpoint or "http://localhost:8000",
        region_name=config.aws_region,
        aws_access_key_id="dummy",
        aws_secret_access_key="dummy",
    )


@pytest.fixture
def make_order(rate_card, now):
    """Build an order straight from the segment builder, bypassing the service."""
    from core.models import Order, OrderStatus, TripType
    from core.services.segments import build_segments
    from core.services.totals import compute_totals
    from core.services.workflow import initialize_workflow

    def _make(
        trip_type=TripType.SINGLE,
        source="Vendor X",
        destination="IAF unit-1",
        weight=4000,
        status=OrderStatus.EN_ROUTE,
        vehicle_id="veh-1",
        segment_specs=None,
    ):
        segments = build_segments(trip_type, source, destination, weight, "Steel", rate_card, segment_specs=segment_specs)
        for segment in segments:
            segment.workflow = initialize_workflow(segment)
        order = Order(
            order_id="Order-1000",
            creator_user_id="user-creator",
            trip_type=trip_type,
            original_trip_type=trip_type,
            status=status,
            source=segments[0].source,
            destination=segments[-1].destination,
            segments=segments,
            vehicle_id=vehicle_id,
            created_at=now,
        )
        order.apply_totals(compute_totals(segments, trip_type))
        return order

    return _make
