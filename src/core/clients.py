"""Lazy-initialized boto3 clients and services, reused across warm Lambda invocations."""

from functools import lru_cache
from typing import Any

import boto3

from core.config import get_config


@lru_cache(maxsize=1)
def get_dynamo_client() -> Any:
    config = get_config()
    return boto3.client("dynamodb", region_name=config.aws_region, endpoint_url=config.dynamodb_endpoint)


@lru_cache(maxsize=1)
def get_order_service() -> Any:
    from core.auth import get_user_directory
    from core.db import DynamoOrderStore, DynamoVehicleRegistry, load_rate_card
    from core.services.notification import DynamoNotificationSink
    from core.services.orders import OrderService

    config = get_config()
    dynamo = get_dynamo_client()
    return OrderService(
        store=DynamoOrderStore(dynamo, config.orders_table, config.order_counters_table),
        vehicles=DynamoVehicleRegistry(dynamo, config.vehicles_table),
        users=get_user_directory(),
        rate_card=load_rate_card(dynamo, config.rate_cards_table, config.factory_locations),
        notifications=DynamoNotificationSink(dynamo, config.notifications_table),
    )
