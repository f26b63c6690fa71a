from os import environ

import boto3
from pydantic import BaseModel, ConfigDict

DEFAULT_FACTORY_LOCATIONS = (
    "IAF unit-1",
    "IAF unit-2",
    "IAF unit-3",
    "IAF unit-4",
    "Soliflex unit-1",
    "Soliflex unit-2",
    "Soliflex unit-3",
    "Soliflex unit-4",
)

_cached_clerk_secret: str | None = None


def _resolve_clerk_secret() -> str:
    """Fetch Clerk secret from Secrets Manager at runtime, with caching."""
    global _cached_clerk_secret
    if _cached_clerk_secret is not None:
        return _cached_clerk_secret

    # Local dev: use env var directly
    direct = environ.get("CLERK_SECRET_KEY", "")
    if direct:
        _cached_clerk_secret = direct
        return direct

    # Deployed: fetch from Secrets Manager by ARN
    arn = environ.get("CLERK_SECRET_ARN", "")
    if not arn:
        return ""

    client = boto3.client("secretsmanager")
    _cached_clerk_secret = client.get_secret_value(SecretId=arn)["SecretString"]
    return _cached_clerk_secret


def _parse_factory_locations(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return DEFAULT_FACTORY_LOCATIONS
    return tuple(name.strip() for name in raw.split(",") if name.strip())


class Config(BaseModel):
    model_config = ConfigDict(frozen=True)

    aws_region: str
    dynamodb_endpoint: str | None = None
    orders_table: str
    order_counters_table: str
    vehicles_table: str
    rate_cards_table: str
    notifications_table: str
    factory_locations: tuple[str, ...] = DEFAULT_FACTORY_LOCATIONS
    clerk_secret_key: str = ""
    environment: str


_cached_config: Config | None = None


def _reset_config() -> None:
    """Reset cached config (for testing only)."""
    global _cached_config, _cached_clerk_secret
    _cached_config = None
    _cached_clerk_secret = None


def get_config() -> Config:
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    _cached_config = Config(
        aws_region=environ.get("AWS_REGION", "ap-south-1"),
        dynamodb_endpoint=environ.get("DYNAMODB_ENDPOINT"),
        orders_table=environ.get("ORDERS_TABLE", "Orders"),
        order_counters_table=environ.get("ORDER_COUNTERS_TABLE", "OrderCounters"),
        vehicles_table=environ.get("VEHICLES_TABLE", "Vehicles"),
        rate_cards_table=environ.get("RATE_CARDS_TABLE", "RateCards"),
        notifications_table=environ.get("NOTIFICATIONS_TABLE", "Notifications"),
        factory_locations=_parse_factory_locations(environ.get("FACTORY_LOCATIONS")),
        clerk_secret_key=_resolve_clerk_secret(),
        environment=environ.get("ENVIRONMENT", "local"),
    )
    return _cached_config
