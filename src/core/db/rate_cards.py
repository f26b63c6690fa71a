"""Rate card loading from DynamoDB."""

import logging
from collections.abc import Iterable
from typing import Any

from core.models import RateCardEntry
from core.services.rates import RateCard

logger = logging.getLogger(__name__)

# DynamoDB attribute -> RateCardEntry field
_RATE_ATTRIBUTES = {
    "pickBelow3000": "pick_below_3000",
    "pick3000To5999": "pick_3000_5999",
    "pickAbove6000": "pick_above_6000",
    "dropBelow3000": "drop_below_3000",
    "drop3000To5999": "drop_3000_5999",
    "dropAbove6000": "drop_above_6000",
    "tollCharges": "toll_charges",
}


def _to_entry(item: dict[str, Any]) -> RateCardEntry:
    values: dict[str, Any] = {"location": item["location"]["S"]}
    for attribute, field in _RATE_ATTRIBUTES.items():
        if attribute in item:
            values[field] = int(float(item[attribute]["N"]))
    return RateCardEntry(**values)


def load_rate_card(dynamo_client: Any, rate_cards_table: str, factories: Iterable[str]) -> RateCard:
    entries = []
    last_key = None

    while True:
        scan_kwargs: dict[str, Any] = {"TableName": rate_cards_table}
        if last_key:
            scan_kwargs["ExclusiveStartKey"] = last_key

        response = dynamo_client.scan(**scan_kwargs)
        entries.extend(_to_entry(item) for item in response.get("Items", []))

        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            break

    logger.info("Loaded %d rate card entries from %s", len(entries), rate_cards_table)
    return RateCard(entries, factories)
