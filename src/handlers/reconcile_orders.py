"""Scheduled sweep that repairs order statuses and vehicle flags."""

import logging
from typing import Any

from core.clients import get_order_service

logger = logging.getLogger(__name__)


def handler(event: dict[str, Any], context: object) -> dict[str, Any]:
    result = get_order_service().reconcile_orders()

    logger.info(
        "Reconciliation complete: %d scanned, %d corrected",
        result["scanned"],
        result["corrected"],
    )

    return {
        "statusCode": 200,
        "body": (
            f"Reconciled: {result['scanned']} scanned, {result['corrected']} corrected, "
            f"{result['vehicles_freed']} vehicles freed, {result['vehicles_booked']} vehicles booked"
        ),
    }
