"""Rate card resolution: pick/drop tariffs and tolls by location and weight bracket.

Factories are collected from by our own vehicles and priced on the pick-rate
columns; vendors deliver and are priced on the drop-rate columns plus toll.
"""

import logging
from collections.abc import Iterable

from core.errors import ErrorCode, NotFoundError, ValidationError
from core.models import RateCardEntry, RateQuote, TripType

logger = logging.getLogger(__name__)


def _key(location: str) -> str:
    return location.strip().lower()


def weight_bracket(weight: int) -> str:
    if weight < 0:
        raise ValidationError(f"Material weight must be >= 0, got {weight}")
    if weight < 3000:
        return "below_3000"
    if weight < 6000:
        return "3000_5999"
    return "above_6000"


class RateCard:
    """Read-only lookup over rate card entries and the factory allow-list."""

    def __init__(self, entries: Iterable[RateCardEntry], factories: Iterable[str]):
        self._entries = {_key(entry.location): entry for entry in entries}
        self._factories = frozenset(_key(name) for name in factories)

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, location: str | None) -> RateCardEntry | None:
        if not location:
            return None
        return self._entries.get(_key(location))

    def is_factory(self, location: str | None) -> bool:
        if not location:
            return False
        return _key(location) in self._factories


def resolve_rate(
    rate_card: RateCard,
    source: str,
    weight: int,
    destination: str | None = None,
    trip_type: TripType | None = None,
) -> RateQuote:
    if not source or not source.strip():
        raise ValidationError("Source location is required")
    bracket = weight_bracket(weight)

    if destination and destination.strip():
        return _resolve_segment_rate(rate_card, source, destination, bracket, trip_type == TripType.MULTIPLE)

    is_factory = rate_card.is_factory(source)
    entry = rate_card.resolve(source)
    if entry is None:
        kind = "Factory location" if is_factory else "Vendor"
        raise NotFoundError(f"{kind} not found in rate card: {source}", code=ErrorCode.LOCATION_NOT_FOUND)

    if is_factory:
        quote = RateQuote(invoice_amount=entry.pick_rate(bracket), toll_charges=0)
    else:
        quote = RateQuote(invoice_amount=entry.drop_rate(bracket), toll_charges=entry.toll_charges)

    logger.info(
        "Rate for %s (%s, %s): invoice=%d toll=%d",
        source,
        "pick" if is_factory else "drop",
        bracket,
        quote.invoice_amount,
        quote.toll_charges,
    )
    return quote


def _resolve_segment_rate(
    rate_card: RateCard,
    source: str,
    destination: str,
    bracket: str,
    force_drop_rates: bool,
) -> RateQuote:
    source_is_factory = rate_card.is_factory(source)
    destination_is_factory = rate_card.is_factory(destination)

    if force_drop_rates:
        use_pick_rates = False
        entry = rate_card.resolve(destination) or rate_card.resolve(source)
    elif source_is_factory:
        use_pick_rates = True
        entry = rate_card.resolve(destination) or rate_card.resolve(source)
    elif destination_is_factory:
        use_pick_rates = False
        entry = rate_card.resolve(source) or rate_card.resolve(destination)
    else:
        use_pick_rates = True
        entry = rate_card.resolve(destination) or rate_card.resolve(source)

    if entry is None:
        raise NotFoundError(
            f"Location not found in rate card: {source} or {destination}",
            code=ErrorCode.LOCATION_NOT_FOUND,
        )

    invoice_amount = entry.pick_rate(bracket) if use_pick_rates else entry.drop_rate(bracket)
    if invoice_amount == 0:
        logger.warning("Rate card entry %s has no %s rate for %s", entry.location, "pick" if use_pick_rates else "drop", bracket)

    toll_charges = 0 if rate_card.is_factory(entry.location) else entry.toll_charges

    logger.info(
        "Rate for %s -> %s (%s via %s, %s): invoice=%d toll=%d",
        source,
        destination,
        "pick" if use_pick_rates else "drop",
        entry.location,
        bracket,
        invoice_amount,
        toll_charges,
    )
    return RateQuote(invoice_amount=invoice_amount, toll_charges=toll_charges)
