"""Pydantic models for the location rate card."""

from pydantic import BaseModel, Field

WEIGHT_BRACKETS = ("below_3000", "3000_5999", "above_6000")


class RateCardEntry(BaseModel):
    location: str = Field(..., min_length=1)
    pick_below_3000: int = 0
    pick_3000_5999: int = 0
    pick_above_6000: int = 0
    drop_below_3000: int = 0
    drop_3000_5999: int = 0
    drop_above_6000: int = 0
    toll_charges: int = 0

    def pick_rate(self, bracket: str) -> int:
        return getattr(self, f"pick_{bracket}")

    def drop_rate(self, bracket: str) -> int:
        return getattr(self, f"drop_{bracket}")
