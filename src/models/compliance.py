"""
Compliance records: time cards, inspections and per-booking gap records.
"""

from dataclasses import dataclass
from enum import Enum


class GapType(str, Enum):
    """Category of missing compliance documentation."""

    NO_DRIVER = "no_driver_assigned"
    MISSING_TIME_CARD = "missing_time_card"
    MISSING_PRE_TRIP = "missing_pre_trip"
    MISSING_POST_TRIP = "missing_post_trip"

    @property
    def label(self) -> str:
        return GAP_LABELS[self]


GAP_LABELS = {
    GapType.NO_DRIVER: "No driver assigned",
    GapType.MISSING_TIME_CARD: "Missing time card",
    GapType.MISSING_PRE_TRIP: "Missing pre-trip inspection",
    GapType.MISSING_POST_TRIP: "Missing post-trip inspection",
}


class InspectionType(str, Enum):
    PRE_TRIP = "pre_trip"
    POST_TRIP = "post_trip"


@dataclass(frozen=True)
class TimeCard:
    id: int
    driver_id: int
    date: str
    clock_in_time: str
    vehicle_id: int | None = None
    clock_out_time: str | None = None


@dataclass(frozen=True)
class Inspection:
    id: int
    driver_id: int
    vehicle_id: int | None
    type: InspectionType
    inspection_date: str


@dataclass(frozen=True)
class GapRecord:
    """
    Compliance state of one analyzed booking. Computed on demand, never stored.

    Tags are derived: a booking without a driver only carries NO_DRIVER,
    since the driver is the join key for every other check.
    """

    booking_id: int
    booking_number: str
    tour_date: str
    customer_name: str
    driver_id: int | None
    driver_name: str | None
    vehicle_id: int | None
    vehicle_name: str | None
    has_time_card: bool
    has_pre_trip: bool
    has_post_trip: bool

    @property
    def gap_types(self) -> tuple[GapType, ...]:
        if self.driver_id is None:
            return (GapType.NO_DRIVER,)
        gaps = []
        if not self.has_time_card:
            gaps.append(GapType.MISSING_TIME_CARD)
        if not self.has_pre_trip:
            gaps.append(GapType.MISSING_PRE_TRIP)
        if not self.has_post_trip:
            gaps.append(GapType.MISSING_POST_TRIP)
        return tuple(gaps)

    @property
    def is_compliant(self) -> bool:
        return not self.gap_types
