"""
Delivery time — ASAP or a scheduled slot.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, time
from enum import Enum


class DeliveryOption(Enum):
    ASAP = "asap"
    SCHEDULED = "scheduled"


@dataclass(frozen=True, slots=True)
class TimeSlot:
    id: str
    label: str
    day: str  # today, tomorrow
    start: time
    end: time


TIME_SLOTS: tuple[TimeSlot, ...] = (
    TimeSlot("1", "Today, 2:00 PM - 3:00 PM", "today", time(14, 0), time(15, 0)),
    TimeSlot("2", "Today, 4:00 PM - 5:00 PM", "today", time(16, 0), time(17, 0)),
    TimeSlot("3", "Today, 6:00 PM - 7:00 PM", "today", time(18, 0), time(19, 0)),
    TimeSlot("4", "Tomorrow, 10:00 AM - 11:00 AM", "tomorrow", time(10, 0), time(11, 0)),
    TimeSlot("5", "Tomorrow, 12:00 PM - 1:00 PM", "tomorrow", time(12, 0), time(13, 0)),
    TimeSlot("6", "Tomorrow, 2:00 PM - 3:00 PM", "tomorrow", time(14, 0), time(15, 0)),
)

_FALLBACK = timedelta(hours=1)


def estimated_delivery(
    option: DeliveryOption,
    slot: TimeSlot | None,
    now: datetime,
    asap_minutes: int = 45,
) -> datetime:
    """
    Estimated delivery time for the chosen option.

    ASAP is `asap_minutes` from now; a scheduled slot starts at the slot's
    start time today or tomorrow. A scheduled option without a slot falls
    back to one hour from now.
    """
    if option is DeliveryOption.ASAP:
        return now + timedelta(minutes=asap_minutes)
    if slot is None:
        return now + _FALLBACK

    day = now.date()
    if slot.day != "today":
        day += timedelta(days=1)
    return datetime.combine(day, slot.start, tzinfo=now.tzinfo)


__all__ = ("DeliveryOption", "TimeSlot", "TIME_SLOTS", "estimated_delivery")
