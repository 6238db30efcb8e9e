from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

USER_TYPES = ("student", "faculty")
RESERVATION_TYPES = ("desk", "lab", "meeting-room")


@dataclass(frozen=True)
class Reservation:
    resource_name: str
    date: str
    start_time: str
    end_time: str
    user_name: str = ""
    user_type: str = "student"
    purpose: str = ""
    reservation_type: str = "desk"

    @property
    def start_minute(self) -> int:
        return parse_time_of_day(self.start_time)

    @property
    def end_minute(self) -> int:
        return parse_time_of_day(self.end_time)

    def to_dict(self) -> dict[str, str]:
        return {
            "reservation_type": self.reservation_type,
            "resource_name": self.resource_name,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "user_name": self.user_name,
            "user_type": self.user_type,
            "purpose": self.purpose,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Reservation":
        return Reservation(
            resource_name=str(data["resource_name"]),
            date=normalize_date(data["date"]),
            start_time=str(data["start_time"]),
            end_time=str(data["end_time"]),
            user_name=str(data.get("user_name", "")),
            user_type=str(data.get("user_type", "student")),
            purpose=str(data.get("purpose", "")),
            reservation_type=str(data.get("reservation_type", "desk")),
        )


def parse_time_of_day(value: str) -> int:
    """Return minutes since midnight for a 24-hour ``HH:MM`` string."""
    text = str(value).strip()
    hour_text, sep, minute_text = text.partition(":")
    if not sep or len(minute_text) != 2 or not hour_text.isdigit() or not minute_text.isdigit():
        raise ValueError(f"Invalid time of day: {value!r}. Expected format: HH:MM")

    hour = int(hour_text)
    minute = int(minute_text)
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time of day: {value!r}. Expected format: HH:MM")
    return hour * 60 + minute


def format_time_of_day(minutes: int) -> str:
    if minutes < 0 or minutes >= 24 * 60:
        raise ValueError("minutes must be within a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_date(value: str | date) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(str(value).strip()).isoformat()


def has_time_overlap(new_start: int, new_end: int, exist_start: int, exist_end: int) -> bool:
    """Return True when two time-of-day windows overlap by even one minute.

    Windows are half-open ranges: [start, end)
    so touching boundaries (e.g. 10:00-11:00 and 11:00-12:00) do not overlap.
    """
    return new_start < exist_end and exist_start < new_end


def find_conflicts(
    existing: Iterable[Reservation],
    resource_key: str,
    reservation_date: str | date,
    start: str,
    end: str,
) -> list[Reservation]:
    """Return the reservations for the same resource and date that overlap [start, end)."""
    target_date = normalize_date(reservation_date)
    new_start = parse_time_of_day(start)
    new_end = parse_time_of_day(end)

    conflicts: list[Reservation] = []
    for reservation in existing:
        if reservation.resource_name != resource_key or reservation.date != target_date:
            continue
        if has_time_overlap(new_start, new_end, reservation.start_minute, reservation.end_minute):
            conflicts.append(reservation)
    return conflicts


def is_available(
    existing: Iterable[Reservation],
    resource_key: str,
    reservation_date: str | date,
    start: str,
    end: str,
) -> bool:
    """Return True if no reservation for the same resource and date overlaps [start, end)."""
    return not find_conflicts(existing, resource_key, reservation_date, start, end)


def availability_by_resource(
    existing: Iterable[Reservation],
    resource_names: Iterable[str],
    reservation_date: str | date,
    start: str,
    end: str,
) -> dict[str, bool]:
    reservations = list(existing)
    return {
        name: is_available(reservations, name, reservation_date, start, end)
        for name in resource_names
    }
