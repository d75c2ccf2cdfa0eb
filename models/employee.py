from sqlmodel import SQLModel, Field, Column, JSON
from typing import Optional
from datetime import datetime, timezone

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

DEFAULT_DAY_START = "09:00"
DEFAULT_DAY_END = "17:00"


def default_availability() -> dict:
    """Every weekday unavailable with a 09:00-17:00 window."""
    return {
        day: {"available": False, "start_time": DEFAULT_DAY_START, "end_time": DEFAULT_DAY_END}
        for day in WEEKDAYS
    }


class Employee(SQLModel, table=True):
    """
    Directory record for a member of staff. user_id links it to the identity
    that appears on shifts and in tokens.
    """
    __tablename__ = "employees"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[str] = Field(default=None, index=True)

    name: str = Field(index=True)
    email: str = Field(unique=True, index=True)  # stored lowercase
    phone: Optional[str] = Field(default=None)
    position: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)

    # {"monday": {"available": bool, "start_time": "HH:MM", "end_time": "HH:MM"}, ...}
    availability: dict = Field(default_factory=default_availability, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
