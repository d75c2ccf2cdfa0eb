from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum


class SwapStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"  # terminal
    REJECTED = "rejected"  # terminal


class Shift(SQLModel, table=True):
    """
    One scheduled work period, owned by a single employee identity at a time.
    The swap request ledger hangs off it and is deleted with it.
    """
    __tablename__ = "shifts"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Identity id of the current owner
    employee_id: str = Field(index=True)

    start_time: datetime = Field(index=True)
    end_time: datetime
    notes: Optional[str] = Field(default=None)

    # Bumped on every write to the shift or its ledger; guards conditional updates
    version: int = Field(default=1)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = Field(default=None)

    swap_requests: List["SwapRequest"] = Relationship(
        back_populates="shift",
        sa_relationship_kwargs={
            "order_by": "SwapRequest.id",
            "cascade": "all, delete-orphan",
        },
    )


class SwapRequest(SQLModel, table=True):
    __tablename__ = "shift_swap_requests"

    id: Optional[int] = Field(default=None, primary_key=True)
    shift_id: int = Field(foreign_key="shifts.id", index=True)

    # Employee asking for the swap and the employee who would take the shift
    requested_by: str = Field(index=True)
    requested_to: Optional[str] = Field(default=None, index=True)

    status: SwapStatus = Field(default=SwapStatus.PENDING)
    notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Filled once, when the request leaves PENDING
    responded_at: Optional[datetime] = Field(default=None)
    responded_by: Optional[str] = Field(default=None)

    shift: Optional[Shift] = Relationship(back_populates="swap_requests")

    @property
    def is_resolved(self) -> bool:
        return self.status != SwapStatus.PENDING
