from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlmodel import Session
from typing import List, Optional
from datetime import datetime
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer

from core.deps import get_current_user, get_session, require_manager_role
from core.realtime import EventKind, publish_after_commit, shift_recipients, swap_recipients
from core.security import Identity
from models.shift import Shift, SwapStatus
from services.shift_service import ShiftService
from services.swap_service import SwapService
from utils.datetime_helpers import format_utc_datetime

router = APIRouter()

# --- Pydantic Models for Requests ---

class CreateShiftRequest(BaseModel):
    employee_id: str
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = None

class UpdateShiftRequest(BaseModel):
    employee_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    expected_version: Optional[int] = None  # Fail with 409 if the shift moved on

class SubmitSwapRequest(BaseModel):
    # Absent target means "open to anyone"
    target_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("target_id", "targetId", "requested_to"),
    )
    notes: Optional[str] = None

class RespondToSwapRequest(BaseModel):
    approved: bool
    expected_version: Optional[int] = None

# --- Pydantic Models for Responses ---

class SwapRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    shift_id: int
    requested_by: str
    requested_to: Optional[str] = None
    status: SwapStatus
    notes: Optional[str] = None
    created_at: datetime
    responded_at: Optional[datetime] = None
    responded_by: Optional[str] = None

    @field_serializer('created_at', 'responded_at')
    def serialize_timestamps(self, dt: Optional[datetime]) -> Optional[str]:
        return format_utc_datetime(dt)

class ShiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: str
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    swap_requests: List[SwapRequestResponse] = []  # oldest first

    @field_serializer('start_time', 'end_time', 'created_at', 'updated_at')
    def serialize_timestamps(self, dt: Optional[datetime]) -> Optional[str]:
        """Ensure timestamps are formatted as UTC with Z suffix"""
        return format_utc_datetime(dt)

# --- Helper Functions ---

def shift_payload(shift: Shift) -> dict:
    """The exact JSON body a client receives, reused as the realtime payload."""
    return ShiftResponse.model_validate(shift).model_dump(mode="json")

# --- API Endpoints ---

@router.get("", response_model=List[ShiftResponse])
async def list_shifts(
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    session: Session = Depends(get_session),
    current_user: Identity = Depends(get_current_user),
):
    """
    All shifts for managers; only the caller's own shifts for employees.
    Optionally narrowed to shifts starting within [startDate, endDate].
    """
    shifts = ShiftService.list_shifts(session, current_user, start_date, end_date)
    return [shift_payload(shift) for shift in shifts]

@router.get("/swap-requests/mine", response_model=List[SwapRequestResponse])
async def list_my_pending_swap_requests(
    session: Session = Depends(get_session),
    current_user: Identity = Depends(get_current_user),
):
    """
    Pending swap requests the caller submitted or is the target of.
    Managers get every pending request.
    """
    return SwapService.list_pending_for(session, current_user)

@router.get("/{shift_id}", response_model=ShiftResponse)
async def get_shift(
    shift_id: int,
    session: Session = Depends(get_session),
    current_user: Identity = Depends(get_current_user),
):
    return shift_payload(ShiftService.get_visible_shift(session, shift_id, current_user))

@router.post("", response_model=ShiftResponse)
async def create_shift(
    request: CreateShiftRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: Identity = Depends(require_manager_role),
):
    """Create a shift. Managers only."""
    shift = ShiftService.create_shift(
        session,
        current_user,
        employee_id=request.employee_id,
        start_time=request.start_time,
        end_time=request.end_time,
        notes=request.notes,
    )
    payload = shift_payload(shift)
    publish_after_commit(background_tasks, EventKind.SHIFT_CREATED, payload, shift_recipients(payload))
    return payload

@router.put("/{shift_id}", response_model=ShiftResponse)
async def update_shift(
    shift_id: int,
    request: UpdateShiftRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: Identity = Depends(require_manager_role),
):
    """Partially update a shift's owner, times or notes. Managers only."""
    fields = request.model_dump(exclude_unset=True, exclude={"expected_version"})
    previous_owner = None
    if "employee_id" in fields:
        previous_owner = ShiftService.get_shift(session, shift_id).employee_id

    shift = ShiftService.update_shift(
        session, current_user, shift_id, fields, expected_version=request.expected_version
    )
    payload = shift_payload(shift)
    publish_after_commit(
        background_tasks, EventKind.SHIFT_UPDATED, payload, shift_recipients(payload, previous_owner)
    )
    return payload

@router.delete("/{shift_id}")
async def delete_shift(
    shift_id: int,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: Identity = Depends(require_manager_role),
):
    """Delete a shift and its swap request history. Managers only."""
    # Snapshot first; the row is gone after the commit
    payload = shift_payload(ShiftService.get_shift(session, shift_id))
    ShiftService.delete_shift(session, current_user, shift_id)
    publish_after_commit(background_tasks, EventKind.SHIFT_DELETED, payload, shift_recipients(payload))
    return {"message": "Shift removed", "id": shift_id}

@router.post("/{shift_id}/swap-request", response_model=ShiftResponse)
async def request_swap(
    shift_id: int,
    request: SubmitSwapRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: Identity = Depends(get_current_user),
):
    """
    Ask for a shift to be handed to another employee.
    Allowed for the shift's owner or a manager; the request starts pending.
    """
    shift, swap_request = SwapService.submit_swap(
        session, shift_id, current_user, target_id=request.target_id, notes=request.notes
    )
    payload = shift_payload(shift)
    publish_after_commit(
        background_tasks,
        EventKind.SHIFT_SWAP_REQUESTED,
        payload,
        swap_recipients(payload, swap_request.id),
        extra={"swap_request_id": swap_request.id},
    )
    return payload

@router.put("/{shift_id}/swap-request/{swap_id}", response_model=ShiftResponse)
async def respond_to_swap(
    shift_id: int,
    swap_id: int,
    request: RespondToSwapRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: Identity = Depends(get_current_user),
):
    """
    Approve or reject a pending swap request.
    Allowed for the request's target or a manager. Approval reassigns the shift.
    """
    shift, swap_request = SwapService.respond_to_swap(
        session,
        shift_id,
        swap_id,
        current_user,
        approved=request.approved,
        expected_version=request.expected_version,
    )
    payload = shift_payload(shift)
    publish_after_commit(
        background_tasks,
        EventKind.SHIFT_SWAP_RESPONDED,
        payload,
        swap_recipients(payload, swap_request.id),
        extra={"swap_request_id": swap_request.id},
    )
    return payload
