from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from core.deps import get_current_user, get_session, require_manager_role
from core.errors import NotFoundError, ValidationError
from core.security import Identity
from db.session import commit_or_raise
from models.employee import Employee, WEEKDAYS, DEFAULT_DAY_END, DEFAULT_DAY_START, default_availability
from utils.datetime_helpers import format_utc_datetime

router = APIRouter()

# --- Pydantic Models for Requests ---

class DayAvailability(BaseModel):
    available: bool = False
    start_time: str = DEFAULT_DAY_START  # "HH:MM"
    end_time: str = DEFAULT_DAY_END

class WeeklyAvailability(BaseModel):
    monday: DayAvailability = Field(default_factory=DayAvailability)
    tuesday: DayAvailability = Field(default_factory=DayAvailability)
    wednesday: DayAvailability = Field(default_factory=DayAvailability)
    thursday: DayAvailability = Field(default_factory=DayAvailability)
    friday: DayAvailability = Field(default_factory=DayAvailability)
    saturday: DayAvailability = Field(default_factory=DayAvailability)
    sunday: DayAvailability = Field(default_factory=DayAvailability)

class CreateEmployeeRequest(BaseModel):
    name: str
    email: str
    user_id: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    notes: Optional[str] = None
    availability: Optional[WeeklyAvailability] = None

class UpdateEmployeeRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    user_id: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    notes: Optional[str] = None
    availability: Optional[WeeklyAvailability] = None

# --- Pydantic Models for Responses ---

class EmployeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[str] = None
    name: str
    email: str
    phone: Optional[str] = None
    position: Optional[str] = None
    notes: Optional[str] = None
    availability: WeeklyAvailability
    created_at: datetime

    @field_serializer('created_at')
    def serialize_created_at(self, dt: datetime) -> Optional[str]:
        return format_utc_datetime(dt)

# --- Helper Functions ---

def validate_time_format(time_str: str) -> bool:
    """Validate time format (HH:MM)"""
    try:
        datetime.strptime(time_str, "%H:%M")
        return True
    except ValueError:
        return False

def availability_to_dict(availability: Optional[WeeklyAvailability]) -> dict:
    """Check every day's window and flatten to the stored JSON shape."""
    if availability is None:
        return default_availability()

    stored = {}
    for day in WEEKDAYS:
        window: DayAvailability = getattr(availability, day)
        for value in (window.start_time, window.end_time):
            if not validate_time_format(value):
                raise ValidationError(f"Invalid time format for {day}: {value}. Use HH:MM format.")
        start = datetime.strptime(window.start_time, "%H:%M").time()
        end = datetime.strptime(window.end_time, "%H:%M").time()
        if window.available and end <= start:
            raise ValidationError(f"End time must be after start time on {day}.")
        stored[day] = window.model_dump()
    return stored

def normalize_email(email: str) -> str:
    email = email.strip().lower()
    if "@" not in email:
        raise ValidationError(f"Invalid email address: {email}")
    return email

def normalize_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Employee name cannot be empty")
    return name

def get_employee_or_404(session: Session, employee_id: int) -> Employee:
    employee = session.get(Employee, employee_id)
    if not employee:
        raise NotFoundError(f"Employee with ID {employee_id} not found.")
    return employee

def ensure_email_free(session: Session, email: str, exclude_id: Optional[int] = None) -> None:
    existing = session.exec(select(Employee).where(Employee.email == email)).first()
    if existing and existing.id != exclude_id:
        raise ValidationError("Employee with this email already exists")

# --- API Endpoints ---

@router.get("", response_model=List[EmployeeResponse])
async def list_employees(
    session: Session = Depends(get_session),
    current_user: Identity = Depends(get_current_user),
):
    return session.exec(select(Employee).order_by(Employee.name.asc())).all()

@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: int,
    session: Session = Depends(get_session),
    current_user: Identity = Depends(get_current_user),
):
    return get_employee_or_404(session, employee_id)

@router.post("", response_model=EmployeeResponse)
async def create_employee(
    request: CreateEmployeeRequest,
    session: Session = Depends(get_session),
    manager_user: Identity = Depends(require_manager_role),
):
    """
    Create an employee record with its weekly availability.
    Days left out default to unavailable, 09:00-17:00.
    """
    email = normalize_email(request.email)
    ensure_email_free(session, email)

    employee = Employee(
        user_id=request.user_id,
        name=normalize_name(request.name),
        email=email,
        phone=request.phone,
        position=request.position,
        notes=request.notes,
        availability=availability_to_dict(request.availability),
    )
    session.add(employee)
    commit_or_raise(session)
    session.refresh(employee)
    return employee

@router.put("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: int,
    request: UpdateEmployeeRequest,
    session: Session = Depends(get_session),
    manager_user: Identity = Depends(require_manager_role),
):
    employee = get_employee_or_404(session, employee_id)
    fields = request.model_dump(exclude_unset=True, exclude={"availability"})

    # Any provided value is checked, empty strings included
    if fields.get("name") is not None:
        fields["name"] = normalize_name(fields["name"])
    if fields.get("email") is not None:
        fields["email"] = normalize_email(fields["email"])
        ensure_email_free(session, fields["email"], exclude_id=employee.id)

    for key, value in fields.items():
        # Required columns cannot be blanked out
        if value is None and key in ("name", "email"):
            continue
        setattr(employee, key, value)

    if request.availability is not None:
        employee.availability = availability_to_dict(request.availability)

    session.add(employee)
    commit_or_raise(session)
    session.refresh(employee)
    return employee

@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: int,
    session: Session = Depends(get_session),
    manager_user: Identity = Depends(require_manager_role),
):
    employee = get_employee_or_404(session, employee_id)
    session.delete(employee)
    commit_or_raise(session)
    return {"message": "Employee removed", "id": employee_id}
