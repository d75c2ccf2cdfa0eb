import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.security import Identity
from db.session import commit_or_raise, execute_or_raise
from models.shift import Shift
from services.authorization import can_mutate_shift, can_view_shift
from utils.datetime_helpers import ensure_utc, utc_now

logger = logging.getLogger(__name__)


def claim_shift_version(
    session: Session,
    shift: Shift,
    expected_version: Optional[int] = None,
    **values,
) -> int:
    """
    Conditionally bump the shift's version, applying `values` in the same statement.

    The UPDATE only matches while the row still carries the version we read,
    so two writers racing on one shift cannot both win. The loser's
    transaction is rolled back and it gets a ConflictError.
    """
    read_version = shift.version
    if expected_version is not None and expected_version != read_version:
        raise ConflictError(
            f"Shift {shift.id} is at version {read_version}, not {expected_version}; reload and retry."
        )

    values["version"] = read_version + 1
    values["updated_at"] = utc_now()
    result = execute_or_raise(
        session,
        update(Shift)
        .where(Shift.id == shift.id)
        .where(Shift.version == read_version)
        .values(**values)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount != 1:
        session.rollback()
        logger.warning("Lost version race on shift %s at version %s", shift.id, read_version)
        raise ConflictError("Shift was modified concurrently; reload and retry.")
    return read_version + 1


def validate_window(start_time: datetime, end_time: datetime) -> None:
    if ensure_utc(start_time) >= ensure_utc(end_time):
        raise ValidationError("Shift start time must be before its end time.")


class ShiftService:

    @staticmethod
    def get_shift(session: Session, shift_id: int) -> Shift:
        shift = session.get(Shift, shift_id)
        if not shift:
            raise NotFoundError(f"Shift with ID {shift_id} not found.")
        return shift

    @staticmethod
    def get_visible_shift(session: Session, shift_id: int, caller: Identity) -> Shift:
        shift = ShiftService.get_shift(session, shift_id)
        if not can_view_shift(caller, shift):
            raise ForbiddenError("Not authorized to view this shift.")
        return shift

    @staticmethod
    def list_shifts(
        session: Session,
        caller: Identity,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Shift]:
        query = select(Shift)

        # Date range applies only when both ends are given
        if start_date and end_date:
            query = query.where(Shift.start_time >= ensure_utc(start_date))
            query = query.where(Shift.start_time <= ensure_utc(end_date))

        # Employees only ever see their own shifts
        if not caller.is_manager:
            query = query.where(Shift.employee_id == caller.id)

        return list(session.exec(query.order_by(Shift.start_time.asc(), Shift.id.asc())).all())

    @staticmethod
    def create_shift(
        session: Session,
        caller: Identity,
        employee_id: str,
        start_time: datetime,
        end_time: datetime,
        notes: Optional[str] = None,
    ) -> Shift:
        if not can_mutate_shift(caller):
            raise ForbiddenError("Access denied, manager role required")
        validate_window(start_time, end_time)

        shift = Shift(
            employee_id=employee_id,
            start_time=ensure_utc(start_time),
            end_time=ensure_utc(end_time),
            notes=notes,
        )
        session.add(shift)
        commit_or_raise(session)
        session.refresh(shift)
        logger.info("Shift %s created for %s by %s", shift.id, employee_id, caller.id)
        return shift

    @staticmethod
    def update_shift(
        session: Session,
        caller: Identity,
        shift_id: int,
        fields: dict,
        expected_version: Optional[int] = None,
    ) -> Shift:
        """Partial update of owner, start, end and notes under the version guard."""
        if not can_mutate_shift(caller):
            raise ForbiddenError("Access denied, manager role required")
        shift = ShiftService.get_shift(session, shift_id)

        values = {}
        if fields.get("employee_id"):
            values["employee_id"] = fields["employee_id"]
        if fields.get("start_time"):
            values["start_time"] = ensure_utc(fields["start_time"])
        if fields.get("end_time"):
            values["end_time"] = ensure_utc(fields["end_time"])
        if "notes" in fields:
            values["notes"] = fields["notes"]

        validate_window(
            values.get("start_time", shift.start_time),
            values.get("end_time", shift.end_time),
        )

        claim_shift_version(session, shift, expected_version, **values)
        commit_or_raise(session)
        session.refresh(shift)
        return shift

    @staticmethod
    def delete_shift(session: Session, caller: Identity, shift_id: int) -> None:
        if not can_mutate_shift(caller):
            raise ForbiddenError("Access denied, manager role required")
        shift = ShiftService.get_shift(session, shift_id)

        # Ledger rows go with it
        session.delete(shift)
        commit_or_raise(session)
        logger.info("Shift %s deleted by %s", shift_id, caller.id)
