"""
Swap request workflow.

A swap request moves PENDING -> APPROVED or PENDING -> REJECTED exactly once.
Approval hands the shift to the request's target; nothing is created for the
employee who gives the shift up.

Both operations run as one transaction per shift: the shift row's version is
bumped with a conditional UPDATE alongside the ledger change (see
services.shift_service.claim_shift_version), and the status change itself
only matches rows that are still pending.
"""

import logging
from typing import List, Optional

from sqlalchemy import or_, update
from sqlmodel import Session, select

from core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.security import Identity
from db.session import commit_or_raise, execute_or_raise
from models.shift import Shift, SwapRequest, SwapStatus
from services.authorization import can_respond_to_swap, can_submit_swap
from services.shift_service import ShiftService, claim_shift_version
from utils.datetime_helpers import utc_now

logger = logging.getLogger(__name__)


def find_swap_request(shift: Shift, swap_request_id: int) -> SwapRequest:
    for swap_request in shift.swap_requests:
        if swap_request.id == swap_request_id:
            return swap_request
    raise NotFoundError(f"Swap request with ID {swap_request_id} not found on shift {shift.id}.")


class SwapService:

    @staticmethod
    def submit_swap(
        session: Session,
        shift_id: int,
        requester: Identity,
        target_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> tuple[Shift, SwapRequest]:
        """
        Append a PENDING request to the shift's ledger.

        Ownership is untouched. Returns the refreshed shift and the new entry.
        """
        shift = ShiftService.get_shift(session, shift_id)
        if not can_submit_swap(requester, shift):
            raise ForbiddenError("Not authorized to request swap for this shift.")

        swap_request = SwapRequest(
            shift_id=shift.id,
            requested_by=requester.id,
            requested_to=target_id or None,
            notes=notes,
        )
        claim_shift_version(session, shift)
        session.add(swap_request)
        commit_or_raise(session)

        session.refresh(shift)
        session.refresh(swap_request)
        logger.info(
            "Swap request %s submitted on shift %s by %s (target: %s)",
            swap_request.id, shift.id, requester.id, swap_request.requested_to or "anyone",
        )
        return shift, swap_request

    @staticmethod
    def respond_to_swap(
        session: Session,
        shift_id: int,
        swap_request_id: int,
        responder: Identity,
        approved: bool,
        expected_version: Optional[int] = None,
    ) -> tuple[Shift, SwapRequest]:
        """
        Resolve a PENDING request; on approval the target becomes the owner.

        A second response to the same request is a ConflictError, never a no-op.
        """
        shift = ShiftService.get_shift(session, shift_id)
        swap_request = find_swap_request(shift, swap_request_id)

        if not can_respond_to_swap(responder, swap_request):
            raise ForbiddenError("Not authorized to respond to this swap request.")

        if swap_request.is_resolved:
            raise ConflictError(
                f"Swap request {swap_request_id} was already {swap_request.status.value}."
            )

        # Nothing in this workflow picks a taker for an open request
        if approved and not swap_request.requested_to:
            raise ValidationError(
                "Swap request has no target employee; it can only be rejected."
            )

        new_status = SwapStatus.APPROVED if approved else SwapStatus.REJECTED

        shift_values = {}
        if approved:
            shift_values["employee_id"] = swap_request.requested_to
        previous_owner = shift.employee_id
        claim_shift_version(session, shift, expected_version, **shift_values)

        result = execute_or_raise(
            session,
            update(SwapRequest)
            .where(SwapRequest.id == swap_request.id)
            .where(SwapRequest.status == SwapStatus.PENDING)
            .values(status=new_status, responded_at=utc_now(), responded_by=responder.id)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            session.rollback()
            raise ConflictError(f"Swap request {swap_request_id} was already resolved.")

        commit_or_raise(session)
        session.refresh(shift)
        session.refresh(swap_request)

        logger.info(
            "Swap request %s on shift %s %s by %s",
            swap_request.id, shift.id, new_status.value, responder.id,
        )
        if approved:
            logger.info("Shift %s reassigned from %s to %s", shift.id, previous_owner, shift.employee_id)
        return shift, swap_request

    @staticmethod
    def list_pending_for(session: Session, caller: Identity) -> List[SwapRequest]:
        """Pending requests the caller asked for or is asked to take; managers see all."""
        query = select(SwapRequest).where(SwapRequest.status == SwapStatus.PENDING)
        if not caller.is_manager:
            query = query.where(
                or_(SwapRequest.requested_by == caller.id, SwapRequest.requested_to == caller.id)
            )
        return list(session.exec(query.order_by(SwapRequest.created_at.asc(), SwapRequest.id.asc())).all())
