"""
Authorization decisions for shifts and swap requests.

Pure functions: every input is passed in, nothing is looked up. Callers turn
a False result into a ForbiddenError.
"""

from core.security import Identity
from models.shift import Shift, SwapRequest


def can_view_shift(caller: Identity, shift: Shift) -> bool:
    return caller.is_manager or caller.id == shift.employee_id


def can_mutate_shift(caller: Identity) -> bool:
    # Only managers create, update or delete shifts directly
    return caller.is_manager


def can_submit_swap(caller: Identity, shift: Shift) -> bool:
    return caller.is_manager or caller.id == shift.employee_id


def can_respond_to_swap(caller: Identity, swap_request: SwapRequest) -> bool:
    # The shift's current owner has no say unless they are the target
    if caller.is_manager:
        return True
    return swap_request.requested_to is not None and caller.id == swap_request.requested_to
