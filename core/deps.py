import logging
from typing import Annotated, Optional

from fastapi import Depends, Request, WebSocket

from core.errors import ForbiddenError, UnauthenticatedError
from core.security import Identity, InvalidTokenError, extract_bearer_token, verify_identity_token
from db.session import get_session  # noqa: F401  (re-exported for routers)
from services.authorization import can_mutate_shift

logger = logging.getLogger(__name__)


# Bearer Token -> Identity; role comes from the signed token only
async def get_current_user(request: Request) -> Identity:

    # 1) Extract & Analyze Authorization Header
    token = extract_bearer_token(request.headers.get("Authorization", ""))
    if not token:
        raise UnauthenticatedError("Missing or invalid Authorization header")

    # 2) Verify Signature, Expiry And Role
    try:
        return verify_identity_token(token)
    except InvalidTokenError as e:
        logger.info("Rejected REST credentials: %s", e)
        raise UnauthenticatedError("Invalid or expired token")


# Manager Role Check Dependency
async def require_manager_role(
    current_user: Annotated[Identity, Depends(get_current_user)]
) -> Identity:

    # Check That User Has Adequate Permissions
    if not can_mutate_shift(current_user):
        raise ForbiddenError("Access denied, manager role required")

    # Passes Check Endpoint
    return current_user


# Realtime Gate; same token rule as the REST gate, checked once per connection
def authenticate_websocket(websocket: WebSocket) -> Optional[Identity]:
    token = websocket.query_params.get("token") or extract_bearer_token(
        websocket.headers.get("Authorization", "")
    )
    if not token:
        logger.info("Rejected realtime connection without a token")
        return None
    try:
        return verify_identity_token(token)
    except InvalidTokenError as e:
        logger.info("Rejected realtime connection: %s", e)
        return None
