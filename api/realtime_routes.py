import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from core.deps import authenticate_websocket
from core.realtime import EventKind, RealtimeConnection, connection_manager, recipients_for

logger = logging.getLogger(__name__)

router = APIRouter()


async def relay_client_event(connection: RealtimeConnection, frame: dict) -> None:
    """
    Re-emit a mutation a client announced, to everyone else it concerns.

    Only active in client-relay mode; otherwise the REST handlers already
    published and the frame is ignored.
    """
    if not connection_manager.client_relay:
        logger.debug("Ignoring client frame from %s; server publishes mutations", connection.identity.id)
        return

    try:
        event = EventKind(frame.get("event"))
    except ValueError:
        logger.warning("Ignoring unknown realtime event %r from %s", frame.get("event"), connection.identity.id)
        return

    data = frame.get("data")
    if not isinstance(data, dict):
        logger.warning("Ignoring %s from %s without an object payload", event.value, connection.identity.id)
        return

    swap_request_id = frame.get("swap_request_id")
    extra = {"swap_request_id": swap_request_id} if swap_request_id is not None else None
    await connection_manager.publish(
        event,
        data,
        recipients_for(event, data, swap_request_id),
        exclude=connection,
        extra=extra,
    )


@router.websocket("/ws")
async def realtime_endpoint(websocket: WebSocket):
    # 1) Gate: no valid token, no membership
    identity = authenticate_websocket(websocket)
    if identity is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    # 2) Accept, then join identity channel (+ managers); sends before accept would fail
    await websocket.accept()
    connection = connection_manager.join(websocket, identity)
    try:
        logger.info("Realtime connected: %s (%s) in %s", identity.id, identity.role.value, sorted(connection.channels))

        # 3) Read client frames until the socket goes away
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Ignoring non-JSON realtime frame from %s", identity.id)
                continue
            if isinstance(frame, dict):
                await relay_client_event(connection, frame)
    except WebSocketDisconnect:
        pass
    finally:
        connection_manager.leave(connection)
        logger.info("Realtime disconnected: %s", identity.id)
