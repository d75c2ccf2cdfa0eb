import logging
import os
from collections import defaultdict
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from dotenv import load_dotenv
from fastapi import BackgroundTasks, WebSocket

from core.security import Identity

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Shared channel every manager connection joins, next to its own identity channel
MANAGER_CHANNEL = "managers"


class EventKind(str, Enum):
    SHIFT_CREATED = "shift_created"
    SHIFT_UPDATED = "shift_updated"
    SHIFT_DELETED = "shift_deleted"
    SHIFT_SWAP_REQUESTED = "shift_swap_requested"
    SHIFT_SWAP_RESPONDED = "shift_swap_responded"


SWAP_EVENTS = {EventKind.SHIFT_SWAP_REQUESTED, EventKind.SHIFT_SWAP_RESPONDED}


def shift_recipients(shift: Dict[str, Any], previous_owner: Optional[str] = None) -> Set[str]:
    """Owner (and the owner it replaced, if any) plus the manager channel."""
    recipients = {MANAGER_CHANNEL}
    if shift.get("employee_id"):
        recipients.add(str(shift["employee_id"]))
    if previous_owner:
        recipients.add(str(previous_owner))
    return recipients


def _latest_resolved(ledger: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    resolved = [
        (item.get("responded_at") or "", position, item)
        for position, item in enumerate(ledger)
        if item.get("status") not in (None, "pending")
    ]
    if not resolved:
        return None
    # responded_at is ISO-8601 UTC, so string order is time order
    return max(resolved, key=lambda candidate: candidate[:2])[2]


def swap_recipients(
    shift: Dict[str, Any],
    swap_request_id: Optional[int] = None,
    responded: bool = False,
) -> Set[str]:
    """
    Requester and target of one ledger entry plus the manager channel.

    Without an id, a response event uses the most recently resolved entry and
    a submission uses the newest entry, which is the one it just appended.
    """
    recipients = {MANAGER_CHANNEL}
    ledger = shift.get("swap_requests") or []
    entry = None
    if swap_request_id is not None:
        entry = next((item for item in ledger if item.get("id") == swap_request_id), None)
    elif responded:
        entry = _latest_resolved(ledger)
    elif ledger:
        entry = ledger[-1]
    if entry:
        for key in ("requested_by", "requested_to"):
            if entry.get(key):
                recipients.add(str(entry[key]))
    return recipients


def recipients_for(event: EventKind, shift: Dict[str, Any], swap_request_id: Optional[int] = None) -> Set[str]:
    if event in SWAP_EVENTS:
        return swap_recipients(
            shift, swap_request_id, responded=event == EventKind.SHIFT_SWAP_RESPONDED
        )
    return shift_recipients(shift)


class RealtimeConnection:
    """One admitted WebSocket and the identity it authenticated as."""

    def __init__(self, websocket: WebSocket, identity: Identity):
        self.websocket = websocket
        self.identity = identity
        self.channels: Set[str] = set()

    async def send(self, message: Dict[str, Any]) -> None:
        await self.websocket.send_json(message)


class ConnectionManager:
    """
    Process-local channel membership for live WebSocket connections.

    Delivery is fire-and-forget: members that are not connected simply miss
    the event and nothing is queued for them.
    """

    def __init__(self, client_relay: bool = False):
        self.channels: Dict[str, Set[RealtimeConnection]] = defaultdict(set)
        self.connections: Set[RealtimeConnection] = set()
        # When set, clients fan out their own mutations and REST handlers stay quiet
        self.client_relay = client_relay

    @property
    def connection_count(self) -> int:
        return len(self.connections)

    def join(self, websocket: WebSocket, identity: Identity) -> RealtimeConnection:
        connection = RealtimeConnection(websocket, identity)
        connection.channels.add(identity.id)
        if identity.is_manager:
            connection.channels.add(MANAGER_CHANNEL)
        for channel in connection.channels:
            self.channels[channel].add(connection)
        self.connections.add(connection)
        return connection

    def leave(self, connection: RealtimeConnection) -> None:
        self.connections.discard(connection)
        for channel in connection.channels:
            members = self.channels.get(channel)
            if members is None:
                continue
            members.discard(connection)
            if not members:
                del self.channels[channel]

    def members_of(self, recipients: Iterable[str]) -> Set[RealtimeConnection]:
        members: Set[RealtimeConnection] = set()
        for channel in recipients:
            members |= self.channels.get(channel, set())
        return members

    async def publish(
        self,
        event: EventKind,
        payload: Dict[str, Any],
        recipients: Iterable[str],
        exclude: Optional[RealtimeConnection] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Send one frame to every live member of `recipients`.

        A connection in several of the channels still gets a single copy.
        Returns how many connections the frame was handed to.
        """
        recipients = set(recipients)
        message = {"event": EventKind(event).value, "data": payload}
        if extra:
            message.update(extra)

        targets = self.members_of(recipients)
        targets.discard(exclude)

        delivered = 0
        for connection in list(targets):
            try:
                await connection.send(message)
                delivered += 1
            except Exception as e:
                # A dead socket is not the publisher's problem
                logger.warning(
                    "Dropping realtime connection for %s after failed send: %s",
                    connection.identity.id, e,
                )
                self.leave(connection)

        logger.info(
            "Published %s to %s (%d connection(s))",
            message["event"], sorted(recipients), delivered,
        )
        return delivered


def _relay_from_env() -> bool:
    return os.getenv("REALTIME_CLIENT_RELAY", "false").lower() in ("true", "1", "t", "yes")


connection_manager = ConnectionManager(client_relay=_relay_from_env())


def publish_after_commit(
    background_tasks: BackgroundTasks,
    event: EventKind,
    payload: Dict[str, Any],
    recipients: Iterable[str],
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Queue a publish to run once the response has been produced.

    Only called after a successful commit. Does nothing in client-relay mode,
    where the mutating client is the one that fans out.
    """
    if connection_manager.client_relay:
        return
    background_tasks.add_task(
        connection_manager.publish, event, payload, set(recipients), None, extra
    )
