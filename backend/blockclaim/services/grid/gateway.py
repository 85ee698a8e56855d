"""Per-connection session lifecycle and request handling.

The gateway binds each transport connection to an identity, turns inbound
requests into store mutations and hands the results to the broadcast
channel. It owns the grid store, the identity registry and the channel.
"""

import logging
import threading
from enum import Enum
from typing import Dict, NamedTuple, Optional

from .broadcast import BroadcastChannel
from .errors import AlreadyClaimed, EmptyName, InvalidCoordinate, StorageFailure, UnknownIdentity
from .events import (
    ClaimAccepted,
    ClaimRejected,
    GridSnapshot,
    IdentityAssigned,
    IdentityJoined,
    IdentityLeft,
    IdentityRenamed,
    RenameRejected,
    snapshot_payload,
)
from .identities import Identity, IdentityRegistry
from .stats import compute_stats
from .store import Coordinate, GridStore

logger = logging.getLogger(__name__)


class Connection(NamedTuple):
    sid: str
    namespace: str = '/'


class SessionState(str, Enum):
    CONNECTING = 'connecting'
    ACTIVE = 'active'
    CLOSED = 'closed'


class Session:
    def __init__(self, connection):
        self.connection = connection
        self.state = SessionState.CONNECTING
        self.identity_id: Optional[str] = None
        # claims and renames for one identity run one at a time
        self.requests = threading.Lock()


def _as_cell_index(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class SessionGateway:
    def __init__(self, grid: GridStore, registry: IdentityRegistry, transport,
                 ledger=None, leaderboard_size: int = 10):
        self.grid = grid
        self.registry = registry
        self.ledger = ledger
        self.leaderboard_size = leaderboard_size
        self.channel = BroadcastChannel(transport, on_failure=self.disconnect)
        self._lock = threading.Lock()
        self._sessions: Dict[object, Session] = {}

    # ---- lifecycle ----

    def connect(self, connection) -> Identity:
        with self._lock:
            session = self._sessions.get(connection)
            if session is not None and session.state != SessionState.CLOSED:
                raise RuntimeError(f"connection {connection} is already {session.state.value}")
            session = Session(connection)
            self._sessions[connection] = session

        identity = self.registry.register(connection)
        with self._lock:
            closed_early = session.state == SessionState.CLOSED
            if not closed_early:
                session.identity_id = identity.id
                session.state = SessionState.ACTIVE
                self.channel.add(connection)
        if closed_early:
            # disconnected while still CONNECTING
            self.registry.unregister(connection)
            return identity

        if not self.channel.send(connection, IdentityAssigned(identity.to_dict())):
            return identity
        if not self.channel.send(connection, GridSnapshot(self.grid.grid_size, self.grid.get_all())):
            return identity
        connected = self.active_count()
        self.channel.broadcast(
            IdentityJoined(identity.id, identity.name, identity.color, connected),
            exclude=connection,
        )
        logger.info(f"[join] id={identity.id} name={identity.name} connected={connected}")
        return identity

    def disconnect(self, connection) -> Optional[Identity]:
        """Move ``connection`` to CLOSED. Calling it again is a no-op."""
        with self._lock:
            session = self._sessions.get(connection)
            if session is None or session.state == SessionState.CLOSED:
                return None
            session.state = SessionState.CLOSED
            self._sessions.pop(connection, None)

        self.channel.remove(connection)
        identity = self.registry.unregister(connection)
        if identity is None:
            return None
        connected = self.active_count()
        self.channel.broadcast(IdentityLeft(identity.id, identity.name, connected))
        logger.info(f"[leave] id={identity.id} name={identity.name} connected={connected}")
        return identity

    def state_of(self, connection) -> SessionState:
        session = self._sessions.get(connection)
        return session.state if session else SessionState.CLOSED

    def active_count(self) -> int:
        """Number of ACTIVE sessions; sessions still CONNECTING are not counted."""
        with self._lock:
            return sum(1 for s in self._sessions.values() if s.state == SessionState.ACTIVE)

    def _active_session(self, connection) -> Optional[Session]:
        session = self._sessions.get(connection)
        if session is None or session.state != SessionState.ACTIVE:
            logger.warning(f"[ignored] request from inactive connection {connection}")
            return None
        return session

    def _active_identity(self, connection) -> Optional[Identity]:
        session = self._active_session(connection)
        if session is None:
            return None
        return self.registry.get(session.identity_id)

    # ---- requests ----

    def handle_claim_request(self, connection, x, y) -> bool:
        session = self._active_session(connection)
        if session is None:
            return False
        with session.requests:
            return self._claim(connection, session, x, y)

    def _claim(self, connection, session: Session, x, y) -> bool:
        # the name read here stays current until ClaimAccepted is broadcast
        identity = self.registry.get(session.identity_id)
        if identity is None:
            return False

        cx, cy = _as_cell_index(x), _as_cell_index(y)
        if cx is None or cy is None or not self.grid.contains(cx, cy):
            logger.info(f"[claim-invalid] x={x!r} y={y!r} by={identity.id}")
            self.channel.send(connection, ClaimRejected(x, y, InvalidCoordinate.reason))
            return False

        try:
            record, created = self.grid.try_claim(Coordinate(cx, cy), identity.id, identity.name, identity.color)
        except InvalidCoordinate:
            self.channel.send(connection, ClaimRejected(x, y, InvalidCoordinate.reason))
            return False

        if not created:
            logger.info(f"[claim-lost] cell={record.coordinate.key} by={identity.id} owner={record.owner_id}")
            self.channel.send(connection, ClaimRejected(cx, cy, AlreadyClaimed.reason, current_owner=record))
            return False

        self.registry.increment_claim_count(identity.id)
        if self.ledger is not None:
            self._persist(self.ledger.record_claim, record)
        delivered = self.channel.broadcast(ClaimAccepted(record))
        logger.info(f"[claim] cell={record.coordinate.key} owner={identity.name} delivered={delivered}")
        return True

    def handle_rename_request(self, connection, new_name) -> bool:
        session = self._active_session(connection)
        if session is None:
            return False
        with session.requests:
            return self._rename(connection, session, new_name)

    def _rename(self, connection, session: Session, new_name) -> bool:
        identity = self.registry.get(session.identity_id)
        if identity is None:
            return False
        try:
            renamed, old_name = self.registry.rename(identity.id, new_name)
        except EmptyName:
            self.channel.send(connection, RenameRejected(EmptyName.reason))
            return False
        except UnknownIdentity:
            logger.warning(f"[rename-gone] id={identity.id}")
            return False

        self.grid.rename_owner(renamed.id, renamed.name)
        if self.ledger is not None:
            self._persist(self.ledger.rename_owner, renamed.id, renamed.name)
        self.channel.broadcast(IdentityRenamed(renamed.id, old_name, renamed.name, renamed.color))
        return True

    def resync(self, connection) -> bool:
        if self._active_identity(connection) is None:
            return False
        return self.channel.send(connection, GridSnapshot(self.grid.grid_size, self.grid.get_all()))

    # ---- pull queries ----

    def get_snapshot(self):
        return snapshot_payload(self.grid.grid_size, self.grid.get_all())

    def get_stats(self):
        return compute_stats(self.grid, self.registry, self.leaderboard_size)

    def _persist(self, write, *args) -> None:
        # The in-memory store is authoritative; ledger writes are best effort
        try:
            write(*args)
        except StorageFailure as exc:
            logger.warning(f"[ledger] {write.__name__} failed: {exc}")
