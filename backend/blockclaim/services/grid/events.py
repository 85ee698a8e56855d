"""Outbound events the core emits for the transport to deliver.

``EventKind`` is the closed set of event names. Every kind has exactly one
event class and one encoder; ``encode`` refuses anything else.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .store import ClaimRecord, iso_timestamp


class EventKind(str, Enum):
    IDENTITY_ASSIGNED = 'identity-assigned'
    GRID_SNAPSHOT = 'grid-snapshot'
    CLAIM_ACCEPTED = 'claim-accepted'
    CLAIM_REJECTED = 'claim-rejected'
    IDENTITY_JOINED = 'identity-joined'
    IDENTITY_LEFT = 'identity-left'
    IDENTITY_RENAMED = 'identity-renamed'
    RENAME_REJECTED = 'rename-rejected'


@dataclass(frozen=True)
class IdentityAssigned:
    identity: Dict
    kind = EventKind.IDENTITY_ASSIGNED


@dataclass(frozen=True)
class GridSnapshot:
    grid_size: int
    claims: List[ClaimRecord]
    kind = EventKind.GRID_SNAPSHOT


@dataclass(frozen=True)
class ClaimAccepted:
    record: ClaimRecord
    kind = EventKind.CLAIM_ACCEPTED


@dataclass(frozen=True)
class ClaimRejected:
    x: object
    y: object
    reason: str
    current_owner: Optional[ClaimRecord] = None
    kind = EventKind.CLAIM_REJECTED


@dataclass(frozen=True)
class IdentityJoined:
    id: str
    name: str
    color: str
    connected_count: int
    kind = EventKind.IDENTITY_JOINED


@dataclass(frozen=True)
class IdentityLeft:
    id: str
    name: str
    connected_count: int
    kind = EventKind.IDENTITY_LEFT


@dataclass(frozen=True)
class IdentityRenamed:
    id: str
    old_name: str
    new_name: str
    color: str
    kind = EventKind.IDENTITY_RENAMED


@dataclass(frozen=True)
class RenameRejected:
    reason: str
    kind = EventKind.RENAME_REJECTED


def snapshot_payload(grid_size: int, claims: List[ClaimRecord]) -> Dict:
    return {
        'gridSize': grid_size,
        'claims': {record.coordinate.key: record.to_dict() for record in claims},
    }


def _claim_rejected(event: ClaimRejected) -> Dict:
    payload = {'x': event.x, 'y': event.y, 'reason': event.reason}
    if event.current_owner is not None:
        payload['currentOwner'] = event.current_owner.owner_info()
    return payload


def _claim_accepted(event: ClaimAccepted) -> Dict:
    record = event.record
    return {
        'x': record.coordinate.x,
        'y': record.coordinate.y,
        'owner': record.owner_id,
        'ownerName': record.owner_name,
        'ownerColor': record.owner_color,
        'claimedAt': iso_timestamp(record.claimed_at),
    }


_ENCODERS = {
    EventKind.IDENTITY_ASSIGNED: lambda e: dict(e.identity),
    EventKind.GRID_SNAPSHOT: lambda e: snapshot_payload(e.grid_size, e.claims),
    EventKind.CLAIM_ACCEPTED: _claim_accepted,
    EventKind.CLAIM_REJECTED: _claim_rejected,
    EventKind.IDENTITY_JOINED: lambda e: {
        'id': e.id, 'name': e.name, 'color': e.color, 'connectedCount': e.connected_count,
    },
    EventKind.IDENTITY_LEFT: lambda e: {
        'id': e.id, 'name': e.name, 'connectedCount': e.connected_count,
    },
    EventKind.IDENTITY_RENAMED: lambda e: {
        'id': e.id, 'oldName': e.old_name, 'newName': e.new_name, 'color': e.color,
    },
    EventKind.RENAME_REJECTED: lambda e: {'reason': e.reason},
}


def encode(event):
    """Return ``(event_name, payload)`` ready for the transport."""
    kind = getattr(event, 'kind', None)
    if not isinstance(kind, EventKind):
        raise TypeError(f"not an outbound event: {event!r}")
    return kind.value, _ENCODERS[kind](event)
