"""Grid domain services: claim arbitration, identities, stats and fan-out.

This package contains the transport-agnostic core of the game. Socket.IO
handlers and HTTP routes import it, keeping transport concerns separated
from the claim mechanics.
"""

from .store import ClaimRecord, Coordinate, GridStats, GridStore
from .identities import Identity, IdentityRegistry
from .stats import compute_stats
from .broadcast import BroadcastChannel
from .gateway import Connection, SessionGateway, SessionState

__all__ = [
    'BroadcastChannel',
    'ClaimRecord',
    'Connection',
    'Coordinate',
    'GridStats',
    'GridStore',
    'Identity',
    'IdentityRegistry',
    'SessionGateway',
    'SessionState',
    'compute_stats',
]
