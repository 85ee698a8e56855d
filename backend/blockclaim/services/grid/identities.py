import logging
import random
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .errors import EmptyName, UnknownIdentity
from .store import iso_timestamp

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 20
NAME_ATTEMPTS = 10

ADJECTIVES = [
    'Swift', 'Clever', 'Brave', 'Bright', 'Quick', 'Smart', 'Bold', 'Cool',
    'Epic', 'Fire', 'Mega', 'Super', 'Ultra', 'Hyper', 'Turbo', 'Ninja',
    'Cosmic', 'Stellar', 'Mystic', 'Phoenix', 'Dragon', 'Thunder', 'Lightning',
    'Frost', 'Blaze', 'Storm', 'Crystal', 'Golden', 'Silver', 'Royal',
]

NOUNS = [
    'Player', 'Gamer', 'Hero', 'Champion', 'Master', 'Wizard', 'Knight', 'Warrior',
    'Explorer', 'Hunter', 'Seeker', 'Raider', 'Guardian', 'Defender', 'Conqueror',
    'Pioneer', 'Voyager', 'Ranger', 'Scout', 'Captain', 'Commander', 'Admiral',
    'Fox', 'Wolf', 'Eagle', 'Hawk', 'Tiger', 'Lion', 'Bear', 'Shark',
]

# Visually distinct on both light and dark backgrounds
PALETTE = [
    '#FF6B6B', '#4ECDC4', '#45B7D1', '#96CEB4', '#FFEAA7', '#DDA0DD',
    '#98D8C8', '#F7DC6F', '#BB8FCE', '#85C1E9', '#F8C471', '#82E0AA',
    '#F1948A', '#85929E', '#D7BDE2', '#A9DFBF', '#F9E79F', '#D5A6BD',
    '#A3E4D7', '#FADBD8', '#E8DAEF', '#D6EAF8', '#FCF3CF', '#EBDEF0',
    '#D1F2EB', '#FDF2E9', '#EAEDED', '#FEF9E7', '#F4F6F6', '#1B2631',
]


@dataclass
class Identity:
    id: str
    name: str
    color: str
    connection: Any = field(repr=False, compare=False)
    claim_count: int = 0
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def to_public(self):
        return {'id': self.id, 'name': self.name, 'color': self.color}

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'blocksOwned': self.claim_count,
            'joinedAt': iso_timestamp(self.joined_at),
        }


class IdentityRegistry:
    """Live set of connected identities, keyed by connection and by id."""

    def __init__(self, palette: Optional[List[str]] = None, max_name_length: int = MAX_NAME_LENGTH,
                 rng: Optional[random.Random] = None):
        self.palette = list(palette if palette is not None else PALETTE)
        self.max_name_length = max_name_length
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._by_connection: Dict[Any, Identity] = {}
        self._by_id: Dict[str, Identity] = {}
        self._used_colors: Dict[str, int] = {}
        self._issued_ids = set()

    def register(self, connection) -> Identity:
        with self._lock:
            identity = Identity(
                id=self._new_id(),
                name=self._pick_name(),
                color=self._pick_color(),
                connection=connection,
            )
            self._by_connection[connection] = identity
            self._by_id[identity.id] = identity
            self._used_colors[identity.color] = self._used_colors.get(identity.color, 0) + 1
        logger.info(f"[register] id={identity.id} name={identity.name} color={identity.color}")
        return identity

    def unregister(self, connection) -> Optional[Identity]:
        with self._lock:
            identity = self._by_connection.pop(connection, None)
            if identity is None:
                return None
            self._by_id.pop(identity.id, None)
            remaining = self._used_colors.get(identity.color, 0) - 1
            if remaining > 0:
                self._used_colors[identity.color] = remaining
            else:
                self._used_colors.pop(identity.color, None)
        logger.info(f"[unregister] id={identity.id} name={identity.name}")
        return identity

    def rename(self, identity_id: str, new_name) -> Tuple[Identity, str]:
        """Rename a connected identity.

        Returns a snapshot of the renamed identity together with the old name.
        Raises ``EmptyName`` when nothing is left after trimming.
        """
        if not isinstance(new_name, str):
            raise EmptyName('name must be a string')
        cleaned = new_name.strip()[:self.max_name_length].strip()
        if not cleaned:
            raise EmptyName('name is empty')
        identity = self._by_id.get(identity_id)
        if identity is None:
            raise UnknownIdentity(identity_id)
        with identity._lock:
            old_name = identity.name
            identity.name = cleaned
            renamed = replace(identity)
        logger.info(f"[rename] id={identity_id} {old_name!r} -> {cleaned!r}")
        return renamed, old_name

    def increment_claim_count(self, identity_id: str) -> None:
        identity = self._by_id.get(identity_id)
        if identity is None:
            return
        with identity._lock:
            identity.claim_count += 1

    def get(self, identity_id: str) -> Optional[Identity]:
        return self._by_id.get(identity_id)

    def get_by_connection(self, connection) -> Optional[Identity]:
        return self._by_connection.get(connection)

    def list(self) -> List[Identity]:
        with self._lock:
            identities = list(self._by_id.values())
        return [replace(i) for i in identities]

    def count(self) -> int:
        return len(self._by_id)

    # ---- assignment policy helpers (called with the membership lock held) ----

    def _new_id(self) -> str:
        while True:
            candidate = uuid.uuid4().hex
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate

    def _pick_name(self) -> str:
        in_use = {i.name for i in self._by_id.values()}
        name = ''
        for _ in range(NAME_ATTEMPTS):
            name = f"{self._rng.choice(ADJECTIVES)}{self._rng.choice(NOUNS)}{self._rng.randint(1, 999)}"
            if name not in in_use:
                break
        return name

    def _pick_color(self) -> str:
        available = [c for c in self.palette if c not in self._used_colors]
        if available:
            return self._rng.choice(available)
        return self._random_color()

    def _random_color(self) -> str:
        hue = self._rng.randint(0, 359)
        saturation = 70 + self._rng.randint(0, 29)
        lightness = 45 + self._rng.randint(0, 24)
        return f"hsl({hue}, {saturation}%, {lightness}%)"
