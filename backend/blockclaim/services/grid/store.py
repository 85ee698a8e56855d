"""Authoritative claim storage for the grid.

The store is the only writer of claim records. Each cell has its own lock so
the check-and-set in ``try_claim`` is atomic per coordinate while claims on
unrelated cells proceed in parallel.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from .errors import AlreadyClaimed, InvalidCoordinate

logger = logging.getLogger(__name__)

DEFAULT_GRID_SIZE = 50


class Coordinate(NamedTuple):
    x: int
    y: int

    @property
    def key(self) -> str:
        """Wire key used in snapshot payloads, e.g. ``"3-4"``."""
        return f"{self.x}-{self.y}"


class GridStats(NamedTuple):
    total_cells: int
    total_claimed: int
    total_unclaimed: int


def iso_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass(frozen=True)
class ClaimRecord:
    coordinate: Coordinate
    owner_id: str
    owner_name: str
    owner_color: str
    claimed_at: datetime

    def to_dict(self):
        return {
            'owner': self.owner_id,
            'ownerName': self.owner_name,
            'ownerColor': self.owner_color,
            'claimedAt': iso_timestamp(self.claimed_at),
        }

    def owner_info(self):
        return {
            'id': self.owner_id,
            'name': self.owner_name,
            'color': self.owner_color,
            'claimedAt': iso_timestamp(self.claimed_at),
        }


class GridStore:
    """In-memory map from coordinate to claim record."""

    def __init__(self, grid_size: int = DEFAULT_GRID_SIZE):
        if grid_size <= 0:
            raise ValueError('grid_size must be positive')
        self.grid_size = grid_size
        self._claims: Dict[Coordinate, ClaimRecord] = {}
        self._cell_locks = [threading.Lock() for _ in range(grid_size * grid_size)]

    @property
    def total_cells(self) -> int:
        return self.grid_size * self.grid_size

    def contains(self, x, y) -> bool:
        return 0 <= x < self.grid_size and 0 <= y < self.grid_size

    def _validate(self, coordinate) -> Coordinate:
        x, y = coordinate
        if isinstance(x, bool) or isinstance(y, bool) or not isinstance(x, int) or not isinstance(y, int):
            raise InvalidCoordinate(x, y, self.grid_size)
        if not self.contains(x, y):
            raise InvalidCoordinate(x, y, self.grid_size)
        return Coordinate(x, y)

    def _lock_for(self, coordinate: Coordinate) -> threading.Lock:
        return self._cell_locks[coordinate.y * self.grid_size + coordinate.x]

    def try_claim(self, coordinate, owner_id: str, owner_name: str, owner_color: str) -> Tuple[ClaimRecord, bool]:
        """Claim ``coordinate`` for ``owner_id`` if nobody holds it yet.

        Returns ``(record, created)``. When ``created`` is False the cell was
        already taken and ``record`` is the winner's record.
        """
        coordinate = self._validate(coordinate)
        with self._lock_for(coordinate):
            existing = self._claims.get(coordinate)
            if existing is not None:
                return existing, False
            record = ClaimRecord(
                coordinate=coordinate,
                owner_id=owner_id,
                owner_name=owner_name,
                owner_color=owner_color,
                claimed_at=datetime.now(timezone.utc),
            )
            self._claims[coordinate] = record
        logger.debug(f"[claim] cell={coordinate.key} owner={owner_id}")
        return record, True

    def get(self, coordinate) -> Optional[ClaimRecord]:
        return self._claims.get(Coordinate(*coordinate))

    def get_all(self) -> List[ClaimRecord]:
        # dict.copy() does not yield to other threads, so this is one instant
        return list(self._claims.copy().values())

    def rename_owner(self, owner_id: str, new_name: str) -> int:
        updated = 0
        for coordinate, record in self._claims.copy().items():
            if record.owner_id != owner_id:
                continue
            with self._lock_for(coordinate):
                current = self._claims[coordinate]
                self._claims[coordinate] = replace(current, owner_name=new_name)
            updated += 1
        logger.info(f"[rename-owner] owner={owner_id} records={updated}")
        return updated

    def stats(self) -> GridStats:
        claimed = len(self._claims)
        return GridStats(self.total_cells, claimed, self.total_cells - claimed)

    def load(self, records: Iterable[ClaimRecord]) -> int:
        """Seed the store from persisted records.

        A record outside the grid, or for a cell that is already held, is
        logged and skipped; the remaining records still load. Returns the
        number of records loaded.
        """
        loaded = skipped = 0
        for record in records:
            try:
                self._load_one(record)
            except (InvalidCoordinate, AlreadyClaimed) as exc:
                skipped += 1
                logger.warning(f"[load] skipped owner={record.owner_id}: {exc}")
                continue
            loaded += 1
        logger.info(f"[load] loaded {loaded} claimed cells, skipped {skipped}")
        return loaded

    def _load_one(self, record: ClaimRecord) -> None:
        coordinate = self._validate(record.coordinate)
        with self._lock_for(coordinate):
            existing = self._claims.get(coordinate)
            if existing is not None:
                raise AlreadyClaimed(existing)
            self._claims[coordinate] = replace(record, coordinate=coordinate)
