"""Optional SQL persistence for claim records.

The in-memory ``GridStore`` stays authoritative. The ledger mirrors accepted
claims and renames into the ``claim`` table so a restart can reload them.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from blockclaim.models import Claim
from .errors import StorageFailure
from .store import GridStore

logger = logging.getLogger(__name__)


class ClaimLedger:
    def __init__(self, db, app):
        self.db = db
        self.app = app

    def record_claim(self, record) -> None:
        with self.app.app_context():
            try:
                self.db.session.add(Claim.from_record(record))
                self.db.session.commit()
            except SQLAlchemyError as exc:
                self.db.session.rollback()
                raise StorageFailure(f"could not persist claim {record.coordinate.key}") from exc

    def rename_owner(self, owner_id: str, new_name: str) -> int:
        with self.app.app_context():
            try:
                updated = Claim.query.filter_by(owner_id=owner_id).update({'owner_name': new_name})
                self.db.session.commit()
            except SQLAlchemyError as exc:
                self.db.session.rollback()
                raise StorageFailure(f"could not rename claims of {owner_id}") from exc
        return updated

    def load_records(self):
        with self.app.app_context():
            try:
                rows = Claim.query.order_by(Claim.claimed_at, Claim.id).all()
            except SQLAlchemyError as exc:
                self.db.session.rollback()
                raise StorageFailure('could not read claims') from exc
            return [row.to_record() for row in rows]

    def load_into(self, grid: GridStore) -> int:
        loaded = grid.load(self.load_records())
        logger.info(f"[ledger] restored {loaded} claims")
        return loaded

    def reset(self) -> None:
        """Drop and recreate the claim table."""
        with self.app.app_context():
            Claim.__table__.drop(self.db.engine, checkfirst=True)
            Claim.__table__.create(self.db.engine)
