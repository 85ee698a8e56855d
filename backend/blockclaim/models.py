from datetime import timezone

from blockclaim import db
from blockclaim.services.grid.store import ClaimRecord, Coordinate


class Claim(db.Model):
    __tablename__ = 'claim'
    __table_args__ = (db.UniqueConstraint('x', 'y', name='uq_claim_x_y'),)

    id = db.Column(db.Integer, primary_key=True)
    x = db.Column(db.Integer, nullable=False)
    y = db.Column(db.Integer, nullable=False)
    owner_id = db.Column(db.String(64), nullable=False, index=True)
    owner_name = db.Column(db.String(64), nullable=False)
    owner_color = db.Column(db.String(32), nullable=False)
    claimed_at = db.Column(db.DateTime(timezone=True), nullable=False)

    @classmethod
    def from_record(cls, record: ClaimRecord) -> 'Claim':
        return cls(
            x=record.coordinate.x,
            y=record.coordinate.y,
            owner_id=record.owner_id,
            owner_name=record.owner_name,
            owner_color=record.owner_color,
            claimed_at=record.claimed_at,
        )

    def to_record(self) -> ClaimRecord:
        claimed_at = self.claimed_at
        # SQLite hands back naive datetimes
        if claimed_at.tzinfo is None:
            claimed_at = claimed_at.replace(tzinfo=timezone.utc)
        return ClaimRecord(
            coordinate=Coordinate(self.x, self.y),
            owner_id=self.owner_id,
            owner_name=self.owner_name,
            owner_color=self.owner_color,
            claimed_at=claimed_at,
        )

