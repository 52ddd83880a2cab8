from datetime import datetime, timezone

from predictor import db


class Award(db.Model):
    """Points granted to a player for one fixture. Written once, never updated."""

    __tablename__ = "points"

    id = db.Column(db.Integer, primary_key=True)

    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False)
    fixture_id = db.Column(db.Integer, db.ForeignKey("fixtures.id"), nullable=False)

    points_earned = db.Column(db.Integer, nullable=False, default=0)
    awarded_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        db.UniqueConstraint("player_id", "fixture_id", name="unique_player_fixture_award"),
        db.Index("idx_award_fixture", "fixture_id"),
        db.CheckConstraint("points_earned >= 0", name="non_negative_points"),
    )

    def __repr__(self):
        return f"<Award player_id={self.player_id} fixture_id={self.fixture_id} points={self.points_earned}>"

    def to_dict(self):
        return {
            "id": self.id,
            "player_id": self.player_id,
            "fixture_id": self.fixture_id,
            "points_earned": self.points_earned,
            "awarded_at": self.awarded_at.isoformat() if self.awarded_at else None,
        }
