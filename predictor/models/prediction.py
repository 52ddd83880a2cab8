from datetime import datetime, timezone

from predictor import db
from predictor.utils.timezone_utils import as_utc


class Prediction(db.Model):
    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False)
    fixture_id = db.Column(db.Integer, db.ForeignKey("fixtures.id"), nullable=False)

    # H, D or A
    predicted_outcome = db.Column(db.String(1), nullable=False)

    # Refreshed on every accepted resubmission
    submitted_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        db.UniqueConstraint("player_id", "fixture_id", name="unique_player_fixture_prediction"),
        db.Index("idx_prediction_fixture", "fixture_id"),
        db.CheckConstraint(
            "predicted_outcome IN ('H', 'D', 'A')", name="valid_predicted_outcome"
        ),
    )

    def __repr__(self):
        return f"<Prediction player_id={self.player_id} fixture_id={self.fixture_id} outcome={self.predicted_outcome}>"

    @property
    def is_correct(self):
        """None until the fixture has a result"""
        if not self.fixture or not self.fixture.is_resolved:
            return None
        return self.predicted_outcome == self.fixture.outcome

    def to_dict(self, include_fixture=False):
        data = {
            "id": self.id,
            "player_id": self.player_id,
            "fixture_id": self.fixture_id,
            "predicted_outcome": self.predicted_outcome,
            "submitted_at": as_utc(self.submitted_at).isoformat() if self.submitted_at else None,
        }
        if include_fixture:
            data["fixture"] = self.fixture.to_dict() if self.fixture else None
        return data
