from datetime import datetime, time, timezone

from predictor import db

from .outcome import Outcome


class Fixture(db.Model):
    __tablename__ = "fixtures"

    id = db.Column(db.Integer, primary_key=True)

    # Match timing
    match_day = db.Column(db.Date, nullable=False)
    kickoff_time = db.Column(db.Time, nullable=False, default=time(15, 0))

    # Teams (fixed once the fixture is created)
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)

    # Result: H, D, A or NULL while unresolved
    outcome = db.Column(db.String(1), nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    predictions = db.relationship(
        "Prediction", backref="fixture", lazy="dynamic", cascade="all, delete-orphan"
    )
    awards = db.relationship(
        "Award", backref="fixture", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_fixture_match_day", "match_day"),
        db.CheckConstraint("home_team != away_team", name="different_teams"),
        db.CheckConstraint(
            "outcome IS NULL OR outcome IN ('H', 'D', 'A')", name="valid_outcome"
        ),
    )

    def __repr__(self):
        return f"<Fixture {self.home_team} vs {self.away_team} {self.match_day}>"

    @property
    def name(self):
        return f"{self.home_team} vs {self.away_team}"

    @property
    def result(self):
        """Outcome enum, or None while unresolved"""
        return Outcome(self.outcome) if self.outcome else None

    @property
    def is_resolved(self):
        return self.outcome is not None

    @property
    def kickoff_at(self):
        """Kickoff instant in UTC; predictions close at this moment"""
        # Lazy import to avoid circular imports
        from predictor.utils.timezone_utils import combine_kickoff

        return combine_kickoff(self.match_day, self.kickoff_time)

    def accepts_predictions(self, now):
        """True while ``now`` is strictly before kickoff"""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now < self.kickoff_at

    def get_prediction_counts(self):
        """Count predictions for each outcome"""
        from .prediction import Prediction

        counts = {code: 0 for code in Outcome.codes()}
        rows = (
            db.session.query(Prediction.predicted_outcome, db.func.count(Prediction.id))
            .filter(Prediction.fixture_id == self.id)
            .group_by(Prediction.predicted_outcome)
            .all()
        )
        for code, count in rows:
            counts[code] = count
        counts["total"] = sum(counts.values())
        return counts

    def to_dict(self, include_counts=False):
        """Convert fixture to dictionary for API responses"""
        from predictor.utils.timezone_utils import format_kickoff

        data = {
            "id": self.id,
            "match_day": self.match_day.isoformat() if self.match_day else None,
            "kickoff_time": (
                self.kickoff_time.strftime("%H:%M") if self.kickoff_time else None
            ),
            "kickoff_at": self.kickoff_at.isoformat(),
            "kickoff_display": format_kickoff(self.kickoff_at),
            "home_team": self.home_team,
            "away_team": self.away_team,
            "outcome": self.outcome,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

        if include_counts:
            data["prediction_counts"] = self.get_prediction_counts()

        return data
