import secrets
from datetime import datetime, timedelta, timezone

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from predictor import db


class Player(UserMixin, db.Model):
    __tablename__ = "players"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Profile information
    club_supported = db.Column(db.String(100))
    nationality = db.Column(db.String(100))

    # Account status
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    is_suspended = db.Column(db.Boolean, default=False, nullable=False)

    # Password reset
    reset_token = db.Column(db.String(100), unique=True, nullable=True)
    reset_token_expiry = db.Column(db.DateTime(timezone=True), nullable=True)

    joined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    last_login = db.Column(db.DateTime)

    predictions = db.relationship(
        "Prediction", backref="player", lazy="dynamic", cascade="all, delete-orphan"
    )
    awards = db.relationship(
        "Award", backref="player", lazy="dynamic", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Player {self.username}>"

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        return check_password_hash(self.password_hash, password)

    def generate_reset_token(self, hours=1):
        """Generate a password reset token"""
        self.reset_token = secrets.token_urlsafe(32)
        self.reset_token_expiry = datetime.now(timezone.utc) + timedelta(hours=hours)
        return self.reset_token

    @staticmethod
    def verify_reset_token(token):
        """Verify reset token and return player if valid"""
        player = Player.query.filter_by(reset_token=token).first()
        if player and player.reset_token_expiry:
            expiry = player.reset_token_expiry
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)

            if expiry > datetime.now(timezone.utc):
                return player
        return None

    def clear_reset_token(self):
        self.reset_token = None
        self.reset_token_expiry = None

    def update_last_login(self):
        self.last_login = datetime.now(timezone.utc)
        db.session.commit()

    def get_stats(self):
        """Points and accuracy for this player

        Correct predictions are awards worth the full 3 points. Accuracy is
        measured against every prediction made, scored or not.
        """
        from .award import Award
        from .prediction import Prediction
        from predictor.utils.scoring import POINTS_CORRECT

        total_points = (
            db.session.query(db.func.coalesce(db.func.sum(Award.points_earned), 0))
            .filter(Award.player_id == self.id)
            .scalar()
        )
        total_predictions = Prediction.query.filter_by(player_id=self.id).count()
        correct_predictions = Award.query.filter_by(
            player_id=self.id, points_earned=POINTS_CORRECT
        ).count()

        accuracy = (
            round(correct_predictions / total_predictions * 100)
            if total_predictions
            else 0
        )

        return {
            "total_points": int(total_points),
            "total_predictions": total_predictions,
            "correct_predictions": correct_predictions,
            "accuracy": accuracy,
        }

    @staticmethod
    def get_leaderboard(limit=None):
        """Every player ranked by total points

        Ties on points are ordered by username so positions are stable.
        """
        from .award import Award
        from predictor.utils.scoring import POINTS_CORRECT

        total_points = db.func.coalesce(db.func.sum(Award.points_earned), 0)
        correct = db.func.coalesce(
            db.func.sum(
                db.case((Award.points_earned == POINTS_CORRECT, 1), else_=0)
            ),
            0,
        )

        rows = (
            db.session.query(Player, total_points, correct)
            .outerjoin(Award, Award.player_id == Player.id)
            .group_by(Player.id)
            .all()
        )

        leaderboard = [
            {
                "player_id": player.id,
                "username": player.username,
                "club_supported": player.club_supported,
                "total_points": int(points),
                "correct_predictions": int(correct_count),
            }
            for player, points, correct_count in rows
        ]

        leaderboard.sort(key=lambda x: (-x["total_points"], x["username"]))

        for position, entry in enumerate(leaderboard, start=1):
            entry["position"] = position

        if limit is not None:
            leaderboard = leaderboard[:limit]

        return leaderboard

    def to_dict(self, include_private=False):
        """Convert player to dictionary for API responses"""
        data = {
            "id": self.id,
            "username": self.username,
            "club_supported": self.club_supported,
            "nationality": self.nationality,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
        if include_private:
            data.update(
                {
                    "email": self.email,
                    "is_admin": self.is_admin,
                    "is_suspended": self.is_suspended,
                }
            )
        return data
