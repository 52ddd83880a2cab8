from datetime import datetime, timezone

from predictor import db


class AdminAction(db.Model):
    __tablename__ = "admin_actions"

    id = db.Column(db.Integer, primary_key=True)

    admin_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False)
    target_player_id = db.Column(
        db.Integer, db.ForeignKey("players.id"), nullable=True
    )  # Player being acted upon

    # 'create_fixture', 'delete_fixture', 'set_outcome', 'clear_outcome',
    # 'score_fixture', 'score_outstanding', 'suspend_player', ...
    action_type = db.Column(db.String(50), nullable=False)
    action_description = db.Column(db.String(500), nullable=False)

    # Not a foreign key: the fixture may since have been deleted
    fixture_id = db.Column(db.Integer, nullable=True)

    action_metadata = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    admin = db.relationship("Player", foreign_keys=[admin_id])
    target_player = db.relationship("Player", foreign_keys=[target_player_id])

    __table_args__ = (
        db.Index("idx_admin_action_admin", "admin_id"),
        db.Index("idx_admin_action_type", "action_type"),
        db.Index("idx_admin_action_created", "created_at"),
    )

    def __repr__(self):
        return f'<AdminAction {self.action_type} by {self.admin.username if self.admin else "Unknown"}>'

    @staticmethod
    def log_action(
        admin_id,
        action_type,
        description,
        target_player_id=None,
        fixture_id=None,
        action_metadata=None,
    ):
        """Add an audit record to the session; the caller commits"""
        action = AdminAction(
            admin_id=admin_id,
            target_player_id=target_player_id,
            action_type=action_type,
            action_description=description,
            fixture_id=fixture_id,
            action_metadata=action_metadata or {},
        )

        db.session.add(action)
        return action

    @staticmethod
    def log_outcome_change(admin_id, fixture, previous_outcome):
        if fixture.outcome is None:
            action_type = "clear_outcome"
            description = f"Cleared result of {fixture.name} (was {previous_outcome})"
        else:
            action_type = "set_outcome"
            description = f"Set result of {fixture.name} to {fixture.outcome}"

        return AdminAction.log_action(
            admin_id=admin_id,
            action_type=action_type,
            description=description,
            fixture_id=fixture.id,
            action_metadata={
                "previous_outcome": previous_outcome,
                "outcome": fixture.outcome,
            },
        )

    @staticmethod
    def log_player_change(admin_id, player, action_type):
        descriptions = {
            "suspend_player": f"Suspended {player.username}",
            "unsuspend_player": f"Lifted suspension of {player.username}",
            "grant_admin": f"Granted admin rights to {player.username}",
            "revoke_admin": f"Removed admin rights from {player.username}",
            "edit_player": f"Edited profile of {player.username}",
        }

        return AdminAction.log_action(
            admin_id=admin_id,
            action_type=action_type,
            description=descriptions.get(action_type, action_type),
            target_player_id=player.id,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "admin": self.admin.username if self.admin else None,
            "target_player": self.target_player.username if self.target_player else None,
            "action_type": self.action_type,
            "action_description": self.action_description,
            "fixture_id": self.fixture_id,
            "action_metadata": self.action_metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
