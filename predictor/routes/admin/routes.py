import logging
from functools import wraps

from flask import jsonify, request
from flask_login import current_user, login_required

from predictor import db
from predictor.forms.auth import ProfileForm, sanitize_input
from predictor.forms.fixtures import FixtureForm
from predictor.models import AdminAction, Player
from predictor.routes import validation_error
from predictor.routes.admin import bp
from predictor.services.gateway import FixtureStore, PersistenceGateway
from predictor.services.prediction_engine import PredictionEngine
from predictor.utils.cache_utils import invalidate_model_cache

logger = logging.getLogger(__name__)


def admin_required(f):
    """Require a logged-in site administrator"""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        if not current_user.is_admin:
            return jsonify({"error": "Access denied. Admin privileges required."}), 403
        return f(*args, **kwargs)

    return decorated


# Fixtures


@bp.route("/fixtures")
@admin_required
def list_fixtures():
    resolved = request.args.get("resolved")
    if resolved is not None:
        resolved = resolved.lower() in ("1", "true", "yes")

    fixtures = FixtureStore().list_fixtures(
        resolved=resolved,
        has_unscored_predictions=request.args.get("unscored") in ("1", "true", "yes"),
    )
    return jsonify({"fixtures": [fixture.to_dict(include_counts=True) for fixture in fixtures]})


@bp.route("/fixtures", methods=["POST"])
@admin_required
def create_fixture():
    form = FixtureForm()
    if not form.validate_on_submit():
        return validation_error(form)

    store = FixtureStore()
    fixture = store.create_fixture(
        match_day=form.match_day.data,
        home_team=sanitize_input(form.home_team.data),
        away_team=sanitize_input(form.away_team.data),
        kickoff_time=form.kickoff_time.data or None,
    )
    AdminAction.log_action(
        admin_id=current_user.id,
        action_type="create_fixture",
        description=f"Created fixture {fixture.name}",
        fixture_id=fixture.id,
    )
    db.session.commit()

    logger.info(f"Fixture {fixture.name} created by {current_user.username}")
    return jsonify({"message": "Fixture created", "fixture": fixture.to_dict()}), 201


@bp.route("/fixtures/<int:fixture_id>", methods=["DELETE"])
@admin_required
def delete_fixture(fixture_id):
    store = FixtureStore()
    fixture = store.get_fixture(fixture_id)
    name = fixture.name

    store.delete_fixture(fixture.id)
    AdminAction.log_action(
        admin_id=current_user.id,
        action_type="delete_fixture",
        description=f"Deleted fixture {name}",
        fixture_id=fixture_id,
    )
    db.session.commit()
    invalidate_model_cache("leaderboard")

    logger.info(f"Fixture {name} deleted by {current_user.username}")
    return jsonify({"message": f"Fixture {name} deleted"})


@bp.route("/fixtures/<int:fixture_id>/outcome", methods=["PUT"])
@admin_required
def set_outcome(fixture_id):
    """Set the result with {"outcome": "H"|"D"|"A"}, or clear it with null"""
    data = request.get_json(silent=True) or {}
    if "outcome" not in data:
        return jsonify({"error": "Outcome is required"}), 400

    fixture = PredictionEngine().set_outcome(
        fixture_id, data["outcome"], admin_id=current_user.id
    )
    invalidate_model_cache("leaderboard")
    message = "Result cleared" if fixture.outcome is None else f"Result set to {fixture.result.label}"
    return jsonify({"message": message, "fixture": fixture.to_dict()})


@bp.route("/fixtures/<int:fixture_id>/points")
@admin_required
def fixture_points(fixture_id):
    engine = PredictionEngine()
    fixture = engine.fixtures.get_fixture(fixture_id)
    return jsonify(
        {
            "fixture": fixture.to_dict(include_counts=True),
            "predictions": engine.fixture_predictions(fixture.id),
        }
    )


@bp.route("/fixtures/<int:fixture_id>/score", methods=["POST"])
@admin_required
def score_fixture(fixture_id):
    result = PredictionEngine().score_fixture(fixture_id, admin_id=current_user.id)
    invalidate_model_cache("leaderboard")

    return jsonify(
        {
            "message": f"Points assigned to {result.awarded} predictions",
            "result": result.to_dict(),
        }
    )


@bp.route("/score-outstanding", methods=["POST"])
@admin_required
def score_outstanding():
    report = PredictionEngine().score_outstanding(admin_id=current_user.id)
    invalidate_model_cache("leaderboard")

    status = 200 if report.ok else 207
    return jsonify(report.to_dict()), status


@bp.route("/submissions")
@admin_required
def submissions():
    fixture_id = request.args.get("fixture_id", type=int)
    search = request.args.get("q", "").strip() or None

    rows = PredictionEngine().submissions(fixture_id=fixture_id, search=search)
    return jsonify({"submissions": rows, "count": len(rows)})


# Players


def _get_player(player_id):
    return PersistenceGateway().get_player(player_id)


@bp.route("/players")
@admin_required
def list_players():
    search = request.args.get("q", "").strip()
    query = Player.query
    if search:
        query = query.filter(
            db.or_(Player.username.ilike(f"%{search}%"), Player.email.ilike(f"%{search}%"))
        )

    players = query.order_by(Player.username).all()
    return jsonify({"players": [player.to_dict(include_private=True) for player in players]})


@bp.route("/players/<int:player_id>", methods=["PUT"])
@admin_required
def edit_player(player_id):
    player = _get_player(player_id)

    form = ProfileForm(original_username=player.username)
    if not form.validate_on_submit():
        return validation_error(form)

    player.username = form.username.data
    player.club_supported = sanitize_input(form.club_supported.data)
    player.nationality = sanitize_input(form.nationality.data)
    AdminAction.log_player_change(current_user.id, player, "edit_player")
    db.session.commit()
    invalidate_model_cache("leaderboard")

    return jsonify({"message": "Player updated", "player": player.to_dict(include_private=True)})


@bp.route("/players/<int:player_id>/toggle-suspension", methods=["POST"])
@admin_required
def toggle_suspension(player_id):
    player = _get_player(player_id)
    if player.id == current_user.id:
        return jsonify({"error": "You cannot suspend yourself"}), 400

    player.is_suspended = not player.is_suspended
    action_type = "suspend_player" if player.is_suspended else "unsuspend_player"
    AdminAction.log_player_change(current_user.id, player, action_type)
    db.session.commit()

    logger.info(f"{current_user.username} {action_type.replace('_', ' ')} {player.username}")
    return jsonify(
        {
            "message": f"{player.username} is now {'suspended' if player.is_suspended else 'active'}",
            "player": player.to_dict(include_private=True),
        }
    )


@bp.route("/players/<int:player_id>/toggle-admin", methods=["POST"])
@admin_required
def toggle_admin(player_id):
    player = _get_player(player_id)
    if player.id == current_user.id:
        return jsonify({"error": "You cannot change your own admin rights"}), 400

    player.is_admin = not player.is_admin
    action_type = "grant_admin" if player.is_admin else "revoke_admin"
    AdminAction.log_player_change(current_user.id, player, action_type)
    db.session.commit()

    logger.info(f"{current_user.username} {action_type.replace('_', ' ')} {player.username}")
    return jsonify({"message": "Admin rights updated", "player": player.to_dict(include_private=True)})


@bp.route("/actions")
@admin_required
def admin_actions():
    limit = request.args.get("limit", 50, type=int)
    actions = AdminAction.query.order_by(AdminAction.created_at.desc(), AdminAction.id.desc()).limit(limit).all()
    return jsonify({"actions": [action.to_dict() for action in actions]})
