import logging

from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from predictor import db
from predictor.models import Prediction
from predictor.routes.main import bp
from predictor.services.gateway import FixtureStore
from predictor.services.prediction_engine import PredictionEngine
from predictor.utils.cache_utils import get_cached_leaderboard
from predictor.utils.timezone_utils import get_app_today, get_utc_time

logger = logging.getLogger(__name__)


def _fixture_entries(fixtures, player_id, now):
    """Serialize fixtures with the player's prediction for each"""
    predictions = {}
    if fixtures:
        rows = Prediction.query.filter(
            Prediction.player_id == player_id,
            Prediction.fixture_id.in_([fixture.id for fixture in fixtures]),
        ).all()
        predictions = {prediction.fixture_id: prediction.predicted_outcome for prediction in rows}

    entries = []
    for fixture in fixtures:
        entry = fixture.to_dict()
        entry["my_prediction"] = predictions.get(fixture.id)
        entry["accepts_predictions"] = fixture.accepts_predictions(now)
        entries.append(entry)
    return entries


@bp.route("/health")
def health():
    try:
        db.session.execute(db.text("SELECT 1"))
        return jsonify({"status": "healthy"})
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return jsonify({"status": "unhealthy"}), 503


@bp.route("/fixtures")
@login_required
def fixtures():
    """Upcoming fixtures from today, plus the most recent past ones"""
    store = FixtureStore()
    today = get_app_today()
    now = get_utc_time()

    upcoming = store.list_fixtures(on_or_after=today)
    past = store.list_fixtures(
        before=today,
        descending=True,
        limit=current_app.config.get("PAST_FIXTURES_LIMIT", 10),
    )

    return jsonify(
        {
            "upcoming": _fixture_entries(upcoming, current_user.id, now),
            "past": _fixture_entries(past, current_user.id, now),
        }
    )


@bp.route("/fixtures/<int:fixture_id>")
@login_required
def fixture_detail(fixture_id):
    engine = PredictionEngine()
    fixture = engine.fixtures.get_fixture(fixture_id)
    entry = _fixture_entries([fixture], current_user.id, engine.now())[0]
    entry["prediction_counts"] = fixture.get_prediction_counts()
    entry["state"] = engine.pair_state(current_user.id, fixture.id).value
    return jsonify(entry)


@bp.route("/fixtures/<int:fixture_id>/prediction", methods=["POST", "PUT"])
@login_required
def submit_prediction(fixture_id):
    """Create or change the current player's prediction"""
    data = request.get_json(silent=True) or {}

    engine = PredictionEngine()
    prediction = engine.submit_prediction(current_user.id, fixture_id, data.get("outcome"))

    return jsonify(
        {
            "message": "Prediction saved",
            "prediction": prediction.to_dict(),
        }
    )


@bp.route("/predictions")
@login_required
def my_predictions():
    engine = PredictionEngine()
    predictions = engine.player_predictions(current_user.id)
    stats = current_user.get_stats()

    return jsonify(
        {
            "predictions": predictions,
            "stats": {
                "total": len(predictions),
                "correct": sum(1 for p in predictions if p["is_correct"]),
                "points": stats["total_points"],
            },
        }
    )


@bp.route("/leaderboard")
def leaderboard():
    limit = request.args.get("limit", type=int)
    return jsonify(
        {
            "leaderboard": get_cached_leaderboard(limit=limit),
            "current_player_id": current_user.id if current_user.is_authenticated else None,
        }
    )


@bp.route("/dashboard")
@login_required
def dashboard():
    preview_size = current_app.config.get("LEADERBOARD_PREVIEW_SIZE", 5)
    upcoming = FixtureStore().list_fixtures(on_or_after=get_app_today(), limit=preview_size)

    return jsonify(
        {
            "player": current_user.to_dict(include_private=True),
            "stats": current_user.get_stats(),
            "leaderboard_preview": get_cached_leaderboard(limit=preview_size),
            "upcoming_fixtures": _fixture_entries(upcoming, current_user.id, get_utc_time()),
        }
    )
