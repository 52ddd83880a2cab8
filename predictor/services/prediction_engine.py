"""
Prediction & Scoring Engine

Owns the rules of the game:
- a prediction can be created or replaced strictly before kickoff, by a
  player who is not suspended, and there is at most one per (player, fixture)
- a fixture result is set or cleared by an administrator and never scores
  anything on its own
- scoring writes one award per (player, fixture), worth 3 points for a
  correct outcome and 0 otherwise, and never rewrites an existing award

Every operation takes the acting player's id explicitly and ends its own
unit of work (commit on success, rollback on any failure).
"""

import enum
import logging
from dataclasses import dataclass, field

from predictor import db
from predictor.errors import (
    ConstraintViolation,
    DeadlinePassed,
    FixtureUnresolved,
    SuspendedPlayer,
)
from predictor.models import AdminAction, Fixture, Outcome, Player, Prediction
from predictor.services.gateway import FixtureStore, PersistenceGateway
from predictor.utils.scoring import POINTS_CORRECT, calculate_points
from predictor.utils.timezone_utils import as_utc, get_utc_time

logger = logging.getLogger(__name__)


class PairState(enum.Enum):
    """Where a (player, fixture) pair stands relative to scoring"""

    NO_PREDICTION = "no_prediction"
    PREDICTED_PENDING = "predicted_pending"
    PREDICTED_RESOLVED = "predicted_resolved"
    SCORED = "scored"
    UNSCORED = "unscored"


@dataclass
class ScoringResult:
    fixture_id: int
    awarded: int = 0
    already_scored: int = 0
    correct: int = 0
    points_awarded: int = 0

    def to_dict(self):
        return {
            "fixture_id": self.fixture_id,
            "awarded": self.awarded,
            "already_scored": self.already_scored,
            "correct": self.correct,
            "points_awarded": self.points_awarded,
        }


@dataclass
class ScoringReport:
    """Outcome of a bulk scoring run; per-fixture problems never abort it"""

    results: list = field(default_factory=list)
    skipped: dict = field(default_factory=dict)
    failed: dict = field(default_factory=dict)

    @property
    def awarded_total(self):
        return sum(result.awarded for result in self.results)

    @property
    def scored_fixture_ids(self):
        return [result.fixture_id for result in self.results]

    @property
    def ok(self):
        return not self.failed

    def to_dict(self):
        return {
            "ok": self.ok,
            "awarded_total": self.awarded_total,
            "results": [result.to_dict() for result in self.results],
            "skipped": {
                str(fixture_id): error.to_dict() for fixture_id, error in self.skipped.items()
            },
            "failed": {
                str(fixture_id): str(error) for fixture_id, error in self.failed.items()
            },
        }


class PredictionEngine:
    """Prediction lifecycle and award assignment"""

    def __init__(self, fixtures=None, gateway=None, clock=None):
        self.fixtures = fixtures or FixtureStore()
        self.gateway = gateway or PersistenceGateway()
        self.clock = clock or get_utc_time

    def now(self):
        return as_utc(self.clock())

    # Predictions

    def submit_prediction(self, player_id, fixture_id, outcome):
        """Create or replace the player's prediction for a fixture

        Raises:
            NotFound: unknown player or fixture
            SuspendedPlayer: the player is suspended
            InvalidOutcome: outcome is not H, D or A
            DeadlinePassed: kickoff has been reached
        """
        player = self.gateway.get_player(player_id)
        if player.is_suspended:
            logger.info(f"Rejected prediction from suspended player {player.username}")
            raise SuspendedPlayer(player_id=player_id)

        outcome = Outcome.parse(outcome)
        fixture = self.fixtures.get_fixture(fixture_id)

        now = self.now()
        if not fixture.accepts_predictions(now):
            logger.info(
                f"Late prediction from {player.username} for {fixture.name} "
                f"at {now.isoformat()} (kickoff {fixture.kickoff_at.isoformat()})"
            )
            raise DeadlinePassed(
                f"Predictions for {fixture.name} closed at kickoff",
                fixture_id=fixture.id,
            )

        try:
            prediction = self._save_prediction(player.id, fixture.id, outcome, now)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.debug(
            f"Prediction saved: {player.username} {outcome.value} for {fixture.name}"
        )
        return prediction

    def _save_prediction(self, player_id, fixture_id, outcome, now):
        pair = {"player_id": player_id, "fixture_id": fixture_id}

        if not self.gateway.find("predictions", **pair):
            try:
                return self.gateway.insert(
                    "predictions",
                    predicted_outcome=outcome.value,
                    submitted_at=now,
                    **pair,
                )
            except ConstraintViolation:
                # Another request created the row first; replace its choice
                logger.info(
                    f"Concurrent first prediction for player {player_id} "
                    f"fixture {fixture_id}, updating instead"
                )

        self.gateway.update(
            "predictions", pair, {"predicted_outcome": outcome.value, "submitted_at": now}
        )
        return self.gateway.find("predictions", **pair)[0]

    # Results

    def set_outcome(self, fixture_id, outcome, admin_id=None):
        """Set a fixture result, or clear it when ``outcome`` is None

        Existing awards are left untouched in both cases.
        """
        if outcome is not None:
            outcome = Outcome.parse(outcome)

        fixture = self.fixtures.get_fixture(fixture_id)
        previous = fixture.outcome

        try:
            self.fixtures.set_outcome(fixture.id, outcome)

            if previous is not None and fixture.outcome != previous:
                stale = fixture.awards.count()
                if stale:
                    logger.warning(
                        f"Result of {fixture.name} changed from {previous} to "
                        f"{fixture.outcome}; {stale} existing awards were kept"
                    )

            if admin_id is not None:
                AdminAction.log_outcome_change(admin_id, fixture, previous)

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Result of {fixture.name} set to {fixture.outcome}")
        return fixture

    # Scoring

    def score_fixture(self, fixture_id, admin_id=None):
        """Create the missing awards for one resolved fixture

        Raises:
            NotFound: unknown fixture
            FixtureUnresolved: the fixture has no result
        """
        fixture = self.fixtures.get_fixture(fixture_id)

        try:
            result = self._score(fixture)

            if admin_id is not None:
                AdminAction.log_action(
                    admin_id=admin_id,
                    action_type="score_fixture",
                    description=f"Assigned points for {fixture.name}",
                    fixture_id=fixture.id,
                    action_metadata=result.to_dict(),
                )

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(
            f"Scored {fixture.name}: {result.awarded} awarded, "
            f"{result.already_scored} already scored"
        )
        return result

    def score_outstanding(self, admin_id=None):
        """Score every fixture that has predictions without awards

        Each fixture is its own transaction. Unresolved fixtures are
        reported as skipped, failures are collected, and the run goes on.
        """
        report = ScoringReport()
        candidate_ids = [
            fixture.id
            for fixture in self.fixtures.list_fixtures(has_unscored_predictions=True)
        ]

        for fixture_id in candidate_ids:
            try:
                fixture = self.fixtures.get_fixture(fixture_id)
                if not fixture.is_resolved:
                    report.skipped[fixture_id] = FixtureUnresolved(
                        f"{fixture.name} has no result yet", fixture_id=fixture_id
                    )
                    continue

                result = self._score(fixture)
                db.session.commit()
            except Exception as e:
                db.session.rollback()
                logger.error(f"Scoring fixture {fixture_id} failed: {e}")
                report.failed[fixture_id] = e
                continue

            report.results.append(result)

        if admin_id is not None:
            AdminAction.log_action(
                admin_id=admin_id,
                action_type="score_outstanding",
                description=f"Assigned points for {len(report.results)} fixtures",
                action_metadata={
                    "awarded_total": report.awarded_total,
                    "scored": report.scored_fixture_ids,
                    "skipped": list(report.skipped),
                    "failed": list(report.failed),
                },
            )
            db.session.commit()

        logger.info(
            f"Bulk scoring finished: {len(report.results)} scored, "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed, "
            f"{report.awarded_total} awards created"
        )
        return report

    def _score(self, fixture):
        if not fixture.is_resolved:
            raise FixtureUnresolved(
                f"{fixture.name} has no result yet", fixture_id=fixture.id
            )

        result = ScoringResult(fixture_id=fixture.id)
        already_awarded = {
            award.player_id for award in self.gateway.find("points", fixture_id=fixture.id)
        }
        awarded_at = self.now()

        for prediction in self.gateway.find("predictions", fixture_id=fixture.id):
            if prediction.player_id in already_awarded:
                result.already_scored += 1
                continue

            points = calculate_points(prediction.predicted_outcome, fixture.outcome)
            try:
                self.gateway.insert(
                    "points",
                    player_id=prediction.player_id,
                    fixture_id=fixture.id,
                    points_earned=points,
                    awarded_at=awarded_at,
                )
            except ConstraintViolation:
                # A concurrent run got there first
                result.already_scored += 1
                continue

            result.awarded += 1
            result.points_awarded += points
            if points == POINTS_CORRECT:
                result.correct += 1

        return result

    # Read side

    def pair_state(self, player_id, fixture_id):
        fixture = self.fixtures.get_fixture(fixture_id)
        pair = {"player_id": player_id, "fixture_id": fixture_id}

        if not self.gateway.find("predictions", **pair):
            return PairState.UNSCORED if fixture.is_resolved else PairState.NO_PREDICTION
        if self.gateway.find("points", **pair):
            return PairState.SCORED
        if fixture.is_resolved:
            return PairState.PREDICTED_RESOLVED
        return PairState.PREDICTED_PENDING

    def fixture_predictions(self, fixture_id):
        """Predictions on one fixture with correctness and award status"""
        fixture = self.fixtures.get_fixture(fixture_id)
        awards = {
            award.player_id: award.points_earned
            for award in self.gateway.find("points", fixture_id=fixture.id)
        }

        rows = (
            db.session.query(Prediction, Player)
            .join(Player, Player.id == Prediction.player_id)
            .filter(Prediction.fixture_id == fixture.id)
            .order_by(Player.username)
            .all()
        )

        return [
            {
                "prediction_id": prediction.id,
                "player_id": player.id,
                "username": player.username,
                "predicted_outcome": prediction.predicted_outcome,
                "is_correct": prediction.is_correct,
                "points_assigned": player.id in awards,
                "points_earned": awards.get(player.id),
            }
            for prediction, player in rows
        ]

    def player_predictions(self, player_id):
        """A player's predictions, newest first

        ``points_earned`` is None while the fixture is unresolved and 0 for
        a resolved fixture that has no award yet.
        """
        player = self.gateway.get_player(player_id)
        awards = {
            award.fixture_id: award.points_earned
            for award in self.gateway.find("points", player_id=player.id)
        }

        predictions = (
            Prediction.query.filter_by(player_id=player.id)
            .order_by(Prediction.submitted_at.desc(), Prediction.id.desc())
            .all()
        )

        entries = []
        for prediction in predictions:
            fixture = prediction.fixture
            entry = prediction.to_dict(include_fixture=True)
            entry["is_correct"] = prediction.is_correct
            entry["points_earned"] = (
                awards.get(fixture.id, 0) if fixture.is_resolved else None
            )
            entries.append(entry)
        return entries

    def submissions(self, fixture_id=None, search=None):
        """All submitted predictions, optionally filtered for the admin view"""
        query = (
            db.session.query(Prediction, Player, Fixture)
            .join(Player, Player.id == Prediction.player_id)
            .join(Fixture, Fixture.id == Prediction.fixture_id)
        )

        if fixture_id is not None:
            query = query.filter(Prediction.fixture_id == fixture_id)
        if search:
            query = query.filter(Player.username.ilike(f"%{search.strip()}%"))

        rows = query.order_by(Fixture.match_day, Fixture.id, Player.username).all()

        return [
            {
                "prediction_id": prediction.id,
                "player_id": player.id,
                "username": player.username,
                "fixture_id": fixture.id,
                "fixture": fixture.name,
                "match_day": fixture.match_day.isoformat(),
                "predicted_outcome": prediction.predicted_outcome,
                "submitted_at": (
                    as_utc(prediction.submitted_at).isoformat()
                    if prediction.submitted_at
                    else None
                ),
            }
            for prediction, player, fixture in rows
        ]
