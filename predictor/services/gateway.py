"""
Storage collaborators used by the prediction engine.

FixtureStore holds fixtures and their results. PersistenceGateway offers
plain find/insert/update operations over the predictions, points and
players tables. Both hand model instances to their callers, and neither
commits: the engine decides where a unit of work ends.
"""

import logging

from sqlalchemy.exc import IntegrityError

from predictor import db
from predictor.errors import ConstraintViolation, InvalidFixture, NotFound
from predictor.models import Award, Fixture, Outcome, Player, Prediction
from predictor.utils.timezone_utils import default_kickoff_time, parse_kickoff_time

logger = logging.getLogger(__name__)


class FixtureStore:
    """Fixture reads and writes"""

    def get_fixture(self, fixture_id):
        fixture = db.session.get(Fixture, fixture_id)
        if fixture is None:
            raise NotFound(f"Fixture {fixture_id} not found", fixture_id=fixture_id)
        return fixture

    def list_fixtures(
        self,
        resolved=None,
        on_or_after=None,
        before=None,
        has_unscored_predictions=False,
        descending=False,
        limit=None,
    ):
        """List fixtures ordered by kickoff

        Args:
            resolved: True for fixtures with a result, False for those without
            on_or_after: earliest match day to include
            before: match days strictly before this date
            has_unscored_predictions: only fixtures with a prediction lacking an award
            descending: latest fixtures first
            limit: maximum number of fixtures
        """
        query = Fixture.query

        if resolved is True:
            query = query.filter(Fixture.outcome.isnot(None))
        elif resolved is False:
            query = query.filter(Fixture.outcome.is_(None))

        if on_or_after is not None:
            query = query.filter(Fixture.match_day >= on_or_after)
        if before is not None:
            query = query.filter(Fixture.match_day < before)

        if has_unscored_predictions:
            unscored = (
                db.select(Prediction.fixture_id)
                .outerjoin(
                    Award,
                    db.and_(
                        Award.player_id == Prediction.player_id,
                        Award.fixture_id == Prediction.fixture_id,
                    ),
                )
                .where(Award.id.is_(None))
            )
            query = query.filter(Fixture.id.in_(unscored))

        if descending:
            query = query.order_by(
                Fixture.match_day.desc(), Fixture.kickoff_time.desc(), Fixture.id.desc()
            )
        else:
            query = query.order_by(Fixture.match_day, Fixture.kickoff_time, Fixture.id)

        if limit is not None:
            query = query.limit(limit)

        return query.all()

    def create_fixture(self, match_day, home_team, away_team, kickoff_time=None):
        home_team = (home_team or "").strip()
        away_team = (away_team or "").strip()

        if not home_team or not away_team or match_day is None:
            raise InvalidFixture("Please fill in all fixture details")
        if home_team.lower() == away_team.lower():
            raise InvalidFixture("Home and away teams cannot be the same")

        fixture = Fixture(
            match_day=match_day,
            kickoff_time=parse_kickoff_time(kickoff_time) or default_kickoff_time(),
            home_team=home_team,
            away_team=away_team,
            outcome=None,
        )
        db.session.add(fixture)
        db.session.flush()
        return fixture

    def set_outcome(self, fixture_id, outcome):
        """Set the fixture result, or clear it with ``None``"""
        fixture = self.get_fixture(fixture_id)
        fixture.outcome = Outcome.parse(outcome).value if outcome is not None else None
        db.session.flush()
        return fixture

    def delete_fixture(self, fixture_id):
        fixture = self.get_fixture(fixture_id)
        db.session.delete(fixture)
        db.session.flush()
        return fixture


class PersistenceGateway:
    """Generic table access for engine records"""

    TABLES = {
        "predictions": Prediction,
        "points": Award,
        "players": Player,
    }

    def _model(self, table):
        try:
            return self.TABLES[table]
        except KeyError:
            raise KeyError(f"Unknown table: {table}") from None

    def _query(self, model, filters):
        query = model.query
        for name, value in filters.items():
            column = getattr(model, name)
            if isinstance(value, (list, tuple, set)):
                query = query.filter(column.in_(list(value)))
            else:
                query = query.filter(column == value)
        return query

    def find(self, table, **filters):
        model = self._model(table)
        return self._query(model, filters).order_by(model.id).all()

    def insert(self, table, **values):
        """Insert a row inside a savepoint

        A uniqueness clash only rolls back the savepoint and surfaces as
        ConstraintViolation; earlier work in the transaction is kept.
        """
        model = self._model(table)
        record = model(**values)
        try:
            with db.session.begin_nested():
                db.session.add(record)
        except IntegrityError as e:
            logger.debug(f"Insert into {table} rejected: {e.orig}")
            raise ConstraintViolation(
                f"Duplicate {table} record", table=table
            ) from e
        return record

    def update(self, table, filters, patch):
        """Apply ``patch`` to every matching row and return how many changed"""
        records = self._query(self._model(table), filters).all()
        if not records:
            raise NotFound(f"No {table} record matches {filters}")

        for record in records:
            for name, value in patch.items():
                setattr(record, name, value)
        db.session.flush()
        return len(records)

    def get_player(self, player_id):
        player = db.session.get(Player, player_id)
        if player is None:
            raise NotFound(f"Player {player_id} not found", player_id=player_id)
        return player
