from datetime import date, datetime, time, timedelta, timezone

import pytest

from predictor import create_app
from predictor import db as _db
from predictor.models import Fixture, Player
from predictor.services.prediction_engine import PredictionEngine

# Saturday 14 March 2026, three hours before the default kickoff
NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)
MATCH_DAY = date(2026, 3, 14)

FAR_FUTURE = date(2099, 8, 1)
FAR_PAST = date(2000, 8, 1)


class FixedClock:
    """Injectable clock for the engine"""

    def __init__(self, now):
        self.current = now

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)

    def set(self, value):
        self.current = value


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def engine(app, clock):
    return PredictionEngine(clock=clock)


@pytest.fixture
def make_player(app):
    def _make(username="alice", is_admin=False, is_suspended=False, password="secret123"):
        player = Player(
            username=username,
            email=f"{username}@mail.com",
            club_supported="Arsenal",
            nationality="English",
            is_admin=is_admin,
            is_suspended=is_suspended,
        )
        player.set_password(password)
        _db.session.add(player)
        _db.session.commit()
        return player

    return _make


@pytest.fixture
def make_fixture(app):
    def _make(
        match_day=MATCH_DAY,
        kickoff_time=time(15, 0),
        home_team="Arsenal",
        away_team="Chelsea",
        outcome=None,
    ):
        fixture = Fixture(
            match_day=match_day,
            kickoff_time=kickoff_time,
            home_team=home_team,
            away_team=away_team,
            outcome=outcome,
        )
        _db.session.add(fixture)
        _db.session.commit()
        return fixture

    return _make


@pytest.fixture
def player(make_player):
    return make_player("alice")


@pytest.fixture
def admin(make_player):
    return make_player("admin", is_admin=True)


@pytest.fixture
def fixture(make_fixture):
    return make_fixture()


def login(client, player):
    """Log ``player`` in on the test client's session"""
    with client.session_transaction() as session:
        session["_user_id"] = str(player.id)
        session["_fresh"] = True


@pytest.fixture
def player_client(client, player):
    login(client, player)
    return client


@pytest.fixture
def admin_client(client, admin):
    login(client, admin)
    return client
