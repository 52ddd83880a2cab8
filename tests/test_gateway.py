from datetime import date, time

import pytest

from predictor.errors import ConstraintViolation, InvalidFixture, InvalidOutcome, NotFound
from predictor.models import Award, Prediction
from predictor.services.gateway import FixtureStore, PersistenceGateway


@pytest.fixture
def store(app):
    return FixtureStore()


@pytest.fixture
def gateway(app):
    return PersistenceGateway()


class TestFixtureStore:
    def test_get_fixture(self, store, fixture):
        assert store.get_fixture(fixture.id) is fixture

    def test_get_missing_fixture(self, store):
        with pytest.raises(NotFound) as exc:
            store.get_fixture(123)
        assert exc.value.context == {"fixture_id": 123}

    def test_create_fixture_defaults_kickoff(self, store, db):
        fixture = store.create_fixture(date(2026, 4, 4), " Arsenal ", "Spurs")
        db.session.commit()

        assert fixture.id is not None
        assert fixture.home_team == "Arsenal"
        assert fixture.kickoff_time == time(15, 0)
        assert fixture.outcome is None

    def test_create_fixture_with_kickoff(self, store):
        fixture = store.create_fixture(date(2026, 4, 4), "Arsenal", "Spurs", kickoff_time="19:45")
        assert fixture.kickoff_time == time(19, 45)

    @pytest.mark.parametrize(
        "home,away",
        [("Arsenal", "arsenal"), ("", "Spurs"), ("Arsenal", "   ")],
    )
    def test_create_fixture_rejects_bad_teams(self, store, home, away):
        with pytest.raises(InvalidFixture):
            store.create_fixture(date(2026, 4, 4), home, away)

    def test_set_outcome(self, store, fixture):
        store.set_outcome(fixture.id, "A")
        assert fixture.outcome == "A"

        store.set_outcome(fixture.id, None)
        assert fixture.outcome is None

    def test_set_invalid_outcome(self, store, fixture):
        with pytest.raises(InvalidOutcome):
            store.set_outcome(fixture.id, "W")

    def test_list_fixtures_filters(self, store, make_fixture, make_player, db):
        early = make_fixture(match_day=date(2026, 3, 1), home_team="A", away_team="B", outcome="H")
        middle = make_fixture(match_day=date(2026, 3, 8), home_team="C", away_team="D")
        late = make_fixture(match_day=date(2026, 3, 15), home_team="E", away_team="F")

        assert store.list_fixtures() == [early, middle, late]
        assert store.list_fixtures(descending=True, limit=2) == [late, middle]
        assert store.list_fixtures(resolved=True) == [early]
        assert store.list_fixtures(resolved=False) == [middle, late]
        assert store.list_fixtures(on_or_after=date(2026, 3, 8)) == [middle, late]
        assert store.list_fixtures(before=date(2026, 3, 8)) == [early]

    def test_list_fixtures_with_unscored_predictions(self, store, make_fixture, player, db):
        scored = make_fixture(home_team="A", away_team="B", outcome="H")
        pending = make_fixture(home_team="C", away_team="D")
        make_fixture(home_team="E", away_team="F")

        db.session.add_all(
            [
                Prediction(player_id=player.id, fixture_id=scored.id, predicted_outcome="H"),
                Prediction(player_id=player.id, fixture_id=pending.id, predicted_outcome="D"),
                Award(player_id=player.id, fixture_id=scored.id, points_earned=3),
            ]
        )
        db.session.commit()

        assert store.list_fixtures(has_unscored_predictions=True) == [pending]

    def test_same_day_ordered_by_kickoff(self, store, make_fixture):
        late = make_fixture(kickoff_time=time(17, 30), home_team="A", away_team="B")
        early = make_fixture(kickoff_time=time(12, 30), home_team="C", away_team="D")

        assert store.list_fixtures() == [early, late]

    def test_delete_cascades(self, store, fixture, player, db):
        db.session.add(Prediction(player_id=player.id, fixture_id=fixture.id, predicted_outcome="H"))
        db.session.add(Award(player_id=player.id, fixture_id=fixture.id, points_earned=3))
        db.session.commit()

        store.delete_fixture(fixture.id)
        db.session.commit()

        assert Prediction.query.count() == 0
        assert Award.query.count() == 0


class TestPersistenceGateway:
    def test_unknown_table(self, gateway):
        with pytest.raises(KeyError):
            gateway.find("fixtures")

    def test_insert_and_find(self, gateway, player, fixture):
        record = gateway.insert(
            "predictions", player_id=player.id, fixture_id=fixture.id, predicted_outcome="H"
        )

        assert record.id is not None
        assert gateway.find("predictions", player_id=player.id) == [record]
        assert gateway.find("predictions", player_id=player.id + 1) == []

    def test_find_with_collection_filter(self, gateway, make_player, fixture):
        alice = make_player("alice")
        bob = make_player("bob")
        carol = make_player("carol")
        for p in (alice, bob, carol):
            gateway.insert("predictions", player_id=p.id, fixture_id=fixture.id, predicted_outcome="D")

        found = gateway.find("predictions", player_id=[alice.id, carol.id])
        assert [r.player_id for r in found] == [alice.id, carol.id]

    def test_duplicate_insert_raises_constraint_violation(self, gateway, player, fixture, db):
        gateway.insert("points", player_id=player.id, fixture_id=fixture.id, points_earned=3)

        with pytest.raises(ConstraintViolation) as exc:
            gateway.insert("points", player_id=player.id, fixture_id=fixture.id, points_earned=0)
        assert exc.value.context == {"table": "points"}

        # Earlier work in the transaction survives the failed insert
        db.session.commit()
        assert [a.points_earned for a in Award.query.all()] == [3]

    def test_update(self, gateway, player, fixture):
        gateway.insert("predictions", player_id=player.id, fixture_id=fixture.id, predicted_outcome="H")

        changed = gateway.update(
            "predictions",
            {"player_id": player.id, "fixture_id": fixture.id},
            {"predicted_outcome": "A"},
        )

        assert changed == 1
        assert gateway.find("predictions", player_id=player.id)[0].predicted_outcome == "A"

    def test_update_without_match(self, gateway, player):
        with pytest.raises(NotFound):
            gateway.update("predictions", {"player_id": player.id}, {"predicted_outcome": "A"})

    def test_get_player(self, gateway, player):
        assert gateway.get_player(player.id) is player
        with pytest.raises(NotFound):
            gateway.get_player(player.id + 100)
