from datetime import date, datetime, time, timedelta, timezone

import pytest

from predictor.errors import InvalidOutcome
from predictor.models import Award, Outcome, Player, Prediction
from predictor.utils.scoring import POINTS_CORRECT, POINTS_INCORRECT, calculate_points
from predictor.utils.timezone_utils import as_utc, combine_kickoff, format_kickoff


class TestOutcome:
    def test_parse_codes(self):
        assert Outcome.parse("H") is Outcome.HOME_WIN
        assert Outcome.parse("D") is Outcome.DRAW
        assert Outcome.parse("A") is Outcome.AWAY_WIN
        assert Outcome.parse(Outcome.DRAW) is Outcome.DRAW

    @pytest.mark.parametrize("value", ["h", "home", "", None, 3])
    def test_parse_rejects(self, value):
        with pytest.raises(InvalidOutcome):
            Outcome.parse(value)

    def test_labels(self):
        assert Outcome.codes() == ["H", "D", "A"]
        assert Outcome.AWAY_WIN.label == "Away win"


class TestScoringRule:
    @pytest.mark.parametrize("predicted", ["H", "D", "A"])
    def test_correct(self, predicted):
        assert calculate_points(predicted, predicted) == POINTS_CORRECT == 3

    @pytest.mark.parametrize(
        "predicted,actual", [("H", "D"), ("H", "A"), ("D", "H"), ("A", "D")]
    )
    def test_incorrect(self, predicted, actual):
        assert calculate_points(predicted, actual) == POINTS_INCORRECT == 0


class TestFixture:
    def test_kickoff_in_utc(self, fixture):
        assert fixture.kickoff_at == datetime(2026, 3, 14, 15, 0, tzinfo=timezone.utc)

    def test_kickoff_in_local_timezone(self, app, make_fixture):
        app.config["TIMEZONE"] = "Europe/London"
        summer = make_fixture(match_day=date(2026, 7, 4), kickoff_time=time(15, 0))

        # 15:00 BST
        assert summer.kickoff_at == datetime(2026, 7, 4, 14, 0, tzinfo=timezone.utc)

    def test_accepts_predictions_strictly_before_kickoff(self, fixture):
        kickoff = fixture.kickoff_at

        assert fixture.accepts_predictions(kickoff - timedelta(microseconds=1))
        assert not fixture.accepts_predictions(kickoff)
        assert not fixture.accepts_predictions(kickoff + timedelta(seconds=1))
        assert not fixture.accepts_predictions(kickoff.replace(tzinfo=None))

    def test_result(self, make_fixture):
        assert make_fixture().result is None
        assert make_fixture(home_team="Leeds", away_team="Fulham", outcome="D").result is Outcome.DRAW

    def test_prediction_counts(self, fixture, make_player, db):
        for name, outcome in [("a1", "H"), ("a2", "H"), ("a3", "A")]:
            p = make_player(name)
            db.session.add(Prediction(player_id=p.id, fixture_id=fixture.id, predicted_outcome=outcome))
        db.session.commit()

        assert fixture.get_prediction_counts() == {"H": 2, "D": 0, "A": 1, "total": 3}

    def test_to_dict(self, fixture):
        data = fixture.to_dict(include_counts=True)

        assert data["kickoff_time"] == "15:00"
        assert data["kickoff_at"] == "2026-03-14T15:00:00+00:00"
        assert data["outcome"] is None
        assert data["prediction_counts"]["total"] == 0


class TestPlayer:
    def test_password(self, player):
        assert player.check_password("secret123")
        assert not player.check_password("wrong")

    def test_reset_token(self, player, db):
        token = player.generate_reset_token(hours=1)
        db.session.commit()

        assert Player.verify_reset_token(token) is player
        assert Player.verify_reset_token("nope") is None

        player.reset_token_expiry = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.session.commit()
        assert Player.verify_reset_token(token) is None

    def test_stats(self, make_player, make_fixture, db):
        player = make_player("erin")
        fixtures = [
            make_fixture(home_team=f"Home{i}", away_team=f"Away{i}", outcome="H")
            for i in range(3)
        ]
        for f in fixtures:
            db.session.add(Prediction(player_id=player.id, fixture_id=f.id, predicted_outcome="H"))
        db.session.add(Award(player_id=player.id, fixture_id=fixtures[0].id, points_earned=3))
        db.session.add(Award(player_id=player.id, fixture_id=fixtures[1].id, points_earned=0))
        db.session.commit()

        assert player.get_stats() == {
            "total_points": 3,
            "total_predictions": 3,
            "correct_predictions": 1,
            "accuracy": 33,
        }

    def test_stats_without_predictions(self, player):
        assert player.get_stats()["accuracy"] == 0

    def test_leaderboard_orders_by_points_then_username(self, make_player, make_fixture, db):
        zoe = make_player("zoe")
        amy = make_player("amy")
        bob = make_player("bob")
        f1 = make_fixture(home_team="A", away_team="B", outcome="H")
        f2 = make_fixture(home_team="C", away_team="D", outcome="H")

        db.session.add_all(
            [
                Award(player_id=zoe.id, fixture_id=f1.id, points_earned=3),
                Award(player_id=amy.id, fixture_id=f1.id, points_earned=3),
                Award(player_id=bob.id, fixture_id=f1.id, points_earned=3),
                Award(player_id=bob.id, fixture_id=f2.id, points_earned=3),
                Award(player_id=amy.id, fixture_id=f2.id, points_earned=0),
            ]
        )
        db.session.commit()

        board = Player.get_leaderboard()

        assert [(e["username"], e["total_points"], e["position"]) for e in board] == [
            ("bob", 6, 1),
            ("amy", 3, 2),
            ("zoe", 3, 3),
        ]
        assert board[0]["correct_predictions"] == 2
        assert [e["username"] for e in Player.get_leaderboard(limit=1)] == ["bob"]

    def test_leaderboard_includes_players_without_points(self, make_player):
        make_player("quiet")
        board = Player.get_leaderboard()
        assert board == [
            {
                "player_id": board[0]["player_id"],
                "username": "quiet",
                "club_supported": "Arsenal",
                "total_points": 0,
                "correct_predictions": 0,
                "position": 1,
            }
        ]

    def test_private_fields(self, player):
        assert "email" not in player.to_dict()
        assert player.to_dict(include_private=True)["email"] == "alice@mail.com"


class TestTimezoneUtils:
    def test_as_utc(self):
        naive = datetime(2026, 1, 1, 12, 0)
        assert as_utc(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert as_utc(None) is None

    def test_combine_kickoff_default_time(self, app):
        assert combine_kickoff(date(2026, 1, 10)) == datetime(2026, 1, 10, 15, 0, tzinfo=timezone.utc)

    def test_format_kickoff(self, app):
        assert format_kickoff(None) == "TBD"
        assert format_kickoff(datetime(2026, 1, 10, 15, 0, tzinfo=timezone.utc), "%H:%M") == "15:00"
