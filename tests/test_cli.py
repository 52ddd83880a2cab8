import os

import pytest
from click.testing import CliRunner
from conftest import FAR_FUTURE
from sqlalchemy.exc import SQLAlchemyError

from manage import cli
from predictor.models import AdminAction, Award, Fixture, Player, Prediction
from predictor.services.gateway import FixtureStore


@pytest.fixture
def runner(app):
    return CliRunner()


def test_create_and_list_fixture(runner):
    result = runner.invoke(
        cli, ["fixture", "create", "2099-08-01", "Arsenal", "Chelsea", "--kickoff", "12:30"]
    )

    assert result.exit_code == 0, result.output
    assert "✅ Created fixture" in result.output
    fixture = Fixture.query.one()
    assert fixture.kickoff_time.strftime("%H:%M") == "12:30"

    result = runner.invoke(cli, ["fixture", "list"])
    assert "Arsenal vs Chelsea" in result.output
    assert "pending" in result.output


def test_create_fixture_same_teams(runner):
    result = runner.invoke(cli, ["fixture", "create", "2099-08-01", "Arsenal", "arsenal"])

    assert "❌" in result.output
    assert Fixture.query.count() == 0


def test_resolve_and_clear(runner, fixture):
    result = runner.invoke(cli, ["fixture", "resolve", str(fixture.id), "d"])
    assert result.exit_code == 0, result.output
    assert fixture.outcome == "D"

    result = runner.invoke(cli, ["fixture", "clear", str(fixture.id)])
    assert "Cleared result" in result.output
    assert fixture.outcome is None


def test_resolve_unknown_fixture(runner):
    result = runner.invoke(cli, ["fixture", "resolve", "99", "H"])

    assert "❌ Fixture 99 not found" in result.output


def test_score_commands(runner, make_player, make_fixture, db):
    alice = make_player("alice")
    resolved = make_fixture(match_day=FAR_FUTURE, outcome="H")
    pending = make_fixture(match_day=FAR_FUTURE, home_team="Leeds", away_team="Fulham")
    db.session.add_all(
        [
            Prediction(player_id=alice.id, fixture_id=resolved.id, predicted_outcome="H"),
            Prediction(player_id=alice.id, fixture_id=pending.id, predicted_outcome="A"),
        ]
    )
    db.session.commit()

    result = runner.invoke(cli, ["score", "fixture", str(pending.id)])
    assert "❌" in result.output

    result = runner.invoke(cli, ["score", "all"])
    assert result.exit_code == 0, result.output
    assert f"Fixture {pending.id} skipped" in result.output
    assert "1 awards created" in result.output

    assert [(a.fixture_id, a.points_earned) for a in Award.query.all()] == [(resolved.id, 3)]


def test_delete_fixture(runner, fixture):
    result = runner.invoke(cli, ["fixture", "delete", str(fixture.id)], input="n\n")
    assert "Cancelled." in result.output
    assert Fixture.query.count() == 1

    result = runner.invoke(cli, ["fixture", "delete", str(fixture.id), "--yes"])
    assert "✅ Deleted fixture" in result.output
    assert Fixture.query.count() == 0


def test_player_commands(runner):
    result = runner.invoke(
        cli, ["player", "create-admin", "boss", "Boss@Mail.com", "secret123"]
    )
    assert result.exit_code == 0, result.output

    boss = Player.query.filter_by(username="boss").one()
    assert boss.is_admin
    assert boss.email == "boss@mail.com"

    result = runner.invoke(cli, ["player", "create-admin", "boss", "other@mail.com", "pw"])
    assert "already exists" in result.output

    runner.invoke(cli, ["player", "suspend", "boss"])
    assert boss.is_suspended

    runner.invoke(cli, ["player", "unsuspend", "boss"])
    assert not boss.is_suspended

    result = runner.invoke(cli, ["player", "list"])
    assert "boss" in result.output

    result = runner.invoke(cli, ["player", "suspend", "ghost"])
    assert "not found" in result.output


def test_status(runner, fixture):
    result = runner.invoke(cli, ["status"])

    assert result.exit_code == 0, result.output
    assert "Database: Connected" in result.output
    assert "0/1 resolved" in result.output


def test_init_db(runner):
    result = runner.invoke(cli, ["db-cmd", "init-db"])

    assert "✅ Database tables created successfully!" in result.output


def test_reset_requires_confirmation(runner, fixture):
    result = runner.invoke(cli, ["db-cmd", "reset"], input="n\n")

    assert "Cancelled." in result.output
    assert Fixture.query.count() == 1


def test_init_migrations_guard(runner):
    with runner.isolated_filesystem():
        os.mkdir("migrations")
        result = runner.invoke(cli, ["db-migrate", "init-migrations"])

    assert "❌ Migrations directory already exists!" in result.output


def test_clear_reports_database_error(runner, fixture, monkeypatch):
    def broken_set_outcome(self, fixture_id, outcome):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(FixtureStore, "set_outcome", broken_set_outcome)

    result = runner.invoke(cli, ["fixture", "clear", str(fixture.id)])

    assert result.exit_code == 0, result.output
    assert "❌ Database error clearing result: disk I/O error" in result.output


def test_suspend_with_admin_is_audited(runner, admin, player):
    result = runner.invoke(cli, ["player", "suspend", player.username, "--admin", admin.username])

    assert result.exit_code == 0, result.output
    assert player.is_suspended
    action = AdminAction.query.one()
    assert action.action_type == "suspend_player"
    assert action.admin_id == admin.id
    assert action.target_player_id == player.id

    runner.invoke(cli, ["player", "unsuspend", player.username, "--admin", admin.username])
    assert not player.is_suspended
    assert AdminAction.query.count() == 2


def test_suspend_without_admin_is_not_audited(runner, player):
    result = runner.invoke(cli, ["player", "suspend", player.username])

    assert player.is_suspended
    assert "not recorded in the audit log" in result.output
    assert AdminAction.query.count() == 0


def test_suspend_rejects_unknown_admin(runner, player):
    result = runner.invoke(cli, ["player", "suspend", player.username, "--admin", player.username])

    assert "❌ Admin 'alice' not found!" in result.output
    assert not player.is_suspended
