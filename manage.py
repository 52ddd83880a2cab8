#!/usr/bin/env python3
"""
Matchday Predictor Management CLI

Command-line management for fixtures, results, scoring and players.
"""

import logging
import os

import click
from flask.cli import with_appcontext
from flask_migrate import downgrade, upgrade
from flask_migrate import init as migrate_init
from flask_migrate import migrate as migrate_revision
from sqlalchemy.exc import SQLAlchemyError

from predictor import create_app, db
from predictor.errors import PredictionError
from predictor.models import AdminAction, Award, Fixture, Player, Prediction
from predictor.services.gateway import FixtureStore
from predictor.services.prediction_engine import PredictionEngine
from predictor.utils.cache_utils import invalidate_model_cache


@click.group()
def cli():
    """Matchday Predictor Management CLI"""
    pass


# Fixture Management Commands
@cli.group()
def fixture():
    """Fixture management commands"""
    pass


@fixture.command("create")
@click.argument("match_day", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.argument("home_team")
@click.argument("away_team")
@click.option("--kickoff", help="Kickoff time (HH:MM), defaults to DEFAULT_KICKOFF_TIME")
@with_appcontext
def create_fixture(match_day, home_team, away_team, kickoff):
    """Create a fixture"""
    try:
        new_fixture = FixtureStore().create_fixture(
            match_day=match_day.date(),
            home_team=home_team,
            away_team=away_team,
            kickoff_time=kickoff,
        )
        db.session.commit()
        click.echo(
            f"✅ Created fixture {new_fixture.id}: {new_fixture.name} "
            f"({new_fixture.kickoff_at.isoformat()})"
        )
    except (PredictionError, ValueError) as e:
        db.session.rollback()
        click.echo(f"❌ {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating fixture: {str(e)}")
        logging.error(f"Fixture creation failed - SQL error: {e}")


@fixture.command("list")
@click.option("--unresolved", is_flag=True, help="Only fixtures without a result")
@click.option("--unscored", is_flag=True, help="Only fixtures with predictions awaiting points")
@with_appcontext
def list_fixtures(unresolved, unscored):
    """List fixtures"""
    fixtures = FixtureStore().list_fixtures(
        resolved=False if unresolved else None,
        has_unscored_predictions=unscored,
    )

    if not fixtures:
        click.echo("No fixtures found.")
        return

    click.echo("Fixtures:")
    for f in fixtures:
        result = f"🏁 {f.outcome}" if f.is_resolved else "⏳ pending"
        click.echo(
            f"  {f.id}: {f.match_day.isoformat()} {f.kickoff_time.strftime('%H:%M')} "
            f"{f.name} - {result} ({f.predictions.count()} predictions)"
        )


@fixture.command("resolve")
@click.argument("fixture_id", type=int)
@click.argument("outcome", type=click.Choice(["H", "D", "A"], case_sensitive=False))
@with_appcontext
def resolve_fixture(fixture_id, outcome):
    """Set a fixture result (H, D or A)"""
    try:
        resolved = PredictionEngine().set_outcome(fixture_id, outcome.upper())
        click.echo(f"✅ {resolved.name}: {resolved.result.label}")
    except PredictionError as e:
        click.echo(f"❌ {e}")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error setting result: {str(e)}")
        logging.error(f"Setting result failed - SQL error: {e}")


@fixture.command("clear")
@click.argument("fixture_id", type=int)
@with_appcontext
def clear_fixture(fixture_id):
    """Clear a fixture result; assigned points are kept"""
    try:
        cleared = PredictionEngine().set_outcome(fixture_id, None)
        click.echo(f"✅ Cleared result of {cleared.name}")
        awards = cleared.awards.count()
        if awards:
            click.echo(f"⚠️  {awards} previously assigned awards were kept")
    except PredictionError as e:
        click.echo(f"❌ {e}")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error clearing result: {str(e)}")
        logging.error(f"Clearing result failed - SQL error: {e}")


@fixture.command("delete")
@click.argument("fixture_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@with_appcontext
def delete_fixture(fixture_id, yes):
    """⚠️  Delete a fixture with its predictions and points"""
    store = FixtureStore()
    try:
        target = store.get_fixture(fixture_id)
    except PredictionError as e:
        click.echo(f"❌ {e}")
        return

    if not yes and not click.confirm(
        f"Delete {target.name} and all its predictions and points?"
    ):
        click.echo("Cancelled.")
        return

    name = target.name
    try:
        store.delete_fixture(fixture_id)
        db.session.commit()
        invalidate_model_cache("leaderboard")
        click.echo(f"✅ Deleted fixture {name}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error deleting fixture: {str(e)}")


# Scoring Commands
@cli.group()
def score():
    """Point assignment commands"""
    pass


@score.command("fixture")
@click.argument("fixture_id", type=int)
@with_appcontext
def score_fixture(fixture_id):
    """Assign points for one resolved fixture"""
    try:
        result = PredictionEngine().score_fixture(fixture_id)
    except PredictionError as e:
        click.echo(f"❌ {e}")
        return

    invalidate_model_cache("leaderboard")
    click.echo(
        f"✅ Fixture {fixture_id}: {result.awarded} awards created "
        f"({result.correct} correct), {result.already_scored} already scored"
    )


@score.command("all")
@with_appcontext
def score_all():
    """Assign points for every fixture with unscored predictions"""
    report = PredictionEngine().score_outstanding()
    invalidate_model_cache("leaderboard")

    for result in report.results:
        click.echo(
            f"✅ Fixture {result.fixture_id}: {result.awarded} awards "
            f"({result.correct} correct)"
        )
    for fixture_id, error in report.skipped.items():
        click.echo(f"⏳ Fixture {fixture_id} skipped: {error}")
    for fixture_id, error in report.failed.items():
        click.echo(f"❌ Fixture {fixture_id} failed: {error}")

    click.echo(
        f"🎉 {report.awarded_total} awards created across "
        f"{len(report.results)} fixtures"
    )


# Player Management Commands
@cli.group()
def player():
    """Player management commands"""
    pass


@player.command()
@click.argument("username")
@click.argument("email")
@click.argument("password")
@click.option("--club", default="", help="Club supported")
@click.option("--nationality", default="", help="Nationality")
@with_appcontext
def create_admin(username, email, password, club, nationality):
    """Create an admin player"""
    email = email.strip().lower()
    try:
        existing = Player.query.filter(
            (Player.username == username) | (Player.email == email)
        ).first()

        if existing:
            click.echo(
                f"❌ Player with username '{username}' or email '{email}' already exists!"
            )
            return

        admin = Player(
            username=username,
            email=email,
            club_supported=club,
            nationality=nationality,
            is_admin=True,
        )
        admin.set_password(password)

        db.session.add(admin)
        db.session.commit()

        click.echo(f"✅ Created admin player '{username}' ({email})")

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Error creating player: {str(e)}")


@player.command("list")
@with_appcontext
def list_players():
    """List all players"""
    players = Player.query.order_by(Player.username).all()

    if not players:
        click.echo("No players found.")
        return

    click.echo("Players:")
    for p in players:
        status = "🔴" if p.is_suspended else "🟢"
        role = "👑" if p.is_admin else "  "
        click.echo(f"  {status} {role} {p.username} ({p.email}) - {p.get_stats()['total_points']} pts")


def _set_suspension(username, suspended, admin_username=None):
    target = Player.query.filter_by(username=username).first()
    if not target:
        click.echo(f"❌ Player '{username}' not found!")
        return

    acting_admin = None
    if admin_username:
        acting_admin = Player.query.filter_by(username=admin_username, is_admin=True).first()
        if not acting_admin:
            click.echo(f"❌ Admin '{admin_username}' not found!")
            return

    try:
        target.is_suspended = suspended
        if acting_admin:
            action_type = "suspend_player" if suspended else "unsuspend_player"
            AdminAction.log_player_change(acting_admin.id, target, action_type)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Error updating player: {str(e)}")
        return

    click.echo(f"✅ {username} is now {'suspended' if suspended else 'active'}")
    if not acting_admin:
        click.echo("⚠️  No --admin given, change not recorded in the audit log")


@player.command()
@click.argument("username")
@click.option("--admin", "admin_username", help="Admin to record in the audit log")
@with_appcontext
def suspend(username, admin_username):
    """Suspend a player from submitting predictions

    The change is only audited when --admin names the acting administrator.
    """
    _set_suspension(username, True, admin_username)


@player.command()
@click.argument("username")
@click.option("--admin", "admin_username", help="Admin to record in the audit log")
@with_appcontext
def unsuspend(username, admin_username):
    """Lift a player's suspension

    The change is only audited when --admin names the acting administrator.
    """
    _set_suspension(username, False, admin_username)


# Database Commands
@cli.group("db-cmd")
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@with_appcontext
def reset(yes):
    """⚠️  DANGER: Drop and recreate all tables"""
    if not yes and not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@with_appcontext
def init_migrations():
    """Initialize migrations repository"""
    if os.path.exists("migrations"):
        click.echo("❌ Migrations directory already exists!")
        return

    try:
        migrate_init()
        click.echo("✅ Migrations repository initialized!")
    except Exception as e:
        click.echo(f"❌ Error initializing migrations: {str(e)}")


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    try:
        migrate_revision(message=message)
        click.echo(f"✅ Migration created: {message}")
    except Exception as e:
        click.echo(f"❌ Error creating migration: {str(e)}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    try:
        upgrade(revision=revision)
        click.echo(f"✅ Migrations applied to {revision}")
    except Exception as e:
        click.echo(f"❌ Error applying migrations: {str(e)}")


@db_migrate.command()
@click.option("--revision", required=True, help="Revision to downgrade to")
@with_appcontext
def rollback_migration(revision):
    """Rollback migrations to specific revision"""
    try:
        downgrade(revision=revision)
        click.echo(f"✅ Rolled back to {revision}")
    except Exception as e:
        click.echo(f"❌ Error rolling back: {str(e)}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("⚽ Matchday Predictor Status")
    click.echo("=" * 40)

    try:
        db.session.execute(db.text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    click.echo(f"👥 Players: {Player.query.count()}")

    fixture_count = Fixture.query.count()
    resolved_count = Fixture.query.filter(Fixture.outcome.isnot(None)).count()
    click.echo(f"📅 Fixtures: {resolved_count}/{fixture_count} resolved")

    prediction_count = Prediction.query.count()
    award_count = Award.query.count()
    click.echo(f"🎯 Predictions: {prediction_count} ({award_count} scored)")

    unscored = len(FixtureStore().list_fixtures(has_unscored_predictions=True))
    if unscored:
        click.echo(f"⚠️  {unscored} fixtures have predictions awaiting points")


def main():
    app = create_app()
    with app.app_context():
        cli()


if __name__ == "__main__":
    main()
