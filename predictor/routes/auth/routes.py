import logging

from flask import current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from predictor import db, limiter, login_manager
from predictor.forms.auth import (
    ForgotPasswordForm,
    LoginForm,
    ProfileForm,
    RegistrationForm,
    ResetPasswordForm,
    sanitize_input,
)
from predictor.models import Player
from predictor.routes import validation_error
from predictor.routes.auth import bp
from predictor.utils.cache_utils import invalidate_model_cache

logger = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(Player, int(user_id))


@bp.route("/csrf-token")
def csrf_token():
    """Token for clients to send back in the X-CSRFToken header"""
    return jsonify({"csrf_token": generate_csrf()})


@bp.route("/register", methods=["POST"])
@limiter.limit("5 per hour")
def register():
    if current_user.is_authenticated:
        return jsonify({"error": "Already logged in"}), 400

    form = RegistrationForm()
    if not form.validate_on_submit():
        return validation_error(form)

    player = Player(
        username=form.username.data,
        email=form.email.data.strip().lower(),
        club_supported=sanitize_input(form.club_supported.data),
        nationality=sanitize_input(form.nationality.data),
    )
    player.set_password(form.password.data)

    db.session.add(player)
    db.session.commit()
    invalidate_model_cache("leaderboard")

    login_user(player)
    logger.info(f"New player registered: {player.username}")

    return jsonify({"message": "Registration successful", "player": player.to_dict(include_private=True)}), 201


@bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    if current_user.is_authenticated:
        return jsonify({"player": current_user.to_dict(include_private=True)})

    form = LoginForm()
    if not form.validate_on_submit():
        return validation_error(form)

    player = Player.query.filter_by(email=form.email.data.strip().lower()).first()
    if player is None or not player.check_password(form.password.data):
        logger.info(f"Failed login attempt for {form.email.data}")
        return jsonify({"error": "Invalid email or password"}), 401

    login_user(player)
    player.update_last_login()

    return jsonify({"message": f"Welcome back, {player.username}!", "player": player.to_dict(include_private=True)})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"message": "You have been logged out successfully"})


@bp.route("/profile")
@login_required
def profile():
    return jsonify(
        {
            "player": current_user.to_dict(include_private=True),
            "stats": current_user.get_stats(),
        }
    )


@bp.route("/profile", methods=["PUT"])
@login_required
def edit_profile():
    form = ProfileForm(original_username=current_user.username)
    if not form.validate_on_submit():
        return validation_error(form)

    current_user.username = form.username.data
    current_user.club_supported = sanitize_input(form.club_supported.data)
    current_user.nationality = sanitize_input(form.nationality.data)
    db.session.commit()
    invalidate_model_cache("leaderboard")

    return jsonify({"message": "Profile updated successfully", "player": current_user.to_dict(include_private=True)})


@bp.route("/forgot-password", methods=["POST"])
@limiter.limit("20 per hour")
def forgot_password():
    form = ForgotPasswordForm()
    if not form.validate_on_submit():
        return validation_error(form)

    player = Player.query.filter_by(email=form.email.data.strip().lower()).first()
    if player:
        token = player.generate_reset_token(
            hours=current_app.config.get("RESET_TOKEN_EXPIRY", 1)
        )
        db.session.commit()

        from predictor.utils.email_service import EmailService

        if not EmailService().send_password_reset_email(player, token):
            logger.warning(f"Failed to send password reset email to {player.email}")

    # Same answer either way so the endpoint does not reveal registered emails
    return jsonify(
        {"message": "If an account with that email exists, password reset instructions have been sent."}
    )


@bp.route("/reset-password/<token>", methods=["POST"])
@limiter.limit("30 per hour")
def reset_password(token):
    player = Player.verify_reset_token(token)
    if not player:
        return jsonify({"error": "Invalid or expired password reset link"}), 400

    form = ResetPasswordForm()
    if not form.validate_on_submit():
        return validation_error(form)

    player.set_password(form.password.data)
    player.clear_reset_token()
    db.session.commit()

    return jsonify({"message": "Your password has been reset successfully. Please log in with your new password."})
