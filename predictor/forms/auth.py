import html

from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import (
    DataRequired,
    Email,
    EqualTo,
    Length,
    Regexp,
    ValidationError,
)

from predictor.models.player import Player


def sanitize_input(text):
    """Sanitize user input to prevent XSS"""
    if not text:
        return text
    return html.escape(text.strip())


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])


class RegistrationForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(),
            Length(min=6, message="Password must be at least 6 characters"),
        ],
    )
    confirm_password = PasswordField(
        "Confirm Password",
        validators=[
            DataRequired(),
            EqualTo("password", message="Passwords do not match"),
        ],
    )
    username = StringField(
        "Username",
        validators=[
            DataRequired(),
            Length(min=3, max=80, message="Username must be at least 3 characters"),
            Regexp(
                r"^[a-zA-Z0-9_.-]+$",
                message="Username can only contain letters, numbers, dots, underscores, and hyphens",
            ),
        ],
    )
    club_supported = StringField(
        "Club Supported",
        validators=[DataRequired(message="Please select your supported club"), Length(max=100)],
    )
    nationality = StringField(
        "Nationality",
        validators=[DataRequired(message="Please select your nationality"), Length(max=100)],
    )

    def validate_username(self, username):
        if Player.query.filter_by(username=username.data).first():
            raise ValidationError("This username is already taken")

    def validate_email(self, email):
        if Player.query.filter_by(email=email.data.strip().lower()).first():
            raise ValidationError("This email is already registered")


class ProfileForm(FlaskForm):
    username = StringField(
        "Username",
        validators=[
            DataRequired(),
            Length(min=3, max=80, message="Username must be at least 3 characters"),
        ],
    )
    club_supported = StringField(
        "Club Supported",
        validators=[DataRequired(message="Please select your supported club"), Length(max=100)],
    )
    nationality = StringField(
        "Nationality",
        validators=[DataRequired(message="Please select your nationality"), Length(max=100)],
    )

    def __init__(self, original_username, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.original_username = original_username

    def validate_username(self, username):
        if username.data != self.original_username:
            if Player.query.filter_by(username=username.data).first():
                raise ValidationError("This username is already taken")


class ForgotPasswordForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email()])


class ResetPasswordForm(FlaskForm):
    password = PasswordField(
        "New Password",
        validators=[
            DataRequired(),
            Length(min=6, message="Password must be at least 6 characters"),
        ],
    )
    confirm_password = PasswordField(
        "Confirm Password",
        validators=[
            DataRequired(),
            EqualTo("password", message="Passwords do not match"),
        ],
    )
