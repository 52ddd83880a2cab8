from flask_wtf import FlaskForm
from wtforms import DateField, StringField
from wtforms.validators import DataRequired, Length, Optional, Regexp, ValidationError


class FixtureForm(FlaskForm):
    match_day = DateField("Match Date", validators=[DataRequired()], format="%Y-%m-%d")
    kickoff_time = StringField(
        "Kickoff Time",
        validators=[
            Optional(),
            Regexp(r"^([01]\d|2[0-3]):[0-5]\d$", message="Kickoff time must be HH:MM"),
        ],
    )
    home_team = StringField("Home Team", validators=[DataRequired(), Length(max=100)])
    away_team = StringField("Away Team", validators=[DataRequired(), Length(max=100)])

    def validate_away_team(self, away_team):
        if (
            self.home_team.data
            and away_team.data
            and self.home_team.data.strip().lower() == away_team.data.strip().lower()
        ):
            raise ValidationError("Home and away teams cannot be the same")
