"""
Errors raised by the prediction and scoring engine.

All of them are recoverable; the Flask app turns them into JSON responses
using ``code`` and ``status_code``.
"""


class PredictionError(Exception):
    """Base class for prediction game errors"""

    code = "prediction_error"
    status_code = 400
    default_message = "Prediction request failed"

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self):
        data = {"error": self.message, "code": self.code}
        if self.context:
            data["context"] = self.context
        return data


class SuspendedPlayer(PredictionError):
    code = "suspended_player"
    status_code = 403
    default_message = "Your account is suspended and cannot submit predictions"


class DeadlinePassed(PredictionError):
    code = "deadline_passed"
    status_code = 409
    default_message = "The prediction deadline for this fixture has passed"


class InvalidOutcome(PredictionError):
    code = "invalid_outcome"
    status_code = 400
    default_message = "Outcome must be one of H, D or A"


class InvalidFixture(PredictionError):
    code = "invalid_fixture"
    status_code = 400
    default_message = "Invalid fixture details"


class FixtureUnresolved(PredictionError):
    code = "fixture_unresolved"
    status_code = 409
    default_message = "Fixture has no result yet"


class NotFound(PredictionError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class ConstraintViolation(PredictionError):
    code = "constraint_violation"
    status_code = 409
    default_message = "Record already exists"
