import enum

from predictor.errors import InvalidOutcome


class Outcome(str, enum.Enum):
    """Result of a fixture, also the value a player predicts"""

    HOME_WIN = "H"
    DRAW = "D"
    AWAY_WIN = "A"

    @classmethod
    def parse(cls, value):
        """Return the Outcome for ``value`` or raise InvalidOutcome"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for outcome in cls:
                if outcome.value == value:
                    return outcome
        raise InvalidOutcome(f"Invalid outcome {value!r}: must be one of H, D or A")

    @classmethod
    def codes(cls):
        return [outcome.value for outcome in cls]

    @property
    def label(self):
        return {"H": "Home win", "D": "Draw", "A": "Away win"}[self.value]
