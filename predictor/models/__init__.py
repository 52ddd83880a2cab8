from predictor import db  # noqa: F401 - imported for model imports

from .admin_action import AdminAction
from .award import Award
from .fixture import Fixture
from .outcome import Outcome
from .player import Player
from .prediction import Prediction

__all__ = [
    "Player",
    "Fixture",
    "Prediction",
    "Award",
    "AdminAction",
    "Outcome",
]
