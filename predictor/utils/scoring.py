"""
Scoring rules for Matchday Predictor

A correct outcome is worth a fixed 3 points, anything else 0. There is no
partial credit and points are never negative. Persisting awards is the
job of PredictionEngine in predictor/services/prediction_engine.py.
"""

from predictor.models.outcome import Outcome

POINTS_CORRECT = 3
POINTS_INCORRECT = 0


def calculate_points(predicted_outcome, fixture_outcome):
    """
    Calculate points for a single prediction.

    Returns:
        3 when the predicted outcome matches the fixture outcome
        0 otherwise

    Args:
        predicted_outcome: Outcome or outcome code the player chose
        fixture_outcome: resolved Outcome or outcome code of the fixture
    """
    if Outcome.parse(predicted_outcome) == Outcome.parse(fixture_outcome):
        return POINTS_CORRECT
    return POINTS_INCORRECT
