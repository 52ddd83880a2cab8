from predictor import create_app, db
from predictor.models import AdminAction, Award, Fixture, Player, Prediction

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Player": Player,
        "Fixture": Fixture,
        "Prediction": Prediction,
        "Award": Award,
        "AdminAction": AdminAction,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
