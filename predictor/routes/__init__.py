from flask import jsonify


def validation_error(form):
    """JSON response for a form that failed validation"""
    return jsonify({"error": "Validation failed", "errors": form.errors}), 400
