# api/responses.py
"""JSON envelopes shared by the REST blueprints."""

from flask import jsonify


def success(data=None, status: int = 200, message: str = None, **extra):
    body = {'success': True}
    if message is not None:
        body['message'] = message
    if data is not None:
        body['data'] = data
    body.update(extra)
    return jsonify(body), status
