"""
Helpers shared by the API blueprints.
"""
import logging

from flask import request, jsonify
from werkzeug.exceptions import BadRequest

from ..db_actions.errors import RequestError

logger = logging.getLogger(__name__)


def get_json_data():
    """
    Parses the JSON body of the incoming request.

    Raises:
        RequestError: If the body is not valid JSON.
    """
    try:
        data = request.get_json(force=True)
        logger.debug(f"Received JSON data: {data}")
    except BadRequest as e:
        logger.warning(f"Invalid JSON data: {e}")
        raise RequestError("Invalid JSON data") from e
    if data is None:
        raise RequestError("Invalid JSON data")
    return data


def respond(data, status_code=200, **extra):
    """
    Success envelope: {"success": true, "data": ..., **extra}
    """
    body = {"success": True, "data": data}
    body.update(extra)
    return jsonify(body), status_code
