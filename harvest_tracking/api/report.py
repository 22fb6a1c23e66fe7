"""
Report API
"""
import logging

from flask import Blueprint, request

from .. import db_actions
from ..database import session_scope
from ..schema import DateRangeSchema
from .utils import respond

logger = logging.getLogger(__name__)

bp = Blueprint('report', __name__, url_prefix='/reports')


@bp.route('/summary', methods=['GET'])
def summary():
    """
    GET:
    return: total amount and number of harvests, per unit and per description
    Query:
    (startDate, endDate):
        return: totals of the period, both days included
        Ex: /reports/summary?startDate=2024-05-01&endDate=2024-05-31
    """
    period = DateRangeSchema().load(request.args)
    with session_scope() as session:
        result = db_actions.report.summary(session, **period)
    return respond(result["DB_ACTION_OUTPUT"])
