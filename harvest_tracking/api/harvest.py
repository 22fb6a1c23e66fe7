"""
Harvest API
"""
import logging

from flask import Blueprint, request

from .. import db_actions
from ..database import session_scope
from ..db_actions.utils import check_object_id
from ..schema import serialize, DateRangeSchema, HarvestRequestSchema, HarvestUpdateSchema
from .utils import get_json_data, respond

logger = logging.getLogger(__name__)

bp = Blueprint('harvest', __name__, url_prefix='/harvests')


@bp.route('/', methods=['GET'])
def harvests():
    """
    GET:
    return: active harvests of active descriptions, newest first, with description and category
    Query:
    (startDate, endDate):
        return: harvests of the period, both days included
        Ex: /harvests?startDate=2024-05-01&endDate=2024-05-31
    """
    period = DateRangeSchema().load(request.args)
    with session_scope() as session:
        result = db_actions.harvests(session, **period)
        return respond(serialize(result["DB_ACTION_OUTPUT"], include_relationships=True))


@bp.route('/', methods=['POST'])
def create_harvest():
    """
    POST: {"descriptionId": id, "amount": number >= 0, "unit": str, "harvestDate"?: "YYYY-MM-DD"}
    return: the harvest with its description and category
    """
    data = HarvestRequestSchema().load(get_json_data())
    with session_scope() as session:
        result = db_actions.create_harvest(session, **data)
        output = serialize(result["DB_ACTION_OUTPUT"][0], include_relationships=True)
    return respond(output, 201)


@bp.route('/<string:harvest_id>', methods=['PUT'])
def update_harvest(harvest_id: str):
    """
    PUT: any of the POST keys, only the provided ones are written
    return: the harvest with its description and category
    """
    check_object_id(harvest_id, "harvest")
    data = HarvestUpdateSchema().load(get_json_data())
    with session_scope() as session:
        result = db_actions.harvest.edit(session, harvest_id, data)
        output = serialize(result["DB_ACTION_OUTPUT"][0], include_relationships=True)
    return respond(output)


@bp.route('/<string:harvest_id>', methods=['DELETE'])
def delete_harvest(harvest_id: str):
    """
    DELETE: removes the harvest
    """
    check_object_id(harvest_id, "harvest")
    with session_scope() as session:
        result = db_actions.harvest.delete(session, harvest_id)
    return respond(None, info=result["DB_ACTION_OUTPUT"])
