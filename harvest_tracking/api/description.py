"""
Description API
"""
import logging

from flask import Blueprint, request, current_app

from .. import db_actions
from ..cache import get_listing_cache, invalidate_descriptions
from ..database import get_db, session_scope
from ..db_actions.errors import RequestError
from ..db_actions.utils import check_object_id
from ..schema import (
    serialize,
    BatchRequestSchema,
    DescriptionRequestSchema,
    DescriptionUpdateSchema,
    DescriptionQuerySchema
    )
from .utils import get_json_data, respond

logger = logging.getLogger(__name__)

bp = Blueprint('description', __name__, url_prefix='/descriptions')


@bp.route('/', methods=['GET'])
def descriptions():
    """
    GET:
    return: active descriptions of active categories, with their category and children
    Query:
    (category):
        return: the descriptions of one category
        Ex: /descriptions?category=<ID>
    (parent):
        return: the direct children of one description
        Ex: /descriptions?parent=<ID>
    """
    filters = DescriptionQuerySchema().load(request.args)
    key = (filters.get("category_id"), filters.get("parent_id"))

    cache = get_listing_cache()
    output = cache.get(key)
    if output is None:
        generation = cache.generation
        with session_scope() as session:
            result = db_actions.descriptions(session, **filters)
            output = serialize(result["DB_ACTION_OUTPUT"], include_relationships=True)
        cache.set(key, output, generation)
    return respond(output)


@bp.route('/', methods=['POST'])
def create_description():
    """
    POST: {"description": str, "categoryId": id, "userId": str, "parentId"?: id, "metadata"?: {}}
    return: the description with its category and children, 201 when created,
    200 when the category already holds the same text (whatever the case)
    """
    data = DescriptionRequestSchema().load(get_json_data())
    with session_scope() as session:
        result = db_actions.create_description(session, **data)
        output = serialize(result["DB_ACTION_OUTPUT"][0], include_relationships=True)
    created = "DB_ACTION_WARNING" not in result
    if created:
        invalidate_descriptions()
    return respond(output, 201 if created else 200)


@bp.route('/', methods=['PATCH'])
def patch_description():
    """
    PATCH: {"id": id, "updates": {...}}
    Only the provided fields are written, a status set to inactive cascades to the children.
    """
    body = get_json_data()
    if not isinstance(body, dict) or not body.get("id") or not body.get("updates"):
        raise RequestError("ID and updates are required")
    check_object_id(body["id"], "description")
    return _edit(body["id"], body["updates"])


@bp.route('/<string:description_id>', methods=['GET'])
def description(description_id: str):
    """
    GET:
    return: the description with its category and children
    """
    check_object_id(description_id, "description")
    with session_scope() as session:
        result = db_actions.description.description(session, description_id)
        return respond(serialize(result["DB_ACTION_OUTPUT"][0], include_relationships=True))


@bp.route('/<string:description_id>', methods=['PUT'])
def put_description(description_id: str):
    """
    PUT: partial description, same keys as POST
    Only the provided fields are written, a status set to inactive cascades to the children.
    """
    check_object_id(description_id, "description")
    return _edit(description_id, get_json_data())


@bp.route('/<string:description_id>', methods=['DELETE'])
def delete_description(description_id: str):
    """
    DELETE: soft delete, the description and its direct children become inactive
    """
    check_object_id(description_id, "description")
    with session_scope() as session:
        db_actions.modification.delete(description_id, session)
    invalidate_descriptions()
    return respond(None)


@bp.route('/<string:description_id>/restore', methods=['POST'])
def restore_description(description_id: str):
    """
    POST: the description becomes active again, its children keep their status
    """
    check_object_id(description_id, "description")
    with session_scope() as session:
        result = db_actions.modification.undelete(description_id, session)
        output = serialize(result["DB_ACTION_OUTPUT"][0])
    invalidate_descriptions()
    return respond(output)


@bp.route('/batch', methods=['POST'])
def batch():
    """
    POST: {"operations": [{"type": "create"|"update"|"delete", "id"?: id, "data"?: {...}}, ...]}
    Create operations carry data and no id, update and delete operations carry an id.
    All operations run in one transaction, in order. A failing operation is reported
    in "errors" and the others still apply; when all of them fail nothing is written.
    return: {"success": true, "data": [...], "errors"?: [{"id": id, "error": str}]}
    """
    schema = BatchRequestSchema(max_operations=current_app.config["BATCH_MAX_OPERATIONS"])
    data = schema.load(get_json_data())

    processor = db_actions.BatchProcessor(get_db())
    result = processor.process(data["operations"])
    invalidate_descriptions()

    errors = result["DB_ACTION_ERROR"]
    if errors:
        return respond(result["DB_ACTION_OUTPUT"], errors=errors)
    return respond(result["DB_ACTION_OUTPUT"])


def _edit(description_id, updates):
    data = DescriptionUpdateSchema().load(updates)
    data.pop("id", None)
    with session_scope() as session:
        result = db_actions.description.edit(session, description_id, data)
        output = serialize(result["DB_ACTION_OUTPUT"][0], include_relationships=True)
    invalidate_descriptions()
    return respond(output)
