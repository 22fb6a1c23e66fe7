"""
Category API
"""
import logging

from flask import Blueprint

from .. import db_actions
from ..cache import invalidate_descriptions
from ..database import session_scope
from ..db_actions.utils import check_object_id
from ..schema import serialize, CategoryRequestSchema, ReorderCategoriesSchema
from .utils import get_json_data, respond

logger = logging.getLogger(__name__)

bp = Blueprint('category', __name__, url_prefix='/categories')


@bp.route('/', methods=['GET'])
def categories():
    """
    GET:
    return: active categories ordered by their order then name
    """
    with session_scope() as session:
        result = db_actions.categories(session)
        return respond(serialize(result["DB_ACTION_OUTPUT"]))


@bp.route('/', methods=['POST'])
def create_category():
    """
    POST: {"name": str, "description"?: str, "metadata"?: {}, "status"?: str, "order"?: int}
    return: the category, 201 when created, 200 when a category with the same name
    (whatever the case) already exists
    """
    data = CategoryRequestSchema().load(get_json_data())
    with session_scope() as session:
        result = db_actions.create_category(session, **data)
        output = serialize(result["DB_ACTION_OUTPUT"][0])
    created = "DB_ACTION_WARNING" not in result
    return respond(output, 201 if created else 200)


@bp.route('/<string:category_id>', methods=['DELETE'])
def delete_category(category_id: str):
    """
    DELETE: soft delete, the category and all of its descriptions become inactive
    """
    check_object_id(category_id, "category")
    with session_scope() as session:
        result = db_actions.category.delete(session, category_id)
        output = serialize(result["DB_ACTION_OUTPUT"][0])
    invalidate_descriptions()
    return respond(output, info=result["DB_ACTION_INFO"])


@bp.route('/<string:category_id>/restore', methods=['POST'])
def restore_category(category_id: str):
    """
    POST: the category and all of its descriptions become active again
    """
    check_object_id(category_id, "category")
    with session_scope() as session:
        result = db_actions.category.undelete(session, category_id)
        output = serialize(result["DB_ACTION_OUTPUT"][0])
    invalidate_descriptions()
    return respond(output, info=result["DB_ACTION_INFO"])


@bp.route('/reorder', methods=['POST'])
def reorder_categories():
    """
    POST: {"orderedIds": [id, ...]}
    Each category gets its index in orderedIds as order, unknown ids are returned as warnings.
    """
    data = ReorderCategoriesSchema().load(get_json_data())
    with session_scope() as session:
        result = db_actions.category.reorder(session, data["ordered_ids"])
        output = serialize(result["DB_ACTION_OUTPUT"])
    # Listings nest the category with its order
    invalidate_descriptions()
    warnings = result.get("DB_ACTION_WARNING")
    if warnings:
        return respond(output, warnings=warnings)
    return respond(output)
