"""
Category actions. Deactivating or restoring a category moves all of its
descriptions along in the same transaction.
"""
# Standard library
import logging

# Third-party
from sqlalchemy import select, update

# Local modules
from .utils import get_or_raise
from ..model import Category, Description, StatusEnum

logger = logging.getLogger(__name__)


def categories(session, status=StatusEnum.ACTIVE):
    """
    Fetching all categories with status, ordered by their order then name.
    """
    ret = {
        "DB_ACTION_WARNING": [],
        "DB_ACTION_OUTPUT": []
    }

    stmt = (
        select(Category)
        .where(Category.status == status)
        .order_by(Category.order, Category.name)
    )
    result = session.execute(stmt).scalars().all()

    if not result:
        ret["DB_ACTION_WARNING"].append(f"No categories found with status={status.value}")
    else:
        ret["DB_ACTION_OUTPUT"].extend(result)
    if not ret["DB_ACTION_WARNING"]:
        ret.pop("DB_ACTION_WARNING")

    return ret


def create_category(session, name, description=None, order=None, status=StatusEnum.ACTIVE, extra_metadata=None):
    """
    Creating a new category, an existing one with the same name (whatever the case) is returned instead.
    """
    ret = {
        "DB_ACTION_WARNING": [],
        "DB_ACTION_OUTPUT": []
    }

    category, created = Category.from_name(
        name,
        session=session,
        description=description,
        order=order,
        status=status,
        extra_metadata=extra_metadata
    )
    if created:
        logger.info(f"Category '{name}' created with id={category.id}")
    else:
        ret["DB_ACTION_WARNING"].append(f"'Category' with name '{category.name}' already exists in the database.")
    ret["DB_ACTION_OUTPUT"].append(category)

    if not ret["DB_ACTION_WARNING"]:
        ret.pop("DB_ACTION_WARNING")

    return ret


def _set_category_status(session, category_id, status):
    category = get_or_raise(session, Category, category_id)
    category.status = status
    # Bulk update on purpose, the description parent cascade is not involved here
    changed = session.execute(
        update(Description)
        .where(Description.category_id == category_id)
        .values(status=status)
    ).rowcount
    session.flush()
    logger.info(f"Category id={category_id} set to {status.value} with {changed} description(s)")
    return category, changed


def delete(session, category_id):
    """
    Soft delete of a category and all of its descriptions.
    """
    category, changed = _set_category_status(session, category_id, StatusEnum.INACTIVE)
    return {
        "DB_ACTION_OUTPUT": [category],
        "DB_ACTION_INFO": [f"{changed} description(s) deactivated."]
    }


def undelete(session, category_id):
    """
    Restore of a category and all of its descriptions.
    """
    category, changed = _set_category_status(session, category_id, StatusEnum.ACTIVE)
    return {
        "DB_ACTION_OUTPUT": [category],
        "DB_ACTION_INFO": [f"{changed} description(s) restored."]
    }


def reorder(session, ordered_ids):
    """
    Sets the order of each category to its index in ordered_ids.
    Unknown ids are reported as warnings.
    """
    ret = {
        "DB_ACTION_WARNING": [],
        "DB_ACTION_OUTPUT": []
    }

    for index, category_id in enumerate(ordered_ids):
        category = session.get(Category, category_id)
        if category is None:
            ret["DB_ACTION_WARNING"].append(f"'Category' with id '{category_id}' doesn't exist in the database. Skipping...")
            continue
        category.order = index
        ret["DB_ACTION_OUTPUT"].append(category)
    session.flush()

    if not ret["DB_ACTION_WARNING"]:
        ret.pop("DB_ACTION_WARNING")

    return ret
