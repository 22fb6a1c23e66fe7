"""
Description actions: listing, creation and partial updates.
"""
# Standard library
import logging

# Third-party
from sqlalchemy import select, func
from sqlalchemy.orm import contains_eager, selectinload

# Local modules
from .errors import RequestError, UniqueConstraintError
from .modification import set_description_status
from .utils import get_or_raise, populated_description
from ..model import Category, Description, StatusEnum

logger = logging.getLogger(__name__)

# Fields a partial update may write, in the order they are applied
UPDATABLE = ("description", "category_id", "parent_id", "extra_metadata", "created_by", "status")


def descriptions(session, category_id=None, parent_id=None):
    """
    Fetching active descriptions belonging to an active category,
    optionally restricted to a category and/or a parent.
    """
    ret = {
        "DB_ACTION_WARNING": [],
        "DB_ACTION_OUTPUT": []
    }

    stmt = (
        select(Description)
        .join(Description.category)
        .where(
            Description.status == StatusEnum.ACTIVE,
            Category.status == StatusEnum.ACTIVE
        )
        .options(contains_eager(Description.category), selectinload(Description.children))
        .order_by(Description.creation, Description.id)
    )
    if category_id:
        stmt = stmt.where(Description.category_id == category_id)
    if parent_id:
        stmt = stmt.where(Description.parent_id == parent_id)

    result = session.execute(stmt).unique().scalars().all()

    if not result:
        ret["DB_ACTION_WARNING"].append(
            f"No descriptions found with the following criteria: "
            f"category_id={category_id}, "
            f"parent_id={parent_id}"
        )
    else:
        ret["DB_ACTION_OUTPUT"].extend(result)
    if not ret["DB_ACTION_WARNING"]:
        ret.pop("DB_ACTION_WARNING")

    return ret


def description(session, description_id):
    """
    Fetching one description with its category and children.
    """
    return {"DB_ACTION_OUTPUT": [populated_description(session, description_id)]}


def check_category(session, category_id):
    """
    A description always references an existing category.
    """
    category = session.get(Category, category_id)
    if category is None:
        raise RequestError(f"Category with id '{category_id}' not found")
    return category


def check_parent(session, parent_id, description_id=None):
    """
    The parent has to exist and can't be the description itself or one of its descendants.
    """
    parent = session.get(Description, parent_id)
    if parent is None:
        raise RequestError(f"Parent description with id '{parent_id}' not found")
    if description_id is not None:
        ancestor = parent
        while ancestor is not None:
            if ancestor.id == description_id:
                raise RequestError(f"Description '{description_id}' can't be its own ancestor")
            ancestor = ancestor.parent
    return parent


def create_description(session, description, category_id, created_by, parent_id=None, status=StatusEnum.ACTIVE, extra_metadata=None):
    """
    Creating a new description, an existing one with the same text (whatever the case) in the same
    category is returned instead.
    """
    ret = {
        "DB_ACTION_WARNING": [],
        "DB_ACTION_OUTPUT": []
    }

    category = check_category(session, category_id)
    parent = check_parent(session, parent_id) if parent_id else None

    entry, created = Description.from_text(
        description,
        category=category,
        created_by=created_by,
        session=session,
        parent=parent,
        status=status,
        extra_metadata=extra_metadata
    )
    if created:
        logger.info(f"Description '{description}' created with id={entry.id} in category id={category_id}")
    else:
        ret["DB_ACTION_WARNING"].append(
            f"'Description' '{entry.description}' already exists in category '{category.name}'."
        )
    ret["DB_ACTION_OUTPUT"].append(populated_description(session, entry.id))

    if not ret["DB_ACTION_WARNING"]:
        ret.pop("DB_ACTION_WARNING")

    return ret


def check_unique(session, entry, text, category_id):
    """
    Text is unique within a category whatever the case.
    """
    duplicate = session.execute(
        select(Description.id).where(
            Description.category_id == category_id,
            func.lower(Description.description) == text.lower(),
            Description.id != entry.id
        )
    ).first()
    if duplicate is not None:
        raise UniqueConstraintError(f"'Description' '{text}' already exists in category with id '{category_id}'")


def apply_updates(entry, updates, session):
    """
    Writes the provided fields only, references included when they are given.
    A status moving to inactive is propagated to the children.
    """
    if "description" in updates or "category_id" in updates:
        check_unique(
            session,
            entry,
            updates.get("description", entry.description),
            updates.get("category_id", entry.category_id)
        )
    for key in UPDATABLE:
        if key not in updates:
            continue
        value = updates[key]
        if key == "category_id":
            check_category(session, value)
        elif key == "parent_id" and value is not None:
            check_parent(session, value, description_id=entry.id)
        if key == "status":
            set_description_status(entry, value, session)
        else:
            setattr(entry, key, value)
    session.flush()
    return entry


def edit(session, description_id, updates):
    """
    Partial update of a description.
    """
    entry = get_or_raise(session, Description, description_id)
    apply_updates(entry, updates, session)
    return {"DB_ACTION_OUTPUT": [populated_description(session, description_id)]}
