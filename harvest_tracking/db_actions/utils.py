"""
Utility functions for db_actions package.
"""

import re
from datetime import datetime, time, timezone

# Third-party
from sqlalchemy import select
from sqlalchemy.orm import joinedload, selectinload

# Local modules
from .errors import DidNotFindError, RequestError
from .. import vocabulary as vb
from ..model import Description, Harvest

OBJECT_ID = re.compile(vb.OBJECT_ID_REGEX)


def is_object_id(value):
    """
    Checks if a value has the 24 hexadecimal characters id format.
    """
    return isinstance(value, str) and OBJECT_ID.match(value) is not None


def check_object_id(value, table):
    """
    Raises RequestError if value can't be an id of table.
    """
    if not is_object_id(value):
        raise RequestError(f"Invalid {table.lower()} ID")
    return value


def get_or_raise(session, model_class, entry_id):
    """
    Returns the entry with entry_id, raises DidNotFindError if it doesn't exist.
    """
    entry = session.get(model_class, entry_id)
    if entry is None:
        raise DidNotFindError(table=model_class.__name__, query=entry_id)
    return entry


def populated_description(session, description_id):
    """
    Re-reads a description with its category and direct children loaded.
    Pending changes have to be flushed before.
    """
    stmt = (
        select(Description)
        .where(Description.id == description_id)
        .options(joinedload(Description.category), selectinload(Description.children))
        .execution_options(populate_existing=True)
    )
    description = session.execute(stmt).scalars().first()
    if description is None:
        raise DidNotFindError(table="Description", query=description_id)
    return description


def populated_harvest(session, harvest_id):
    """
    Re-reads a harvest with its description and the description category loaded.
    """
    stmt = (
        select(Harvest)
        .where(Harvest.id == harvest_id)
        .options(joinedload(Harvest.description).joinedload(Description.category))
        .execution_options(populate_existing=True)
    )
    harvest = session.execute(stmt).scalars().first()
    if harvest is None:
        raise DidNotFindError(table="Harvest", query=harvest_id)
    return harvest


def harvest_datetime(day):
    """
    Harvest dates are kept at noon UTC of their day.
    """
    if day is None:
        day = datetime.now(timezone.utc).date()
    return datetime.combine(day, time(hour=vb.HARVEST_HOUR), tzinfo=timezone.utc)


def day_bounds(start_date=None, end_date=None):
    """
    Returns (start, end) datetimes covering whole days, None where no bound is given.
    """
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    end = datetime.combine(end_date, time.max, tzinfo=timezone.utc) if end_date else None
    return start, end
