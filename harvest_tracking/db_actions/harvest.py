"""
Harvest actions. Harvests only reference a description, nothing cascades to them.
"""
# Standard library
import logging

# Third-party
from sqlalchemy import select
from sqlalchemy.orm import contains_eager

# Local modules
from .utils import (
    get_or_raise,
    populated_harvest,
    harvest_datetime,
    day_bounds
    )
from ..model import Description, Harvest, StatusEnum

logger = logging.getLogger(__name__)


def harvest_criteria(start_date=None, end_date=None):
    """
    Where criteria selecting the active harvests of active descriptions
    between start_date and end_date, both days included.
    Statements using them have to join Harvest.description.
    """
    start, end = day_bounds(start_date, end_date)
    criteria = [
        Harvest.status == StatusEnum.ACTIVE,
        Description.status == StatusEnum.ACTIVE
    ]
    if start is not None:
        criteria.append(Harvest.harvest_date >= start)
    if end is not None:
        criteria.append(Harvest.harvest_date <= end)
    return criteria


def harvests(session, start_date=None, end_date=None):
    """
    Fetching harvests, newest first.
    """
    ret = {
        "DB_ACTION_WARNING": [],
        "DB_ACTION_OUTPUT": []
    }

    stmt = (
        select(Harvest)
        .join(Harvest.description)
        .where(*harvest_criteria(start_date, end_date))
        .options(contains_eager(Harvest.description).joinedload(Description.category))
        .order_by(Harvest.harvest_date.desc())
    )
    result = session.execute(stmt).unique().scalars().all()

    if not result:
        ret["DB_ACTION_WARNING"].append(
            f"No harvests found with the following criteria: "
            f"start_date={start_date}, "
            f"end_date={end_date}"
        )
    else:
        ret["DB_ACTION_OUTPUT"].extend(result)
    if not ret["DB_ACTION_WARNING"]:
        ret.pop("DB_ACTION_WARNING")

    return ret


def create_harvest(session, description_id, amount, unit, harvest_date=None, extra_metadata=None):
    """
    Recording a harvest of description, harvest_date defaults to today.
    """
    get_or_raise(session, Description, description_id)
    harvest = Harvest(
        description_id=description_id,
        amount=amount,
        unit=unit,
        harvest_date=harvest_datetime(harvest_date),
        status=StatusEnum.ACTIVE,
        extra_metadata=extra_metadata or {}
    )
    session.add(harvest)
    session.flush()
    logger.info(f"Harvest id={harvest.id} of {amount} {unit.value} recorded for description id={description_id}")
    return {"DB_ACTION_OUTPUT": [populated_harvest(session, harvest.id)]}


def edit(session, harvest_id, updates):
    """
    Partial update of a harvest.
    """
    harvest = get_or_raise(session, Harvest, harvest_id)
    if "description_id" in updates:
        get_or_raise(session, Description, updates["description_id"])
    for key, value in updates.items():
        if key == "harvest_date":
            value = harvest_datetime(value)
        setattr(harvest, key, value)
    session.flush()
    return {"DB_ACTION_OUTPUT": [populated_harvest(session, harvest_id)]}


def delete(session, harvest_id):
    """
    Removing a harvest for good.
    """
    harvest = get_or_raise(session, Harvest, harvest_id)
    session.delete(harvest)
    session.flush()
    logger.info(f"Harvest id={harvest_id} deleted")
    return {"DB_ACTION_OUTPUT": [f"'Harvest' with id '{harvest_id}' deleted."]}
