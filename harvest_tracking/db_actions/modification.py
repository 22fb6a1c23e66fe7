"""
Status modification actions for the database.

Deactivating a description cascades to its direct children only: the children
are updated in bulk, so their own children are not touched. A grandchild
becomes inactive only when its parent goes through a status transition of its
own. Restoring never cascades.
"""
# Standard library
import logging

# Third-party
from sqlalchemy import update

# Local modules
from .utils import get_or_raise
from ..model import Description, StatusEnum

logger = logging.getLogger(__name__)


def propagate_deactivation(description_id, session):
    """
    Marks inactive every description whose parent is description_id, within session.
    Returns the number of children changed.
    """
    session.flush()
    stmt = (
        update(Description)
        .where(
            Description.parent_id == description_id,
            Description.status != StatusEnum.INACTIVE
        )
        .values(status=StatusEnum.INACTIVE)
    )
    changed = session.execute(stmt).rowcount
    if changed:
        logger.info(f"Cascading deactivation from description id={description_id} to {changed} child(ren)")
    return changed


def set_description_status(description, status, session):
    """
    Sets the status of description, a transition to inactive is propagated to its children.
    Returns True if the status changed.
    """
    if description.status == status:
        return False
    description.status = status
    if status is StatusEnum.INACTIVE:
        propagate_deactivation(description.id, session)
    return True


def delete(description_id, session):
    """
    Soft delete of a description.
    """
    ret = {
        "DB_ACTION_WARNING": [],
        "DB_ACTION_OUTPUT": []
        }

    description = get_or_raise(session, Description, description_id)
    if not set_description_status(description, StatusEnum.INACTIVE, session):
        ret["DB_ACTION_WARNING"].append(f"'Description' with id '{description_id}' already inactive. Skipping...")
    ret["DB_ACTION_OUTPUT"].append(description)
    session.flush()

    if not ret["DB_ACTION_WARNING"]:
        ret.pop("DB_ACTION_WARNING")

    return ret


def undelete(description_id, session):
    """
    Restore of a soft deleted description, children keep their status.
    """
    ret = {
        "DB_ACTION_WARNING": [],
        "DB_ACTION_OUTPUT": []
        }

    description = get_or_raise(session, Description, description_id)
    if not set_description_status(description, StatusEnum.ACTIVE, session):
        ret["DB_ACTION_WARNING"].append(f"'Description' with id '{description_id}' already active. Skipping...")
    ret["DB_ACTION_OUTPUT"].append(description)
    session.flush()

    if not ret["DB_ACTION_WARNING"]:
        ret.pop("DB_ACTION_WARNING")

    return ret
