"""
Batch of create/update/delete operations on descriptions.

All the operations of a batch share one transaction and run in the order
they were submitted, so an operation sees what the previous ones wrote.
Each operation runs in its own SAVEPOINT: when it fails, only its own writes
are rolled back and the next operation runs. The transaction commits unless
every operation failed.

Concurrent batches touching the same descriptions get no locking beyond the
isolation level of the storage engine, lost updates are possible.
"""
# Standard library
import logging

# Third-party
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

# Local modules
from .errors import (
    Error,
    RequestError,
    AllOperationsFailedError,
    DatabaseError
    )
from .description import apply_updates, check_category, check_parent
from .modification import set_description_status
from .utils import get_or_raise, populated_description
from .. import vocabulary as vb
from ..model import Description, StatusEnum
from ..schema import serialize

logger = logging.getLogger(__name__)

# Fields a create operation can't do without
REQUIRED_ON_CREATE = {
    "description": "description",
    "category_id": "categoryId",
    "created_by": "userId"
}


def operation_error_message(error):
    """
    Human readable message of a failed operation, storage internals are not exposed.
    """
    if isinstance(error, Error):
        return error.message
    if isinstance(error, IntegrityError):
        return "Operation conflicts with existing data (duplicate description or invalid reference)"
    return "Database error while applying operation"


class BatchProcessor:
    """
    Applies batches of description operations with the session of the given storage client.

    serializer turns a description into the entry appended to the results, it is
    called inside the transaction right after the operation so every entry shows
    the description as the operation left it.
    """

    def __init__(self, db, serializer=serialize):
        self.db = db
        self.serializer = serializer
        self.handlers = {
            vb.CREATE: self.create,
            vb.UPDATE: self.update,
            vb.DELETE: self.delete
        }

    def process(self, operations):
        """
        operations: list of {"type", "id"?, "data"?} already checked for shape.
        returns: {"DB_ACTION_OUTPUT": [results], "DB_ACTION_ERROR": [{"id", "error"}]}
        raises AllOperationsFailedError when nothing succeeded, the transaction is then rolled back.
        """
        if not operations:
            raise RequestError(argument=vb.OPERATIONS)

        ret = {
            "DB_ACTION_OUTPUT": [],
            "DB_ACTION_ERROR": []
        }

        session = self.db.get_session()
        try:
            for operation in operations:
                self.run_isolated(operation, session, ret)

            if len(ret["DB_ACTION_ERROR"]) == len(operations):
                logger.error(f"All {len(operations)} operation(s) of the batch failed, rolling back")
                session.rollback()
                raise AllOperationsFailedError()

            session.commit()
        except SQLAlchemyError as error:
            logger.error(f"Batch aborted: {error}")
            session.rollback()
            raise DatabaseError("batch operation") from error
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        logger.info(
            f"Batch committed: {len(ret['DB_ACTION_OUTPUT'])} succeeded, "
            f"{len(ret['DB_ACTION_ERROR'])} failed"
        )
        return ret

    def run_isolated(self, operation, session, ret):
        """
        Runs one operation inside a SAVEPOINT, a failure is recorded instead of raised.
        """
        key = operation.get(vb.OPERATION_ID) or vb.UNKNOWN_ID
        handler = self.handlers[operation[vb.OPERATION_TYPE]]
        try:
            with session.begin_nested():
                result = handler(operation, session)
        except (Error, SQLAlchemyError) as error:
            logger.warning(f"Batch {operation[vb.OPERATION_TYPE]} on '{key}' failed: {error}")
            ret["DB_ACTION_ERROR"].append({"id": key, "error": operation_error_message(error)})
        else:
            ret["DB_ACTION_OUTPUT"].append(result)

    def create(self, operation, session):
        data = operation.get(vb.OPERATION_DATA)
        if not data:
            raise RequestError("Data is required for create operations")
        for key, public_name in REQUIRED_ON_CREATE.items():
            if not data.get(key):
                raise RequestError(f"'{public_name}' is required for create operations")

        category = check_category(session, data["category_id"])
        parent = check_parent(session, data["parent_id"]) if data.get("parent_id") else None
        entry = Description(
            description=data["description"],
            category=category,
            parent=parent,
            created_by=data["created_by"],
            status=data.get("status", StatusEnum.ACTIVE),
            extra_metadata=data.get("extra_metadata") or {}
        )
        session.add(entry)
        session.flush()
        return self.serializer(populated_description(session, entry.id), include_relationships=True)

    def update(self, operation, session):
        data = operation.get(vb.OPERATION_DATA)
        if not data:
            raise RequestError("ID and data are required for update operations")
        entry = get_or_raise(session, Description, operation[vb.OPERATION_ID])
        apply_updates(entry, data, session)
        return self.serializer(populated_description(session, entry.id), include_relationships=True)

    def delete(self, operation, session):
        entry = get_or_raise(session, Description, operation[vb.OPERATION_ID])
        set_description_status(entry, StatusEnum.INACTIVE, session)
        session.flush()
        return self.serializer(entry, include_relationships=False)
