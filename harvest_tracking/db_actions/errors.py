"""
Custom exceptions for the db_actions package.
"""

class Error(Exception):
    """Generic error for db_action"""
    status_code = 400

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload

    def __str__(self):
        return self.message

    def to_dict(self):
        """Convert the error to the response envelope."""
        rv = {"success": False, "data": None}
        rv.update(self.payload or ())
        rv['error'] = self.message
        return rv

class DidNotFindError(Error):
    """DidNotFindError"""
    status_code = 404

    def __init__(self, message=None, table=None, attribute="id", query=None):
        super().__init__(message)
        if message:
            self.message = message
        else:
            self.message = f"'{table}' with '{attribute}' '{query}' doesn't exist in the database"

class RequestError(Error):
    """RequestError"""
    def __init__(self, message=None, argument=None):
        super().__init__(message)
        if message:
            self.message = message
        else:
            self.message = f"For current request, '{argument}' is required"

class UniqueConstraintError(Error):
    """UniqueConstraintError"""
    status_code = 409

    def __init__(self, message=None, entity=None, attribute=None, value=None):
        super().__init__(message)
        if message:
            self.message = message
        else:
            self.message = f"'{entity}' with '{attribute}' '{value}' already exists in the database and '{attribute}' has to be unique"

class AllOperationsFailedError(Error):
    """Every operation of a batch failed, nothing was written"""
    status_code = 500

    def __init__(self, message="All operations failed"):
        super().__init__(message, payload={"data": []})

class DatabaseError(Error):
    """Storage failure, the underlying error is logged and never sent back"""
    status_code = 500

    def __init__(self, action="request"):
        super().__init__(f"Database error during {action}")

class UnexpectedError(Error):
    """Any other failure, the underlying error is logged and never sent back"""
    status_code = 500

    def __init__(self):
        super().__init__("Unexpected error while processing the request")
