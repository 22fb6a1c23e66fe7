# Vocabulary and standard format entry

# Generic
DATE_LONG_FMT = "%Y-%m-%d %H:%M:%S"
DATE_FMT = "%Y-%m-%d"
OBJECT_ID_REGEX = r"^[0-9a-fA-F]{24}$"

# Metadata
METADATA_TYPES = ["string", "number", "boolean", "date"]

# Batch operations
OPERATIONS = "operations"
OPERATION_TYPE = "type"
OPERATION_ID = "id"
OPERATION_DATA = "data"
CREATE = "create"
UPDATE = "update"
DELETE = "delete"
OPERATION_TYPES = [CREATE, UPDATE, DELETE]
BATCH_MAX_OPERATIONS = 100
# Key used in the errors list when an operation came without an id
UNKNOWN_ID = "unknown"

# Harvests are stored at noon UTC of their day
HARVEST_HOUR = 12
