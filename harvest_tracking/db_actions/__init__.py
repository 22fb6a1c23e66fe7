"""
Public interface for db_actions package.
"""
from . import category
from . import description
from . import harvest
from . import modification
from . import report

from .batch import BatchProcessor

from .category import (
    categories,
    create_category
)

from .description import (
    descriptions,
    create_description,
    apply_updates
)

from .harvest import (
    harvests,
    create_harvest
)

from .modification import (
    propagate_deactivation,
    set_description_status
)

from .utils import (
    is_object_id,
    check_object_id
    )

from .errors import Error

__all__ = [
    # Modules
    "category", "description", "harvest", "modification", "report",

    # Batch processing
    "BatchProcessor",

    # Route functions
    "categories", "create_category", "descriptions", "create_description",
    "apply_updates", "harvests", "create_harvest",

    # Status cascade
    "propagate_deactivation", "set_description_status",

    # Utilities
    "is_object_id", "check_object_id",

    # Error handling
    "Error"
]
