"""
API blueprints
"""
from . import category
from . import description
from . import harvest
from . import report

blueprints = [
    category.bp,
    description.bp,
    harvest.bp,
    report.bp
]
