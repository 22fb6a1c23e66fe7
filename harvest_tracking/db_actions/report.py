"""
Aggregate reports over the harvests.
"""
# Standard library
from collections import defaultdict

# Third-party
from sqlalchemy import select, func

# Local modules
from .harvest import harvest_criteria
from ..model import Description, Harvest


def summary(session, start_date=None, end_date=None):
    """
    Totals of the harvests listed for the same period: overall, per unit and
    per (description, unit). Amounts of different units are added together in
    totalAmount, the same way the harvest page sums them.
    """
    stmt = (
        select(
            Harvest.description_id,
            Description.description,
            Harvest.unit,
            func.sum(Harvest.amount),
            func.count(Harvest.id)
        )
        .join(Harvest.description)
        .where(*harvest_criteria(start_date, end_date))
        .group_by(Harvest.description_id, Description.description, Harvest.unit)
        .order_by(Description.description, Harvest.unit)
    )

    items = []
    by_unit = defaultdict(float)
    total_amount = 0.0
    count = 0
    for description_id, text, unit, amount, number in session.execute(stmt):
        amount = float(amount or 0)
        items.append({
            "descriptionId": description_id,
            "description": text,
            "unit": unit.value,
            "totalAmount": amount,
            "count": number
        })
        by_unit[unit.value] += amount
        total_amount += amount
        count += number

    return {
        "DB_ACTION_OUTPUT": {
            "startDate": start_date.isoformat() if start_date else None,
            "endDate": end_date.isoformat() if end_date else None,
            "totalAmount": total_amount,
            "count": count,
            "byUnit": dict(by_unit),
            "items": items
        }
    }
