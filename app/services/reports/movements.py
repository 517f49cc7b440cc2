"""
Movement reports.

Pure functions over already-fetched entries and exits: tag them as
movements, filter them and summarize them. Nothing here touches the database.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Union

ENTRY = "entry"
EXIT = "exit"
ALL = "all"

DateLike = Union[date, datetime, str]


@dataclass(frozen=True)
class Movement:
    id: str
    type: str
    product_id: str
    quantity: int
    date: datetime
    employee_name: str


def _as_movement(row, movement_type: str) -> Movement:
    return Movement(
        id=row.id,
        type=movement_type,
        product_id=row.product_id,
        quantity=row.quantity,
        date=row.date,
        employee_name=row.employee_name,
    )


def build_movements(entries: Iterable, exits: Iterable, movement_type: str = ALL) -> List[Movement]:
    """Tag entries and exits as movements, keeping only the requested type."""
    if movement_type not in (ALL, ENTRY, EXIT):
        raise ValueError(f"Unknown movement type: {movement_type}")

    movements: List[Movement] = []
    if movement_type in (ALL, ENTRY):
        movements.extend(_as_movement(e, ENTRY) for e in entries)
    if movement_type in (ALL, EXIT):
        movements.extend(_as_movement(e, EXIT) for e in exits)
    return movements


def _to_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None) if value.tzinfo else value


def filter_movements(
    movements: Iterable[Movement],
    movement_type: str = ALL,
    product_id: Optional[str] = None,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
) -> List[Movement]:
    """
    Apply the report filters and sort newest first.

    All filters must match. ``start_date`` counts from the first instant of
    its day and ``end_date`` runs through the last instant of its day.
    """
    start = datetime.combine(_to_date(start_date), time.min) if start_date else None
    end = datetime.combine(_to_date(end_date), time.max) if end_date else None

    def keep(movement: Movement) -> bool:
        if movement_type != ALL and movement.type != movement_type:
            return False
        if product_id and movement.product_id != product_id:
            return False
        moved_at = _naive(movement.date)
        if start and moved_at < start:
            return False
        if end and moved_at > end:
            return False
        return True

    return sorted(
        (m for m in movements if keep(m)),
        key=lambda m: _naive(m.date),
        reverse=True,
    )


def summarize_movements(movements: Iterable[Movement]) -> Dict[str, Dict[str, int]]:
    """Total quantity in, out and net per product."""
    summary: Dict[str, Dict[str, int]] = {}
    for movement in movements:
        totals = summary.setdefault(movement.product_id, {"total_in": 0, "total_out": 0, "net": 0})
        if movement.type == ENTRY:
            totals["total_in"] += movement.quantity
            totals["net"] += movement.quantity
        else:
            totals["total_out"] += movement.quantity
            totals["net"] -= movement.quantity
    return summary
