from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database.session import get_db
from app.schemas.movement import MovementFilter, MovementOut, MovementSummary
from app.services.access.policy import AccessPolicy
from app.services.reports.movements import build_movements, filter_movements, summarize_movements
from app.services.stock.store import LedgerStore
from app.api.endpoints.auth import get_active_policy

router = APIRouter()


def _fetch_movements(db: Session, movement_type: str):
    store = LedgerStore(db)
    movements = build_movements(store.list_entries(), store.list_exits(), movement_type)
    product_names = {p.id: p.name for p in store.list_products()}
    return movements, product_names

@router.get("/movements", response_model=List[MovementOut])
async def get_movements(
    movement_type: MovementFilter = Query("all", alias="type"),
    product_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_active_policy),
):
    """
    Get the combined entry and exit history.

    Filters combine with AND; the end date includes the whole day. Results
    are sorted by date, most recent first.
    """
    movements, product_names = _fetch_movements(db, movement_type)
    filtered = filter_movements(
        movements,
        movement_type=movement_type,
        product_id=product_id,
        start_date=start_date,
        end_date=end_date,
    )

    return [
        MovementOut(
            id=m.id,
            type=m.type,
            product_id=m.product_id,
            product_name=product_names.get(m.product_id),
            quantity=m.quantity,
            date=m.date,
            employee_name=m.employee_name,
        )
        for m in filtered
    ]

@router.get("/summary", response_model=List[MovementSummary])
async def get_movement_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_active_policy),
):
    """Get total quantity in, out and net per product for a period."""
    movements, product_names = _fetch_movements(db, "all")
    filtered = filter_movements(movements, start_date=start_date, end_date=end_date)

    return [
        MovementSummary(product_id=product_id, product_name=product_names.get(product_id), **totals)
        for product_id, totals in sorted(summarize_movements(filtered).items())
    ]
