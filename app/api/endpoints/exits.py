from dataclasses import asdict
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database.session import get_db
from app.schemas.movement import ExitOut, MovementCreate, MovementUpdate, StockImpactOut
from app.services.access.policy import AccessPolicy
from app.services.stock.reconciliation import StockReconciliationService
from app.services.stock.store import LedgerStore
from app.api.endpoints.auth import get_active_policy
from app.api.endpoints.entries import get_reconciliation_service

router = APIRouter()


@router.get("/", response_model=List[ExitOut])
async def get_exits(
    product_id: Optional[str] = None,
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_active_policy),
):
    """Get stock exits, newest first, optionally for one product."""
    return LedgerStore(db).list_exits(product_id=product_id)

@router.post("/", response_model=ExitOut, status_code=status.HTTP_201_CREATED)
async def record_exit(
    stock_exit: MovementCreate,
    service: StockReconciliationService = Depends(get_reconciliation_service),
):
    """Record a stock exit; fails if the product does not have enough stock."""
    return service.record_exit(stock_exit.product_id, stock_exit.quantity, stock_exit.date)

@router.put("/{exit_id}", response_model=ExitOut)
async def edit_exit(
    exit_id: str,
    stock_exit: MovementUpdate,
    service: StockReconciliationService = Depends(get_reconciliation_service),
):
    """Edit an exit (admin only); fails if the larger exit would overdraw stock."""
    return service.edit_exit(exit_id, stock_exit.quantity, stock_exit.date, stock_exit.product_id)

@router.get("/{exit_id}/delete-preview", response_model=StockImpactOut)
async def preview_delete_exit(
    exit_id: str,
    service: StockReconciliationService = Depends(get_reconciliation_service),
):
    """Show what deleting an exit would do to stock, for the confirmation dialog."""
    impact = service.preview_delete_exit(exit_id)
    return StockImpactOut(**asdict(impact))

@router.delete("/{exit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exit(
    exit_id: str,
    service: StockReconciliationService = Depends(get_reconciliation_service),
):
    """Delete an exit (admin only) and return its quantity to stock."""
    service.delete_exit(exit_id)
    return None
