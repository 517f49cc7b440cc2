from dataclasses import asdict
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database.session import get_db
from app.models.profile import UserProfile
from app.schemas.movement import EntryOut, MovementCreate, MovementUpdate, StockImpactOut
from app.services.access.policy import AccessPolicy
from app.services.stock.reconciliation import StockReconciliationService
from app.services.stock.store import LedgerStore
from app.api.endpoints.auth import get_active_policy, get_current_profile, employee_name

router = APIRouter()


def get_reconciliation_service(
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_active_policy),
    profile: UserProfile = Depends(get_current_profile),
) -> StockReconciliationService:
    return StockReconciliationService(db, policy, employee_name(profile))


@router.get("/", response_model=List[EntryOut])
async def get_entries(
    product_id: Optional[str] = None,
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_active_policy),
):
    """Get stock entries, newest first, optionally for one product."""
    return LedgerStore(db).list_entries(product_id=product_id)

@router.post("/", response_model=EntryOut, status_code=status.HTTP_201_CREATED)
async def record_entry(
    entry: MovementCreate,
    service: StockReconciliationService = Depends(get_reconciliation_service),
):
    """Record a stock entry and add its quantity to the product."""
    return service.record_entry(entry.product_id, entry.quantity, entry.date)

@router.put("/{entry_id}", response_model=EntryOut)
async def edit_entry(
    entry_id: str,
    entry: MovementUpdate,
    service: StockReconciliationService = Depends(get_reconciliation_service),
):
    """Edit an entry (admin only); stock is adjusted by the difference."""
    return service.edit_entry(entry_id, entry.quantity, entry.date, entry.product_id)

@router.get("/{entry_id}/delete-preview", response_model=StockImpactOut)
async def preview_delete_entry(
    entry_id: str,
    service: StockReconciliationService = Depends(get_reconciliation_service),
):
    """Show what deleting an entry would do to stock, for the confirmation dialog."""
    impact = service.preview_delete_entry(entry_id)
    return StockImpactOut(**asdict(impact))

@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: str,
    service: StockReconciliationService = Depends(get_reconciliation_service),
):
    """Delete an entry (admin only) and take its quantity back out of stock."""
    service.delete_entry(entry_id)
    return None
