from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.session import get_db
from app.schemas.product import LowStockProduct
from app.services.access.policy import AccessPolicy
from app.services.reports.alerts import low_stock_products
from app.services.stock.store import LedgerStore
from app.api.endpoints.auth import get_active_policy

router = APIRouter()

@router.get("/low-stock", response_model=List[LowStockProduct])
async def get_low_stock_products(
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_active_policy),
):
    """Get products at or below their minimum stock level."""
    products = low_stock_products(LedgerStore(db).list_products(category=category))

    low_stock_items = []
    for product in products:
        item = LowStockProduct.model_validate(product)
        item.shortage = product.min_stock - product.quantity
        low_stock_items.append(item)

    return low_stock_items
