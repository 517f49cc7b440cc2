from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.database.session import get_db
from app.models.profile import UserProfile
from app.schemas.product import ProductCreate, ProductUpdate, ProductInDB
from app.services.access.policy import AccessPolicy
from app.services.stock.products import ProductService
from app.services.stock.store import LedgerStore
from app.api.endpoints.auth import get_active_policy, get_current_profile, employee_name

router = APIRouter()


def get_product_service(
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_active_policy),
    profile: UserProfile = Depends(get_current_profile),
) -> ProductService:
    return ProductService(db, policy, employee_name(profile))


@router.post("/", response_model=ProductInDB, status_code=status.HTTP_201_CREATED)
async def create_product(
    product: ProductCreate,
    service: ProductService = Depends(get_product_service),
):
    """Create a new product (admin only). An opening quantity is recorded as an entry."""
    return service.create_product(product)

@router.get("/", response_model=List[ProductInDB])
async def get_products(
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_active_policy),
):
    """Get all products grouped by category, optionally filtered by category."""
    return LedgerStore(db).list_products(category=category)

@router.get("/search/", response_model=List[ProductInDB])
async def search_products(
    query: str = Query(..., min_length=2),
    limit: int = 20,
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_active_policy),
):
    """Search for products by name or category."""
    return LedgerStore(db).search_products(query, limit=limit)

@router.get("/{product_id}", response_model=ProductInDB)
async def get_product(
    product_id: str,
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_active_policy),
):
    """Get a specific product by ID."""
    return LedgerStore(db).require_product(product_id)

@router.put("/{product_id}", response_model=ProductInDB)
async def update_product(
    product_id: str,
    product_update: ProductUpdate,
    service: ProductService = Depends(get_product_service),
):
    """Update a product (admin only). A quantity change is recorded as an adjustment."""
    return service.update_product(product_id, product_update)

@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: str,
    service: ProductService = Depends(get_product_service),
):
    """Delete a product and its movement history (admin only)."""
    service.delete_product(product_id)
    return None
