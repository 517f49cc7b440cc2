import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.core.exceptions import NotFoundError
from app.models.entry import Entry
from app.models.exit import Exit
from app.models.product import Product
from app.models.profile import UserProfile

logger = logging.getLogger(__name__)


class LedgerStore:
    """
    Typed access to products, entries, exits and profiles.

    The store holds no business rules and never commits; callers own the
    transaction boundary.
    """

    def __init__(self, db: Session):
        self.db = db

    # Products

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def require_product(self, product_id: str) -> Product:
        product = self.get_product(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    def list_products(self, category: Optional[str] = None) -> List[Product]:
        query = self.db.query(Product)
        if category:
            query = query.filter(Product.category == category)
        return query.order_by(Product.category, Product.name).all()

    def search_products(self, term: str, limit: int = 20) -> List[Product]:
        search_term = f"%{term}%"
        return self.db.query(Product).filter(
            (Product.name.ilike(search_term)) | (Product.category.ilike(search_term))
        ).order_by(Product.name).limit(limit).all()

    def add_product(self, product: Product) -> Product:
        self.db.add(product)
        self.db.flush()
        return product

    def delete_product(self, product: Product) -> None:
        self.db.delete(product)
        self.db.flush()

    def adjust_product_quantity(self, product_id: str, delta: int) -> Optional[int]:
        """
        Atomically add ``delta`` to a product's quantity.

        The update only applies when the result stays non-negative. Returns the
        new quantity, or None when no row matched (missing product or underflow).
        """
        self.db.flush()
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.quantity + delta >= 0)
            .values(quantity=Product.quantity + delta, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.debug(f"Quantity adjustment of {delta} rejected for product {product_id}")
            return None

        product = self.get_product(product_id)
        self.db.refresh(product)
        return product.quantity

    # Entries

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        return self.db.query(Entry).filter(Entry.id == entry_id).first()

    def require_entry(self, entry_id: str) -> Entry:
        entry = self.get_entry(entry_id)
        if not entry:
            raise NotFoundError("Entry", entry_id)
        return entry

    def list_entries(self, product_id: Optional[str] = None) -> List[Entry]:
        query = self.db.query(Entry)
        if product_id:
            query = query.filter(Entry.product_id == product_id)
        return query.order_by(Entry.date.desc()).all()

    def add_entry(self, entry: Entry) -> Entry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def delete_entry(self, entry: Entry) -> None:
        self.db.delete(entry)
        self.db.flush()

    # Exits

    def get_exit(self, exit_id: str) -> Optional[Exit]:
        return self.db.query(Exit).filter(Exit.id == exit_id).first()

    def require_exit(self, exit_id: str) -> Exit:
        stock_exit = self.get_exit(exit_id)
        if not stock_exit:
            raise NotFoundError("Exit", exit_id)
        return stock_exit

    def list_exits(self, product_id: Optional[str] = None) -> List[Exit]:
        query = self.db.query(Exit)
        if product_id:
            query = query.filter(Exit.product_id == product_id)
        return query.order_by(Exit.date.desc()).all()

    def add_exit(self, stock_exit: Exit) -> Exit:
        self.db.add(stock_exit)
        self.db.flush()
        return stock_exit

    def delete_exit(self, stock_exit: Exit) -> None:
        self.db.delete(stock_exit)
        self.db.flush()

    # Profiles

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.db.query(UserProfile).filter(UserProfile.id == user_id).first()

    def require_profile(self, user_id: str) -> UserProfile:
        profile = self.get_profile(user_id)
        if not profile:
            raise NotFoundError("User", user_id)
        return profile

    def list_profiles(self) -> List[UserProfile]:
        return self.db.query(UserProfile).order_by(UserProfile.email).all()

    def add_profile(self, profile: UserProfile) -> UserProfile:
        self.db.add(profile)
        self.db.flush()
        return profile
