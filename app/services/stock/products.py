import uuid
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.exceptions import InsufficientStockError, ValidationError
from app.database.session import atomic
from app.models.entry import Entry
from app.models.exit import Exit
from app.models.product import Product
from app.schemas.product import ProductCreate, ProductUpdate
from app.services.access.policy import AccessPolicy
from app.services.stock.store import LedgerStore

logger = logging.getLogger(__name__)


class ProductService:
    """
    Admin maintenance of the product catalogue.

    Quantities set here are written to the ledger as well: an opening stock
    becomes an entry, and a manual correction becomes an entry or an exit for
    the difference.
    """

    def __init__(self, db: Session, policy: AccessPolicy, employee: str):
        self.db = db
        self.store = LedgerStore(db)
        self.policy = policy
        self.employee = employee

    def create_product(self, data: ProductCreate) -> Product:
        self.policy.require_manage_products()

        with atomic(self.db):
            product = self.store.add_product(Product(
                id=str(uuid.uuid4()),
                name=data.name,
                unit=data.unit,
                category=data.category,
                quantity=data.quantity,
                min_stock=data.min_stock,
            ))
            if data.quantity:
                self._record_adjustment(product.id, data.quantity)

        logger.info(f"Product {product.id} ({product.name}) created with quantity {data.quantity}")
        return product

    def update_product(self, product_id: str, data: ProductUpdate) -> Product:
        self.policy.require_manage_products()

        with atomic(self.db):
            product = self.store.require_product(product_id)
            update_data = data.model_dump(exclude_unset=True)
            new_quantity = update_data.pop("quantity", None)

            for key, value in update_data.items():
                if value is None:
                    raise ValidationError(f"{key} cannot be empty")
                setattr(product, key, value)
            self.db.flush()

            if new_quantity is not None:
                self.db.refresh(product)
                difference = new_quantity - product.quantity
                if difference:
                    if self.store.adjust_product_quantity(product_id, difference) is None:
                        # Stock moved since the refresh and the correction would go negative
                        self.db.refresh(product)
                        raise InsufficientStockError(
                            product_id,
                            product.quantity,
                            -difference,
                            f"Stock for product {product_id} changed to {product.quantity} "
                            f"while correcting it to {new_quantity}; reload and try again",
                        )
                    self._record_adjustment(product_id, difference)

        logger.info(f"Product {product_id} updated: {sorted(data.model_dump(exclude_unset=True))}")
        return product

    def delete_product(self, product_id: str) -> None:
        """Delete a product together with its entries and exits."""
        self.policy.require_manage_products()

        with atomic(self.db):
            product = self.store.require_product(product_id)
            self.store.delete_product(product)

        logger.info(f"Product {product_id} deleted")

    def _record_adjustment(self, product_id: str, difference: int):
        movement_class = Entry if difference > 0 else Exit
        row = movement_class(
            id=str(uuid.uuid4()),
            product_id=product_id,
            quantity=abs(difference),
            date=datetime.utcnow(),
            employee_name=self.employee,
        )
        if difference > 0:
            self.store.add_entry(row)
        else:
            self.store.add_exit(row)
