import uuid
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import InsufficientStockError, NotFoundError, StockControlError, ValidationError
from app.database.session import atomic
from app.models.entry import Entry
from app.models.exit import Exit
from app.services.access.policy import AccessPolicy
from app.services.stock.store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class StockImpact:
    """The effect a pending deletion would have on its product."""
    product_id: str
    current_quantity: int
    resulting_quantity: int
    allowed: bool
    message: str = ""


class StockReconciliationService:
    """
    Keeps each product's quantity equal to its entries minus its exits.

    Every operation adjusts the product and writes the ledger row inside a
    single transaction. Quantity changes go through the store's guarded
    atomic adjustment, so concurrent movements on the same product cannot
    lose updates or push stock below zero.
    """

    def __init__(self, db: Session, policy: AccessPolicy, employee: str):
        self.db = db
        self.store = LedgerStore(db)
        self.policy = policy
        self.employee = employee

    # Entries

    def record_entry(self, product_id: str, quantity: int, date: Optional[datetime] = None) -> Entry:
        """Add ``quantity`` to the product's stock and record an entry."""
        self.policy.require_record_movements()
        self._validate_quantity(quantity)

        with atomic(self.db):
            self._require_referenced_product(product_id)
            new_quantity = self._adjust(product_id, quantity, self._underflow_as_validation)
            entry = self.store.add_entry(Entry(
                id=str(uuid.uuid4()),
                product_id=product_id,
                quantity=quantity,
                date=date or datetime.utcnow(),
                employee_name=self.employee,
            ))

        logger.info(f"Entry {entry.id} recorded: +{quantity} on product {product_id} (now {new_quantity})")
        return entry

    def edit_entry(self, entry_id: str, new_quantity: int, new_date: datetime, new_product_id: str) -> Entry:
        """
        Change an entry's quantity, date or product and adjust stock by the difference.

        Raises ValidationError when shrinking the entry would leave the product
        with negative stock.
        """
        self.policy.require_modify_movements()
        self._validate_quantity(new_quantity)

        with atomic(self.db):
            entry = self.store.require_entry(entry_id)
            old_product_id, old_quantity = entry.product_id, entry.quantity

            if new_product_id != old_product_id:
                self._require_referenced_product(new_product_id)
                self._adjust(old_product_id, -old_quantity, self._underflow_as_validation)
                self._adjust(new_product_id, new_quantity, self._underflow_as_validation)
            else:
                delta = new_quantity - old_quantity
                if delta:
                    self._adjust(old_product_id, delta, self._underflow_as_validation)

            entry.product_id = new_product_id
            entry.quantity = new_quantity
            entry.date = new_date
            entry.employee_name = self.employee
            entry.updated_at = datetime.utcnow()
            self.db.flush()

        logger.info(
            f"Entry {entry_id} edited: {old_quantity} on product {old_product_id} -> "
            f"{new_quantity} on product {new_product_id}"
        )
        return entry

    def delete_entry(self, entry_id: str) -> None:
        """Remove an entry and take its quantity back out of stock."""
        self.policy.require_modify_movements()

        with atomic(self.db):
            entry = self.store.require_entry(entry_id)
            product_id, quantity = entry.product_id, entry.quantity
            self._adjust(product_id, -quantity, self._underflow_as_insufficient)
            self.store.delete_entry(entry)

        logger.info(f"Entry {entry_id} deleted: -{quantity} on product {product_id}")

    def preview_delete_entry(self, entry_id: str) -> StockImpact:
        self.policy.require_modify_movements()
        entry = self.store.require_entry(entry_id)
        return self._impact(entry.product_id, -entry.quantity)

    # Exits

    def record_exit(self, product_id: str, quantity: int, date: Optional[datetime] = None) -> Exit:
        """Take ``quantity`` out of the product's stock and record an exit."""
        self.policy.require_record_movements()
        self._validate_quantity(quantity)

        with atomic(self.db):
            product = self._require_referenced_product(product_id)
            if product.quantity < quantity:
                raise InsufficientStockError(product_id, product.quantity, quantity)

            new_quantity = self._adjust(product_id, -quantity, self._underflow_as_insufficient)
            stock_exit = self.store.add_exit(Exit(
                id=str(uuid.uuid4()),
                product_id=product_id,
                quantity=quantity,
                date=date or datetime.utcnow(),
                employee_name=self.employee,
            ))

        logger.info(f"Exit {stock_exit.id} recorded: -{quantity} on product {product_id} (now {new_quantity})")
        return stock_exit

    def edit_exit(self, exit_id: str, new_quantity: int, new_date: datetime, new_product_id: str) -> Exit:
        """
        Change an exit's quantity, date or product and adjust stock by the difference.

        Raises InsufficientStockError when the larger exit would leave the
        product with negative stock; nothing is written in that case.
        """
        self.policy.require_modify_movements()
        self._validate_quantity(new_quantity)

        with atomic(self.db):
            stock_exit = self.store.require_exit(exit_id)
            old_product_id, old_quantity = stock_exit.product_id, stock_exit.quantity

            if new_product_id != old_product_id:
                self._require_referenced_product(new_product_id)
                self._adjust(old_product_id, old_quantity, self._underflow_as_insufficient)
                self._adjust(new_product_id, -new_quantity, self._underflow_as_insufficient)
            else:
                delta = new_quantity - old_quantity
                if delta:
                    self._adjust(old_product_id, -delta, self._underflow_as_insufficient)

            stock_exit.product_id = new_product_id
            stock_exit.quantity = new_quantity
            stock_exit.date = new_date
            stock_exit.employee_name = self.employee
            stock_exit.updated_at = datetime.utcnow()
            self.db.flush()

        logger.info(
            f"Exit {exit_id} edited: {old_quantity} on product {old_product_id} -> "
            f"{new_quantity} on product {new_product_id}"
        )
        return stock_exit

    def delete_exit(self, exit_id: str) -> None:
        """Remove an exit and return its quantity to stock."""
        self.policy.require_modify_movements()

        with atomic(self.db):
            stock_exit = self.store.require_exit(exit_id)
            product_id, quantity = stock_exit.product_id, stock_exit.quantity
            self._adjust(product_id, quantity, self._underflow_as_insufficient)
            self.store.delete_exit(stock_exit)

        logger.info(f"Exit {exit_id} deleted: +{quantity} on product {product_id}")

    def preview_delete_exit(self, exit_id: str) -> StockImpact:
        self.policy.require_modify_movements()
        stock_exit = self.store.require_exit(exit_id)
        return self._impact(stock_exit.product_id, stock_exit.quantity)

    # Helpers

    @staticmethod
    def _validate_quantity(quantity):
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be a whole number greater than zero")

    def _require_referenced_product(self, product_id: str):
        product = self.store.get_product(product_id) if product_id else None
        if not product:
            raise ValidationError(f"Product {product_id} not found; select an existing product")
        self.db.refresh(product)
        return product

    def _adjust(self, product_id: str, delta: int, on_underflow: Callable[[str, int, int], StockControlError]) -> int:
        new_quantity = self.store.adjust_product_quantity(product_id, delta)
        if new_quantity is not None:
            return new_quantity

        product = self.store.get_product(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        self.db.refresh(product)
        raise on_underflow(product_id, product.quantity, delta)

    @staticmethod
    def _underflow_as_validation(product_id: str, available: int, delta: int) -> StockControlError:
        return ValidationError(
            f"This change would leave product {product_id} with negative stock "
            f"({available} available, adjustment {delta})"
        )

    @staticmethod
    def _underflow_as_insufficient(product_id: str, available: int, delta: int) -> StockControlError:
        return InsufficientStockError(
            product_id,
            available,
            -delta,
            f"This change would leave product {product_id} with negative stock "
            f"({available} available, {-delta} required)",
        )

    def _impact(self, product_id: str, delta: int) -> StockImpact:
        product = self.store.require_product(product_id)
        self.db.refresh(product)
        resulting = product.quantity + delta
        allowed = resulting >= 0
        if allowed:
            message = f"Stock of {product.name} will change from {product.quantity} to {resulting}. Continue?"
        else:
            message = f"Deleting this movement would leave {product.name} with negative stock."
        return StockImpact(
            product_id=product_id,
            current_quantity=product.quantity,
            resulting_quantity=resulting,
            allowed=allowed,
            message=message,
        )
