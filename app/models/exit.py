from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.database.session import Base

class Exit(Base):
    """A stock-decreasing movement."""
    __tablename__ = "exits"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_exits_quantity_positive"),
    )

    id = Column(String, primary_key=True, index=True)
    product_id = Column(String, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    employee_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    product = relationship("Product", back_populates="exits")
