from sqlalchemy import Column, String, DateTime, Boolean, Enum
from sqlalchemy.sql import func
import enum

from app.database.session import Base

class UserRole(str, enum.Enum):
    PENDING = "pending"
    SIMPLE = "simple"
    ADMIN = "admin"

class UserProfile(Base):
    __tablename__ = "profiles"

    # Matches the identity provider's subject
    id = Column(String, primary_key=True, index=True)
    email = Column(String, nullable=True, index=True)
    role = Column(
        Enum(UserRole, values_callable=lambda roles: [r.value for r in roles], native_enum=False),
        nullable=False,
        default=UserRole.PENDING,
    )
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
