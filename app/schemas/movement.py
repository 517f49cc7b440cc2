from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


MovementType = Literal["entry", "exit"]
MovementFilter = Literal["all", "entry", "exit"]


class MovementCreate(BaseModel):
    """Payload for recording an entry or an exit."""
    product_id: str
    quantity: int
    date: Optional[datetime] = None


class MovementUpdate(BaseModel):
    """Payload for editing an entry or an exit; the row's product may change."""
    product_id: str
    quantity: int
    date: datetime


class EntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    quantity: int
    date: datetime
    employee_name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ExitOut(EntryOut):
    pass


class MovementOut(BaseModel):
    id: str
    type: MovementType
    product_id: str
    product_name: Optional[str] = None
    quantity: int
    date: datetime
    employee_name: str


class MovementSummary(BaseModel):
    product_id: str
    product_name: Optional[str] = None
    total_in: int = 0
    total_out: int = 0
    net: int = 0


class StockImpactOut(BaseModel):
    """What deleting a movement would do to its product's quantity."""
    product_id: str
    current_quantity: int
    resulting_quantity: int
    allowed: bool
    message: str = Field("", description="Text for the confirmation dialog")
