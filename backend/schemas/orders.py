from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class OrderEventRead(BaseModel):
    id: int
    from_status: str
    to_status: str
    changed_by_user_id: Optional[int] = None
    changed_by_name: Optional[str] = None
    created_at: datetime


class OrderRead(BaseModel):
    id: int
    user_id: int
    user_display_name: Optional[str] = None
    cocktail_id: int
    cocktail_name: Optional[str] = None
    quantity: int
    notes: str = ""
    location: str = ""
    status: str
    assigned_bartender_id: Optional[int] = None
    assigned_bartender_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    events: Optional[List[OrderEventRead]] = None


class OrderCreate(BaseModel):
    cocktail_id: int
    # Range is checked by the order lifecycle so the error reads like the others
    quantity: int = 1
    notes: str = ""
    location: str = ""


class OrderStatusUpdate(BaseModel):
    to_status: str


class OrderAssign(BaseModel):
    # None assigns the caller
    bartender_id: Optional[int] = None
    unassign: bool = False


class QueueSummary(BaseModel):
    on_duty: bool
    counts: dict
