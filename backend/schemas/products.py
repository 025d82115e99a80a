from pydantic import BaseModel, field_validator
from typing import Optional


def check_stock_count(v: Optional[int]) -> Optional[int]:
    if v is not None and v < 0:
        raise ValueError("Stock count cannot be negative.")
    return v


class ProductRead(BaseModel):
    id: int
    name: str
    category: str
    abv_percent: Optional[float] = None
    allergen_flags: str = ""
    notes: str = ""
    is_available: bool
    stock_count: Optional[int] = None
    computed_available: bool


class ProductCreate(BaseModel):
    name: str
    category: str
    abv_percent: Optional[float] = None
    allergen_flags: str = ""
    notes: str = ""
    is_available: bool = True
    stock_count: Optional[int] = None

    @field_validator("name", "category")
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Name and category are required.")
        return v

    @field_validator("stock_count")
    @classmethod
    def validate_stock_count(cls, v: Optional[int]) -> Optional[int]:
        return check_stock_count(v)


class ProductAvailabilityUpdate(BaseModel):
    is_available: bool


class ProductStockUpdate(BaseModel):
    # None stops tracking stock; the manual flag applies again
    stock_count: Optional[int] = None

    @field_validator("stock_count")
    @classmethod
    def validate_stock_count(cls, v: Optional[int]) -> Optional[int]:
        return check_stock_count(v)
