from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text

from core.availability import product_available
from .database import Base, utcnow


class Product(Base):
    """Bar stock item (spirit, mixer, garnish...) referenced by cocktail ingredients"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    category = Column(String, nullable=False, index=True)
    abv_percent = Column(Numeric(5, 2), nullable=True)
    allergen_flags = Column(Text, nullable=False, default="")
    notes = Column(Text, nullable=False, default="")

    # Manual flag, only consulted while stock_count is NULL
    is_available = Column(Boolean, nullable=False, default=True)
    stock_count = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def computed_available(self) -> bool:
        return product_available(self.is_available, self.stock_count)

    @property
    def to_schema(self):
        """Convert Product model to schema dictionary format"""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "abv_percent": float(self.abv_percent) if self.abv_percent is not None else None,
            "allergen_flags": self.allergen_flags or "",
            "notes": self.notes or "",
            "is_available": bool(self.is_available),
            "stock_count": self.stock_count,
            "computed_available": self.computed_available,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
