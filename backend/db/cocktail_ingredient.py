from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from .database import Base


class CocktailIngredient(Base):
    """Link between a Cocktail and a Product.
    Only `required` links take part in the cocktail's availability."""
    __tablename__ = "cocktail_ingredients"

    id = Column(Integer, primary_key=True, index=True)
    cocktail_id = Column(Integer, ForeignKey("cocktails.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Float, nullable=True)
    unit = Column(String, nullable=False, default="")
    required = Column(Boolean, nullable=False, default=True)
    position = Column(Integer, nullable=False, default=0)

    cocktail = relationship("Cocktail", back_populates="ingredients")
    product = relationship("Product")

    @property
    def to_schema(self):
        product = self.product
        return {
            "product_id": self.product_id,
            "product_name": product.name if product else None,
            "product_category": product.category if product else None,
            "quantity": self.quantity,
            "unit": self.unit or "",
            "required": bool(self.required),
            "product_available": product.computed_available if product else False,
        }
