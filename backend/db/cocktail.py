from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from core.availability import IngredientAvailability, cocktail_available
from .database import Base, utcnow


class Cocktail(Base):
    """Drink on the menu; orderable only while enabled and all required ingredients are available"""
    __tablename__ = "cocktails"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=False, default="")
    tags = Column(Text, nullable=False, default="")  # comma separated
    difficulty = Column(String, nullable=False, default="easy")
    prep_time_minutes = Column(Integer, nullable=False, default=5)
    instructions = Column(Text, nullable=False, default="")
    is_enabled = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    ingredients = relationship(
        "CocktailIngredient",
        back_populates="cocktail",
        cascade="all, delete-orphan",
        order_by="CocktailIngredient.position",
    )

    @property
    def tag_list(self):
        return [t.strip() for t in (self.tags or "").split(",") if t.strip()]

    @property
    def ingredient_names(self):
        return [ci.product.name for ci in self.ingredients if ci.product]

    @property
    def ingredient_availability(self):
        """Current availability of each ingredient (needs ingredients.product loaded)"""
        return [
            IngredientAvailability(
                product_id=ci.product_id,
                product_name=ci.product.name if ci.product else "",
                required=bool(ci.required),
                available=ci.product.computed_available if ci.product else False,
            )
            for ci in self.ingredients
        ]

    @property
    def computed_available(self) -> bool:
        return cocktail_available(self.is_enabled, self.ingredient_availability)

    @property
    def to_schema(self):
        """Convert Cocktail model to schema dictionary format"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "tags": self.tag_list,
            "difficulty": self.difficulty,
            "prep_time_minutes": self.prep_time_minutes,
            "instructions": self.instructions or "",
            "is_enabled": bool(self.is_enabled),
            "computed_available": self.computed_available,
            "ingredients": [ci.to_schema for ci in self.ingredients],
        }
