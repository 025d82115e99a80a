from pydantic import BaseModel, Field, field_validator
from typing import List, Optional


class CocktailIngredientInput(BaseModel):
    product_id: int
    quantity: Optional[float] = None
    unit: str = ""
    required: bool = True


class CocktailIngredientRead(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    product_category: Optional[str] = None
    quantity: Optional[float] = None
    unit: str = ""
    required: bool
    product_available: bool


class CocktailRead(BaseModel):
    id: int
    name: str
    description: str = ""
    tags: List[str] = []
    difficulty: str = "easy"
    prep_time_minutes: int = 5
    instructions: str = ""
    is_enabled: bool
    computed_available: bool
    ingredients: List[CocktailIngredientRead]


class CocktailCreate(BaseModel):
    name: str
    description: str = ""
    tags: List[str] = []
    difficulty: str = "easy"
    prep_time_minutes: int = Field(5, ge=0)
    instructions: str = ""
    is_enabled: bool = True
    ingredients: List[CocktailIngredientInput] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Name is required.")
        return v


class CocktailIngredientsUpdate(BaseModel):
    ingredients: List[CocktailIngredientInput]


class CocktailEnabledUpdate(BaseModel):
    is_enabled: bool


class CocktailUpdate(BaseModel):
    """Partial edit of a cocktail's own fields; ingredients have their own endpoint."""
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    difficulty: Optional[str] = None
    prep_time_minutes: Optional[int] = Field(None, ge=0)
    instructions: Optional[str] = None
    is_enabled: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name is required.")
        return v
