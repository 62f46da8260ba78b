from __future__ import annotations

from pydantic import BaseModel, Field


class Ingredient(BaseModel):
    item_id: int
    quantity: int = Field(..., ge=1)


class Recipe(BaseModel):
    recipe_id: int | None = None
    result_item_id: int
    amount_result: int = Field(default=1, ge=1)
    ingredients: list[Ingredient] = Field(default_factory=list)
