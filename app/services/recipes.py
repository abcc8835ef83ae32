import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from app.models.core import Ingredient, Product, Recipe, RecipeItem
from app.services.errors import InvalidQuantity, NotFound
from app.util.numbers import parse_qty

logger = logging.getLogger(__name__)


@dataclass
class RecipeUpsertResult:
    recipe: Recipe
    missing_ingredients: list[str] = field(default_factory=list)


@dataclass
class Usage:
    """Ingredient usage for a set of sold lines, merged per ingredient."""
    by_ingredient: dict[str, Decimal] = field(default_factory=dict)
    missing_recipes: list[str] = field(default_factory=list)


def get_recipe(db: Session, product_id: str) -> Recipe | None:
    return db.get(Recipe, product_id)


def upsert_recipe(db: Session, product_id: str, items: Iterable[dict]) -> RecipeUpsertResult:
    """
    Replace a product's recipe wholesale.

    items: [{ingredient_id, qty}], qty > 0. Unknown ingredient ids are kept
    and reported back rather than rejected.
    """
    if db.get(Product, product_id) is None:
        raise NotFound("Product", product_id)

    lines: list[tuple[str, Decimal]] = []
    for it in items:
        qty = parse_qty(it.get("qty"))
        if qty == 0:
            raise InvalidQuantity(
                "recipe qty must be greater than zero",
                details={"field": "qty", "ingredient_id": it.get("ingredient_id")},
            )
        lines.append((it["ingredient_id"], qty))

    known = {
        row[0] for row in
        db.query(Ingredient.id).filter(Ingredient.id.in_([i for i, _ in lines])).all()
    } if lines else set()
    missing = [i for i, _ in lines if i not in known]

    recipe = db.get(Recipe, product_id)
    if recipe is None:
        recipe = Recipe(product_id=product_id)
        db.add(recipe)
    recipe.items = [
        RecipeItem(ingredient_id=ing_id, qty=qty, position=pos)
        for pos, (ing_id, qty) in enumerate(lines)
    ]
    db.commit()
    db.refresh(recipe)

    if missing:
        logger.warning("Recipe for %s references unknown ingredients: %s", product_id, missing)
    return RecipeUpsertResult(recipe=recipe, missing_ingredients=missing)


def resolve_usage(db: Session, lines: Iterable) -> Usage:
    """
    lines: objects with product_id, name and qty (order or sale lines).

    Lines without a recipe are named in missing_recipes and contribute nothing.
    """
    usage = Usage()
    recipes: dict[str, Recipe | None] = {}
    for line in lines:
        if line.product_id not in recipes:
            recipes[line.product_id] = db.get(Recipe, line.product_id)
        recipe = recipes[line.product_id]
        if recipe is None:
            if line.name not in usage.missing_recipes:
                usage.missing_recipes.append(line.name)
            continue
        for ri in recipe.items:
            current = usage.by_ingredient.get(ri.ingredient_id, Decimal(0))
            usage.by_ingredient[ri.ingredient_id] = current + Decimal(ri.qty) * Decimal(line.qty)
    return usage
