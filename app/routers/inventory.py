# app/routers/inventory.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import CATALOG_EDIT, get_actor, require_auth, require_perm
from app.models.core import Ingredient, IngredientUnit, InventoryMovement, Recipe
from app.schemas.catalog import IngredientIn, IngredientOut, IngredientPatch
from app.schemas.inventory import MovementIn, MovementOut, RecipeIn, RecipeOut
from app.services import inventory as inventory_svc
from app.services import recipes as recipes_svc
from app.services.capabilities import Actor
from app.services.errors import NotFound

router = APIRouter(prefix="/inventory", tags=["inventory"])


def ingredient_out(i: Ingredient) -> IngredientOut:
    return IngredientOut(
        id=i.id,
        name=i.name,
        unit=i.unit.value,
        stock=float(i.stock or 0),
        min_stock=float(i.min_stock or 0),
        cost_per_unit=float(i.cost_per_unit) if i.cost_per_unit is not None else None,
        category=i.category,
        is_active=bool(i.is_active),
    )


def movement_out(m: InventoryMovement) -> MovementOut:
    return MovementOut(
        id=m.id,
        ingredient_id=m.ingredient_id,
        type=m.type.value,
        qty=float(m.qty),
        delta=float(m.delta),
        before_stock=float(m.before_stock),
        after_stock=float(m.after_stock),
        note=m.note,
        created_by=m.created_by,
        created_at=m.created_at,
    )


def recipe_out(r: Recipe, missing: list[str] | None = None) -> RecipeOut:
    return RecipeOut(
        product_id=r.product_id,
        items=[{"ingredient_id": it.ingredient_id, "qty": float(it.qty)} for it in r.items],
        missing_ingredients=missing or [],
    )


# ── Ingredients ─────────────────────────────────────────────────────────────

@router.get("/ingredients", response_model=list[IngredientOut])
def list_ingredients(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return [ingredient_out(i) for i in db.query(Ingredient).order_by(Ingredient.name.asc()).all()]


@router.post("/ingredients", response_model=IngredientOut)
def add_ingredient(body: IngredientIn, db: Session = Depends(get_db), sub: str = Depends(require_perm(CATALOG_EDIT))):
    # stock starts at zero; it only moves through /inventory/movements
    data = body.model_dump()
    data["unit"] = IngredientUnit(data["unit"])
    i = Ingredient(**data)
    db.add(i); db.commit(); db.refresh(i)
    return ingredient_out(i)


@router.patch("/ingredients/{ingredient_id}", response_model=IngredientOut)
def update_ingredient(ingredient_id: str, body: IngredientPatch, db: Session = Depends(get_db), sub: str = Depends(require_perm(CATALOG_EDIT))):
    i = db.get(Ingredient, ingredient_id)
    if not i:
        raise HTTPException(404, detail="ingredient not found")
    data = body.model_dump(exclude_unset=True)
    if data.get("unit"):
        data["unit"] = IngredientUnit(data["unit"])
    for k, v in data.items():
        setattr(i, k, v)
    db.commit(); db.refresh(i)
    return ingredient_out(i)


@router.get("/low_stock", response_model=list[IngredientOut])
def low_stock(db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return [ingredient_out(i) for i in inventory_svc.low_stock(db)]


# ── Movements ───────────────────────────────────────────────────────────────

@router.post("/movements", response_model=MovementOut)
def create_movement(body: MovementIn, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    mv = inventory_svc.apply_movement(db, body.ingredient_id, body.type, body.qty, body.note, actor)
    return movement_out(mv)


@router.get("/movements", response_model=list[MovementOut])
def list_movements(ingredient_id: str | None = None, limit: int = 100, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    return [movement_out(m) for m in inventory_svc.list_movements(db, ingredient_id, min(limit, 500))]


# ── Recipes ─────────────────────────────────────────────────────────────────

@router.get("/recipes/{product_id}", response_model=RecipeOut)
def get_recipe(product_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    r = recipes_svc.get_recipe(db, product_id)
    if r is None:
        raise NotFound("Recipe", product_id)
    return recipe_out(r)


@router.put("/recipes/{product_id}", response_model=RecipeOut)
def put_recipe(product_id: str, body: RecipeIn, db: Session = Depends(get_db), sub: str = Depends(require_perm(CATALOG_EDIT))):
    res = recipes_svc.upsert_recipe(db, product_id, [it.model_dump() for it in body.items])
    return recipe_out(res.recipe, res.missing_ingredients)
