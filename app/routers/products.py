from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps import CATALOG_EDIT, require_auth, require_perm
from app.models.core import ADDITIONS_CATEGORY, Product
from app.schemas.catalog import ProductIn, ProductOut, ProductPatch

router = APIRouter(prefix="/products", tags=["products"])


def product_out(p: Product) -> ProductOut:
    return ProductOut(
        id=p.id,
        name=p.name,
        price=float(p.price),
        cost=float(p.cost) if p.cost is not None else None,
        category=p.category,
        sku=p.sku,
        is_active=bool(p.is_active),
        is_addition=(p.category or "").strip().lower() == ADDITIONS_CATEGORY,
    )


@router.get("/", response_model=list[ProductOut])
def list_products(active_only: bool = False, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    q = db.query(Product)
    if active_only:
        q = q.filter(Product.is_active.is_(True))
    return [product_out(p) for p in q.order_by(Product.category.asc(), Product.name.asc()).all()]


@router.post("/", response_model=ProductOut)
def create_product(body: ProductIn, db: Session = Depends(get_db), sub: str = Depends(require_perm(CATALOG_EDIT))):
    p = Product(**body.model_dump())
    db.add(p); db.commit(); db.refresh(p)
    return product_out(p)


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(product_id: str, body: ProductPatch, db: Session = Depends(get_db), sub: str = Depends(require_perm(CATALOG_EDIT))):
    p = db.get(Product, product_id)
    if not p:
        raise HTTPException(404, detail="product not found")
    for k, v in body.model_dump(exclude_unset=True).items():
        setattr(p, k, v)
    db.commit(); db.refresh(p)
    return product_out(p)
