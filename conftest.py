# conftest.py
import os

os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("TX_RETRY_BACKOFF", "0")

import random
import string
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.db import Base, SessionLocal, engine
from app.main import app
from app.models.core import Ingredient, IngredientUnit, Product, User
from app.services.capabilities import Actor, Capabilities
from app.services.recipes import upsert_recipe
from app.util.security import hash_pw

Base.metadata.create_all(bind=engine)

@pytest.fixture(scope="session")
def base_url():
    # TestClient resolves relative urls; kept so request lines read the same as against a live server
    return ""

@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c

@pytest.fixture(scope="session")
def auth_headers(client, base_url):
    r = client.get(f"{base_url}/healthz")
    assert r.status_code == 200, f"/healthz failed: {r.text}"

    # seed dev data
    r = client.post(f"{base_url}/admin/dev-bootstrap")
    assert r.status_code == 200, f"/admin/dev-bootstrap failed: {r.text}"

    r = client.post(f"{base_url}/auth/login", params={"mobile": "9999999999", "password": "admin"})
    assert r.status_code == 200, f"/auth/login failed: {r.text}"
    tok = r.json()["access_token"]
    return {"Authorization": f"Bearer {tok}"}

@pytest.fixture(scope="session")
def cashier_headers(client, base_url, auth_headers, rng_suffix):
    mobile = f"3{random.randint(100000000, 999999999)}"
    r = client.post(f"{base_url}/users/", headers=auth_headers, json={
        "name": f"Cajero {rng_suffix}", "mobile": mobile, "password": "caja", "roles": ["CASHIER"],
    })
    assert r.status_code == 200, f"/users failed: {r.text}"
    r = client.post(f"{base_url}/auth/login", params={"mobile": mobile, "password": "caja"})
    assert r.status_code == 200, f"/auth/login (cashier) failed: {r.text}"
    return {"Authorization": f"Bearer {r.json()['access_token']}"}

@pytest.fixture(scope="session")
def rng_suffix():
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=6))

# ── service-level fixtures ──────────────────────────────────────────────────

@pytest.fixture()
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.rollback()
        s.close()

def _user(db, name: str) -> User:
    u = User(name=name, mobile=f"5{random.randint(100000000, 999999999)}", pass_hash=hash_pw("x"))
    db.add(u)
    db.commit()
    return u

@pytest.fixture()
def admin_actor(db):
    u = _user(db, "Admin test")
    return Actor(u.id, Capabilities(can_adjust_inventory=True, can_view_all_orders=True))

@pytest.fixture()
def cashier_actor(db):
    u = _user(db, "Cashier test")
    return Actor(u.id, Capabilities())

@pytest.fixture()
def make_ingredient(db):
    def _make(name: str, stock="0", min_stock="0", cost_per_unit=None, unit=IngredientUnit.UNIT) -> Ingredient:
        ing = Ingredient(
            name=name, unit=unit, stock=Decimal(stock), min_stock=Decimal(min_stock),
            cost_per_unit=Decimal(str(cost_per_unit)) if cost_per_unit is not None else None,
        )
        db.add(ing)
        db.commit()
        return ing
    return _make

@pytest.fixture()
def make_product(db):
    def _make(name: str, price="10000", recipe: list[tuple[str, str]] | None = None) -> Product:
        p = Product(name=name, price=Decimal(price), category="hamburguesas")
        db.add(p)
        db.commit()
        if recipe is not None:
            upsert_recipe(db, p.id, [{"ingredient_id": i, "qty": q} for i, q in recipe])
        return p
    return _make

