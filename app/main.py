# app/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.middleware import RequestIdMiddleware
from app.db import Base, engine
from app.config import settings
from app.services.errors import (
    ConcurrencyConflict, InsufficientStock, InvalidInput, NotFound, PermissionDenied, PosError,
)
from app.util.logging import configure_logging

from app.routers import admin, auth, expenses, inventory, orders, products, reports, sales, users

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Comandera API", version="0.1.0")

@app.on_event("startup")
def init_db():
    Base.metadata.create_all(bind=engine)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = (
    (NotFound, 404),
    (PermissionDenied, 403),
    (InsufficientStock, 409),
    (ConcurrencyConflict, 409),
    (InvalidInput, 422),
)

def status_for(exc: PosError) -> int:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return 400

@app.exception_handler(PosError)
async def pos_error_handler(request: Request, exc: PosError):
    code = status_for(exc)
    logger.info("%s %s -> %d %s", request.method, request.url.path, code, exc.error_code)
    return JSONResponse(status_code=code, content=exc.to_dict())

app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(users.router)
app.include_router(products.router)
app.include_router(inventory.router)
app.include_router(orders.router)
app.include_router(sales.router)
app.include_router(expenses.router)
app.include_router(reports.router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
