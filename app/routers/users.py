# app/routers/users.py
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import Optional

from app.db import get_db
from app.deps import USERS_MANAGE, require_perm
from app.util.security import hash_pw
from app.models.core import User, Role, UserRole, Permission, RolePermission

router = APIRouter(prefix="/users", tags=["users"])


class UserIn(BaseModel):
    name: str
    mobile: str
    email: Optional[str] = None
    password: str
    roles: list[str] = []


class UserPatch(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    active: Optional[bool] = None


class RolesIn(BaseModel):
    roles: list[str]


class GrantIn(BaseModel):
    permissions: list[str]


def _role_codes(db: Session, user_id: str) -> list[str]:
    rows = (
        db.query(Role.code)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .order_by(Role.code.asc())
        .all()
    )
    return [r[0] for r in rows]


def _get_role(db: Session, code: str) -> Role:
    r = db.query(Role).filter(Role.code == code).first()
    if not r:
        raise HTTPException(404, detail=f"role {code} not found")
    return r


def _user_out(db: Session, u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "mobile": u.mobile,
        "email": u.email,
        "active": bool(u.active),
        "roles": _role_codes(db, u.id),
    }


# ── Users ───────────────────────────────────────────────────────────────────

@router.post("/")
def create_user(body: UserIn, db: Session = Depends(get_db), sub: str = Depends(require_perm(USERS_MANAGE))):
    if db.query(User).filter(User.mobile == body.mobile).first():
        raise HTTPException(409, detail="Mobile already exists")
    roles = [_get_role(db, code) for code in body.roles]

    u = User(name=body.name, mobile=body.mobile, email=body.email, pass_hash=hash_pw(body.password))
    db.add(u)
    db.flush()
    for r in roles:
        db.add(UserRole(user_id=u.id, role_id=r.id))
    db.commit()
    db.refresh(u)
    return _user_out(db, u)


@router.get("/", summary="List users with their roles")
def list_users(db: Session = Depends(get_db), sub: str = Depends(require_perm(USERS_MANAGE))):
    users = db.query(User).order_by(User.created_at.desc()).limit(500).all()
    return [_user_out(db, u) for u in users]


@router.post("/{user_id}/roles", summary="Assign roles to a user")
def assign_roles(user_id: str, body: RolesIn, db: Session = Depends(get_db), sub: str = Depends(require_perm(USERS_MANAGE))):
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(404, detail="user not found")
    for code in body.roles:
        r = _get_role(db, code)
        if not db.query(UserRole).filter_by(user_id=u.id, role_id=r.id).first():
            db.add(UserRole(user_id=u.id, role_id=r.id))
    db.commit()
    return _user_out(db, u)


@router.delete("/{user_id}/roles/{role_code}", summary="Remove a role from a user")
def remove_role(user_id: str, role_code: str, db: Session = Depends(get_db), sub: str = Depends(require_perm(USERS_MANAGE))):
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(404, detail="user not found")
    r = _get_role(db, role_code)
    db.query(UserRole).filter(UserRole.user_id == u.id, UserRole.role_id == r.id).delete()
    db.commit()
    return _user_out(db, u)


@router.patch("/{user_id}")
def update_user(user_id: str, body: UserPatch, db: Session = Depends(get_db), sub: str = Depends(require_perm(USERS_MANAGE))):
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(404, detail="user not found")
    data = body.model_dump(exclude_unset=True)
    if data.get("active") is False and u.id == sub:
        raise HTTPException(400, detail="cannot deactivate yourself")
    if data.get("password"):
        u.pass_hash = hash_pw(data.pop("password"))
    data.pop("password", None)
    for k, v in data.items():
        setattr(u, k, v)
    db.commit()
    return _user_out(db, u)


# ── Roles & Permissions ─────────────────────────────────────────────────────

@router.get("/roles/", summary="List roles with their permissions")
def list_roles(db: Session = Depends(get_db), sub: str = Depends(require_perm(USERS_MANAGE))):
    out = []
    for r in db.query(Role).order_by(Role.code.asc()).all():
        perms = (
            db.query(Permission.code)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id == r.id)
            .order_by(Permission.code.asc())
            .all()
        )
        out.append({"id": r.id, "code": r.code, "permissions": [p[0] for p in perms]})
    return out


@router.get("/permissions/", summary="List all permissions")
def list_permissions(db: Session = Depends(get_db), sub: str = Depends(require_perm(USERS_MANAGE))):
    rows = db.query(Permission).order_by(Permission.code.asc()).all()
    return [{"code": p.code, "description": p.description} for p in rows]


@router.post("/roles/{role_code}/grant", summary="Grant permissions to a role")
def grant_permissions(role_code: str, body: GrantIn, db: Session = Depends(get_db), sub: str = Depends(require_perm(USERS_MANAGE))):
    r = _get_role(db, role_code)
    known = {p.code: p for p in db.query(Permission).filter(Permission.code.in_(body.permissions)).all()}
    unknown = sorted(set(body.permissions) - set(known))
    if unknown:
        raise HTTPException(422, detail=f"unknown permissions: {', '.join(unknown)}")
    granted = 0
    for p in known.values():
        if not db.query(RolePermission).filter_by(role_id=r.id, permission_id=p.id).first():
            db.add(RolePermission(role_id=r.id, permission_id=p.id))
            granted += 1
    db.commit()
    return {"role": r.code, "granted": granted}
