from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.db import get_db
from app.config import settings
from app.deps import ADMIN_ROLE, ALL_PERMISSIONS
from app.util.security import hash_pw
from app.models.core import User, Role, Permission, RolePermission, UserRole

router = APIRouter(prefix="/admin", tags=["admin"])

CASHIER_ROLE = "CASHIER"

@router.post("/dev-bootstrap")
def dev_bootstrap(db: Session = Depends(get_db)):
    """Idempotent seed: permissions, ADMIN/CASHIER roles and the admin user."""
    if settings.APP_ENV != "dev":
        raise HTTPException(403, detail="Not allowed")

    existing = {p.code: p for p in db.query(Permission).all()}
    for code, description in ALL_PERMISSIONS.items():
        if code not in existing:
            perm = Permission(code=code, description=description)
            db.add(perm); db.flush()
            existing[code] = perm

    roles = {}
    for code in (ADMIN_ROLE, CASHIER_ROLE):
        r = db.query(Role).filter(Role.code == code).first()
        if not r:
            r = Role(code=code)
            db.add(r); db.flush()
        roles[code] = r

    # ADMIN already implies everything; the explicit grants keep the table readable
    admin_role = roles[ADMIN_ROLE]
    for perm in existing.values():
        if not db.query(RolePermission).filter_by(role_id=admin_role.id, permission_id=perm.id).first():
            db.add(RolePermission(role_id=admin_role.id, permission_id=perm.id))

    u = db.query(User).filter(User.mobile == "9999999999").first()
    if not u:
        u = User(
            name="Admin",
            mobile="9999999999",
            email="admin@example.com",
            pass_hash=hash_pw("admin"),
            active=True,
        )
        db.add(u); db.flush()

    if not db.query(UserRole).filter_by(user_id=u.id, role_id=admin_role.id).first():
        db.add(UserRole(user_id=u.id, role_id=admin_role.id))

    db.commit()
    return {
        "admin_user_id": u.id,
        "admin_mobile": u.mobile,
        "admin_password": "admin",
        "roles": sorted(roles),
        "permissions": sorted(existing),
    }
