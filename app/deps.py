from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from sqlalchemy.orm import Session
from app.db import get_db
from app.models.core import User, Role, RolePermission, Permission, UserRole
from app.services.capabilities import Actor, Capabilities
from app.util.security import decode_token

auth_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLE = "ADMIN"

# permission codes
INVENTORY_ADJUST = "INVENTORY_ADJUST"
ORDERS_VIEW_ALL = "ORDERS_VIEW_ALL"
CATALOG_EDIT = "CATALOG_EDIT"
REPORTS_VIEW = "REPORTS_VIEW"
EXPENSES_EDIT = "EXPENSES_EDIT"
USERS_MANAGE = "USERS_MANAGE"

ALL_PERMISSIONS = {
    INVENTORY_ADJUST: "Record stock entries, exits and adjustments; deduct stock on sale",
    ORDERS_VIEW_ALL: "See every open order, not only your own",
    CATALOG_EDIT: "Edit products, ingredients and recipes",
    REPORTS_VIEW: "See sales, reports and goals",
    EXPENSES_EDIT: "Record expenses",
    USERS_MANAGE: "Create users and assign roles",
}

def require_auth(creds: HTTPAuthorizationCredentials | None = Depends(auth_scheme)) -> str:
    if not creds:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        data = decode_token(creds.credentials)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return data["sub"]

def _is_admin(db: Session, user_id: str) -> bool:
    return (
        db.query(Role)
          .join(UserRole, UserRole.role_id == Role.id)
          .filter(UserRole.user_id == user_id, Role.code == ADMIN_ROLE)
          .first()
    ) is not None

def _user_permissions(db: Session, user_id: str) -> set[str]:
    q = (db.query(Permission.code)
         .join(RolePermission, RolePermission.permission_id == Permission.id)
         .join(Role, Role.id == RolePermission.role_id)
         .join(UserRole, UserRole.role_id == Role.id)
         .filter(UserRole.user_id == user_id))
    return {row[0] for row in q.all()}

def has_perm(db: Session, user_id: str, code: str) -> bool:
    # ADMIN role implies every permission
    return _is_admin(db, user_id) or code in _user_permissions(db, user_id)

def current_user(sub: str = Depends(require_auth), db: Session = Depends(get_db)) -> User:
    u = db.get(User, sub)
    if not u or not u.active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive or unknown")
    return u

def require_perm(code: str):
    def _dep(user: User = Depends(current_user), db: Session = Depends(get_db)) -> str:
        if not has_perm(db, user.id, code):
            raise HTTPException(status_code=403, detail=f"Missing permission: {code}")
        return user.id
    return _dep

def capabilities_for(db: Session, user_id: str) -> Capabilities:
    if _is_admin(db, user_id):
        return Capabilities(can_adjust_inventory=True, can_view_all_orders=True)
    perms = _user_permissions(db, user_id)
    return Capabilities(
        can_adjust_inventory=INVENTORY_ADJUST in perms,
        can_view_all_orders=ORDERS_VIEW_ALL in perms,
    )

def get_actor(user: User = Depends(current_user), db: Session = Depends(get_db)) -> Actor:
    return Actor(user_id=user.id, capabilities=capabilities_for(db, user.id))
