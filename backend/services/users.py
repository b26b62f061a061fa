"""
User accounts and their administration.

Every account change keeps at least one superadmin in place: the last one
can be neither demoted, deactivated nor deleted.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from models.order import Order
from models.types import AccessToken
from models.users import Role, User
from services.access import Principal, apply_access_filter, narrow_scope, require_staff, require_user_admin
from services.errors import AlreadyExists, InvalidState, NotFound, ValidationFailed
from utils.hashing import get_password_hash, verify_password

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()


def register(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    phone: Optional[str] = None,
    divisi: Optional[str] = None,
    unit_kerja: Optional[str] = None,
) -> User:
    if find_by_email(db, email):
        raise AlreadyExists("Email already registered", errors={"email": ["Email already registered"]})

    user = User(
        name=name.strip(),
        email=normalize_email(email),
        password_hash=get_password_hash(password),
        phone=phone,
        role=Role.USER.value,
        divisi=divisi,
        unit_kerja=unit_kerja,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.email)
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    """The active user matching the credentials, or None."""
    user = find_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    if not user.is_active:
        return None
    return user


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def _superadmin_count(db: Session, active_only: bool = False) -> int:
    query = db.query(func.count(User.id)).filter(User.role == Role.SUPERADMIN.value)
    if active_only:
        query = query.filter(User.is_active.is_(True))
    return query.scalar() or 0


def _is_last_superadmin(db: Session, user: User, active_only: bool = False) -> bool:
    if user.role != Role.SUPERADMIN.value:
        return False
    if active_only and not user.is_active:
        return False
    return _superadmin_count(db, active_only=active_only) <= 1


def _parse_access(values: Iterable) -> frozenset:
    """Recognized tokens of ``values``; anything unrecognized is a validation error."""
    values = list(values or ())
    tokens = AccessToken.parse(values)
    unknown = [v for v in values if not AccessToken.parse([v])]
    if unknown:
        raise ValidationFailed.field("data_access", f"Unknown access token(s): {', '.join(map(str, unknown))}")
    return tokens


def list_users(
    db: Session,
    principal: Principal,
    *,
    page: int = 1,
    per_page: int = 15,
    role: Optional[Role] = None,
    search: Optional[str] = None,
    division: Optional[AccessToken] = None,
) -> Tuple[List[User], int]:
    require_staff(principal)
    scope = narrow_scope(principal, division)

    query = apply_access_filter(db.query(User), scope)
    if role:
        query = query.filter(User.role == role.value)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(User.name.ilike(like), User.email.ilike(like)))

    total = query.count()
    rows = query.order_by(User.id).offset((page - 1) * per_page).limit(per_page).all()
    return rows, total


def change_role(
    db: Session,
    principal: Principal,
    user_id: int,
    new_role: Role,
    data_access: Optional[Iterable] = None,
) -> User:
    require_user_admin(principal)
    user = _get_user(db, user_id)

    if new_role is not Role.SUPERADMIN and _is_last_superadmin(db, user):
        raise InvalidState("Cannot demote the last superadmin")

    if new_role.uses_data_access:
        tokens = _parse_access(data_access) if data_access is not None else AccessToken.parse(user.data_access)
        if not tokens:
            raise ValidationFailed.field("data_access", "Admins need at least one data access token")
        user.data_access = tokens
    else:
        user.data_access = None

    user.role = new_role.value
    db.commit()
    db.refresh(user)
    logger.info("User %s role changed to %s by %s", user.id, new_role.value, principal.id)
    return user


def set_data_access(db: Session, principal: Principal, user_id: int, data_access: Iterable) -> User:
    require_user_admin(principal)
    user = _get_user(db, user_id)

    if not user.role_enum.uses_data_access:
        raise InvalidState("Data access can only be set for admins")

    tokens = _parse_access(data_access)
    if not tokens:
        raise ValidationFailed.field("data_access", "Admins need at least one data access token")

    user.data_access = tokens
    db.commit()
    db.refresh(user)
    return user


def set_active(db: Session, principal: Principal, user_id: int, active: bool) -> User:
    require_user_admin(principal)
    user = _get_user(db, user_id)

    if not active and _is_last_superadmin(db, user, active_only=True):
        raise InvalidState("Cannot deactivate the last active superadmin")

    user.is_active = active
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, principal: Principal, user_id: int) -> str:
    """Delete an account with its carts. Returns the email of the removed user."""
    require_user_admin(principal)
    user = _get_user(db, user_id)

    if user.id == principal.id:
        raise InvalidState("You cannot delete your own account")
    if _is_last_superadmin(db, user):
        raise InvalidState("Cannot delete the last superadmin")
    if db.query(Order.id).filter(Order.user_id == user.id).first() is not None:
        raise InvalidState("User has orders and cannot be deleted")

    email = user.email
    db.delete(user)
    db.commit()
    logger.info("User %s deleted by %s", email, principal.id)
    return email
