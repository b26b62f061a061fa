# backend/routes/superadmin.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models.types import serialize_access
from models.users import Role
from schemas.payment import PaymentSettingsOut, PaymentSettingsUpdate
from schemas.user import RoleUpdate, DataAccessUpdate, ActiveUpdate, UserResponse
from services import payments as payment_service
from services import users as user_service
from services.access import Principal
from services.errors import ValidationFailed
from utils.audit import write_log, client_ip
from utils.tokenJWT import superadmin_required

router = APIRouter(prefix="/superadmin", tags=["Superadmin"])


# Update user role, with the data access set admins need
@router.put("/users/{user_id}/role", response_model=UserResponse)
def update_user_role(
    user_id: int,
    payload: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(superadmin_required),
):
    try:
        new_role = Role(payload.role)
    except ValueError:
        raise ValidationFailed.field("role", f"Unknown role {payload.role}")

    user = user_service.change_role(db, principal, user_id, new_role, payload.data_access)
    write_log(db, user_id=principal.id, action="ROLE_CHANGE", resource="users", ip=client_ip(request),
              meta={"target_id": user_id, "role": new_role.value, "data_access": serialize_access(user.data_access)})
    db.refresh(user)
    return user


@router.put("/users/{user_id}/data-access", response_model=UserResponse)
def update_data_access(
    user_id: int,
    payload: DataAccessUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(superadmin_required),
):
    user = user_service.set_data_access(db, principal, user_id, payload.data_access)
    write_log(db, user_id=principal.id, action="DATA_ACCESS", resource="users", ip=client_ip(request),
              meta={"target_id": user_id, "data_access": serialize_access(user.data_access)})
    db.refresh(user)
    return user


@router.put("/users/{user_id}/active", response_model=UserResponse)
def update_active(
    user_id: int,
    payload: ActiveUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(superadmin_required),
):
    user = user_service.set_active(db, principal, user_id, payload.is_active)
    write_log(db, user_id=principal.id, action="USER_ACTIVE", resource="users", ip=client_ip(request),
              meta={"target_id": user_id, "is_active": payload.is_active})
    db.refresh(user)
    return user


# Delete a user account together with its carts
@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(superadmin_required),
):
    email = user_service.delete_user(db, principal, user_id)
    write_log(db, user_id=principal.id, action="USER_DELETE", resource="users", ip=client_ip(request),
              meta={"target_id": user_id, "email": email})
    return {"success": True, "message": f"User {email} has been deleted"}


@router.get("/payment-settings", response_model=PaymentSettingsOut)
def get_payment_settings(db: Session = Depends(get_db), principal: Principal = Depends(superadmin_required)):
    return payment_service.get_payment_settings(db)


@router.put("/payment-settings", response_model=PaymentSettingsOut)
def update_payment_settings(
    payload: PaymentSettingsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(superadmin_required),
):
    changes = payload.model_dump(exclude_unset=True)
    settings_row = payment_service.update_payment_settings(db, principal, **changes)
    write_log(db, user_id=principal.id, action="PAYMENT_SETTINGS", resource="payment_settings",
              ip=client_ip(request), meta={"fields": sorted(changes)})
    db.refresh(settings_row)
    return settings_row
