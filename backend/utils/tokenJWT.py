# utils/tokenJWT.py
from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models import users as models
from services.access import Principal
from services.errors import Forbidden

# Authorization scheme
bearer_scheme = HTTPBearer()

# Generate a new JWT access token
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

# Retrieve the currently authenticated user based on the JWT token
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
):
    token = credentials.credentials
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        email: str = payload.get("sub")
        # Ensure email is present in the token payload
        if email is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = db.query(models.User).filter(models.User.email == email).first()
    # Deactivated accounts lose access immediately, even with a valid token
    if user is None or not user.is_active:
        raise credentials_exception
    return user

# Resolve the request principal once; services receive this instead of the row
def get_current_principal(current_user: models.User = Depends(get_current_user)) -> Principal:
    return Principal.from_user(current_user)

# Dependency factory for Role-Based Access Control
def role_required(*allowed_roles: models.Role):
    def _checker(principal: Principal = Depends(get_current_principal)):
        if allowed_roles and not any(principal.role.satisfies(role) for role in allowed_roles):
            raise Forbidden("Forbidden")
        return principal
    return _checker

# Shortcuts used by the staff and superadmin routers
staff_required = role_required(models.Role.ADMIN)
superadmin_required = role_required(models.Role.SUPERADMIN)
