# backend/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from utils.tokenJWT import create_access_token, get_current_user
from utils.audit import write_log, client_ip
from models import users as models
from models.log import AUDIT_FAIL
from schemas import user as schemas
from services import users as user_service
from services.access import Principal, has_multiple_access
from services.errors import AlreadyExists
from database import get_db

router = APIRouter(tags=["Auth"])

# Register a new user
@router.post("/register", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def register(user: schemas.UserCreate, request: Request, db: Session = Depends(get_db)):
    try:
        new_user = user_service.register(
            db,
            name=user.name,
            email=user.email,
            password=user.password,
            phone=user.phone,
            divisi=user.divisi,
            unit_kerja=user.unit_kerja,
        )
    except AlreadyExists:
        write_log(db, user_id=None, action="REGISTER", resource="auth", status=AUDIT_FAIL,
                  ip=client_ip(request), meta={"email": user.email, "reason": "Email exists"})
        raise

    # Log successful registration event
    write_log(db, user_id=new_user.id, action="REGISTER", resource="auth",
              ip=client_ip(request), meta={"email": new_user.email})
    return new_user


# Authenticate user and issue JWT token
@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.UserLogin, request: Request, db: Session = Depends(get_db)):
    db_user = user_service.authenticate(db, payload.email, payload.password)

    # Validate credentials and log failure on error
    if not db_user:
        write_log(db, user_id=None, action="LOGIN", resource="auth",
                  status=AUDIT_FAIL, ip=client_ip(request), meta={"email": payload.email})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": db_user.email, "role": db_user.role})

    write_log(db, user_id=db_user.id, action="LOGIN", resource="auth",
              ip=client_ip(request), meta={"email": db_user.email})

    return {"access_token": access_token, "token_type": "bearer"}


# Retrieve current authenticated user details
@router.get("/me", response_model=schemas.MeResponse)
def me(current_user: models.User = Depends(get_current_user)):
    principal = Principal.from_user(current_user)
    profile = schemas.MeResponse.model_validate(current_user, from_attributes=True)
    profile.has_multiple_access = has_multiple_access(principal)
    return profile
