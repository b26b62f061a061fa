# backend/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings, setup_logging
from database import SessionLocal, init_db
from services.errors import ServiceError, TransactionFailed
from services.payments import ensure_payment_settings

logger = setup_logging()

# Router imports
from routes.auth import router as auth_router
from routes.catalog import router as catalog_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router
from routes.payments import router as payments_router
from routes.admin import router as admin_router
from routes.superadmin import router as superadmin_router
from routes.logs import router as logs_router

# Initialization
init_db()


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        ensure_payment_settings(db)
    finally:
        db.close()
    logger.info("Food ordering API started")
    yield


app = FastAPI(title="Food Ordering API", version="1.0.0", lifespan=lifespan)

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(message: str, errors=None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    message = exc.message
    if isinstance(exc, TransactionFailed) and settings.DEBUG and exc.cause is not None:
        message = f"{exc.message}: {exc.cause}"
    elif exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(message, exc.errors))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        # Drop the "body"/"query" prefix, keep the field path
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.setdefault(".".join(loc) or "request", []).append(err.get("msg", "Invalid value"))
    return JSONResponse(status_code=422, content=jsonable_encoder(_error_body("Validation error", errors)))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


# Router registration
app.include_router(auth_router)
app.include_router(catalog_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(admin_router)
app.include_router(superadmin_router)
app.include_router(logs_router)


@app.get("/")
def read_root():
    return {"message": "Food Ordering API is running"}
