"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from hrm_authz.api import auth, menus, roles
from hrm_authz.core.config import settings
from hrm_authz.core.database import SessionLocal
from hrm_authz.core.exceptions import AuthzError, UnauthorizedError
from hrm_authz.schemas.common import error
from hrm_authz.services.role_hierarchy import RoleHierarchyService

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("hrm_authz")


def bootstrap_system_roles() -> list:
    """Insert any missing built-in roles using a dedicated session."""
    db = SessionLocal()
    try:
        return RoleHierarchyService(db).initialize_system_roles()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting role and menu authorization service (%s)", settings.ENVIRONMENT)
    if settings.INIT_SYSTEM_ROLES_ON_STARTUP:
        try:
            created = bootstrap_system_roles()
            logger.info("System roles ready (%d created)", len(created))
        except SQLAlchemyError as exc:
            logger.error("System role initialization failed, retry via POST /roles/initialize: %s", exc)
    yield
    logger.info("Shutting down role and menu authorization service")


app = FastAPI(title="HRM Authorization Service", version="1.0.0", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthzError)
async def authz_exception_handler(request: Request, exc: AuthzError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error(exc.message, exc.detail, exc.status_code),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error("Validation failed", "; ".join(problems), status.HTTP_400_BAD_REQUEST),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error(str(exc.detail), response_code=exc.status_code),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error("Internal server error", response_code=status.HTTP_500_INTERNAL_SERVER_ERROR),
    )


# Routes
app.include_router(roles.router, prefix="/roles", tags=["roles"])
app.include_router(menus.router, prefix="/menus", tags=["menus"])
app.include_router(auth.router, prefix="/auth", tags=["auth"])


@app.get("/")
def read_root():
    return {"message": "HRM Authorization Service API"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}
