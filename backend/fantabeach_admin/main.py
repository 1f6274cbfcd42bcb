import logging
import os

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session

from fantabeach_admin.clock import naive_utc_now
from fantabeach_admin.database import engine, init_db
from fantabeach_admin.errors import BAD_REQUEST, DomainError
from fantabeach_admin.models.user import User
from fantabeach_admin.repository import SqlAdminRepository
from fantabeach_admin.routes import (
    audit_logs,
    auth,
    bracket,
    entry_list,
    leagues,
    matches,
    overview,
    payments,
    players,
    scoring,
    seasons,
    tournaments,
)
from fantabeach_admin.services.auth import hash_password

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="FantaBeach Admin API")

_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_payload()))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    payload = {"code": BAD_REQUEST, "message": "Invalid request payload", "details": {"errors": errors}}
    return JSONResponse(status_code=400, content=payload)


API_PREFIX = "/api/admin"

app.include_router(auth.router, prefix=API_PREFIX, tags=["auth"])
app.include_router(seasons.router, prefix=API_PREFIX, tags=["seasons"])
app.include_router(players.router, prefix=API_PREFIX, tags=["players"])
app.include_router(tournaments.router, prefix=API_PREFIX, tags=["tournaments"])
app.include_router(entry_list.router, prefix=API_PREFIX, tags=["entry-list"])
app.include_router(matches.router, prefix=API_PREFIX, tags=["matches"])
app.include_router(bracket.router, prefix=API_PREFIX, tags=["bracket"])
app.include_router(scoring.router, prefix=API_PREFIX, tags=["scoring"])
app.include_router(leagues.router, prefix=API_PREFIX, tags=["leagues"])
app.include_router(payments.router, prefix=API_PREFIX, tags=["payments"])
app.include_router(audit_logs.router, prefix=API_PREFIX, tags=["audit"])
app.include_router(overview.router, prefix=API_PREFIX, tags=["overview"])


def bootstrap_admin() -> None:
    """Create the configured super_admin on first start."""
    email = os.getenv("ADMIN_BOOTSTRAP_EMAIL", "").strip().lower()
    password = os.getenv("ADMIN_BOOTSTRAP_PASSWORD", "")
    if not email or not password:
        return

    with Session(engine) as session:
        repo = SqlAdminRepository(session)
        if repo.get_user_by_email(email) is not None:
            return
        repo.add(
            User(
                email=email,
                display_name="Administrator",
                role="super_admin",
                active=True,
                password_hash=hash_password(password),
                created_at=naive_utc_now(),
            )
        )
        repo.commit()
        logger.info("Bootstrap admin %s created", email)


@app.on_event("startup")
def on_startup():
    init_db()
    bootstrap_admin()


@app.get("/api/health")
def health_check():
    return {"app_name": "FantaBeach Admin API", "status": "healthy"}
