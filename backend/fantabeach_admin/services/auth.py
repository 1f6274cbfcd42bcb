"""Admin sessions: password hashing, login, and session-token validation."""
import logging
import os
import secrets
from datetime import datetime, timedelta
from typing import Optional

from passlib.context import CryptContext

from fantabeach_admin.clock import as_utc, storage_timestamp
from fantabeach_admin.errors import unauthorized
from fantabeach_admin.models.user import ADMIN_ROLES, AdminSession, User

logger = logging.getLogger(__name__)

SESSION_TTL_HOURS = float(os.getenv("SESSION_TTL_HOURS", "8"))

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        # Unrecognized hash format
        return False


def authenticate(repo, email: str, password: str) -> User:
    user = repo.get_user_by_email(email.strip().lower())
    if user is None or not user.active or user.role not in ADMIN_ROLES:
        logger.warning("Rejected admin login for %s", email)
        raise unauthorized()
    if not verify_password(password, user.password_hash):
        logger.warning("Rejected admin login for %s (bad password)", email)
        raise unauthorized()
    return user


def open_session(repo, user: User, now: datetime) -> AdminSession:
    """Create a fresh session, replacing any the user already had."""
    for existing in repo.list_sessions_for_user(user.id):
        repo.delete(existing)
    session = AdminSession(
        token=secrets.token_urlsafe(32),
        user_id=user.id,
        expires_at=storage_timestamp(now + timedelta(hours=SESSION_TTL_HOURS)),
        created_at=storage_timestamp(now),
    )
    repo.add(session)
    return session


def resolve_session(repo, token: Optional[str], now: datetime) -> AdminSession:
    if not token:
        raise unauthorized()
    session = repo.get_admin_session(token)
    if session is None:
        raise unauthorized()
    if as_utc(session.expires_at) <= as_utc(now):
        raise unauthorized()
    return session
